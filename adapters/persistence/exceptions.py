"""
Config store exceptions.

The service treats every store failure as a ConfigStoreError; the
subclasses say which phase failed.
"""


class ConfigStoreError(Exception):
    """Base exception for config store failures"""

    pass


class StoreConnectionError(ConfigStoreError):
    """Raised when the store cannot be opened"""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Cannot open config store at {location}: {reason}")


class MigrationError(ConfigStoreError):
    """Raised when the storage schema cannot be brought up to date"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Config store migration failed: {reason}")


class QueryError(ConfigStoreError):
    """Raised when a store operation fails"""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Failed to {operation}: {reason}")
