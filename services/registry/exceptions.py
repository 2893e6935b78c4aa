"""
Registry-specific exceptions.

These exceptions provide clear error messages for adapter registration
and lookup failures.
"""


class RegistryError(Exception):
    """Base exception for registry errors."""

    pass


class DuplicateAdapterError(RegistryError):
    """Raised when attempting to register an adapter under a bound name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Adapter '{name}' is already registered. "
            "Each stage can be bound to exactly one adapter."
        )


class AdapterNotFoundError(RegistryError):
    """Raised when a requested adapter is not registered."""

    def __init__(self, name: str, registered: list[str] | None = None):
        self.name = name
        self.registered = registered or []
        message = f"Adapter '{name}' not found."
        if self.registered:
            message += f" Registered adapters: {', '.join(self.registered)}"
        super().__init__(message)
