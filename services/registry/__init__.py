"""Registry services for enhancement adapters."""

from .adapter_registry import AdapterRegistry
from .exceptions import AdapterNotFoundError, DuplicateAdapterError, RegistryError
from .health_service import HealthService

__all__ = [
    "AdapterRegistry",
    "HealthService",
    "RegistryError",
    "DuplicateAdapterError",
    "AdapterNotFoundError",
]
