"""
Configuration store for the enhancement pipeline.

This package persists pipeline configurations and quality history to
various storage backends.
"""

from .base import BaseConfigStore
from .exceptions import ConfigStoreError, MigrationError, QueryError, StoreConnectionError
from .schemas import (
    CONFIG_VERSION,
    QualityHistoryEntry,
    QualityStatistics,
    StoredConfig,
)

__all__ = [
    "BaseConfigStore",
    "CONFIG_VERSION",
    "StoredConfig",
    "QualityHistoryEntry",
    "QualityStatistics",
    "ConfigStoreError",
    "StoreConnectionError",
    "MigrationError",
    "QueryError",
]
