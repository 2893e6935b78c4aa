"""
Enhancement adapters.

Each adapter implements one enhancement stage behind a uniform capability
contract so the pipeline can drive them identically.
"""

from .backend import EnrichmentBackend, HTTPEnrichmentBackend
from .base import BaseEnhancementAdapter
from .exceptions import (
    AdapterUnavailableError,
    BackendError,
    EnhancementError,
    ExecutionFailureError,
    InvalidInputError,
    StageTimeoutError,
)
from .metrics import MetricsTracker
from .schemas import (
    AdapterDescriptor,
    FeatureMetrics,
    HealthStatus,
    StageInput,
    StageName,
    StageOutput,
)

__all__ = [
    "BaseEnhancementAdapter",
    "EnrichmentBackend",
    "HTTPEnrichmentBackend",
    "MetricsTracker",
    "StageName",
    "StageInput",
    "StageOutput",
    "HealthStatus",
    "FeatureMetrics",
    "AdapterDescriptor",
    "EnhancementError",
    "InvalidInputError",
    "AdapterUnavailableError",
    "ExecutionFailureError",
    "StageTimeoutError",
    "BackendError",
]
