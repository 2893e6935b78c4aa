"""
Content enhancement pipeline.

Schemas and exceptions are exported here; the orchestrator and
performance monitor are imported from their modules.
"""

from .exceptions import ConfigurationError, PipelineError, PipelinePartialFailure
from .schemas import (
    PIPELINE_STAGES,
    PIPELINE_VERSION,
    AdventurePrompt,
    Enhancement,
    FallbackBehavior,
    PerformanceMode,
    PipelineConfig,
    ProcessingReport,
    QualityTarget,
    StageResult,
    StageStatus,
)

__all__ = [
    "PIPELINE_STAGES",
    "PIPELINE_VERSION",
    "AdventurePrompt",
    "Enhancement",
    "FallbackBehavior",
    "PerformanceMode",
    "PipelineConfig",
    "ProcessingReport",
    "QualityTarget",
    "StageResult",
    "StageStatus",
    "PipelineError",
    "ConfigurationError",
    "PipelinePartialFailure",
]
