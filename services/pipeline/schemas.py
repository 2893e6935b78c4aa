"""Configuration, report and result schemas for the enhancement pipeline."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator

from adapters.enhancement.schemas import StageName
from services.quality.schemas import (
    Grade,
    QualityAnalysis,
    QualityBreakdown,
    QualityMetrics,
)

# Static pipeline definition. Order matters for reporting only.
PIPELINE_VERSION = "2.0.0"
PIPELINE_STAGES: tuple[StageName, ...] = tuple(StageName)

DEFAULT_STAGE_TIMEOUT_SECONDS = 30.0


# ============================================
# CONFIGURATION
# ============================================


class PerformanceMode(str, Enum):
    SPEED = "speed"
    BALANCED = "balanced"
    QUALITY = "quality"


class FallbackBehavior(str, Enum):
    GRACEFUL = "graceful"
    STRICT = "strict"


class QualityTarget(str, Enum):
    STANDARD = "standard"
    PROFESSIONAL = "professional"
    PREMIUM = "premium"
    PUBLICATION_READY = "publication-ready"


# Advisory presets: which stages a caller might enable per mode
MODE_PRESETS: dict[PerformanceMode, frozenset[StageName]] = {
    PerformanceMode.SPEED: frozenset(
        {
            StageName.PROMPT_ANALYSIS,
            StageName.PROFESSIONAL_LAYOUT,
            StageName.EDITORIAL_EXCELLENCE,
            StageName.MATHEMATICAL_VALIDATION,
        }
    ),
    PerformanceMode.BALANCED: frozenset(
        {
            StageName.PROMPT_ANALYSIS,
            StageName.PROFESSIONAL_LAYOUT,
            StageName.ENHANCED_NPCS,
            StageName.TACTICAL_COMBAT,
            StageName.EDITORIAL_EXCELLENCE,
            StageName.MATHEMATICAL_VALIDATION,
        }
    ),
    PerformanceMode.QUALITY: frozenset(StageName),
}


class PipelineConfig(BaseModel):
    """Caller-supplied stage enablement and policies"""

    model_config = ConfigDict(extra="forbid")

    enabled: StrictBool = Field(True, description="Global on/off switch")
    stages: dict[StageName, StrictBool] = Field(
        default_factory=lambda: {stage: True for stage in StageName},
        description="Stage enablement; stages left out are disabled",
    )
    quality_target: QualityTarget = QualityTarget.PROFESSIONAL
    performance_mode: PerformanceMode = PerformanceMode.BALANCED
    fallback_behavior: FallbackBehavior = FallbackBehavior.GRACEFUL
    stage_timeout_seconds: float = Field(
        DEFAULT_STAGE_TIMEOUT_SECONDS, gt=0, description="Per-stage time budget"
    )

    def is_stage_enabled(self, stage: StageName) -> bool:
        return self.enabled and self.stages.get(stage, False)

    def enabled_stages(self) -> list[StageName]:
        return [stage for stage in PIPELINE_STAGES if self.is_stage_enabled(stage)]

    @classmethod
    def for_mode(cls, mode: PerformanceMode | str, **overrides: Any) -> "PipelineConfig":
        """Build a config with the advisory stage preset for a mode."""
        mode = PerformanceMode(mode)
        preset = MODE_PRESETS[mode]
        return cls(
            stages={stage: stage in preset for stage in StageName},
            performance_mode=mode,
            **overrides,
        )


class AdventurePrompt(BaseModel):
    """Structured generation context; free-form extras are kept"""

    model_config = ConfigDict(extra="allow")

    description: str | None = None
    party_size: int | None = Field(None, ge=1)
    party_level: int | None = Field(None, ge=1, le=20)
    duration: str | None = None
    theme: str | None = None
    setting: str | None = None
    tone: str | None = None
    additional_requirements: str | None = None


# ============================================
# STAGE RESULTS & REPORT
# ============================================


class StageStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageResult(BaseModel):
    """Outcome of one stage in one pipeline run"""

    model_config = ConfigDict(frozen=True)

    stage_name: StageName
    status: StageStatus
    duration: float = Field(0.0, ge=0, description="Wall time in ms")
    output: Any = None
    error: str | None = None
    error_type: str | None = None
    quality_impact: float = Field(0.0, ge=0)


class ProcessingReport(BaseModel):
    """Per-run diagnostics; step details keep the declared stage order"""

    model_config = ConfigDict(frozen=True)

    total_steps: int
    completed_steps: int
    failed_steps: int
    skipped_steps: int
    processing_time: float = 0.0
    step_details: list[StageResult] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_partition(self) -> "ProcessingReport":
        if self.total_steps != self.completed_steps + self.failed_steps + self.skipped_steps:
            raise ValueError("total_steps must equal completed + failed + skipped")
        return self

    @classmethod
    def from_results(
        cls, results: list[StageResult], processing_time: float
    ) -> "ProcessingReport":
        counts = {status: 0 for status in StageStatus}
        for result in results:
            counts[result.status] += 1
        return cls(
            total_steps=len(results),
            completed_steps=counts[StageStatus.COMPLETED],
            failed_steps=counts[StageStatus.FAILED],
            skipped_steps=counts[StageStatus.SKIPPED],
            processing_time=processing_time,
            step_details=results,
        )

    def result_for(self, stage: StageName) -> StageResult | None:
        for result in self.step_details:
            if result.stage_name == stage:
                return result
        return None

    @property
    def enabled_steps(self) -> int:
        return self.completed_steps + self.failed_steps


# ============================================
# ENHANCEMENT
# ============================================


class Enhancement(BaseModel):
    """Pipeline output aggregate; treated as a value once returned"""

    model_config = ConfigDict(frozen=True)

    session_id: str
    original_content: Any
    stage_outputs: dict[StageName, Any] = Field(default_factory=dict)
    quality_metrics: QualityMetrics
    grade: Grade
    processing_time: float
    stages_applied: list[StageName] = Field(default_factory=list)
    report: ProcessingReport
    breakdown: QualityBreakdown
    analysis: QualityAnalysis
    pipeline_version: str = PIPELINE_VERSION
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
