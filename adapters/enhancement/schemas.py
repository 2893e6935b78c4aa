"""
Common schemas for enhancement adapters.

These are the records every adapter speaks: what it receives, what it
returns and how it reports its own health.
"""
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StageName(str, Enum):
    """Enhancement stages, in declared pipeline order."""

    PROMPT_ANALYSIS = "prompt_analysis"
    MULTI_SOLUTION_PUZZLES = "multi_solution_puzzles"
    PROFESSIONAL_LAYOUT = "professional_layout"
    ENHANCED_NPCS = "enhanced_npcs"
    TACTICAL_COMBAT = "tactical_combat"
    EDITORIAL_EXCELLENCE = "editorial_excellence"
    ACCESSIBILITY_FEATURES = "accessibility_features"
    MATHEMATICAL_VALIDATION = "mathematical_validation"


# ============================================
# EXECUTION SCHEMAS
# ============================================


class StageInput(BaseModel):
    """Read-only input handed to every stage of a pipeline run."""

    model_config = ConfigDict(frozen=True)

    content: Any = Field(..., description="Generated content (owned by caller)")
    context: dict[str, Any] = Field(
        default_factory=dict, description="Prompt and generation context"
    )
    session_id: str | None = None

    def lookup(self, key: str, default: Any = None) -> Any:
        """Find a value in the context first, then in mapping content."""
        if key in self.context:
            return self.context[key]
        if isinstance(self.content, dict) and key in self.content:
            return self.content[key]
        return default

    def prompt_text(self) -> str:
        """Free text of the prompt, whichever key it arrived under."""
        for key in ("description", "prompt", "theme"):
            value = self.context.get(key)
            if isinstance(value, str) and value.strip():
                parts = [value]
                for extra in ("setting", "tone", "additional_requirements"):
                    extra_value = self.context.get(extra)
                    if isinstance(extra_value, str) and extra_value.strip():
                        parts.append(extra_value)
                return " ".join(parts)
        return ""

    def content_text(self) -> str:
        """Flatten the content into plain text for text-level analysis."""
        return " ".join(_iter_strings(self.content))


class StageOutput(BaseModel):
    """Result of a single stage execution."""

    model_config = ConfigDict(frozen=True)

    payload: Any = Field(..., description="Stage-specific enrichment")
    quality_signal: float | None = Field(
        default=None, ge=0, le=100, description="Self-reported quality (0-100)"
    )
    impact_signal: float | None = Field(
        default=None, ge=0, le=100, description="Self-reported impact (0-100)"
    )


# ============================================
# HEALTH & METRICS SCHEMAS
# ============================================


class HealthStatus(BaseModel):
    """Health of a single adapter, derived from its metrics."""

    is_healthy: bool
    last_check: datetime = Field(default_factory=lambda: datetime.now(UTC))
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    uptime_seconds: float = 0.0
    success_rate: float = Field(100.0, ge=0, le=100)


class FeatureMetrics(BaseModel):
    """Running execution counters for a single adapter."""

    total_executions: int = 0
    successful_executions: int = 0
    average_execution_time: float = 0.0
    last_execution_time: float = 0.0
    quality_score: float = 0.0
    impact_score: float = 0.0


class AdapterDescriptor(BaseModel):
    """Identity and lifecycle state of a registered adapter."""

    name: str
    version: str
    stage: StageName
    initialized: bool = False


def _iter_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)
