"""
Storage-agnostic schemas for the configuration store.

Stores translate these Pydantic models to their native formats.
"""
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

# Current stored-config schema version; older records go through migration
CONFIG_VERSION = "1.0.0"


class StoredConfig(BaseModel):
    """A pipeline configuration as persisted, before validation"""

    version: str = Field(..., description="Schema version the record was written with")
    user_id: str | None = None
    config: dict[str, Any] = Field(..., description="Serialized PipelineConfig")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class QualityHistoryEntry(BaseModel):
    """Outcome of one pipeline run, kept for statistics"""

    id: str | None = Field(None, description="System-generated ID")
    session_id: str
    user_id: str | None = None
    overall_score: float
    impact_score: float
    grade: str
    processing_time: float
    stages_used: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class QualityStatistics(BaseModel):
    total_runs: int = 0
    average_overall_score: float = 0.0
    average_impact_score: float = 0.0
    average_processing_time: float = 0.0
    most_common_grade: str = "Standard"
    most_used_stages: list[str] = Field(default_factory=list)
