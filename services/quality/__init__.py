"""Quality assessment schemas. The engine lives in services.quality.metrics_engine."""

from .schemas import (
    ComparativeBreakdown,
    Grade,
    ImpactCategory,
    ImpactFactor,
    MarketPosition,
    MarketReadiness,
    QualityAnalysis,
    QualityAssessment,
    QualityBreakdown,
    QualityMetrics,
)

__all__ = [
    "Grade",
    "ImpactCategory",
    "MarketPosition",
    "QualityMetrics",
    "ImpactFactor",
    "ComparativeBreakdown",
    "MarketReadiness",
    "QualityBreakdown",
    "QualityAnalysis",
    "QualityAssessment",
]
