"""Schemas produced by the quality metrics engine."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Grade(str, Enum):
    """Discrete professional grade, lowest first."""

    STANDARD = "Standard"
    PROFESSIONAL = "Professional"
    PREMIUM = "Premium"
    PUBLICATION_READY = "Publication-Ready"
    TOP_TIER = "Top-Tier"

    @property
    def rank(self) -> int:
        return list(Grade).index(self)


class ImpactCategory(str, Enum):
    """Orthogonal categories feeding the impact score."""

    DISTINCTIVENESS = "distinctiveness"
    MEMORABILITY = "memorability"
    SHAREABILITY = "shareability"
    ORIGINALITY = "originality"
    INTENSITY = "intensity"


class MarketPosition(str, Enum):
    BELOW_AVERAGE = "below-average"
    AVERAGE = "average"
    ABOVE_AVERAGE = "above-average"
    PREMIUM = "premium"
    TOP_TIER = "top-tier"


# ============================================
# METRICS
# ============================================


class QualityMetrics(BaseModel):
    """Scores for one pipeline run, all in [0, 100]"""

    model_config = ConfigDict(frozen=True)

    content_quality: float = Field(..., ge=0, le=100)
    mechanical_accuracy: float = Field(..., ge=0, le=100)
    editorial_standards: float = Field(..., ge=0, le=100)
    user_experience: float = Field(..., ge=0, le=100)
    professional_readiness: float = Field(..., ge=0, le=100)
    overall_score: float = Field(..., ge=0, le=100)
    impact_score: float = Field(..., ge=0, le=100)
    features_success_rate: float = Field(..., ge=0, le=100)
    processing_time: float = Field(0.0, description="Pipeline wall time in ms")

    def sub_scores(self) -> dict[str, float]:
        return {
            "content_quality": self.content_quality,
            "mechanical_accuracy": self.mechanical_accuracy,
            "editorial_standards": self.editorial_standards,
            "user_experience": self.user_experience,
            "professional_readiness": self.professional_readiness,
        }


# ============================================
# BREAKDOWN
# ============================================


class ImpactFactor(BaseModel):
    """One contributing impact category"""

    category: ImpactCategory
    score: float
    description: str
    impact: str = Field(..., description="low, medium, high or exceptional")


class ComparativeBreakdown(BaseModel):
    """Overall score relative to industry benchmarks (percent difference)"""

    vs_standard_content: int
    vs_industry_average: int
    vs_premium_content: int
    market_position: MarketPosition


class MarketReadiness(BaseModel):
    commercial_viability: int
    scalability_potential: int
    user_adoption_likelihood: int
    revenue_generation: int
    overall_readiness: int


class QualityBreakdown(BaseModel):
    """Human-readable interpretation of the metrics"""

    model_config = ConfigDict(frozen=True)

    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    impact_factors: list[ImpactFactor] = Field(default_factory=list)
    comparative_breakdown: ComparativeBreakdown
    market_readiness: MarketReadiness


class QualityAnalysis(BaseModel):
    """Before/after comparison for a run"""

    model_config = ConfigDict(frozen=True)

    before_score: float
    after_score: float
    improvement: float
    impact_by_stage: dict[str, float] = Field(default_factory=dict)
    grade: Grade
    impact_score: float


class QualityAssessment(BaseModel):
    """Everything the engine derives from one run"""

    model_config = ConfigDict(frozen=True)

    metrics: QualityMetrics
    grade: Grade
    breakdown: QualityBreakdown
    analysis: QualityAnalysis
