"""
Quality metrics engine.

Folds the per-stage results of one pipeline run into weighted sub-scores,
an impact score, a grade and a readable breakdown. Pure and deterministic:
the same report always yields the same assessment.
"""
import logging
import math

from adapters.enhancement.schemas import StageName, StageOutput
from services.pipeline.schemas import ProcessingReport, StageResult, StageStatus

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

logger = logging.getLogger(__name__)

BASE_SCORE = 75.0
IMPACT_SEED = 60.0
READINESS_WEIGHT = 0.5

# Sub-score -> stages whose quality impact feeds it
SUB_SCORE_FEEDS: dict[str, tuple[StageName, ...]] = {
    "content_quality": (
        StageName.PROMPT_ANALYSIS,
        StageName.MULTI_SOLUTION_PUZZLES,
        StageName.ENHANCED_NPCS,
    ),
    "mechanical_accuracy": (
        StageName.TACTICAL_COMBAT,
        StageName.MATHEMATICAL_VALIDATION,
    ),
    "editorial_standards": (
        StageName.EDITORIAL_EXCELLENCE,
        StageName.PROFESSIONAL_LAYOUT,
    ),
    "user_experience": (
        StageName.ACCESSIBILITY_FEATURES,
        StageName.PROFESSIONAL_LAYOUT,
    ),
}

# Category -> (weight, contributing stages, description)
IMPACT_CATEGORIES: dict[ImpactCategory, tuple[float, tuple[StageName, ...], str]] = {
    ImpactCategory.DISTINCTIVENESS: (
        0.30,
        (StageName.MULTI_SOLUTION_PUZZLES,),
        "Multi-solution puzzles create memorable breakthrough moments",
    ),
    ImpactCategory.MEMORABILITY: (
        0.25,
        (StageName.ENHANCED_NPCS,),
        "Detailed NPC personalities stay with players after the session",
    ),
    ImpactCategory.SHAREABILITY: (
        0.20,
        (StageName.EDITORIAL_EXCELLENCE, StageName.PROFESSIONAL_LAYOUT),
        "Professional polish makes the content worth sharing",
    ),
    ImpactCategory.ORIGINALITY: (
        0.15,
        (StageName.PROMPT_ANALYSIS,),
        "Prompt analysis steers the content toward original themes",
    ),
    ImpactCategory.INTENSITY: (
        0.10,
        (StageName.TACTICAL_COMBAT,),
        "Tactical encounters produce high-stakes set pieces",
    ),
}

# Grade thresholds on max(overall, impact * IMPACT_GRADE_FACTOR)
IMPACT_GRADE_FACTOR = 0.8
TOP_TIER_SCORE = 99.0
TOP_TIER_IMPACT = 95.0
GRADE_THRESHOLDS: list[tuple[float, Grade]] = [
    (95.0, Grade.PUBLICATION_READY),
    (90.0, Grade.PREMIUM),
    (80.0, Grade.PROFESSIONAL),
]

# Industry benchmarks for the comparative breakdown
STANDARD_CONTENT = 65.0
INDUSTRY_AVERAGE = 72.0
PREMIUM_CONTENT = 85.0
TOP_TIER_THRESHOLD = 95.0

STRENGTH_THRESHOLD = 90.0
IMPROVEMENT_THRESHOLD = 85.0

STRENGTH_MESSAGES = {
    "content_quality": "Exceptional content creativity and depth",
    "mechanical_accuracy": "Strong mechanical accuracy and balance",
    "editorial_standards": "Publication-quality writing and formatting",
    "user_experience": "Outstanding user experience and accessibility",
    "professional_readiness": "Comprehensive professional feature integration",
}

IMPROVEMENT_MESSAGES = {
    "content_quality": "Enhance content creativity and narrative depth",
    "mechanical_accuracy": "Improve mechanical accuracy and game balance",
    "editorial_standards": "Polish writing quality and formatting",
    "user_experience": "Enhance accessibility and user experience",
    "professional_readiness": "Apply more enhancement stages before publishing",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


class QualityMetricsEngine:
    """Computes quality metrics, grade and breakdown for a pipeline run"""

    def assess(
        self, report: ProcessingReport, processing_time: float | None = None
    ) -> QualityAssessment:
        """
        Assess one pipeline run.

        Args:
            report: Processing report with one result per stage
            processing_time: Wall time in ms (defaults to the report's)

        Returns:
            Metrics, grade, breakdown and before/after analysis
        """
        completed = {
            result.stage_name: result
            for result in report.step_details
            if result.status == StageStatus.COMPLETED
        }
        metrics = self.compute_metrics(
            completed,
            enabled_steps=report.enabled_steps,
            processing_time=(
                report.processing_time if processing_time is None else processing_time
            ),
        )
        grade = self.determine_grade(metrics)
        breakdown = self.build_breakdown(metrics, completed, report.enabled_steps)
        analysis = QualityAnalysis(
            before_score=BASE_SCORE,
            after_score=metrics.overall_score,
            improvement=round(metrics.overall_score - BASE_SCORE, 2),
            impact_by_stage={
                stage.value: result.quality_impact for stage, result in completed.items()
            },
            grade=grade,
            impact_score=metrics.impact_score,
        )

        logger.debug(
            f"Assessed run: overall={metrics.overall_score:.1f} "
            f"impact={metrics.impact_score:.1f} grade={grade.value}"
        )
        return QualityAssessment(
            metrics=metrics, grade=grade, breakdown=breakdown, analysis=analysis
        )

    # Metrics

    def compute_metrics(
        self,
        completed: dict[StageName, StageResult],
        enabled_steps: int,
        processing_time: float = 0.0,
    ) -> QualityMetrics:
        scores = {
            name: clamp_score(
                BASE_SCORE + sum(completed[s].quality_impact for s in feeds if s in completed)
            )
            for name, feeds in SUB_SCORE_FEEDS.items()
        }
        scores["professional_readiness"] = clamp_score(
            BASE_SCORE
            + sum(result.quality_impact for result in completed.values()) * READINESS_WEIGHT
        )

        overall = sum(scores.values()) / len(scores)
        success_rate = len(completed) / enabled_steps * 100 if enabled_steps else 0.0

        return QualityMetrics(
            **scores,
            overall_score=round(overall, 2),
            impact_score=round(self.compute_impact_score(completed), 2),
            features_success_rate=round(success_rate, 2),
            processing_time=processing_time,
        )

    def compute_impact_score(self, completed: dict[StageName, StageResult]) -> float:
        score = sum(
            weight * self._category_score(category, completed)
            for category, (weight, _, _) in IMPACT_CATEGORIES.items()
        )
        return clamp_score(score)

    def _category_score(
        self, category: ImpactCategory, completed: dict[StageName, StageResult]
    ) -> float:
        _, stages, _ = IMPACT_CATEGORIES[category]
        value = IMPACT_SEED
        for stage in stages:
            signal = _impact_signal(completed.get(stage))
            if signal is not None:
                value = max(value, signal)
        return value

    @staticmethod
    def determine_grade(metrics: QualityMetrics) -> Grade:
        composite = max(metrics.overall_score, metrics.impact_score * IMPACT_GRADE_FACTOR)
        if composite >= TOP_TIER_SCORE and metrics.impact_score >= TOP_TIER_IMPACT:
            return Grade.TOP_TIER
        for threshold, grade in GRADE_THRESHOLDS:
            if composite >= threshold:
                return grade
        # A run where every enabled stage completed is at least Professional
        if metrics.features_success_rate >= 100:
            return Grade.PROFESSIONAL
        return Grade.STANDARD

    # Breakdown

    def build_breakdown(
        self,
        metrics: QualityMetrics,
        completed: dict[StageName, StageResult],
        enabled_steps: int,
    ) -> QualityBreakdown:
        sub_scores = metrics.sub_scores()
        strengths = [
            STRENGTH_MESSAGES[name]
            for name, score in sub_scores.items()
            if score >= STRENGTH_THRESHOLD
        ]
        improvements = [
            IMPROVEMENT_MESSAGES[name]
            for name, score in sub_scores.items()
            if score < IMPROVEMENT_THRESHOLD
        ]

        return QualityBreakdown(
            strengths=strengths,
            improvements=improvements,
            recommendations=self._recommendations(metrics, completed, enabled_steps),
            impact_factors=self._impact_factors(completed),
            comparative_breakdown=self.compare_to_benchmarks(metrics.overall_score),
            market_readiness=self.assess_market_readiness(metrics),
        )

    def _recommendations(
        self,
        metrics: QualityMetrics,
        completed: dict[StageName, StageResult],
        enabled_steps: int,
    ) -> list[str]:
        recommendations = []
        if enabled_steps < len(StageName):
            missing = len(StageName) - enabled_steps
            recommendations.append(f"Enable {missing} more stage(s) for higher quality")
        if enabled_steps and len(completed) < enabled_steps:
            recommendations.append(
                f"{enabled_steps - len(completed)} enabled stage(s) failed; check adapter health"
            )
        if metrics.impact_score < 80:
            recommendations.append("Enable puzzle and NPC stages to raise impact")
        return recommendations

    def _impact_factors(self, completed: dict[StageName, StageResult]) -> list[ImpactFactor]:
        factors = []
        for category, (_, stages, description) in IMPACT_CATEGORIES.items():
            if not any(stage in completed for stage in stages):
                continue
            score = self._category_score(category, completed)
            factors.append(
                ImpactFactor(
                    category=category,
                    score=score,
                    description=description,
                    impact=_impact_level(score),
                )
            )
        return factors

    @staticmethod
    def compare_to_benchmarks(score: float) -> ComparativeBreakdown:
        if score >= TOP_TIER_THRESHOLD:
            position = MarketPosition.TOP_TIER
        elif score >= PREMIUM_CONTENT:
            position = MarketPosition.PREMIUM
        elif score >= INDUSTRY_AVERAGE:
            position = MarketPosition.ABOVE_AVERAGE
        elif score >= STANDARD_CONTENT:
            position = MarketPosition.AVERAGE
        else:
            position = MarketPosition.BELOW_AVERAGE

        return ComparativeBreakdown(
            vs_standard_content=round_half_up((score - STANDARD_CONTENT) / STANDARD_CONTENT * 100),
            vs_industry_average=round_half_up((score - INDUSTRY_AVERAGE) / INDUSTRY_AVERAGE * 100),
            vs_premium_content=round_half_up((score - PREMIUM_CONTENT) / PREMIUM_CONTENT * 100),
            market_position=position,
        )

    @staticmethod
    def assess_market_readiness(metrics: QualityMetrics) -> MarketReadiness:
        commercial = min(100.0, metrics.professional_readiness * 1.1)
        scalability = min(100.0, (metrics.overall_score + metrics.impact_score) / 2)
        adoption = min(100.0, metrics.user_experience * 1.05)
        revenue = min(100.0, (metrics.impact_score + metrics.professional_readiness) / 2)
        overall = commercial * 0.3 + scalability * 0.25 + adoption * 0.25 + revenue * 0.2

        return MarketReadiness(
            commercial_viability=round_half_up(commercial),
            scalability_potential=round_half_up(scalability),
            user_adoption_likelihood=round_half_up(adoption),
            revenue_generation=round_half_up(revenue),
            overall_readiness=round_half_up(overall),
        )


def _impact_signal(result: StageResult | None) -> float | None:
    if result is None or not isinstance(result.output, StageOutput):
        return None
    return result.output.impact_signal


def _impact_level(score: float) -> str:
    if score >= 95:
        return "exceptional"
    if score >= 85:
        return "high"
    if score >= 70:
        return "medium"
    return "low"
