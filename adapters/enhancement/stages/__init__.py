"""Concrete enhancement stages, one per StageName."""

from ..backend import EnrichmentBackend
from ..base import BaseEnhancementAdapter
from ..schemas import StageName
from .accessibility import AccessibilityFeaturesAdapter
from .combat import TacticalCombatAdapter
from .editorial import EditorialExcellenceAdapter
from .layout import ProfessionalLayoutAdapter
from .npcs import EnhancedNPCAdapter
from .prompt_analysis import PromptAnalysisAdapter
from .puzzles import MultiSolutionPuzzleAdapter
from .validation import MathematicalValidationAdapter

STAGE_ADAPTERS: dict[StageName, type[BaseEnhancementAdapter]] = {
    StageName.PROMPT_ANALYSIS: PromptAnalysisAdapter,
    StageName.MULTI_SOLUTION_PUZZLES: MultiSolutionPuzzleAdapter,
    StageName.PROFESSIONAL_LAYOUT: ProfessionalLayoutAdapter,
    StageName.ENHANCED_NPCS: EnhancedNPCAdapter,
    StageName.TACTICAL_COMBAT: TacticalCombatAdapter,
    StageName.EDITORIAL_EXCELLENCE: EditorialExcellenceAdapter,
    StageName.ACCESSIBILITY_FEATURES: AccessibilityFeaturesAdapter,
    StageName.MATHEMATICAL_VALIDATION: MathematicalValidationAdapter,
}


def build_default_adapters(
    backends: dict[StageName, EnrichmentBackend] | None = None,
) -> dict[StageName, BaseEnhancementAdapter]:
    """Create one adapter per stage.

    Args:
        backends: Optional per-stage enrichment backends. Stages without one
            compute their enrichment locally.
    """
    backends = backends or {}
    return {
        stage: adapter_cls(backend=backends.get(stage))
        for stage, adapter_cls in STAGE_ADAPTERS.items()
    }


__all__ = [
    "STAGE_ADAPTERS",
    "build_default_adapters",
    "PromptAnalysisAdapter",
    "MultiSolutionPuzzleAdapter",
    "ProfessionalLayoutAdapter",
    "EnhancedNPCAdapter",
    "TacticalCombatAdapter",
    "EditorialExcellenceAdapter",
    "AccessibilityFeaturesAdapter",
    "MathematicalValidationAdapter",
]
