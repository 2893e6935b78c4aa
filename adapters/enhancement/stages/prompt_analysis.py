"""Prompt analysis stage: extracts requirements and scores prompt complexity."""

from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import clamp, words

CATEGORY_KEYWORDS: dict[str, set[str]] = {
    "combat": {
        "ambush", "battle", "boss", "combat", "dragon", "duel", "fight",
        "monster", "siege", "war",
    },
    "puzzle": {"cipher", "lock", "maze", "mystery", "puzzle", "riddle", "trap"},
    "social": {
        "ally", "betrayal", "court", "diplomacy", "intrigue", "negotiate",
        "noble", "politics", "tavern",
    },
    "exploration": {
        "cave", "dungeon", "explore", "forest", "journey", "map", "ruins",
        "travel", "wilderness",
    },
    "horror": {"cursed", "curse", "dread", "haunted", "horror", "undead"},
}

# Which stage best serves each detected category
CATEGORY_RECOMMENDATIONS = {
    "combat": "Enable tactical combat for layered encounters",
    "puzzle": "Enable multi-solution puzzles so every party can progress",
    "social": "Enable enhanced NPCs for memorable interactions",
    "exploration": "Enable professional layout for maps and handouts",
    "horror": "Enable editorial excellence for atmospheric read-aloud text",
}


class PromptAnalysisAdapter(BaseEnhancementAdapter):
    """Analyzes the generation prompt."""

    name = "Enhanced Prompt Analysis"
    version = "2.0.0"
    stage = StageName.PROMPT_ANALYSIS
    validation_hint = "prompt text is required"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        return bool(stage_input.prompt_text())

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        tokens = words(stage_input.prompt_text())
        unique = set(tokens)

        requirements = []
        for category, keywords in CATEGORY_KEYWORDS.items():
            hits = sorted(unique & keywords)
            if not hits:
                continue
            requirements.append(
                {
                    "category": category,
                    "priority": "high" if len(hits) >= 2 else "medium",
                    "details": f"{len(hits)} cue(s): {', '.join(hits)}",
                }
            )

        complexity = clamp(40 + 8 * len(requirements) + 2 * min(len(unique), 20))
        diversity = len(unique) / len(tokens) if tokens else 0.0
        originality = clamp(50 + diversity * 40 + 2 * len(requirements))

        challenges = []
        if len(requirements) >= 3:
            challenges.append("Balancing several content pillars in one session")
        if stage_input.lookup("party_level") is None:
            challenges.append("Party level unknown; encounter difficulty is a guess")
        if len(tokens) < 8:
            challenges.append("Short prompt leaves most details to generation")

        return {
            "complexity_score": round(complexity, 2),
            "requirement_extraction": requirements,
            "feasibility_assessment": {
                "overall": "feasible" if len(challenges) < 2 else "challenging",
                "challenges": challenges,
                "recommendations": [
                    CATEGORY_RECOMMENDATIONS[r["category"]] for r in requirements
                ],
            },
            "originality_potential": round(originality, 2),
            "word_count": len(tokens),
        }

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        return StageOutput(
            payload=raw,
            quality_signal=clamp(float(raw["complexity_score"])),
            impact_signal=clamp(float(raw.get("originality_potential", 60))),
        )
