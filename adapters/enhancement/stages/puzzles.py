"""Multi-solution puzzle stage."""

from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import as_int, as_list, clamp, item_name, stable_pick

PUZZLE_NAMES = [
    "The Harmonic Resonance Chamber",
    "The Shifting Star Map",
    "The Scales of the Drowned Judge",
    "The Clockwork Reliquary",
    "The Whispering Mosaic",
    "The Ember Lock",
]

# (approach, description, DC offset from the level baseline)
SOLUTION_APPROACHES = [
    ("Performance", "Reproduce the pattern through music or recital", 1),
    ("Arcana", "Replicate the mechanism with magic", 2),
    ("Investigation", "Find and bypass the hidden mechanism", 0),
    ("Athletics", "Force the mechanism at a cost", 3),
    ("Creative", "Any unconventional plan the players propose", 4),
]

DEFAULT_PUZZLE_COUNT = 2


class MultiSolutionPuzzleAdapter(BaseEnhancementAdapter):
    """Generates puzzles that can be solved more than one way."""

    name = "Multi-Solution Puzzles"
    version = "2.0.0"
    stage = StageName.MULTI_SOLUTION_PUZZLES
    validation_hint = "party_level between 1 and 20 is required"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        level = as_int(stage_input.lookup("party_level"))
        return level is not None and 1 <= level <= 20

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        level = as_int(stage_input.lookup("party_level")) or 1
        count = max(1, as_int(options.get("count")) or DEFAULT_PUZZLE_COUNT)
        title = str(stage_input.lookup("title", "")) or stage_input.prompt_text()
        scenes = [item_name(scene) for scene in as_list(stage_input.lookup("scenes"))]
        baseline = 10 + level // 2

        puzzles = []
        for i in range(count):
            approaches = SOLUTION_APPROACHES[: 3 + (i + level) % 3]
            solutions = [
                {
                    "approach": approach,
                    "dc": min(30, baseline + offset),
                    "description": description,
                }
                for approach, description, offset in approaches
            ]
            creativity = clamp(70 + 5 * len(solutions) + (5 if title else 0))
            puzzles.append(
                {
                    "id": f"puzzle-{i + 1}",
                    "name": stable_pick(PUZZLE_NAMES, title, i),
                    "solutions": solutions,
                    "difficulty": "hard" if level >= 11 else "moderate",
                    "integration_point": scenes[i % len(scenes)]
                    if scenes
                    else f"Act {i + 1}",
                    "creativity_score": creativity,
                }
            )

        return {"puzzles": puzzles}

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        puzzles = raw["puzzles"]
        scores = [float(p.get("creativity_score", 80)) for p in puzzles] or [0.0]
        return StageOutput(
            payload=puzzles,
            quality_signal=clamp(sum(scores) / len(scores)),
            impact_signal=clamp(max(scores)),
        )
