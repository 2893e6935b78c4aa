"""Tactical combat stage."""

from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import as_int, as_list, clamp, item_name, stable_pick

TERRAIN = [
    "floating crystal platforms", "collapsing rope bridges", "flooded crypt floor",
    "burning granary", "shifting sand dunes", "overgrown temple steps",
]
HAZARDS = [
    "unstable footing (DC {dc} Acrobatics or fall prone)",
    "choking smoke (heavily obscured area)",
    "rising water (difficult terrain after round 3)",
    "arcane surge (DC {dc} Constitution save or lose concentration)",
]
TACTICAL_OPTIONS = [
    "Collapse the cover to create a chokepoint",
    "Use the high ground for advantage on ranged attacks",
    "Lure enemies onto the hazard",
    "Break line of sight to disengage",
]

DEFAULT_ENCOUNTER_COUNT = 2


class TacticalCombatAdapter(BaseEnhancementAdapter):
    """Adds battlefield layouts, hazards and objectives to encounters."""

    name = "Tactical Combat"
    version = "2.0.0"
    stage = StageName.TACTICAL_COMBAT
    validation_hint = "party_level between 1 and 20 is required"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        level = as_int(stage_input.lookup("party_level"))
        return level is not None and 1 <= level <= 20

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        level = as_int(stage_input.lookup("party_level")) or 1
        encounters = [item_name(enc) for enc in as_list(stage_input.lookup("encounters"))]
        count = max(1, as_int(options.get("count")) or max(DEFAULT_ENCOUNTER_COUNT, len(encounters)))
        save_dc = 8 + 2 + (level + 3) // 4 + 3

        features = []
        for i in range(count):
            label = encounters[i] if i < len(encounters) and encounters[i] else f"encounter-{i + 1}"
            hazard_count = 1 + (level >= 5) + (level >= 11)
            hazards = [
                stable_pick(HAZARDS, label, k).format(dc=save_dc) for k in range(hazard_count)
            ]
            hazards = list(dict.fromkeys(hazards))
            features.append(
                {
                    "encounter": label,
                    "battlefield_layout": {
                        "dimensions": {"width": 25 + 5 * (level // 5), "height": 20 + 5 * (level // 5)},
                        "terrain": [stable_pick(TERRAIN, label)],
                    },
                    "tactical_options": [
                        stable_pick(TACTICAL_OPTIONS, label, k) for k in range(2)
                    ],
                    "environmental_hazards": hazards,
                    "objectives": [
                        {"type": "primary", "description": f"Survive and win {label}"},
                        {"type": "secondary", "description": "Protect a non-combatant or objective"},
                    ],
                    "intensity_level": clamp(60 + 2 * level + 5 * len(hazards)),
                }
            )

        return {"combat_features": features}

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        features = raw["combat_features"]
        scores = [float(f.get("intensity_level", 60)) for f in features] or [0.0]
        return StageOutput(
            payload=features,
            quality_signal=clamp(sum(scores) / len(scores)),
            impact_signal=clamp(max(scores)),
        )
