"""Enhanced NPC stage."""

from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import as_int, as_list, clamp, item_name, stable_pick

NAME_POOL = [
    "Zara Starweaver", "Orrin Blackmere", "Mother Hesk", "Tamsin Vale",
    "Brother Aldous", "Ilse Kettering", "Goran the Patient", "Wren Ashdown",
]
TRAITS = [
    "quietly wise", "unexpectedly funny", "fiercely loyal", "openly greedy",
    "superstitious", "relentlessly curious", "bitter about the past",
]
QUIRKS = [
    "fidgets with a glowing crystal", "answers questions with questions",
    "keeps a ledger of every favor", "hums old war songs",
    "refuses to say anyone's name twice",
]
MOTIVATIONS = [
    "protect a secret lineage", "repay an old debt", "recover a lost relic",
    "see a rival ruined", "keep the town out of a war",
]
SECRETS = [
    "is the last heir of a fallen house", "sold out the previous adventurers",
    "is bound by a fey bargain", "knows the villain's true name",
]

DEFAULT_NPC_COUNT = 3


class EnhancedNPCAdapter(BaseEnhancementAdapter):
    """Gives NPCs personalities, motivations and secrets."""

    name = "Enhanced NPCs"
    version = "2.0.0"
    stage = StageName.ENHANCED_NPCS
    validation_hint = "party_size of at least 1 is required"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        size = as_int(stage_input.lookup("party_size"))
        return size is not None and size >= 1

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        existing = [item_name(npc) for npc in as_list(stage_input.lookup("npcs"))]
        existing = [name for name in existing if name]
        count = max(1, as_int(options.get("count")) or max(DEFAULT_NPC_COUNT, len(existing)))

        npcs = []
        for i in range(count):
            name = existing[i] if i < len(existing) else stable_pick(NAME_POOL, str(i), i * 3)
            traits = [stable_pick(TRAITS, name, 0), stable_pick(TRAITS, name, 3)]
            traits = list(dict.fromkeys(traits))
            secret = stable_pick(SECRETS, name)
            memory = clamp(70 + 6 * len(traits) + (8 if i < len(existing) else 4))
            npcs.append(
                {
                    "id": f"npc-{i + 1}",
                    "name": name,
                    "personality_profile": {
                        "traits": traits,
                        "quirks": [stable_pick(QUIRKS, name)],
                    },
                    "motivations": [
                        {"type": "primary", "description": stable_pick(MOTIVATIONS, name)}
                    ],
                    "secrets": [{"level": "major", "content": f"{name} {secret}"}],
                    "memory_factor": memory,
                }
            )

        return {"npcs": npcs}

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        npcs = raw["npcs"]
        scores = [float(n.get("memory_factor", 80)) for n in npcs] or [0.0]
        return StageOutput(
            payload=npcs,
            quality_signal=clamp(sum(scores) / len(scores)),
            impact_signal=clamp(max(scores)),
        )
