"""Professional layout stage."""

import math
from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import as_list, clamp, words

WORDS_PER_PAGE = 550
TWO_COLUMN_THRESHOLD = 1500


class ProfessionalLayoutAdapter(BaseEnhancementAdapter):
    """Derives typography and page layout from the content shape."""

    name = "Professional Layout"
    version = "2.0.0"
    stage = StageName.PROFESSIONAL_LAYOUT
    validation_hint = "content is required"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        return stage_input.content is not None

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        word_count = len(words(stage_input.content_text()))
        sections = len(as_list(stage_input.lookup("scenes"))) + len(
            as_list(stage_input.lookup("encounters"))
        )

        callouts = []
        if stage_input.lookup("read_aloud") or stage_input.lookup("boxed_text"):
            callouts.append({"type": "read-aloud", "style": "bordered"})
        if stage_input.lookup("encounters"):
            callouts.append({"type": "stat-block", "style": "shaded"})
        if stage_input.lookup("npcs"):
            callouts.append({"type": "npc-sidebar", "style": "highlighted"})

        columns = 2 if word_count > TWO_COLUMN_THRESHOLD else 1
        return {
            "typography": {
                "primary_font": "Crimson Text",
                "heading_font": "Playfair Display",
                "sizes": {"body": "10pt" if columns == 2 else "11pt", "heading1": "20pt"},
            },
            "formatting": {
                "margins": {"top": "1in", "bottom": "1in", "left": "0.75in", "right": "0.75in"},
                "line_spacing": 1.3,
            },
            "callout_boxes": callouts,
            "page_layout": {
                "columns": columns,
                "estimated_pages": max(1, math.ceil(word_count / WORDS_PER_PAGE)),
                "sections": sections,
                "page_numbers": True,
            },
            "layout_score": clamp(80 + min(15, sections * 3) + (5 if callouts else 0)),
        }

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        callouts = raw.get("callout_boxes", [])
        return StageOutput(
            payload=raw,
            quality_signal=clamp(float(raw["layout_score"])),
            impact_signal=clamp(70 + 5 * len(callouts)),
        )
