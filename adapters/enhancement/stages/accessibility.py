"""Accessibility pass."""

from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import as_list, clamp, words

SUMMARY_BOX_THRESHOLD = 800


class AccessibilityFeaturesAdapter(BaseEnhancementAdapter):
    """Checks images and structure, and proposes inclusive-play features."""

    name = "Accessibility Features"
    version = "2.0.0"
    stage = StageName.ACCESSIBILITY_FEATURES
    validation_hint = "content is required"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        return stage_input.content is not None

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        issues = []
        images = as_list(stage_input.lookup("images")) + as_list(stage_input.lookup("image_urls"))
        missing_alt = [
            img for img in images if not (isinstance(img, dict) and img.get("alt"))
        ]
        if missing_alt:
            issues.append(f"{len(missing_alt)} image(s) without alt text")

        word_count = len(words(stage_input.content_text()))
        if word_count > SUMMARY_BOX_THRESHOLD and not stage_input.lookup("summary"):
            issues.append("Long content without a summary")

        features = [
            {
                "type": "visual",
                "description": "High-contrast callouts and a readable body font",
                "beneficiaries": ["low-vision players", "players with dyslexia"],
            },
            {
                "type": "cognitive",
                "description": "Scene summaries and difficulty indicators",
                "beneficiaries": ["new players", "players with cognitive differences"],
            },
            {
                "type": "motor",
                "description": "Digital-friendly handouts and dice alternatives",
                "beneficiaries": ["players with limited dexterity"],
            },
        ]
        if missing_alt:
            features.append(
                {
                    "type": "auditory",
                    "description": "Text descriptions for every illustration",
                    "beneficiaries": ["blind players using screen readers"],
                }
            )

        score = clamp(100 - 8 * len(issues), low=60)
        if score >= 95:
            wcag = "AAA"
        elif score >= 85:
            wcag = "AA"
        else:
            wcag = "A"

        return {
            "accessibility_features": features,
            "issues": issues,
            "accessibility_score": score,
            "wcag_compliance": wcag,
        }

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        return StageOutput(
            payload=raw,
            quality_signal=clamp(float(raw["accessibility_score"])),
        )
