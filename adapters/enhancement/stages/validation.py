"""Mechanical validation: encounter difficulty, treasure values and DCs."""

from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import as_int, as_list, clamp

MIN_DC = 5
MAX_DC = 30


class MathematicalValidationAdapter(BaseEnhancementAdapter):
    """Checks the numbers in structured content."""

    name = "Mathematical Validation"
    version = "2.0.0"
    stage = StageName.MATHEMATICAL_VALIDATION
    validation_hint = "content must be a mapping"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        return isinstance(stage_input.content, dict)

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        level = as_int(stage_input.lookup("party_level"))
        errors: list[str] = []
        warnings: list[str] = []
        checked = 0

        for encounter in as_list(stage_input.lookup("encounters")):
            if not isinstance(encounter, dict) or "cr" not in encounter:
                continue
            checked += 1
            cr = _as_number(encounter["cr"])
            name = encounter.get("name", "encounter")
            if cr is None or cr < 0:
                errors.append(f"{name}: invalid challenge rating {encounter['cr']!r}")
            elif level is not None and cr > level + 3:
                warnings.append(f"{name}: CR {cr:g} is deadly for level {level}")
            elif level is not None and cr < level / 4:
                warnings.append(f"{name}: CR {cr:g} is trivial for level {level}")

        for item in as_list(stage_input.lookup("treasure")):
            if not isinstance(item, dict) or "value" not in item:
                continue
            checked += 1
            value = _as_number(item["value"])
            if value is None or value < 0:
                errors.append(f"{item.get('name', 'treasure')}: invalid value {item['value']!r}")

        for dc in _find_dcs(stage_input.content):
            checked += 1
            number = _as_number(dc)
            if number is None or not MIN_DC <= number <= MAX_DC:
                errors.append(f"DC {dc!r} outside {MIN_DC}-{MAX_DC}")

        accuracy = clamp(100 - 10 * len(errors) - 2 * len(warnings))
        return {
            "checks_performed": checked,
            "errors_found": errors,
            "warnings": warnings,
            "mathematical_accuracy": accuracy,
            "overall_score": clamp(accuracy - (5 if checked == 0 else 0)),
        }

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        return StageOutput(
            payload=raw,
            quality_signal=clamp(float(raw["overall_score"])),
        )


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if "/" in text:
            num, _, den = text.partition("/")
            try:
                return float(num) / float(den)
            except (ValueError, ZeroDivisionError):
                return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _find_dcs(value: Any):
    if isinstance(value, dict):
        for key, item in value.items():
            if str(key).lower() == "dc":
                yield item
            else:
                yield from _find_dcs(item)
    elif isinstance(value, list):
        for item in value:
            yield from _find_dcs(item)
