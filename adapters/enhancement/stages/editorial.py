"""Editorial pass: readability and consistency checks over the content text."""

import re
from typing import Any

from ..base import BaseEnhancementAdapter
from ..schemas import StageInput, StageName, StageOutput
from .text import clamp, sentences, syllables, words

LONG_SENTENCE_WORDS = 30
_REPEATED_WORD_RE = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE)
_DOUBLE_SPACE_RE = re.compile(r"\S  +\S")


class EditorialExcellenceAdapter(BaseEnhancementAdapter):
    """Scores readability and proposes editorial fixes."""

    name = "Editorial Excellence"
    version = "2.0.0"
    stage = StageName.EDITORIAL_EXCELLENCE
    validation_hint = "content must contain text"

    def _perform_validation(self, stage_input: StageInput) -> bool:
        return bool(words(stage_input.content_text()))

    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        text = stage_input.content_text()
        all_words = words(text)
        all_sentences = sentences(text)

        words_per_sentence = len(all_words) / max(1, len(all_sentences))
        syllables_per_word = sum(syllables(w) for w in all_words) / max(1, len(all_words))
        # Flesch reading ease
        reading_ease = clamp(206.835 - 1.015 * words_per_sentence - 84.6 * syllables_per_word)

        long_sentences = [s for s in all_sentences if len(words(s)) > LONG_SENTENCE_WORDS]
        repeated = [m.group(0) for m in _REPEATED_WORD_RE.finditer(text)]
        double_spaces = len(_DOUBLE_SPACE_RE.findall(text))

        enhancements = []
        for sentence in long_sentences[:5]:
            enhancements.append(
                {"type": "clarity", "content": sentence[:120], "suggestion": "Split this sentence"}
            )
        for phrase in repeated[:5]:
            enhancements.append(
                {"type": "consistency", "content": phrase, "suggestion": "Remove the repeated word"}
            )
        if all_sentences:
            enhancements.append(
                {
                    "type": "boxed-text",
                    "content": all_sentences[0][:200],
                    "suggestion": "Present the opening as read-aloud text",
                }
            )

        issues = len(long_sentences) + len(repeated) + double_spaces
        quality = clamp(60 + reading_ease * 0.4 - 2 * issues)
        return {
            "readability_score": round(reading_ease, 2),
            "words_per_sentence": round(words_per_sentence, 2),
            "grammar_corrections": len(repeated),
            "clarity_enhancements": len(long_sentences),
            "spacing_fixes": double_spaces,
            "editorial_enhancements": enhancements,
            "quality_score": round(quality, 2),
        }

    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        quality = clamp(float(raw["quality_score"]))
        return StageOutput(
            payload=raw,
            quality_signal=quality,
            impact_signal=clamp(quality + 5),
        )
