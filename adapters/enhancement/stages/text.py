"""Small text helpers shared by the local enrichment stages."""

import re
import zlib
from collections.abc import Sequence
from typing import Any, TypeVar

T = TypeVar("T")

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")


def words(text: str) -> list[str]:
    return [w.lower() for w in _WORD_RE.findall(text)]


def sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.findall(text) if words(s)]


def syllables(word: str) -> int:
    """Rough syllable count (vowel groups, silent trailing e)."""
    word = word.lower()
    count = len(_VOWEL_GROUP_RE.findall(word))
    if word.endswith("e") and count > 1:
        count -= 1
    return max(1, count)


def stable_pick(options: Sequence[T], seed: str, offset: int = 0) -> T:
    """Deterministically pick an option for a seed string."""
    index = (zlib.crc32(seed.encode("utf-8")) + offset) % len(options)
    return options[index]


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def as_int(value: Any) -> int | None:
    """Coerce ints and numeric strings, reject bools and everything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def item_name(item: Any) -> str:
    """Name of a content item; mappings use their "name" key, "" when absent."""
    if isinstance(item, dict):
        name = item.get("name")
        return "" if name is None else str(name)
    return str(item)
