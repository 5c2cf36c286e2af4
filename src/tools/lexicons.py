"""Keyword lookup tables used by the compatibility scorer.

The tables map a lowercase keyword to a category. They ship with built-in
defaults and can be replaced from a JSON file named by ``LEXICON_PATH``::

    {
        "energy_keywords": {"zoomies": "high", "sleepy": "calm"},
        "breed_sizes": {"corgi": "medium"}
    }

A table present in the file replaces the default table entirely; a table
missing from the file keeps its default.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator

from src.config import config
from src.utils.logging_config import get_logger

logger = get_logger("lexicons")

ENERGY_CATEGORIES = ("high", "calm")
BREED_SIZE_ORDER = ("small", "medium", "large")

DEFAULT_ENERGY_KEYWORDS: dict[str, str] = {
    "playful": "high",
    "energetic": "high",
    "active": "high",
    "bouncy": "high",
    "hyperactive": "high",
    "calm": "calm",
    "gentle": "calm",
    "relaxed": "calm",
    "quiet": "calm",
    "peaceful": "calm",
}

DEFAULT_BREED_SIZES: dict[str, str] = {
    "chihuahua": "small",
    "yorkshire": "small",
    "pomeranian": "small",
    "maltese": "small",
    "pug": "small",
    "french bulldog": "small",
    "beagle": "medium",
    "cocker spaniel": "medium",
    "border collie": "medium",
    "australian shepherd": "medium",
    "golden retriever": "large",
    "labrador": "large",
    "german shepherd": "large",
    "rottweiler": "large",
}


def _normalise_table(table: dict[str, str], allowed: tuple[str, ...]) -> dict[str, str]:
    normalised: dict[str, str] = {}
    for keyword, category in table.items():
        key = keyword.strip().lower()
        value = category.strip().lower()
        if not key:
            raise ValueError("lexicon keywords must be non-empty")
        if value not in allowed:
            raise ValueError(
                f"unknown category {category!r} for {keyword!r}; expected one of {allowed}"
            )
        normalised[key] = value
    return normalised


class Lexicons(BaseModel):
    """Keyword -> category tables for energy inference and breed sizing."""

    energy_keywords: dict[str, str] = dict(DEFAULT_ENERGY_KEYWORDS)
    breed_sizes: dict[str, str] = dict(DEFAULT_BREED_SIZES)

    @field_validator("energy_keywords")
    @classmethod
    def _check_energy(cls, value: dict[str, str]) -> dict[str, str]:
        return _normalise_table(value, ENERGY_CATEGORIES)

    @field_validator("breed_sizes")
    @classmethod
    def _check_breed_sizes(cls, value: dict[str, str]) -> dict[str, str]:
        return _normalise_table(value, BREED_SIZE_ORDER)

    def keywords_for(self, table: dict[str, str], category: str) -> list[str]:
        return [keyword for keyword, cat in table.items() if cat == category]


def load_lexicons(path: str | Path) -> Lexicons:
    """Load lexicon tables from a JSON file."""

    raw = Path(path).read_text(encoding="utf-8")
    lexicons = Lexicons.model_validate_json(raw)
    logger.info(
        "Loaded lexicons from %s (energy=%s breeds=%s)",
        path,
        len(lexicons.energy_keywords),
        len(lexicons.breed_sizes),
    )
    return lexicons


@lru_cache(maxsize=1)
def get_lexicons() -> Lexicons:
    """Return the configured lexicons, loading them once."""

    if config.LEXICON_PATH:
        return load_lexicons(config.LEXICON_PATH)
    return Lexicons()
