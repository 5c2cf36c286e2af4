"""Deterministic compatibility scoring for pet matching.

Score composition (0-100):

    age         max 20
    traits      max 30
    energy      max 30
    breed size  max 20
    distance    minus up to 10

The weights are product-level behaviour; tests pin every threshold.
"""

from __future__ import annotations

from math import floor

from src.tools.lexicons import BREED_SIZE_ORDER, Lexicons, get_lexicons

AGE_NEUTRAL_POINTS = 10
TRAIT_NEUTRAL_POINTS = 15
BREED_UNKNOWN = "unknown"

ENERGY_LOW = 1
ENERGY_MEDIUM = 2
ENERGY_HIGH = 3


def normalise_traits(traits: list[str] | None) -> set[str]:
    """Return personality traits as a lowercase, trimmed set."""

    return {t.strip().lower() for t in traits or [] if t and t.strip()}


def age_score(age_a: int | None, age_b: int | None) -> int:
    """Age similarity points. Unknown on either side scores neutral."""

    if age_a is None or age_b is None:
        return AGE_NEUTRAL_POINTS

    diff = abs(age_a - age_b)
    if diff <= 1:
        return 20
    if diff <= 2:
        return 15
    if diff <= 3:
        return 10
    if diff <= 5:
        return 5
    return 0


def trait_score(traits_a: set[str], traits_b: set[str]) -> int:
    """Overlap of personality traits relative to the larger trait set."""

    if not traits_a or not traits_b:
        return TRAIT_NEUTRAL_POINTS

    common = len(traits_a & traits_b)
    ratio = common / max(len(traits_a), len(traits_b))
    return floor(ratio * 30)


def infer_energy_level(traits: set[str], lexicons: Lexicons | None = None) -> int:
    """Infer an ordinal energy level (1 low, 2 medium, 3 high) from traits."""

    table = (lexicons or get_lexicons()).energy_keywords
    high = sum(1 for t in traits if table.get(t) == "high")
    calm = sum(1 for t in traits if table.get(t) == "calm")

    if high > calm:
        return ENERGY_HIGH
    if calm > high:
        return ENERGY_LOW
    return ENERGY_MEDIUM


def energy_score(level_a: int, level_b: int) -> int:
    diff = abs(level_a - level_b)
    if diff <= 1:
        return 30
    if diff <= 2:
        return 20
    return 10


def classify_breed_size(breed: str | None, lexicons: Lexicons | None = None) -> str:
    """Classify a free-text breed into small, medium, large or unknown.

    Matching is a case-insensitive substring test. Sizes are tried smallest
    first, so a breed matching several tables takes the smallest size.
    """

    if not breed:
        return BREED_UNKNOWN

    lex = lexicons or get_lexicons()
    lower = breed.lower()
    for size in BREED_SIZE_ORDER:
        if any(kw in lower for kw in lex.keywords_for(lex.breed_sizes, size)):
            return size
    return BREED_UNKNOWN


def breed_score(size_a: str, size_b: str) -> int:
    if size_a == BREED_UNKNOWN or size_b == BREED_UNKNOWN:
        return 10

    gap = abs(BREED_SIZE_ORDER.index(size_a) - BREED_SIZE_ORDER.index(size_b))
    if gap == 0:
        return 20
    if gap == 1:
        return 15
    return 5


def distance_penalty(distance_km: float) -> float:
    """Two points per kilometer, capped at ten."""

    return min(distance_km * 2, 10)


def calculate_compatibility_score(
    requester: dict,
    candidate: dict,
    distance_km: float,
    lexicons: Lexicons | None = None,
) -> int:
    """Calculate the compatibility score (0-100) of a candidate for a requester.

    Args:
        requester: Requesting pet profile.
        candidate: Candidate pet profile.
        distance_km: Already-computed distance between the two pets.
        lexicons: Lookup tables; defaults to the configured ones.

    Returns:
        Integer score, rounded and clamped to [0, 100].
    """

    lex = lexicons or get_lexicons()
    traits_a = normalise_traits(requester.get("personality_traits"))
    traits_b = normalise_traits(candidate.get("personality_traits"))

    score = age_score(requester.get("age"), candidate.get("age"))
    score += trait_score(traits_a, traits_b)
    score += energy_score(
        infer_energy_level(traits_a, lex), infer_energy_level(traits_b, lex)
    )
    score += breed_score(
        classify_breed_size(requester.get("breed"), lex),
        classify_breed_size(candidate.get("breed"), lex),
    )

    total = max(0.0, score - distance_penalty(distance_km))
    # Half points round up.
    return max(0, min(100, floor(total + 0.5)))
