"""
Unit tests for the compatibility scorer.

The weights are part of the product contract, so these tests pin each
threshold rather than only checking ranges:
  1. Age term (20/15/10/5/0, neutral 10)
  2. Trait overlap term (floor(ratio * 30), neutral 15)
  3. Energy term inferred from trait lexicons
  4. Breed size term
  5. Distance penalty and clamping
"""

import itertools

import pytest

from src.tools.lexicons import Lexicons
from src.tools.scoring_tools import (
    age_score,
    breed_score,
    calculate_compatibility_score,
    classify_breed_size,
    distance_penalty,
    energy_score,
    infer_energy_level,
    normalise_traits,
    trait_score,
)


def pet(age=3, traits=("playful", "friendly"), breed="Golden Retriever"):
    return {"age": age, "personality_traits": list(traits), "breed": breed}


class TestAgeScore:
    """Age similarity thresholds."""

    @pytest.mark.parametrize(
        "other_age, expected",
        [(3, 20), (4, 20), (5, 15), (6, 10), (7, 5), (8, 5), (9, 0), (20, 0)],
    )
    def test_age_thresholds(self, other_age, expected):
        assert age_score(3, other_age) == expected

    def test_unknown_age_is_neutral(self):
        assert age_score(None, 3) == 10
        assert age_score(3, None) == 10
        assert age_score(None, None) == 10

    def test_zero_is_a_known_age(self):
        """A puppy under a year old is age 0, not unknown."""
        assert age_score(0, 1) == 20
        assert age_score(0, 6) == 0


class TestTraitScore:
    """Personality trait overlap."""

    def test_identical_traits_full_points(self):
        assert trait_score({"playful", "shy"}, {"playful", "shy"}) == 30

    def test_half_overlap(self):
        assert trait_score({"playful", "shy"}, {"playful", "loud"}) == 15

    def test_ratio_uses_larger_set(self):
        # 1 common out of max(1, 4) -> floor(7.5) == 7
        assert trait_score({"playful"}, {"playful", "a", "b", "c"}) == 7

    def test_no_overlap_scores_zero(self):
        assert trait_score({"calm"}, {"playful"}) == 0

    def test_missing_traits_neutral(self):
        assert trait_score(set(), {"playful"}) == 15
        assert trait_score({"playful"}, set()) == 15

    def test_traits_normalised(self):
        assert normalise_traits([" Playful", "playful", "", "SHY "]) == {"playful", "shy"}
        assert normalise_traits(None) == set()


class TestEnergy:
    """Energy level inference from trait vocabulary."""

    def test_high_energy(self):
        assert infer_energy_level({"playful", "energetic", "calm"}) == 3

    def test_low_energy(self):
        assert infer_energy_level({"calm", "gentle"}) == 1

    def test_balanced_is_medium(self):
        assert infer_energy_level({"playful", "calm"}) == 2

    def test_no_lexicon_match_is_medium(self):
        assert infer_energy_level({"friendly"}) == 2
        assert infer_energy_level(set()) == 2

    def test_energy_score_by_difference(self):
        assert energy_score(3, 3) == 30
        assert energy_score(3, 2) == 30
        assert energy_score(3, 1) == 20
        assert energy_score(0, 3) == 10


class TestBreedSize:
    """Breed size classification and compatibility."""

    @pytest.mark.parametrize(
        "breed, size",
        [
            ("Chihuahua", "small"),
            ("mini french bulldog", "small"),
            ("Beagle mix", "medium"),
            ("Border Collie", "medium"),
            ("LABRADOR retriever", "large"),
            ("German Shepherd", "large"),
            ("Mutt", "unknown"),
            ("", "unknown"),
            (None, "unknown"),
        ],
    )
    def test_classification(self, breed, size):
        assert classify_breed_size(breed) == size

    def test_smaller_size_wins_when_several_match(self):
        assert classify_breed_size("pug x labrador") == "small"

    def test_breed_scores(self):
        assert breed_score("large", "large") == 20
        assert breed_score("small", "medium") == 15
        assert breed_score("large", "medium") == 15
        assert breed_score("small", "large") == 5
        assert breed_score("large", "small") == 5
        assert breed_score("unknown", "large") == 10
        assert breed_score("unknown", "unknown") == 10


class TestDistancePenalty:
    def test_two_points_per_km(self):
        assert distance_penalty(0) == 0
        assert distance_penalty(2.5) == 5

    def test_capped_at_ten(self):
        assert distance_penalty(5) == 10
        assert distance_penalty(400) == 10


class TestCompatibilityScore:
    """Full score composition."""

    def test_perfect_match_at_zero_distance(self):
        assert calculate_compatibility_score(pet(), pet(), 0) == 100

    @pytest.mark.parametrize(
        "candidate_age, expected",
        [(4, 100), (5, 95), (6, 90), (8, 85), (9, 80)],
    )
    def test_age_boundaries_move_total_score(self, candidate_age, expected):
        """Holding traits and breed fixed, each age threshold shifts the total by 5."""
        score = calculate_compatibility_score(pet(age=3), pet(age=candidate_age), 0)
        assert score == expected

    def test_age_difference_of_one_vs_two_crosses_threshold(self):
        one = calculate_compatibility_score(pet(age=3), pet(age=4), 0)
        two = calculate_compatibility_score(pet(age=3), pet(age=5), 0)
        assert one - two == 5

    def test_unknown_age_costs_ten(self):
        assert calculate_compatibility_score(pet(age=None), pet(), 0) == 90

    def test_distance_penalty_applied(self):
        assert calculate_compatibility_score(pet(), pet(), 1.0) == 98
        assert calculate_compatibility_score(pet(), pet(), 30.0) == 90

    def test_fractional_penalty_rounds(self):
        # 100 - 2.0016 -> 97.9984 -> 98
        assert calculate_compatibility_score(pet(), pet(), 1.0008) == 98

    @pytest.mark.parametrize(
        "candidate_age, distance, expected",
        [(5, 0.25, 95), (3, 0.25, 100), (5, 0.75, 94)],
    )
    def test_half_points_round_up(self, candidate_age, distance, expected):
        # 95 - 0.5 -> 94.5 -> 95, not the even neighbour 94
        score = calculate_compatibility_score(pet(age=3), pet(age=candidate_age), distance)
        assert score == expected

    def test_mismatched_pets(self):
        requester = pet(age=1, traits=["calm", "gentle"], breed="Chihuahua")
        candidate = pet(age=10, traits=["playful", "energetic"], breed="Rottweiler")
        # age 0 + traits 0 + energy 20 + breed 5 - 10
        assert calculate_compatibility_score(requester, candidate, 50) == 15

    def test_custom_lexicons(self):
        lexicons = Lexicons(
            energy_keywords={"zoomies": "high", "sleepy": "calm"},
            breed_sizes={"corgi": "medium"},
        )
        requester = pet(traits=["zoomies"], breed="Corgi")
        candidate = pet(traits=["zoomies"], breed="corgi mix")
        assert calculate_compatibility_score(requester, candidate, 0, lexicons) == 100

    def test_score_bounds(self):
        """Score stays in [0, 100] across a grid of profiles and distances."""
        ages = [None, 0, 3, 12]
        traits = [[], ["playful"], ["calm", "gentle"], ["playful", "calm", "shy"]]
        breeds = ["pug", "beagle", "labrador", "mutt"]
        distances = [0, 0.4, 5, 5000]
        profiles = [pet(a, t, b) for a, t, b in itertools.product(ages, traits, breeds)]

        for requester, candidate in itertools.product(profiles[::3], profiles[::5]):
            for distance in distances:
                score = calculate_compatibility_score(requester, candidate, distance)
                assert isinstance(score, int)
                assert 0 <= score <= 100
