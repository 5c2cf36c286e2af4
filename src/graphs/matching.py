"""Radius-based matching graph with deterministic compatibility scoring."""

from __future__ import annotations

from src.config import config
from src.graphs.base_graph import with_error, with_state
from src.graphs.discovery import (
    DiscoveryGraph,
    same_owner,
    validate_coordinates,
    validate_positive_number,
)
from src.state import MatchingState
from src.tools.firestore_tools import list_available_profiles
from src.tools.privacy import mask_location
from src.tools.scoring_tools import calculate_compatibility_score
from src.utils.errors import DependencyError, InvalidInputError
from src.utils.geo import has_coordinates, haversine_km, round_distance
from src.utils.logging_config import get_logger

logger = get_logger("matching")


class MatchingGraph(DiscoveryGraph):
    """Find nearby candidates, score them and return the best ten."""

    state_schema = MatchingState

    def steps(self):
        return [
            ("validate_request", self.node_validate_request),
            ("fetch_requester", self.node_fetch_requester),
            ("build_exclusions", self.node_build_exclusions),
            ("query_candidates", self.node_query_candidates),
            ("score_candidates", self.node_score_candidates),
            ("rank_matches", self.node_rank_matches),
            ("finalize_response", self.node_finalize_response),
        ]

    def node_validate_request(self, state: MatchingState) -> MatchingState:
        """Check required fields and clamp the radius."""

        self._log_node_execution("validate_request", state)
        if (
            not state.get("pet_id")
            or state.get("latitude") is None
            or state.get("longitude") is None
        ):
            return with_error(
                state,
                "invalid_input",
                "Missing required fields: petId, latitude, longitude",
            )

        try:
            latitude, longitude = validate_coordinates(
                state["latitude"], state["longitude"]
            )
            radius = state.get("radius_km")
            if radius is None:
                radius = config.DEFAULT_RADIUS_KM
            radius = validate_positive_number("radius", radius)
        except InvalidInputError as exc:
            return with_error(state, "invalid_input", str(exc))

        radius = min(max(config.MIN_RADIUS_KM, radius), config.MAX_RADIUS_KM)
        return with_state(
            state, latitude=latitude, longitude=longitude, radius_km=radius
        )

    def node_query_candidates(self, state: MatchingState) -> MatchingState:
        """Fetch available, located candidates outside the exclusion set."""

        if state.get("error"):
            return state

        excluded = set(state.get("excluded_ids", []))
        owner_id = state["requester_profile"].get("user_id")

        def eligible(profile: dict) -> bool:
            return (
                has_coordinates(profile)
                and profile.get("id") not in excluded
                and not same_owner(profile, owner_id)
            )

        try:
            self._log_node_execution("query_candidates", state)
            candidates = list_available_profiles(
                predicate=eligible, page_size=config.CANDIDATE_PAGE_SIZE
            )
        except DependencyError as exc:
            self._log_node_error("query_candidates", exc)
            return with_error(state, "dependency_error", "Failed to fetch pets")

        return with_state(state, candidates=candidates)

    def node_score_candidates(self, state: MatchingState) -> MatchingState:
        """Drop candidates outside the radius and score the rest."""

        if state.get("error"):
            return state

        self._log_node_execution("score_candidates", state)
        requester = state["requester_profile"]
        radius = state["radius_km"]
        scored: list[dict] = []

        for candidate in state.get("candidates", []):
            distance = haversine_km(
                state["latitude"],
                state["longitude"],
                candidate["latitude"],
                candidate["longitude"],
            )
            if distance > radius:
                continue

            scored.append(
                {
                    "profile": candidate,
                    "distance_km": distance,
                    "score": calculate_compatibility_score(
                        requester, candidate, distance
                    ),
                }
            )

        return with_state(state, scored_matches=scored)

    def node_rank_matches(self, state: MatchingState) -> MatchingState:
        """Sort by score, then distance, then id, and keep the top results."""

        if state.get("error"):
            return state

        self._log_node_execution("rank_matches", state)
        ranked = sorted(
            state.get("scored_matches", []),
            key=lambda m: (
                -m["score"],
                m["distance_km"],
                str(m["profile"].get("id", "")),
            ),
        )
        return with_state(state, top_matches=ranked[: config.MATCH_RESULT_LIMIT])

    def node_finalize_response(self, state: MatchingState) -> MatchingState:
        """Mask locations and build the match payloads."""

        if state.get("error"):
            return with_state(
                state,
                final_matches=[],
                response_metadata={
                    "success": False,
                    "error": state.get("error"),
                    "total_candidates": len(state.get("candidates", [])),
                    "in_radius": 0,
                },
            )

        final_matches = [
            {
                **mask_location(match["profile"], is_owner=False),
                "distance": round_distance(match["distance_km"]),
                "compatibilityScore": match["score"],
            }
            for match in state.get("top_matches", [])
        ]

        logger.info(
            "Pet %s found %s potential matches, returning top %s",
            state["pet_id"],
            len(state.get("scored_matches", [])),
            len(final_matches),
        )

        return with_state(
            state,
            final_matches=final_matches,
            response_metadata={
                "success": True,
                "error": None,
                "total_candidates": len(state.get("candidates", [])),
                "in_radius": len(state.get("scored_matches", [])),
            },
        )


def create_matching_graph():
    """Build and compile the matching graph for server usage."""

    return MatchingGraph().compile()


def find_pet_matches(
    pet_id: str,
    latitude: float,
    longitude: float,
    radius_km: float | None = None,
    user_id: str | None = None,
) -> list[dict]:
    """Run the matching graph and return the ranked, masked matches.

    Raises:
        InvalidInputError, NotFoundError, ForbiddenError, DependencyError
    """

    result = MatchingGraph().run(
        {
            "pet_id": pet_id,
            "user_id": user_id or "",
            "latitude": latitude,
            "longitude": longitude,
            "radius_km": radius_km,
        }
    )
    return result.get("final_matches", [])
