"""Name-based pet search graph."""

from __future__ import annotations

import re

from src.config import config
from src.graphs.base_graph import with_error, with_state
from src.graphs.discovery import (
    DiscoveryGraph,
    same_owner,
    validate_coordinates,
    validate_positive_number,
)
from src.state import SearchState
from src.tools.firestore_tools import get_owner_display_names, list_available_profiles
from src.tools.privacy import mask_location
from src.utils.errors import DependencyError, InvalidInputError
from src.utils.geo import has_coordinates, haversine_km, round_distance
from src.utils.logging_config import get_logger

logger = get_logger("search")

UNSAFE_QUERY_CHARS = re.compile(r"[^a-zA-Z0-9\s\-_]")


def sanitize_search_query(query: str, max_length: int | None = None) -> str:
    """Trim, truncate and strip a query down to letters, digits, spaces, - and _."""

    max_length = max_length or config.SEARCH_QUERY_MAX_LENGTH
    sanitized = query.strip()[:max_length]
    return UNSAFE_QUERY_CHARS.sub("", sanitized).strip()


def _name_key(profile: dict) -> str:
    return str(profile.get("name") or "").casefold()


class SearchGraph(DiscoveryGraph):
    """Search available pets by name or username."""

    state_schema = SearchState

    def steps(self):
        return [
            ("validate_request", self.node_validate_request),
            ("fetch_requester", self.node_fetch_requester),
            ("build_exclusions", self.node_build_exclusions),
            ("query_candidates", self.node_query_candidates),
            ("resolve_owners", self.node_resolve_owners),
            ("order_results", self.node_order_results),
            ("finalize_response", self.node_finalize_response),
        ]

    def node_validate_request(self, state: SearchState) -> SearchState:
        """Check required fields, sanitize the query, validate coordinates."""

        self._log_node_execution("validate_request", state)
        query = state.get("search_query")
        if not state.get("pet_id") or not query or not isinstance(query, str):
            return with_error(
                state, "invalid_input", "Missing required fields: petId, searchQuery"
            )

        sanitized = sanitize_search_query(query)
        if not sanitized:
            return with_error(state, "invalid_input", "Invalid search query")

        latitude = state.get("latitude")
        longitude = state.get("longitude")
        updates: dict = {"sanitized_query": sanitized}
        if latitude is None or longitude is None:
            # A half pair gives no origin; results fall back to name order.
            updates["latitude"] = updates["longitude"] = None
            latitude = None

        try:
            if latitude is not None:
                updates["latitude"], updates["longitude"] = validate_coordinates(
                    latitude, longitude
                )
            if state.get("max_distance_km") is not None:
                updates["max_distance_km"] = validate_positive_number(
                    "maxDistance", state["max_distance_km"]
                )
        except InvalidInputError as exc:
            return with_error(state, "invalid_input", str(exc))

        return with_state(state, **updates)

    def node_query_candidates(self, state: SearchState) -> SearchState:
        """Fetch name/username matches, then drop excluded pets."""

        if state.get("error"):
            return state

        needle = state["sanitized_query"].casefold()
        pet_id = state["pet_id"]
        owner_id = state["requester_profile"].get("user_id")

        def matches_query(profile: dict) -> bool:
            if profile.get("id") == pet_id or same_owner(profile, owner_id):
                return False
            username = str(profile.get("username") or "").casefold()
            return needle in _name_key(profile) or needle in username

        try:
            self._log_node_execution("query_candidates", state)
            found = list_available_profiles(
                predicate=matches_query,
                max_results=config.SEARCH_FETCH_LIMIT,
                page_size=config.CANDIDATE_PAGE_SIZE,
            )
        except DependencyError as exc:
            self._log_node_error("query_candidates", exc)
            return with_error(state, "dependency_error", "Failed to search pets")

        excluded = set(state.get("excluded_ids", []))
        candidates = [c for c in found if c.get("id") not in excluded]
        return with_state(state, candidates=candidates)

    def node_resolve_owners(self, state: SearchState) -> SearchState:
        """Look up display names for the candidates' owners."""

        if state.get("error"):
            return state

        user_ids = {c["user_id"] for c in state.get("candidates", []) if c.get("user_id")}
        if not user_ids:
            return with_state(state, owner_names={})

        try:
            self._log_node_execution("resolve_owners", state)
            names = get_owner_display_names(user_ids)
        except DependencyError as exc:
            self._log_node_error("resolve_owners", exc)
            return with_error(state, "dependency_error", "Failed to resolve owners")

        return with_state(state, owner_names=names)

    def node_order_results(self, state: SearchState) -> SearchState:
        """Attach distances and order by distance, or by name without coordinates."""

        if state.get("error"):
            return state

        self._log_node_execution("order_results", state)
        has_origin = state.get("latitude") is not None
        entries: list[dict] = []

        for candidate in state.get("candidates", []):
            distance = None
            if has_origin and has_coordinates(candidate):
                distance = haversine_km(
                    state["latitude"],
                    state["longitude"],
                    candidate["latitude"],
                    candidate["longitude"],
                )
            entries.append({"profile": candidate, "distance_km": distance})

        if has_origin:
            # Results without a known distance go last.
            key = lambda e: (
                e["distance_km"] is None,
                e["distance_km"] or 0.0,
                _name_key(e["profile"]),
                str(e["profile"].get("id", "")),
            )
        else:
            key = lambda e: (_name_key(e["profile"]), str(e["profile"].get("id", "")))

        return with_state(state, ordered_results=sorted(entries, key=key))

    def node_finalize_response(self, state: SearchState) -> SearchState:
        """Mask locations and attach owner names."""

        if state.get("error"):
            return with_state(
                state,
                final_results=[],
                response_metadata={"success": False, "error": state.get("error")},
            )

        names = state.get("owner_names", {})
        results = []
        for entry in state.get("ordered_results", []):
            profile = entry["profile"]
            results.append(
                {
                    **mask_location(profile, is_owner=False),
                    "owner_name": names.get(profile.get("user_id")) or None,
                    "distance": round_distance(entry["distance_km"]),
                }
            )

        logger.info(
            "Pet %s found %s search results for query %r",
            state["pet_id"],
            len(results),
            state["sanitized_query"],
        )

        return with_state(
            state,
            final_results=results,
            response_metadata={
                "success": True,
                "error": None,
                "result_count": len(results),
            },
        )


def create_search_graph():
    """Build and compile the search graph for server usage."""

    return SearchGraph().compile()


def search_pet_friends(
    pet_id: str,
    search_query: str,
    latitude: float | None = None,
    longitude: float | None = None,
    max_distance_km: float | None = None,
    user_id: str | None = None,
) -> list[dict]:
    """Run the search graph and return ordered, masked results.

    Raises:
        InvalidInputError, NotFoundError, ForbiddenError, DependencyError
    """

    result = SearchGraph().run(
        {
            "pet_id": pet_id,
            "user_id": user_id or "",
            "search_query": search_query,
            "latitude": latitude,
            "longitude": longitude,
            "max_distance_km": max_distance_km,
        }
    )
    return result.get("final_results", [])
