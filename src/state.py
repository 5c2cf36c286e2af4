"""Shared LangGraph state definitions.

All graph states are TypedDicts so state is explicit, serializable, and
consistent across graph nodes.
"""

from __future__ import annotations

from typing import TypedDict

JsonDict = dict[str, object]
JsonList = list[JsonDict]


class MatchingState(TypedDict, total=False):
    """State for the radius-based matching graph.

    Fields are optional at runtime because nodes populate them progressively.
    """

    # Requesting pet and, when known, the authenticated owner.
    pet_id: str
    user_id: str
    # Requester position taken from the request, not the stored profile.
    latitude: float
    longitude: float
    # Search radius in km; clamped by validate_request.
    radius_km: float
    # Requesting pet profile loaded from pet_profiles/{pet_id}.
    requester_profile: JsonDict
    # Pet ids never returned as candidates (sorted for determinism).
    excluded_ids: list[str]
    # Available, located, non-excluded candidates.
    candidates: JsonList
    # Candidates inside the radius with distance and score attached.
    scored_matches: JsonList
    # Ranked and truncated matches.
    top_matches: JsonList
    # Masked matches returned to the caller.
    final_matches: JsonList
    # Error string and code if any node fails.
    error: str
    error_code: str
    # Response metadata for observability.
    response_metadata: JsonDict


class SearchState(TypedDict, total=False):
    """State for the name-based search graph."""

    pet_id: str
    user_id: str
    # Raw query from the request and its sanitized form.
    search_query: str
    sanitized_query: str
    # Optional requester coordinates; a half pair is dropped to None.
    latitude: float
    longitude: float
    # Accepted for client compatibility; search is not geo-filtered.
    max_distance_km: float
    requester_profile: JsonDict
    excluded_ids: list[str]
    # Name/username matches after exclusions.
    candidates: JsonList
    # Owner display names keyed by user id.
    owner_names: JsonDict
    # Ordered results before masking.
    ordered_results: JsonList
    final_results: JsonList
    error: str
    error_code: str
    response_metadata: JsonDict
