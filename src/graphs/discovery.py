"""Nodes and validation shared by the matching and search graphs."""

from __future__ import annotations

import math

from src.graphs.base_graph import BaseGraph, with_error, with_state
from src.tools.exclusions import build_exclusion_set
from src.tools.firestore_tools import get_pet_profile
from src.utils.errors import DependencyError, InvalidInputError
from src.utils.geo import coordinates_in_range


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_coordinates(latitude, longitude) -> tuple[float, float]:
    """Return the pair as floats or raise InvalidInputError."""

    if not _is_number(latitude) or not _is_number(longitude):
        raise InvalidInputError("Invalid latitude or longitude values")
    if not coordinates_in_range(latitude, longitude):
        raise InvalidInputError("Invalid latitude or longitude values")
    return float(latitude), float(longitude)


def validate_positive_number(name: str, value) -> float:
    if not _is_number(value) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive number")
    return float(value)


def same_owner(profile: dict, owner_id: str | None) -> bool:
    """True when ``profile`` belongs to ``owner_id``."""

    return bool(owner_id) and profile.get("user_id") == owner_id


class DiscoveryGraph(BaseGraph):
    """Base for graphs that load a requester and its exclusion set."""

    def node_fetch_requester(self, state: dict) -> dict:
        """Load the requesting pet and check the caller owns it."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("fetch_requester", state)
            profile = get_pet_profile(state["pet_id"])
        except DependencyError as exc:
            self._log_node_error("fetch_requester", exc)
            return with_error(state, "dependency_error", "Failed to load pet profile")

        if not profile:
            return with_error(state, "not_found", f"Pet not found: {state['pet_id']}")

        user_id = state.get("user_id")
        if user_id and profile.get("user_id") != user_id:
            return with_error(state, "forbidden", "You do not own this pet")

        return with_state(state, requester_profile=profile)

    def node_build_exclusions(self, state: dict) -> dict:
        """Collect the requester and every pending/accepted friend."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("build_exclusions", state)
            excluded = build_exclusion_set(state["pet_id"])
        except DependencyError as exc:
            self._log_node_error("build_exclusions", exc)
            return with_error(state, "dependency_error", "Failed to load friendships")

        return with_state(state, excluded_ids=sorted(excluded))
