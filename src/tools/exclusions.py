"""Candidate exclusion sets for discovery queries."""

from __future__ import annotations

from typing import Iterable

from src.tools.firestore_tools import get_friendship_edges
from src.utils.logging_config import get_logger

logger = get_logger("exclusions")

# Rejected edges are not listed: a rejected request lets the
# candidate resurface.
EXCLUDED_STATUSES = frozenset({"pending", "accepted"})


def exclusion_set_from_edges(pet_id: str, edges: Iterable[dict]) -> set[str]:
    """Return ``pet_id`` plus the other endpoint of every pending/accepted edge."""

    excluded = {pet_id}
    for edge in edges:
        if edge.get("status") not in EXCLUDED_STATUSES:
            continue

        requester = edge.get("requester_pet_id")
        recipient = edge.get("recipient_pet_id")
        if requester == pet_id and recipient:
            excluded.add(recipient)
        elif recipient == pet_id and requester:
            excluded.add(requester)
    return excluded


def build_exclusion_set(pet_id: str) -> set[str]:
    """Identifiers that must never be returned as candidates for ``pet_id``.

    Raises:
        DependencyError: If the friendship store cannot be read.
    """

    excluded = exclusion_set_from_edges(pet_id, get_friendship_edges(pet_id))
    logger.debug("build_exclusion_set pet=%s excluded=%s", pet_id, len(excluded))
    return excluded
