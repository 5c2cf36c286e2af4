"""Firestore wrappers used by graph nodes and the rate limiter.

These helpers centralize collection names, error handling, and logging so
graph nodes stay focused on orchestration logic. Every failure surfaces as
``DependencyError``.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Callable, Iterable

import firebase_admin
from firebase_admin import credentials, firestore


from src.utils.errors import DependencyError
from src.utils.logging_config import get_logger

logger = get_logger("firestore")

PETS_COLLECTION = "pet_profiles"
FRIENDSHIPS_COLLECTION = "pet_friendships"
USER_PROFILES_COLLECTION = "user_profiles"
ATTEMPTS_COLLECTION = "rate_limit_attempts"

_db: firestore.Client | None = None


def get_db() -> firestore.Client:
    """Get a Firestore client, initializing Firebase lazily."""
    global _db

    if _db is not None:
        return _db

    try:
        if not firebase_admin._apps:
            cred_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
            if not cred_path:
                raise RuntimeError(
                    "GOOGLE_APPLICATION_CREDENTIALS is not set"
                )

            cred = credentials.Certificate(cred_path)
            firebase_admin.initialize_app(cred)

        _db = firestore.client()
        return _db

    except Exception as exc:
        logger.error("Failed to initialize Firestore: %s", exc)
        raise DependencyError(str(exc)) from exc


def _pet_from_doc(doc) -> dict:
    data = doc.to_dict() or {}
    data.setdefault("id", doc.id)
    return data


# ============================================================
# PROFILE STORE
# ============================================================

def get_pet_profile(pet_id: str) -> dict | None:
    """Fetch a pet profile from pet_profiles/{pet_id}.

    Returns None if the pet does not exist.
    """

    try:
        doc = get_db().collection(PETS_COLLECTION).document(pet_id).get()
        if not doc.exists:
            return None
        return _pet_from_doc(doc)
    except Exception as exc:
        logger.error("Failed to fetch pet profile: %s", str(exc))
        raise DependencyError(str(exc)) from exc


def list_available_profiles(
    predicate: Callable[[dict], bool] | None = None,
    max_results: int | None = None,
    page_size: int = 100,
) -> list[dict]:
    """List available pet profiles, filtered in memory by ``predicate``.

    Firestore cannot express substring or "not in a large set" filters, so
    only the availability flag is pushed to the query. The collection is
    read in pages of ``page_size`` documents until it is exhausted or
    ``max_results`` profiles have passed ``predicate``.
    """

    try:
        base_query = (
            get_db()
            .collection(PETS_COLLECTION)
            .where("is_available", "==", True)
            .limit(page_size)
        )

        profiles: list[dict] = []
        last_doc = None
        while True:
            query = base_query if last_doc is None else base_query.start_after(last_doc)
            page = list(query.stream())

            for doc in page:
                profile = _pet_from_doc(doc)
                if predicate is not None and not predicate(profile):
                    continue
                profiles.append(profile)
                if max_results is not None and len(profiles) >= max_results:
                    return profiles

            if len(page) < page_size:
                return profiles
            last_doc = page[-1]
    except Exception as exc:
        logger.error("Failed to query pet profiles: %s", str(exc))
        raise DependencyError(str(exc)) from exc


# ============================================================
# FRIENDSHIP STORE
# ============================================================

def get_friendship_edges(pet_id: str) -> list[dict]:
    """Fetch every friendship edge where ``pet_id`` is either endpoint."""

    try:
        collection = get_db().collection(FRIENDSHIPS_COLLECTION)
        edges: list[dict] = []
        for field in ("requester_pet_id", "recipient_pet_id"):
            edges.extend(
                doc.to_dict() or {}
                for doc in collection.where(field, "==", pet_id).stream()
            )
        return edges
    except Exception as exc:
        logger.error("Failed to fetch friendships: %s", str(exc))
        raise DependencyError(str(exc)) from exc


# ============================================================
# USER PROFILE STORE
# ============================================================

def get_owner_display_names(user_ids: Iterable[str]) -> dict[str, str | None]:
    """Resolve owner display names from user_profiles/{user_id}."""

    try:
        collection = get_db().collection(USER_PROFILES_COLLECTION)
        names: dict[str, str | None] = {}
        for user_id in set(user_ids):
            if not user_id:
                continue
            doc = collection.document(user_id).get()
            names[user_id] = (
                (doc.to_dict() or {}).get("display_name") if doc.exists else None
            )
        return names
    except Exception as exc:
        logger.error("Failed to fetch owner names: %s", str(exc))
        raise DependencyError(str(exc)) from exc


# ============================================================
# ATTEMPT LOG
# ============================================================

def _attempts_query(identifier: str, action: str):
    return (
        get_db()
        .collection(ATTEMPTS_COLLECTION)
        .where("identifier", "==", identifier)
        .where("action", "==", action)
    )


def count_attempts_since(identifier: str, action: str, since: datetime) -> int:
    """Count attempts for (identifier, action) created at or after ``since``.

    Note: Only equality filters go to Firestore; the time range is applied
    in memory to avoid requiring composite indexes.
    """

    try:
        count = 0
        for doc in _attempts_query(identifier, action).stream():
            created = (doc.to_dict() or {}).get("created_at")
            if created is not None and created >= since:
                count += 1
        return count
    except Exception as exc:
        logger.error("Failed to count rate limit attempts: %s", str(exc))
        raise DependencyError(str(exc)) from exc


def record_attempt(
    identifier: str,
    action: str,
    created_at: datetime,
    ip_address: str = "unknown",
    user_agent: str = "unknown",
) -> None:
    """Insert one attempt row with its request metadata."""

    try:
        get_db().collection(ATTEMPTS_COLLECTION).add(
            {
                "identifier": identifier,
                "action": action,
                "created_at": created_at,
                "ip_address": ip_address,
                "user_agent": user_agent,
            }
        )
    except Exception as exc:
        logger.error("Failed to record rate limit attempt: %s", str(exc))
        raise DependencyError(str(exc)) from exc


def delete_attempts_before(identifier: str, action: str, before: datetime) -> int:
    """Delete attempts for (identifier, action) older than ``before``."""

    try:
        deleted = 0
        for doc in _attempts_query(identifier, action).stream():
            created = (doc.to_dict() or {}).get("created_at")
            if created is not None and created < before:
                doc.reference.delete()
                deleted += 1
        return deleted
    except Exception as exc:
        logger.error("Failed to delete stale rate limit attempts: %s", str(exc))
        raise DependencyError(str(exc)) from exc
