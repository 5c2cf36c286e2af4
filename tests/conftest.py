"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
  - Test configuration (env vars set before src.config is imported)
  - An in-memory pet store patched over the Firestore helpers
  - An in-memory rate-limit attempt log
  - A mock Firestore client for testing the store wrappers themselves
"""

import os

# src.config builds its singleton at import time, so the environment must be
# pinned before any test module imports it.
os.environ.update(
    {
        "FIREBASE_PROJECT_ID": "test-project",
        "GOOGLE_APPLICATION_CREDENTIALS": "/config/test-serviceAccountKey.json",
        "SERVICE_TOKEN": "",
        "DEBUG": "True",
        "LOG_FILE": "",
    }
)
os.environ.pop("LEXICON_PATH", None)

import pytest
from unittest.mock import MagicMock

from src.utils.errors import DependencyError


def make_pet(pet_id: str, **overrides) -> dict:
    """Build a pet profile with sensible defaults."""

    pet = {
        "id": pet_id,
        "name": pet_id.replace("pet-", "").title(),
        "username": None,
        "breed": "Golden Retriever",
        "age": 3,
        "latitude": 40.0,
        "longitude": -74.0,
        "personality_traits": ["playful", "friendly"],
        "is_available": True,
        "user_id": f"user-{pet_id}",
        "bio": None,
    }
    pet.update(overrides)
    return pet


class FakePetStore:
    """In-memory stand-in for the profile, friendship and user-profile stores."""

    def __init__(self):
        self.pets: dict[str, dict] = {}
        self.edges: list[dict] = []
        self.display_names: dict[str, str] = {}
        self.failing: set[str] = set()
        self.list_calls: list[dict] = []

    def add_pet(self, pet_id: str, **overrides) -> dict:
        pet = make_pet(pet_id, **overrides)
        self.pets[pet_id] = pet
        return pet

    def add_edge(self, requester: str, recipient: str, status: str) -> None:
        self.edges.append(
            {
                "requester_pet_id": requester,
                "recipient_pet_id": recipient,
                "status": status,
            }
        )

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise DependencyError(f"{name} unavailable")

    def get_pet_profile(self, pet_id):
        self._check("get_pet_profile")
        pet = self.pets.get(pet_id)
        return dict(pet) if pet else None

    def list_available_profiles(self, predicate=None, max_results=None, page_size=100):
        self._check("list_available_profiles")
        self.list_calls.append({"page_size": page_size, "max_results": max_results})
        results = []
        for pet in (p for p in self.pets.values() if p.get("is_available")):
            if predicate is not None and not predicate(dict(pet)):
                continue
            results.append(dict(pet))
            if max_results is not None and len(results) >= max_results:
                break
        return results

    def get_friendship_edges(self, pet_id):
        self._check("get_friendship_edges")
        return [
            dict(e)
            for e in self.edges
            if pet_id in (e["requester_pet_id"], e["recipient_pet_id"])
        ]

    def get_owner_display_names(self, user_ids):
        self._check("get_owner_display_names")
        return {uid: self.display_names.get(uid) for uid in user_ids}


@pytest.fixture
def pet_store(monkeypatch):
    """Patch every Firestore read used by the discovery graphs."""

    store = FakePetStore()
    monkeypatch.setattr("src.graphs.discovery.get_pet_profile", store.get_pet_profile)
    monkeypatch.setattr(
        "src.tools.exclusions.get_friendship_edges", store.get_friendship_edges
    )
    monkeypatch.setattr(
        "src.graphs.matching.list_available_profiles", store.list_available_profiles
    )
    monkeypatch.setattr(
        "src.graphs.search.list_available_profiles", store.list_available_profiles
    )
    monkeypatch.setattr(
        "src.graphs.search.get_owner_display_names", store.get_owner_display_names
    )
    return store


class FakeAttemptLog:
    """In-memory rate_limit_attempts collection."""

    def __init__(self):
        self.attempts: list[dict] = []
        self.failing: set[str] = set()

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise DependencyError(f"{name} unavailable")

    def count_attempts_since(self, identifier, action, since):
        self._check("count")
        return sum(
            1
            for a in self.attempts
            if a["identifier"] == identifier
            and a["action"] == action
            and a["created_at"] >= since
        )

    def record_attempt(self, identifier, action, created_at, ip_address="unknown", user_agent="unknown"):
        self._check("record")
        self.attempts.append(
            {
                "identifier": identifier,
                "action": action,
                "created_at": created_at,
                "ip_address": ip_address,
                "user_agent": user_agent,
            }
        )

    def delete_attempts_before(self, identifier, action, before):
        self._check("delete")
        kept = [
            a
            for a in self.attempts
            if not (
                a["identifier"] == identifier
                and a["action"] == action
                and a["created_at"] < before
            )
        ]
        deleted = len(self.attempts) - len(kept)
        self.attempts = kept
        return deleted


@pytest.fixture
def attempt_log(monkeypatch):
    """Patch the rate limiter's attempt-log helpers with an in-memory log."""

    log = FakeAttemptLog()
    monkeypatch.setattr("src.tools.rate_limiter.count_attempts_since", log.count_attempts_since)
    monkeypatch.setattr("src.tools.rate_limiter.record_attempt", log.record_attempt)
    monkeypatch.setattr("src.tools.rate_limiter.delete_attempts_before", log.delete_attempts_before)
    return log


@pytest.fixture
def mock_db(monkeypatch):
    """
    Provide a mock Firestore client for testing the store wrappers.

    Example:
        def test_something(mock_db):
            mock_db.collection.return_value...
    """
    db = MagicMock()
    monkeypatch.setattr("src.tools.firestore_tools._db", db)
    return db
