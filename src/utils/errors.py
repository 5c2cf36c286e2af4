"""Custom exception types for consistent error handling."""

from __future__ import annotations

from typing import Any


class DependencyError(Exception):
    """Raised when Firestore queries fail or are unavailable."""


class InvalidInputError(Exception):
    """Raised when request input validation fails."""


class NotFoundError(Exception):
    """Raised when a referenced pet profile does not exist."""


class ForbiddenError(Exception):
    """Raised when the caller does not own the requesting pet."""


class RateLimitExceeded(Exception):
    """Raised when a rate-limit check denies an action.

    This is an expected outcome, not a fault. The decision that caused it is
    attached so callers can report ``reset_time``.
    """

    def __init__(self, decision: Any):
        super().__init__("Rate limit exceeded")
        self.decision = decision


# Codes written into graph state by nodes that fail.
ERROR_CODES: dict[str, type[Exception]] = {
    "invalid_input": InvalidInputError,
    "forbidden": ForbiddenError,
    "not_found": NotFoundError,
    "dependency_error": DependencyError,
}


def raise_for_error_code(state: dict) -> None:
    """Raise the exception matching ``state['error_code']``, if any."""

    code = state.get("error_code")
    if not code:
        return
    exc_type = ERROR_CODES.get(code, DependencyError)
    raise exc_type(state.get("error") or code)
