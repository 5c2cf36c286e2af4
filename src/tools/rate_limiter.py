"""Sliding-window rate limiter backed by the Firestore attempt log.

Each (identifier, action) pair is throttled independently. The only state is
the attempt log: the number of attempts in ``[now - window, now]`` decides.

Failure policy: the limiter fails open. If the attempt count cannot be read
the action is allowed and a warning is logged, so an outage of the attempt
log never blocks legitimate use. A failed insert or cleanup is logged and
ignored.

Concurrency: counting and inserting are two separate calls. Concurrent
checks for the same pair can both read the same count before either insert
lands, so the limit can be exceeded by up to the number of concurrent
callers. The limiter is an abuse deterrent, not a hard quota.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from src.config import config
from src.tools.firestore_tools import (
    count_attempts_since,
    delete_attempts_before,
    record_attempt,
)
from src.utils.errors import DependencyError, InvalidInputError
from src.utils.logging_config import get_logger

logger = get_logger("rate_limit")


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate-limit check."""

    allowed: bool
    attempts_remaining: int
    window_minutes: int
    max_attempts: int
    reset_time: datetime | None = None
    # True when the count could not be read and the check was waived.
    fail_open: bool = False


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive integer")
    return value


def _purge_stale(identifier: str, action: str, window_start: datetime) -> None:
    try:
        delete_attempts_before(identifier, action, window_start)
    except DependencyError as exc:
        logger.warning(
            "Stale attempt cleanup failed for action=%s: %s", action, str(exc)
        )


def check_rate_limit(
    identifier: str,
    action: str,
    window_minutes: int | None = None,
    max_attempts: int | None = None,
    *,
    ip_address: str = "unknown",
    user_agent: str = "unknown",
    now: datetime | None = None,
) -> RateLimitDecision:
    """Record an attempt for (identifier, action) unless the window is full.

    Args:
        identifier: IP address or user id being throttled.
        action: Name of the guarded action (e.g. "friend_request").
        window_minutes: Sliding window length; config default when None.
        max_attempts: Attempts allowed per window; config default when None.
        ip_address: Origin IP stored with the attempt for audit.
        user_agent: Client agent stored with the attempt for audit.
        now: Current time, injectable for tests.

    Returns:
        RateLimitDecision. A denied decision has ``attempts_remaining == 0``
        and ``reset_time = now + window``.

    Raises:
        InvalidInputError: If identifier/action are empty or limits invalid.
    """

    if not identifier or not action:
        raise InvalidInputError("Missing identifier or action")

    window_minutes = _positive_int(
        "window_minutes",
        config.RATE_LIMIT_WINDOW_MINUTES if window_minutes is None else window_minutes,
    )
    max_attempts = _positive_int(
        "max_attempts",
        config.RATE_LIMIT_MAX_ATTEMPTS if max_attempts is None else max_attempts,
    )

    now = now or datetime.now(timezone.utc)
    window = timedelta(minutes=window_minutes)
    window_start = now - window

    try:
        current = count_attempts_since(identifier, action, window_start)
    except DependencyError as exc:
        logger.warning(
            "Rate limit count failed for action=%s; allowing (fail-open): %s",
            action,
            str(exc),
        )
        return RateLimitDecision(
            allowed=True,
            attempts_remaining=max_attempts - 1,
            window_minutes=window_minutes,
            max_attempts=max_attempts,
            fail_open=True,
        )

    if current >= max_attempts:
        _purge_stale(identifier, action, window_start)
        logger.warning(
            "Rate limit exceeded action=%s attempts=%s max=%s",
            action,
            current,
            max_attempts,
        )
        return RateLimitDecision(
            allowed=False,
            attempts_remaining=0,
            window_minutes=window_minutes,
            max_attempts=max_attempts,
            reset_time=now + window,
        )

    try:
        record_attempt(
            identifier,
            action,
            created_at=now,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except DependencyError as exc:
        logger.warning("Failed to record attempt for action=%s: %s", action, str(exc))

    _purge_stale(identifier, action, window_start)

    return RateLimitDecision(
        allowed=True,
        attempts_remaining=max_attempts - current - 1,
        window_minutes=window_minutes,
        max_attempts=max_attempts,
    )
