"""
In-memory holder for the single shared upstream session.

The store owns the cookie token, when it was acquired, its time-to-live and
the global failure streak. Every other component reads through it or asks it
to change; none of them mutate the record directly. No I/O happens here.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 180.0


@dataclass
class Session:
    """One authenticated browsing context with the upstream origin."""

    token: Optional[str] = None
    acquired_at: Optional[float] = None
    time_to_live: float = DEFAULT_SESSION_TTL_SECONDS
    consecutive_failures: int = 0

    def age(self, now: float) -> Optional[float]:
        if self.acquired_at is None:
            return None
        return now - self.acquired_at


class SessionStore:
    """Owner of the process-wide ``Session`` record."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive (got {ttl_seconds})")
        self._clock = clock
        self._session = Session(time_to_live=ttl_seconds)

    @property
    def ttl_seconds(self) -> float:
        return self._session.time_to_live

    @property
    def consecutive_failures(self) -> int:
        return self._session.consecutive_failures

    def is_valid(self) -> bool:
        """True iff a token is present and younger than the TTL."""
        session = self._session
        if not session.token or session.acquired_at is None:
            return False
        return self._clock() - session.acquired_at < session.time_to_live

    def get(self) -> Optional[str]:
        """Current token; may be expired, callers check ``is_valid()`` first."""
        return self._session.token

    def set(self, token: str, now: Optional[float] = None) -> None:
        """Replace the token and restart its TTL.

        The failure streak is untouched; only a successful data fetch or a
        completed cooldown clears it.
        """
        acquired_at = self._clock() if now is None else now
        self._session = replace(
            self._session,
            token=token,
            acquired_at=acquired_at,
        )
        logger.info("Session token stored (ttl=%ss)", self._session.time_to_live)

    def record_failure(self) -> int:
        """Increment the failure streak and return its new value."""
        self._session.consecutive_failures += 1
        logger.debug("Failure streak now %s", self._session.consecutive_failures)
        return self._session.consecutive_failures

    def reset_failures(self) -> None:
        if self._session.consecutive_failures:
            logger.info("Resetting failure streak (was %s)", self._session.consecutive_failures)
        self._session.consecutive_failures = 0

    def snapshot(self) -> Session:
        """Copy of the current record for diagnostics."""
        return replace(self._session)

    def describe(self) -> dict:
        session = self._session
        return {
            "valid": self.is_valid(),
            "hasToken": bool(session.token),
            "ageSeconds": session.age(self._clock()),
            "ttlSeconds": session.time_to_live,
            "consecutiveFailures": session.consecutive_failures,
        }


__all__ = ["DEFAULT_SESSION_TTL_SECONDS", "Session", "SessionStore"]
