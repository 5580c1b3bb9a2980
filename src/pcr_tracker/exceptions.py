"""Exception hierarchy for the PCR tracker.

All custom exceptions inherit from ``ApplicationError`` so callers can catch
the whole family at a service boundary.

Context is passed as keyword arguments and stored as attributes:
err = SessionError(step="landing", cause=exc); raise err
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ApplicationError(Exception):
    """Base exception for all application errors.

    Supports keyword arguments that are stored as attributes for debugging.
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = self.__class__.__doc__ or "Application error occurred"
        super().__init__(message)
        for key, value in kwargs.items():
            setattr(self, key, value)


class SessionError(ApplicationError):
    """Session handshake with the upstream origin failed.

    Always retryable by forcing a fresh acquisition.
    """

    def __init__(
        self,
        message: str = "",
        *,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        if not message:
            message = "Session handshake failed"
        if cause is not None and str(cause):
            message = f"{message}: {cause}"
        super().__init__(message, step=step, cause=cause, **kwargs)

    @classmethod
    def no_cookies(cls, url: str) -> "SessionError":
        """Landing response carried no Set-Cookie directives."""
        return cls("no cookies", step="landing", url=url)

    @classmethod
    def bad_status(cls, step: str, url: str, status: int) -> "SessionError":
        """A handshake step answered with a non-200 status."""
        return cls(f"{step} request to {url} returned HTTP {status}", step=step, url=url, status=status)


class FetchFailureCause(Enum):
    """Classification of a failed data-endpoint attempt."""

    BLOCKED = "blocked"
    BAD_STATUS = "bad_status"
    MALFORMED_PAYLOAD = "malformed_payload"
    NETWORK_TIMEOUT = "network_timeout"
    SESSION = "session"


class AttemptFailure(ApplicationError):
    """One data-endpoint attempt failed; carries the classified cause."""

    def __init__(
        self,
        cause: FetchFailureCause,
        message: str = "",
        *,
        status: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        if not message:
            message = cause.value.replace("_", " ")
        super().__init__(message, cause=cause, status=status, error=error)


class FetchError(ApplicationError):
    """Data-endpoint call failed after exhausting every attempt."""

    def __init__(
        self,
        symbol: str,
        cause: FetchFailureCause,
        *,
        attempts: int,
        last_failure: Optional[AttemptFailure] = None,
    ) -> None:
        detail = f": {last_failure}" if last_failure is not None else ""
        message = f"Fetch for {symbol} failed after {attempts} attempt(s) ({cause.value}){detail}"
        super().__init__(
            message,
            symbol=symbol,
            cause=cause,
            attempts=attempts,
            last_failure=last_failure,
        )


__all__ = [
    "ApplicationError",
    "AttemptFailure",
    "FetchError",
    "FetchFailureCause",
    "SessionError",
]
