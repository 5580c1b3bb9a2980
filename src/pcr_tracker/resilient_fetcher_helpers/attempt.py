"""Transient record of one try at retrieving one symbol."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import AttemptFailure, FetchFailureCause


class AttemptOutcome(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass
class FetchAttempt:
    """One attempt; discarded (or kept only for diagnostics) once the call resolves."""

    symbol: str
    attempt_number: int
    max_attempts: int
    started_at: float
    outcome: AttemptOutcome = AttemptOutcome.PENDING
    cause: Optional[FetchFailureCause] = None
    finished_at: Optional[float] = None
    detail: str = ""

    @property
    def is_last(self) -> bool:
        return self.attempt_number >= self.max_attempts

    def succeeded(self, now: float) -> None:
        self.outcome = AttemptOutcome.SUCCESS
        self.finished_at = now

    def failed(self, failure: AttemptFailure, now: float) -> None:
        self.outcome = AttemptOutcome.TERMINAL_FAILURE if self.is_last else AttemptOutcome.RETRYABLE_FAILURE
        self.cause = failure.cause
        self.detail = str(failure)
        self.finished_at = now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "attempt": self.attempt_number,
            "maxAttempts": self.max_attempts,
            "outcome": self.outcome.value,
            "cause": self.cause.value if self.cause else None,
            "durationSeconds": None if self.finished_at is None else self.finished_at - self.started_at,
            "detail": self.detail,
        }
