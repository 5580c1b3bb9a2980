"""Option-chain PCR tracker: session-aware, rate-paced scraping of index option chains."""

from .backoff_policy import BackoffConfig, BackoffStrategy, FailurePolicy
from .exceptions import FetchError, FetchFailureCause, SessionError
from .rate_governor import RateGovernor, RateGovernorConfig
from .resilient_fetcher import ResilientFetcher
from .session_acquirer import SessionAcquirer
from .session_store import Session, SessionStore

__all__ = [
    "BackoffConfig",
    "BackoffStrategy",
    "FailurePolicy",
    "FetchError",
    "FetchFailureCause",
    "RateGovernor",
    "RateGovernorConfig",
    "ResilientFetcher",
    "Session",
    "SessionAcquirer",
    "SessionError",
    "SessionStore",
]
