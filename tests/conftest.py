"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from pcr_tracker.backoff_policy import BackoffConfig, BackoffStrategy, FailurePolicy
from pcr_tracker.config import reset_dotenv_cache
from pcr_tracker.rate_governor import RateGovernor, RateGovernorConfig
from pcr_tracker.session_store import SessionStore
from tests.helpers.http_stubs import FakeClock

_ENV_KEYS = (
    "PCR_BASE_URL",
    "PCR_SYMBOLS",
    "SESSION_TTL_SECONDS",
    "RATE_MIN_GAP_MS",
    "RATE_JITTER_MIN_MS",
    "RATE_JITTER_MAX_MS",
    "BATCH_JITTER_MIN_MS",
    "BATCH_JITTER_MAX_MS",
    "REQUEST_TIMEOUT_SECONDS",
    "CONNECTION_TIMEOUT_SECONDS",
    "HANDSHAKE_DELAY_MIN_SECONDS",
    "HANDSHAKE_DELAY_MAX_SECONDS",
    "PRE_REQUEST_DELAY_MIN_SECONDS",
    "PRE_REQUEST_DELAY_MAX_SECONDS",
    "MAX_FETCH_ATTEMPTS",
    "BACKOFF_STRATEGY",
    "BACKOFF_BASE_SECONDS",
    "BACKOFF_MULTIPLIER",
    "BACKOFF_MAX_SECONDS",
    "BACKOFF_JITTER_SECONDS",
    "FAILURE_STREAK_THRESHOLD",
    "COOLDOWN_SECONDS",
    "FETCH_INTERVAL_SECONDS",
    "FETCH_MODE",
    "MARKET_TIMEZONE",
    "HTTP_HOST",
    "HTTP_PORT",
    "LOG_LEVEL",
    "LOG_TO_FILE",
    "LOG_DIRECTORY",
    "LOG_APPEND",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep developer .env files and exported settings out of the tests."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("pcr_tracker.config.runtime._DOTENV_CANDIDATES", (tmp_path / ".env",))
    reset_dotenv_cache()
    yield
    reset_dotenv_cache()


@pytest.fixture
def no_jitter(monkeypatch):
    """Every random draw returns the lower bound."""
    monkeypatch.setattr("pcr_tracker.backoff_policy.random.uniform", lambda a, b: a)


@pytest.fixture
def clock():
    return FakeClock(start=1_000.0)


@pytest.fixture
def store(clock):
    return SessionStore(180.0, clock=clock)


@pytest.fixture
def governor(clock):
    return RateGovernor(RateGovernorConfig(min_gap_ms=0.0), clock=clock, sleep=clock.sleep)


@pytest.fixture
def policy():
    return FailurePolicy(
        BackoffConfig(
            strategy=BackoffStrategy.LINEAR,
            base_delay_seconds=3.0,
            failure_streak_threshold=3,
            cooldown_seconds=60.0,
        )
    )
