import pytest

from pcr_tracker.backoff_policy import BackoffStrategy
from pcr_tracker.config import ConfigurationError
from pcr_tracker.settings import TrackerSettings, load_settings, require_env_float, require_env_int


def test_defaults():
    settings = load_settings()

    assert settings.symbols == ("NIFTY", "BANKNIFTY")
    assert settings.session_ttl_seconds == 180.0
    assert settings.rate_min_gap_ms == 8000.0
    assert settings.max_fetch_attempts == 3
    assert settings.failure_streak_threshold == 3
    assert settings.cooldown_seconds == 60.0
    assert settings.fetch_interval_seconds == 180.0
    assert settings.http_port == 3000
    assert settings.concurrent_fetch is True
    assert settings.handshake_delay == (1.5, 4.0)
    assert settings.pre_request_delay == (2.0, 4.0)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PCR_SYMBOLS", "nifty, finnifty,nifty")
    monkeypatch.setenv("RATE_MIN_GAP_MS", "2500")
    monkeypatch.setenv("FETCH_MODE", "Sequential")
    monkeypatch.setenv("BACKOFF_STRATEGY", "EXPONENTIAL")
    monkeypatch.setenv("HTTP_PORT", "8080")

    settings = TrackerSettings()

    assert settings.symbols == ("NIFTY", "FINNIFTY")
    assert settings.rate_min_gap_ms == 2500.0
    assert settings.concurrent_fetch is False
    assert settings.backoff_strategy == "exponential"
    assert settings.http_port == 8080


def test_dotenv_fallback(monkeypatch, tmp_path):
    from pcr_tracker.config import reset_dotenv_cache

    (tmp_path / ".env").write_text("COOLDOWN_SECONDS=90\nexport MAX_FETCH_ATTEMPTS='5'\n")
    reset_dotenv_cache()

    settings = TrackerSettings()

    assert settings.cooldown_seconds == 90.0
    assert settings.max_fetch_attempts == 5


def test_backoff_config_uses_rate_floor(monkeypatch):
    monkeypatch.setenv("RATE_MIN_GAP_MS", "6000")
    monkeypatch.setenv("BACKOFF_BASE_SECONDS", "4")

    config = TrackerSettings().backoff_config()

    assert config.strategy is BackoffStrategy.LINEAR
    assert config.base_delay_seconds == 4.0
    assert config.min_delay_seconds == 6.0
    assert config.failure_streak_threshold == 3


def test_rate_governor_config_with_jitter(monkeypatch):
    monkeypatch.setenv("RATE_JITTER_MIN_MS", "100")
    monkeypatch.setenv("RATE_JITTER_MAX_MS", "900")

    config = TrackerSettings().rate_governor_config()

    assert config.min_gap_ms == 8000.0
    assert config.jitter_range_ms == (100.0, 900.0)


def test_endpoints_follow_base_url(monkeypatch):
    monkeypatch.setenv("PCR_BASE_URL", "https://mirror.example.com/")

    endpoints = TrackerSettings().endpoints()

    assert endpoints.data_url("NIFTY") == "https://mirror.example.com/api/option-chain-indices?symbol=NIFTY"


@pytest.mark.parametrize(
    "name, value",
    [
        ("MAX_FETCH_ATTEMPTS", "0"),
        ("SESSION_TTL_SECONDS", "0"),
        ("FAILURE_STREAK_THRESHOLD", "0"),
        ("FETCH_INTERVAL_SECONDS", "-1"),
        ("BACKOFF_STRATEGY", "quadratic"),
        ("FETCH_MODE", "parallel"),
        ("RATE_MIN_GAP_MS", "-5"),
        ("HANDSHAKE_DELAY_MIN_SECONDS", "9"),
        ("HTTP_PORT", "eighty"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        TrackerSettings()


def test_jitter_bounds_must_come_together(monkeypatch):
    monkeypatch.setenv("RATE_JITTER_MIN_MS", "100")

    with pytest.raises(ConfigurationError, match="set together"):
        TrackerSettings()


def test_batch_jitter_bounds_must_come_together(monkeypatch):
    monkeypatch.setenv("BATCH_JITTER_MAX_MS", "5000")

    with pytest.raises(ConfigurationError, match="BATCH_JITTER_MIN_MS and BATCH_JITTER_MAX_MS"):
        TrackerSettings()


def test_inverted_batch_jitter_raises(monkeypatch):
    monkeypatch.setenv("BATCH_JITTER_MIN_MS", "5000")
    monkeypatch.setenv("BATCH_JITTER_MAX_MS", "1000")

    with pytest.raises(ConfigurationError):
        TrackerSettings()


def test_invalid_base_url(monkeypatch):
    monkeypatch.setenv("PCR_BASE_URL", "ftp://example.com")

    with pytest.raises(ConfigurationError):
        TrackerSettings().endpoints()


def test_require_helpers_without_default():
    with pytest.raises(ConfigurationError):
        require_env_int("UNKNOWN_PCR_SETTING")
    with pytest.raises(ConfigurationError):
        require_env_float("UNKNOWN_PCR_SETTING")
