"""
Environment-backed settings for the PCR tracker service.

Every field reads its environment variable (or a ``.env`` fallback) when the
dataclass is instantiated, with defaults taken from the tables below. Values
are validated eagerly so a bad deployment fails at startup rather than on
the first scheduled tick.
"""

from dataclasses import dataclass, field
from functools import partial
from typing import Optional, Tuple

from .backoff_policy import BackoffConfig, BackoffStrategy
from .config import ConfigurationError, env_float, env_int, env_list, env_str
from .endpoints import DEFAULT_BASE_URL, UpstreamEndpoints
from .rate_governor import RateGovernorConfig

_DEFAULT_INT_VALUES = {
    "MAX_FETCH_ATTEMPTS": 3,
    "FAILURE_STREAK_THRESHOLD": 3,
    "HTTP_PORT": 3000,
}

_DEFAULT_FLOAT_VALUES = {
    "SESSION_TTL_SECONDS": 180.0,
    "RATE_MIN_GAP_MS": 8000.0,
    "REQUEST_TIMEOUT_SECONDS": 10.0,
    "CONNECTION_TIMEOUT_SECONDS": 10.0,
    "BACKOFF_BASE_SECONDS": 5.0,
    "BACKOFF_MULTIPLIER": 2.0,
    "BACKOFF_MAX_SECONDS": 120.0,
    "BACKOFF_JITTER_SECONDS": 0.0,
    "COOLDOWN_SECONDS": 60.0,
    "FETCH_INTERVAL_SECONDS": 180.0,
    "HANDSHAKE_DELAY_MIN_SECONDS": 1.5,
    "HANDSHAKE_DELAY_MAX_SECONDS": 4.0,
    "PRE_REQUEST_DELAY_MIN_SECONDS": 2.0,
    "PRE_REQUEST_DELAY_MAX_SECONDS": 4.0,
}

_DEFAULT_STR_VALUES = {
    "PCR_BASE_URL": DEFAULT_BASE_URL,
    "BACKOFF_STRATEGY": BackoffStrategy.LINEAR.value,
    "MARKET_TIMEZONE": "Asia/Kolkata",
    "HTTP_HOST": "0.0.0.0",
    "FETCH_MODE": "concurrent",
}

_DEFAULT_SYMBOLS = ("NIFTY", "BANKNIFTY")
_FETCH_MODES = {"concurrent", "sequential"}


def require_env_int(name: str) -> int:
    """Get an environment variable as integer, using the default if available."""
    value = env_int(name)
    if value is not None:
        return value
    if name in _DEFAULT_INT_VALUES:
        return _DEFAULT_INT_VALUES[name]
    raise ConfigurationError.missing_value(name, "environment variable must be defined")


def require_env_float(name: str) -> float:
    """Get an environment variable as float, using the default if available."""
    value = env_float(name)
    if value is not None:
        return value
    if name in _DEFAULT_FLOAT_VALUES:
        return _DEFAULT_FLOAT_VALUES[name]
    raise ConfigurationError.missing_value(name, "environment variable must be defined")


def require_env_str(name: str) -> str:
    value = env_str(name)
    if value is not None:
        return value
    if name in _DEFAULT_STR_VALUES:
        return _DEFAULT_STR_VALUES[name]
    raise ConfigurationError.missing_value(name, "environment variable must be defined")


def optional_env_float(name: str) -> Optional[float]:
    return env_float(name)


def _symbols_from_env() -> Tuple[str, ...]:
    symbols = env_list("PCR_SYMBOLS", or_value=_DEFAULT_SYMBOLS)
    return tuple(symbol.upper() for symbol in symbols or _DEFAULT_SYMBOLS)


def _pair(name: str, low: float, high: float) -> Tuple[float, float]:
    if low < 0 or high < low:
        raise ConfigurationError.invalid_range(name, low, high)
    return (low, high)


def _optional_pair(name: str, low: Optional[float], high: Optional[float]) -> Optional[Tuple[float, float]]:
    if low is None and high is None:
        return None
    if low is None or high is None:
        raise ConfigurationError(f"{name}_MIN_MS and {name}_MAX_MS must be set together")
    return _pair(name, low, high)


@dataclass
class TrackerSettings:
    """
    Service configuration.

    Attributes:
        base_url: Upstream origin root
        symbols: Index symbols fetched on every tick
        session_ttl_seconds: Reuse window of an acquired cookie token
        rate_min_gap_ms: Minimum spacing between any two upstream requests
        rate_jitter_min_ms / rate_jitter_max_ms: Optional extra random spacing
        batch_jitter_min_ms / batch_jitter_max_ms: Optional random pause before each scheduled batch
        max_fetch_attempts: Attempts per symbol before a FetchError
        failure_streak_threshold: Consecutive failures that trigger a cooldown
        cooldown_seconds: Length of that cooldown
        fetch_interval_seconds: Scheduler cadence
    """

    base_url: str = field(default_factory=partial(require_env_str, "PCR_BASE_URL"))
    symbols: Tuple[str, ...] = field(default_factory=_symbols_from_env)

    session_ttl_seconds: float = field(default_factory=partial(require_env_float, "SESSION_TTL_SECONDS"))
    rate_min_gap_ms: float = field(default_factory=partial(require_env_float, "RATE_MIN_GAP_MS"))
    rate_jitter_min_ms: Optional[float] = field(default_factory=partial(optional_env_float, "RATE_JITTER_MIN_MS"))
    rate_jitter_max_ms: Optional[float] = field(default_factory=partial(optional_env_float, "RATE_JITTER_MAX_MS"))
    batch_jitter_min_ms: Optional[float] = field(default_factory=partial(optional_env_float, "BATCH_JITTER_MIN_MS"))
    batch_jitter_max_ms: Optional[float] = field(default_factory=partial(optional_env_float, "BATCH_JITTER_MAX_MS"))

    request_timeout_seconds: float = field(default_factory=partial(require_env_float, "REQUEST_TIMEOUT_SECONDS"))
    connection_timeout_seconds: float = field(default_factory=partial(require_env_float, "CONNECTION_TIMEOUT_SECONDS"))
    handshake_delay_min_seconds: float = field(default_factory=partial(require_env_float, "HANDSHAKE_DELAY_MIN_SECONDS"))
    handshake_delay_max_seconds: float = field(default_factory=partial(require_env_float, "HANDSHAKE_DELAY_MAX_SECONDS"))
    pre_request_delay_min_seconds: float = field(default_factory=partial(require_env_float, "PRE_REQUEST_DELAY_MIN_SECONDS"))
    pre_request_delay_max_seconds: float = field(default_factory=partial(require_env_float, "PRE_REQUEST_DELAY_MAX_SECONDS"))

    max_fetch_attempts: int = field(default_factory=partial(require_env_int, "MAX_FETCH_ATTEMPTS"))
    backoff_strategy: str = field(default_factory=partial(require_env_str, "BACKOFF_STRATEGY"))
    backoff_base_seconds: float = field(default_factory=partial(require_env_float, "BACKOFF_BASE_SECONDS"))
    backoff_multiplier: float = field(default_factory=partial(require_env_float, "BACKOFF_MULTIPLIER"))
    backoff_max_seconds: float = field(default_factory=partial(require_env_float, "BACKOFF_MAX_SECONDS"))
    backoff_jitter_seconds: float = field(default_factory=partial(require_env_float, "BACKOFF_JITTER_SECONDS"))
    failure_streak_threshold: int = field(default_factory=partial(require_env_int, "FAILURE_STREAK_THRESHOLD"))
    cooldown_seconds: float = field(default_factory=partial(require_env_float, "COOLDOWN_SECONDS"))

    fetch_interval_seconds: float = field(default_factory=partial(require_env_float, "FETCH_INTERVAL_SECONDS"))
    fetch_mode: str = field(default_factory=partial(require_env_str, "FETCH_MODE"))
    market_timezone: str = field(default_factory=partial(require_env_str, "MARKET_TIMEZONE"))

    http_host: str = field(default_factory=partial(require_env_str, "HTTP_HOST"))
    http_port: int = field(default_factory=partial(require_env_int, "HTTP_PORT"))

    def __post_init__(self) -> None:
        if not self.symbols:
            raise ConfigurationError.missing_value("PCR_SYMBOLS")
        if self.session_ttl_seconds <= 0:
            raise ConfigurationError.invalid_value("SESSION_TTL_SECONDS", self.session_ttl_seconds, "Must be positive")
        if self.rate_min_gap_ms < 0:
            raise ConfigurationError.invalid_value("RATE_MIN_GAP_MS", self.rate_min_gap_ms, "Must be non-negative")
        if self.max_fetch_attempts < 1:
            raise ConfigurationError.invalid_value("MAX_FETCH_ATTEMPTS", self.max_fetch_attempts, "Must be at least 1")
        if self.failure_streak_threshold < 1:
            raise ConfigurationError.invalid_value(
                "FAILURE_STREAK_THRESHOLD", self.failure_streak_threshold, "Must be at least 1"
            )
        if self.fetch_interval_seconds <= 0:
            raise ConfigurationError.invalid_value(
                "FETCH_INTERVAL_SECONDS", self.fetch_interval_seconds, "Must be positive"
            )
        self.backoff_strategy = self.backoff_strategy.lower()
        strategies = {strategy.value for strategy in BackoffStrategy}
        if self.backoff_strategy not in strategies:
            raise ConfigurationError.unknown_choice("BACKOFF_STRATEGY", self.backoff_strategy, strategies)
        self.fetch_mode = self.fetch_mode.lower()
        if self.fetch_mode not in _FETCH_MODES:
            raise ConfigurationError.unknown_choice("FETCH_MODE", self.fetch_mode, _FETCH_MODES)
        _pair("HANDSHAKE_DELAY", self.handshake_delay_min_seconds, self.handshake_delay_max_seconds)
        _pair("PRE_REQUEST_DELAY", self.pre_request_delay_min_seconds, self.pre_request_delay_max_seconds)
        _optional_pair("RATE_JITTER", self.rate_jitter_min_ms, self.rate_jitter_max_ms)
        _optional_pair("BATCH_JITTER", self.batch_jitter_min_ms, self.batch_jitter_max_ms)

    @property
    def handshake_delay(self) -> Tuple[float, float]:
        return (self.handshake_delay_min_seconds, self.handshake_delay_max_seconds)

    @property
    def pre_request_delay(self) -> Tuple[float, float]:
        return (self.pre_request_delay_min_seconds, self.pre_request_delay_max_seconds)

    @property
    def batch_jitter_ms(self) -> Optional[Tuple[float, float]]:
        return _optional_pair("BATCH_JITTER", self.batch_jitter_min_ms, self.batch_jitter_max_ms)

    @property
    def concurrent_fetch(self) -> bool:
        return self.fetch_mode == "concurrent"

    def endpoints(self) -> UpstreamEndpoints:
        try:
            return UpstreamEndpoints(base_url=self.base_url)
        except ValueError as exc:
            raise ConfigurationError.invalid_value("PCR_BASE_URL", self.base_url, str(exc)) from exc

    def rate_governor_config(self) -> RateGovernorConfig:
        jitter = _optional_pair("RATE_JITTER", self.rate_jitter_min_ms, self.rate_jitter_max_ms)
        return RateGovernorConfig(min_gap_ms=self.rate_min_gap_ms, jitter_range_ms=jitter)

    def backoff_config(self) -> BackoffConfig:
        """Backoff never retries faster than the rate governor's floor."""
        return BackoffConfig(
            strategy=BackoffStrategy(self.backoff_strategy),
            base_delay_seconds=self.backoff_base_seconds,
            multiplier=self.backoff_multiplier,
            max_delay_seconds=self.backoff_max_seconds,
            jitter_seconds=self.backoff_jitter_seconds,
            min_delay_seconds=self.rate_min_gap_ms / 1000.0,
            failure_streak_threshold=self.failure_streak_threshold,
            cooldown_seconds=self.cooldown_seconds,
        )


def load_settings() -> TrackerSettings:
    """Build settings from the environment."""
    return TrackerSettings()


__all__ = ["TrackerSettings", "load_settings"]
