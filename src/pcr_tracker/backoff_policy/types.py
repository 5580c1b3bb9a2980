"""Type definitions and presets for retry backoff."""

from dataclasses import dataclass
from enum import Enum

DEFAULT_FAILURE_STREAK_THRESHOLD = 3
DEFAULT_COOLDOWN_SECONDS = 60.0
DEFAULT_MAX_DELAY_SECONDS = 120.0


class BackoffStrategy(Enum):
    """How the per-attempt retry delay grows."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    FIXED = "fixed"
    UNIFORM = "uniform"


@dataclass
class BackoffConfig:
    """Configuration for retry delays and the failure-streak circuit breaker.

    ``jitter_seconds`` is added on top of the strategy's base value, except for
    ``UNIFORM`` where the delay is drawn from ``[base, base + jitter]``.
    ``min_delay_seconds`` is the request-pacing floor; no retry delay is ever
    shorter than it.
    """

    strategy: BackoffStrategy = BackoffStrategy.LINEAR
    base_delay_seconds: float = 3.0
    multiplier: float = 2.0
    max_delay_seconds: float = DEFAULT_MAX_DELAY_SECONDS
    jitter_seconds: float = 0.0
    min_delay_seconds: float = 0.0
    failure_streak_threshold: int = DEFAULT_FAILURE_STREAK_THRESHOLD
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS

    def __post_init__(self) -> None:
        if self.base_delay_seconds < 0 or self.jitter_seconds < 0 or self.min_delay_seconds < 0:
            raise ValueError("Backoff delays must be non-negative")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1 (got {self.multiplier})")
        if self.failure_streak_threshold < 1:
            raise ValueError(f"failure_streak_threshold must be >= 1 (got {self.failure_streak_threshold})")
        if self.cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must be non-negative (got {self.cooldown_seconds})")


# Formulas seen across deployments, kept as named configurations
BACKOFF_PRESETS = {
    "linear_3s": BackoffConfig(strategy=BackoffStrategy.LINEAR, base_delay_seconds=3.0),
    "linear_5s": BackoffConfig(strategy=BackoffStrategy.LINEAR, base_delay_seconds=5.0),
    "linear_6s_jitter": BackoffConfig(
        strategy=BackoffStrategy.LINEAR,
        base_delay_seconds=6.0,
        jitter_seconds=2.0,
    ),
    "fixed_15s_jitter": BackoffConfig(
        strategy=BackoffStrategy.FIXED,
        base_delay_seconds=15.0,
        jitter_seconds=5.0,
    ),
    "uniform_8_12s": BackoffConfig(
        strategy=BackoffStrategy.UNIFORM,
        base_delay_seconds=8.0,
        jitter_seconds=4.0,
    ),
}
