"""Retry backoff and failure-streak circuit breaker."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from .delay_calculator import DelayCalculator
from .types import (
    BACKOFF_PRESETS,
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_FAILURE_STREAK_THRESHOLD,
    BackoffConfig,
    BackoffStrategy,
)

__all__ = [
    "BACKOFF_PRESETS",
    "DEFAULT_COOLDOWN_SECONDS",
    "DEFAULT_FAILURE_STREAK_THRESHOLD",
    "BackoffConfig",
    "BackoffStrategy",
    "FailurePolicy",
]

logger = logging.getLogger(__name__)


class FailurePolicy:
    """Pure decision object: how long to wait between attempts and when to cool down."""

    def __init__(self, config: Optional[BackoffConfig] = None):
        self.config = config if config is not None else BackoffConfig()
        logger.info(
            "[FailurePolicy] strategy=%s base=%ss streak_threshold=%s cooldown=%ss",
            self.config.strategy.value,
            self.config.base_delay_seconds,
            self.config.failure_streak_threshold,
            self.config.cooldown_seconds,
        )

    @classmethod
    def from_preset(cls, name: str, **overrides: Any) -> "FailurePolicy":
        """Build a policy from a named preset, optionally overriding fields."""
        try:
            preset = BACKOFF_PRESETS[name]
        except KeyError as exc:
            raise ValueError(f"Unknown backoff preset {name!r}") from exc
        return cls(replace(preset, **overrides))

    @property
    def cooldown_seconds(self) -> float:
        return self.config.cooldown_seconds

    @property
    def failure_streak_threshold(self) -> int:
        return self.config.failure_streak_threshold

    def retry_delay(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` before the next one."""
        return DelayCalculator.calculate_full_delay(self.config, attempt)

    def should_cooldown(self, consecutive_failures: int) -> bool:
        """True once the failure streak reaches the configured threshold."""
        return consecutive_failures >= self.config.failure_streak_threshold

    def describe(self) -> Dict[str, Any]:
        return {
            "strategy": self.config.strategy.value,
            "base_delay_seconds": self.config.base_delay_seconds,
            "jitter_seconds": self.config.jitter_seconds,
            "min_delay_seconds": self.config.min_delay_seconds,
            "failure_streak_threshold": self.config.failure_streak_threshold,
            "cooldown_seconds": self.config.cooldown_seconds,
        }
