"""Delay calculation helpers for retry backoff."""

import logging

from pcr_tracker.backoff_policy import random as backoff_random

from .types import BackoffConfig, BackoffStrategy

logger = logging.getLogger(__name__)


class DelayCalculator:
    """Calculates retry delays with jitter and a pacing floor."""

    @staticmethod
    def calculate_base_delay(config: BackoffConfig, attempt: int) -> float:
        """
        Calculate the strategy's delay before jitter.

        Args:
            config: Backoff configuration
            attempt: Attempt number that just failed (1-based)

        Returns:
            Base delay in seconds
        """
        attempt = max(1, attempt)
        if config.strategy is BackoffStrategy.LINEAR:
            base = attempt * config.base_delay_seconds
        elif config.strategy is BackoffStrategy.EXPONENTIAL:
            base = config.base_delay_seconds * (config.multiplier ** (attempt - 1))
        else:
            base = config.base_delay_seconds
        return min(base, config.max_delay_seconds)

    @staticmethod
    def apply_jitter(base_delay: float, jitter_seconds: float) -> float:
        """Add a non-negative jitter drawn from ``[0, jitter_seconds]``."""
        if jitter_seconds <= 0:
            return base_delay
        return base_delay + backoff_random.uniform(0.0, jitter_seconds)

    @classmethod
    def calculate_full_delay(cls, config: BackoffConfig, attempt: int) -> float:
        """
        Calculate the complete retry delay.

        Args:
            config: Backoff configuration
            attempt: Attempt number that just failed (1-based)

        Returns:
            Final delay in seconds, never below ``config.min_delay_seconds``
        """
        base_delay = cls.calculate_base_delay(config, attempt)
        final_delay = cls.apply_jitter(base_delay, config.jitter_seconds)
        final_delay = max(final_delay, config.min_delay_seconds)

        logger.debug(
            "[FailurePolicy] attempt=%s strategy=%s base_delay=%.2fs final_delay=%.2fs",
            attempt,
            config.strategy.value,
            base_delay,
            final_delay,
        )
        return final_delay
