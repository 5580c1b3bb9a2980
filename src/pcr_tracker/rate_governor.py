"""Process-wide request pacing for the upstream origin.

Every outbound request (handshake steps and data calls alike) passes through
one ``RateGovernor`` so the total cadence across all symbols respects a single
minimum spacing, optionally widened by random jitter.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Tuple

from pcr_tracker.backoff_policy import random as pacing_random

logger = logging.getLogger(__name__)

DEFAULT_MIN_GAP_MS = 0.0

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class RateGovernorConfig:
    """Configuration for request spacing."""

    min_gap_ms: float = DEFAULT_MIN_GAP_MS
    jitter_range_ms: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        if self.min_gap_ms < 0:
            raise ValueError(f"min_gap_ms must be non-negative (got {self.min_gap_ms})")
        if self.jitter_range_ms is not None:
            low, high = self.jitter_range_ms
            if low < 0 or high < low:
                raise ValueError(f"Invalid jitter range: {self.jitter_range_ms!r}")

    @property
    def max_gap_ms(self) -> float:
        """Upper bound of the spacing including jitter."""
        if self.jitter_range_ms is None:
            return self.min_gap_ms
        return self.min_gap_ms + self.jitter_range_ms[1]


def draw_jitter_ms(jitter_range_ms: Optional[Tuple[float, float]]) -> float:
    """Return a jitter amount in milliseconds, or 0 when no range is configured."""
    if not jitter_range_ms:
        return 0.0
    low, high = jitter_range_ms
    return pacing_random.uniform(low, high)


class RateGovernor:
    """Single global gate enforcing a minimum gap between upstream requests.

    ``gate()`` cannot fail; it only delays. Callers are serialized with a lock
    so concurrent fetches still observe the spacing.
    """

    def __init__(
        self,
        config: Optional[RateGovernorConfig] = None,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config if config is not None else RateGovernorConfig()
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request_time: Optional[float] = None
        self._total_requests = 0
        self._total_wait_seconds = 0.0
        logger.info(
            "[RateGovernor] Initialized with min_gap=%sms jitter=%s",
            self._config.min_gap_ms,
            self._config.jitter_range_ms,
        )

    @property
    def config(self) -> RateGovernorConfig:
        return self._config

    @property
    def min_gap_seconds(self) -> float:
        return self._config.min_gap_ms / 1000.0

    @property
    def last_request_time(self) -> Optional[float]:
        return self._last_request_time

    @property
    def stats(self) -> Dict[str, Optional[float]]:
        """Return governor statistics."""
        return {
            "total_requests": self._total_requests,
            "total_wait_seconds": self._total_wait_seconds,
            "last_request_time": self._last_request_time,
            "min_gap_ms": self._config.min_gap_ms,
        }

    def _required_gap_seconds(self) -> float:
        gap_ms = self._config.min_gap_ms + draw_jitter_ms(self._config.jitter_range_ms)
        return gap_ms / 1000.0

    async def gate(self) -> None:
        """Wait until the configured spacing has elapsed, then claim the slot."""
        async with self._lock:
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                wait_seconds = self._required_gap_seconds() - elapsed
                if wait_seconds > 0:
                    logger.debug("[RateGovernor] Pacing request - waiting %.2fs", wait_seconds)
                    self._total_wait_seconds += wait_seconds
                    await self._sleep(wait_seconds)
            self._last_request_time = self._clock()
            self._total_requests += 1

    async def jitter_sleep(self, jitter_range_ms: Optional[Tuple[float, float]]) -> float:
        """Sleep a random amount drawn from ``jitter_range_ms``; returns seconds slept."""
        delay_seconds = draw_jitter_ms(jitter_range_ms) / 1000.0
        if delay_seconds > 0:
            logger.debug("[RateGovernor] Batch jitter sleep %.2fs", delay_seconds)
            await self._sleep(delay_seconds)
        return delay_seconds

    def reset(self) -> None:
        """Forget the last request time and statistics."""
        self._last_request_time = None
        self._total_requests = 0
        self._total_wait_seconds = 0.0


__all__ = ["DEFAULT_MIN_GAP_MS", "RateGovernor", "RateGovernorConfig", "draw_jitter_ms"]
