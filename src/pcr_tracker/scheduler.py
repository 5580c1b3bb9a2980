"""
Periodic PCR collection gated by market hours.

One logical worker: each tick fetches every tracked symbol, aggregates the
successes into history and logs the failures. A failed tick never stops the
loop, and at most one tick runs at a time so manual fetches triggered over
HTTP cannot overlap the scheduled ones.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .exceptions import FetchError
from .market_hours import MarketHours
from .pcr_aggregator import aggregate
from .pcr_history import PCRHistory
from .rate_governor import RateGovernor
from .resilient_fetcher import ResilientFetcher

logger = logging.getLogger(__name__)

DEFAULT_FETCH_INTERVAL_SECONDS = 180.0


@dataclass
class TickResult:
    ran: bool
    market_open: bool
    successes: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return self.ran and not self.successes and bool(self.failures)


class PCRScheduler:
    """Drives ``ResilientFetcher`` on a fixed cadence while the market is open."""

    def __init__(
        self,
        fetcher: ResilientFetcher,
        history: PCRHistory,
        market_hours: MarketHours,
        symbols: Iterable[str],
        *,
        governor: Optional[RateGovernor] = None,
        interval_seconds: float = DEFAULT_FETCH_INTERVAL_SECONDS,
        batch_jitter_ms: Optional[Tuple[float, float]] = None,
        concurrent: bool = True,
        inter_symbol_delay: float = 0.0,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive (got {interval_seconds})")
        self.fetcher = fetcher
        self.history = history
        self.market_hours = market_hours
        self.symbols = tuple(symbols)
        self.governor = governor
        self.interval_seconds = interval_seconds
        self.batch_jitter_ms = batch_jitter_ms
        self.concurrent = concurrent
        self.inter_symbol_delay = inter_symbol_delay
        self._tick_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self.tick_count = 0
        self.last_tick: Optional[TickResult] = None

    async def run_tick(self, *, force: bool = False, now: Optional[datetime] = None) -> TickResult:
        """Run one collection pass; ``force`` skips the first-fetch delay but not the open check."""
        async with self._tick_lock:
            self.history.reset_if_new_day(now)
            in_window = self.market_hours.is_open(now) if force else self.market_hours.is_fetch_window(now)
            if not in_window:
                self.history.market_open = self.market_hours.is_open(now)
                result = TickResult(ran=False, market_open=self.history.market_open)
                self.last_tick = result
                return result

            self.history.market_open = True
            if self.governor is not None and self.batch_jitter_ms:
                await self.governor.jitter_sleep(self.batch_jitter_ms)

            logger.info("Fetching PCR data for %s", ", ".join(self.symbols))
            outcomes = await self.fetcher.fetch_many(
                self.symbols,
                concurrent=self.concurrent,
                inter_symbol_delay=self.inter_symbol_delay,
            )

            result = TickResult(ran=True, market_open=True)
            label = self.market_hours.format_clock(now)
            for symbol, outcome in outcomes.items():
                if isinstance(outcome, FetchError):
                    result.failures[symbol] = str(outcome)
                    logger.error("Error fetching %s PCR: %s", symbol, outcome)
                    continue
                snapshot = aggregate(symbol, outcome, local_time=label)
                self.history.record(snapshot)
                result.successes.append(symbol)
                logger.info("%s PCR: %s | Sentiment: %s", symbol, snapshot.pcr, snapshot.sentiment)

            if result.successes:
                self.history.freeze()
            self.tick_count += 1
            self.last_tick = result
            return result

    async def run_forever(self) -> None:
        """Tick, then wait ``interval_seconds``, until ``stop()`` is called."""
        logger.info("PCR scheduler started (interval=%ss)", self.interval_seconds)
        self._stop_event.clear()
        while not self._stop_event.is_set():
            try:
                await self.run_tick()
            except Exception:
                # Keep accepting ticks no matter what a single pass raised
                logger.exception("Unexpected error in scheduled PCR tick")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
        logger.info("PCR scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()


__all__ = ["DEFAULT_FETCH_INTERVAL_SECONDS", "PCRScheduler", "TickResult"]
