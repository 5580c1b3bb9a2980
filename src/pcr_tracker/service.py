"""Wires the shared session, governor, policy and fetcher into one running service."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from .backoff_policy import FailurePolicy
from .exceptions import SessionError
from .http_utils import is_aiohttp_session_open
from .market_hours import MarketHours
from .pcr_history import PCRHistory
from .rate_governor import RateGovernor
from .resilient_fetcher import ResilientFetcher
from .scheduler import PCRScheduler, TickResult
from .session_acquirer import SessionAcquirer
from .session_store import SessionStore
from .settings import TrackerSettings, load_settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "pcr_tracker"


class PCRService:
    """Owns the single ``SessionStore`` and every component that shares it."""

    def __init__(
        self,
        settings: TrackerSettings,
        http_session: aiohttp.ClientSession,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.http_session = http_session
        endpoints = settings.endpoints()

        self.store = SessionStore(settings.session_ttl_seconds)
        self.governor = RateGovernor(settings.rate_governor_config(), sleep=sleep)
        self.policy = FailurePolicy(settings.backoff_config())
        self.acquirer = SessionAcquirer(
            http_session,
            self.store,
            self.governor,
            endpoints,
            handshake_delay=settings.handshake_delay,
            request_timeout_seconds=settings.request_timeout_seconds,
            sleep=sleep,
            service_name=SERVICE_NAME,
        )
        self.fetcher = ResilientFetcher(
            http_session,
            self.acquirer,
            self.store,
            self.governor,
            self.policy,
            endpoints,
            max_attempts=settings.max_fetch_attempts,
            pre_request_delay=settings.pre_request_delay,
            request_timeout_seconds=settings.request_timeout_seconds,
            sleep=sleep,
            service_name=SERVICE_NAME,
        )
        self.market_hours = MarketHours(timezone_name=settings.market_timezone)
        self.history = PCRHistory(settings.symbols, market_hours=self.market_hours)
        self.scheduler = PCRScheduler(
            self.fetcher,
            self.history,
            self.market_hours,
            settings.symbols,
            governor=self.governor,
            interval_seconds=settings.fetch_interval_seconds,
            concurrent=settings.concurrent_fetch,
            batch_jitter_ms=settings.batch_jitter_ms,
        )
        self._scheduler_task: Optional[asyncio.Task] = None

    @classmethod
    async def create(cls, settings: Optional[TrackerSettings] = None) -> "PCRService":
        """Build the service with a fresh HTTP session (must run inside the event loop)."""
        resolved = settings if settings is not None else load_settings()
        timeout = aiohttp.ClientTimeout(
            total=resolved.request_timeout_seconds,
            connect=resolved.connection_timeout_seconds,
        )
        # Cookies travel only as the explicit token header, never via a jar
        http_session = aiohttp.ClientSession(
            timeout=timeout,
            cookie_jar=aiohttp.DummyCookieJar(),
            connector=aiohttp.TCPConnector(limit=10, limit_per_host=4, ttl_dns_cache=300),
        )
        return cls(resolved, http_session)

    async def start(self) -> None:
        """Warm the session and start the scheduler; a failed warm-up is not fatal."""
        if self.market_hours.is_open():
            try:
                await self.acquirer.acquire()
            except SessionError as exc:
                logger.warning("Initial session warm-up failed: %s", exc)
        self._scheduler_task = asyncio.create_task(self.scheduler.run_forever())
        logger.info(
            "PCR tracker started for %s (market %s)",
            ", ".join(self.settings.symbols),
            "open" if self.market_hours.is_open() else "closed",
        )

    async def close(self) -> None:
        self.scheduler.stop()
        if self._scheduler_task is not None:
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                logger.debug("Scheduler task cancelled")
            self._scheduler_task = None
        if is_aiohttp_session_open(self.http_session):
            await self.http_session.close()
        logger.info("PCR tracker stopped")

    async def manual_fetch(self) -> TickResult:
        return await self.scheduler.run_tick(force=True)

    def health(self) -> Dict[str, Any]:
        return {
            "marketOpen": self.market_hours.is_open(),
            "entriesCount": self.history.entries_count(),
            "session": self.store.describe(),
            "fetcher": self.fetcher.get_metrics(),
            "governor": self.governor.stats,
        }


__all__ = ["PCRService", "SERVICE_NAME"]
