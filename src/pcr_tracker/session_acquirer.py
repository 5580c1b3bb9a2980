"""
Session acquisition against the bot-sensitive upstream origin.

The data endpoint only accepts a cookie token obtained by replaying a real
browser's visit sequence: landing page, then the derivatives quote page, then
the option-chain page, each with the previous page as referer. Skipping or
reordering the warm-up gets the token rejected, so the sequence is fixed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

import aiohttp

from .backoff_policy import random as pacing_random
from .endpoints import UpstreamEndpoints
from .exceptions import SessionError
from .network_errors import NETWORK_ERROR_TYPES, describe_network_error
from .rate_governor import RateGovernor
from .session_acquirer_helpers import (
    DEFAULT_USER_AGENT,
    build_cookie_token,
    build_navigation_headers,
    extract_set_cookie_headers,
)
from .session_store import SessionStore

HTTP_OK = 200
DEFAULT_HANDSHAKE_DELAY_SECONDS = (1.5, 4.0)
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0


class SessionAcquirer:
    """Performs the multi-step handshake and caches the result in the store."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        store: SessionStore,
        governor: RateGovernor,
        endpoints: Optional[UpstreamEndpoints] = None,
        *,
        handshake_delay: Tuple[float, float] = DEFAULT_HANDSHAKE_DELAY_SECONDS,
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        service_name: str = "pcr",
    ):
        self._http = http_session
        self._store = store
        self._governor = governor
        self._endpoints = endpoints if endpoints is not None else UpstreamEndpoints()
        self._handshake_delay = handshake_delay
        self._timeout = aiohttp.ClientTimeout(total=request_timeout_seconds)
        self._user_agent = user_agent
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._generation = 0
        self.handshake_count = 0
        self.logger = logging.getLogger(f"{__name__}.{service_name}")

    @property
    def store(self) -> SessionStore:
        return self._store

    async def acquire(self, force_refresh: bool = False) -> str:
        """
        Return a usable session token, handshaking only when needed.

        Args:
            force_refresh: Ignore a still-valid cached token

        Returns:
            Cookie header value for the data endpoint

        Raises:
            SessionError: If any handshake step fails
        """
        if not force_refresh and self._store.is_valid():
            token = self._store.get()
            if token:
                return token

        generation_seen = self._generation
        async with self._lock:
            # Another caller finished a handshake while we were waiting
            if self._store.is_valid() and (not force_refresh or self._generation != generation_seen):
                token = self._store.get()
                if token:
                    self.logger.debug("Reusing session acquired by a concurrent caller")
                    return token
            return await self._handshake()

    async def _handshake(self) -> str:
        self.handshake_count += 1
        self.logger.info("Starting session handshake with %s", self._endpoints.landing_url)
        step = "landing"
        try:
            token = await self._open_landing()
            await self._human_pause()

            previous_url = self._endpoints.landing_url
            for warmup_url in self._endpoints.warmup_urls:
                step = f"warmup {warmup_url}"
                await self._visit(warmup_url, token=token, referer=previous_url, step="warmup")
                previous_url = warmup_url
            await self._human_pause()
        except SessionError:
            self._store.record_failure()
            raise
        except NETWORK_ERROR_TYPES as exc:
            self._store.record_failure()
            self.logger.warning("Session handshake failed during %s: %s", step, describe_network_error(exc))
            raise SessionError(step=step, cause=exc) from exc

        self._store.set(token)
        self._generation += 1
        self.logger.info("Session established (%s cookie pair(s))", token.count(";") + 1)
        return token

    async def _open_landing(self) -> str:
        url = self._endpoints.landing_url
        await self._governor.gate()
        headers = build_navigation_headers(self._user_agent)
        async with self._http.get(url, headers=headers, timeout=self._timeout) as response:
            if response.status != HTTP_OK:
                self.logger.warning("Landing page returned HTTP %s", response.status)
                raise SessionError.bad_status("landing", url, response.status)
            directives = extract_set_cookie_headers(response.headers)

        token = build_cookie_token(directives)
        if not token:
            self.logger.warning("Landing page set no cookies")
            raise SessionError.no_cookies(url)
        return token

    async def _visit(self, url: str, *, token: str, referer: str, step: str) -> None:
        await self._governor.gate()
        headers = build_navigation_headers(self._user_agent, cookie=token, referer=referer)
        async with self._http.get(url, headers=headers, timeout=self._timeout) as response:
            if response.status != HTTP_OK:
                self.logger.warning("Warm-up page %s returned HTTP %s", url, response.status)
                raise SessionError.bad_status(step, url, response.status)
        self.logger.debug("Visited %s (referer %s)", url, referer)

    async def _human_pause(self) -> None:
        low, high = self._handshake_delay
        delay = pacing_random.uniform(low, high) if high > low else low
        if delay > 0:
            await self._sleep(delay)


__all__ = ["DEFAULT_HANDSHAKE_DELAY_SECONDS", "SessionAcquirer"]
