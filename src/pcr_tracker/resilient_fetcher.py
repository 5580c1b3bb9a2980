"""
Resilient option-chain fetcher.

Wraps one data-endpoint call with session attachment, request pacing,
retry-with-backoff and the failure-streak circuit breaker. This is the only
retry boundary in the service: callers treat an escaped ``FetchError`` as
final for that invocation.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Union

import aiohttp

from .backoff_policy import FailurePolicy
from .backoff_policy import random as pacing_random
from .endpoints import UpstreamEndpoints
from .exceptions import AttemptFailure, FetchError, FetchFailureCause, SessionError
from .network_errors import NETWORK_ERROR_TYPES, describe_network_error
from .rate_governor import RateGovernor
from .resilient_fetcher_helpers import FetchAttempt, read_option_chain_payload
from .session_acquirer import SessionAcquirer
from .session_acquirer_helpers import DEFAULT_USER_AGENT, build_ajax_headers
from .session_store import SessionStore

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_PRE_REQUEST_DELAY_SECONDS = (2.0, 4.0)
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
_ATTEMPT_HISTORY_SIZE = 50

FetchOutcome = Union[Dict[str, Any], FetchError]


class ResilientFetcher:
    """Fetches raw option-chain payloads, retrying through blocks and timeouts."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        acquirer: SessionAcquirer,
        store: SessionStore,
        governor: RateGovernor,
        policy: Optional[FailurePolicy] = None,
        endpoints: Optional[UpstreamEndpoints] = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        pre_request_delay: Tuple[float, float] = DEFAULT_PRE_REQUEST_DELAY_SECONDS,
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        service_name: str = "pcr",
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1 (got {max_attempts})")
        self._http = http_session
        self._acquirer = acquirer
        self._store = store
        self._governor = governor
        self._policy = policy if policy is not None else FailurePolicy()
        self._endpoints = endpoints if endpoints is not None else UpstreamEndpoints()
        self._max_attempts = max_attempts
        self._pre_request_delay = pre_request_delay
        self._timeout = aiohttp.ClientTimeout(total=request_timeout_seconds)
        self._user_agent = user_agent
        self._sleep = sleep
        self._clock = clock
        self._cooldown_lock = asyncio.Lock()
        self._attempts: Deque[FetchAttempt] = deque(maxlen=_ATTEMPT_HISTORY_SIZE)
        self.total_fetches = 0
        self.total_successes = 0
        self.total_failures = 0
        self.total_cooldowns = 0
        self.logger = logging.getLogger(f"{__name__}.{service_name}")

    @property
    def policy(self) -> FailurePolicy:
        return self._policy

    async def fetch(self, symbol: str, max_attempts: Optional[int] = None) -> Dict[str, Any]:
        """
        Fetch the raw option-chain payload for ``symbol``.

        Args:
            symbol: Index symbol, e.g. ``NIFTY``
            max_attempts: Override of the configured attempt budget

        Returns:
            The decoded JSON document, unchanged

        Raises:
            FetchError: Once every attempt has failed
        """
        attempts_allowed = self._max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValueError(f"max_attempts must be >= 1 (got {attempts_allowed})")

        self.total_fetches += 1
        await self._cooldown_if_needed()

        last_failure: Optional[AttemptFailure] = None
        for attempt_number in range(1, attempts_allowed + 1):
            attempt = FetchAttempt(
                symbol=symbol,
                attempt_number=attempt_number,
                max_attempts=attempts_allowed,
                started_at=self._clock(),
            )
            self._attempts.append(attempt)
            try:
                payload = await self._attempt(symbol, attempt_number)
            except AttemptFailure as failure:
                last_failure = failure
                attempt.failed(failure, self._clock())
                if failure.cause is not FetchFailureCause.SESSION:
                    # Session failures are already counted by the acquirer
                    self._store.record_failure()
                self.logger.warning(
                    "Fetch %s attempt %s/%s failed (%s): %s",
                    symbol,
                    attempt_number,
                    attempts_allowed,
                    failure.cause.value,
                    failure,
                )
                if not attempt.is_last:
                    delay = self._policy.retry_delay(attempt_number)
                    self.logger.info("Retrying %s in %.1fs", symbol, delay)
                    await self._sleep(delay)
                continue

            attempt.succeeded(self._clock())
            self._store.reset_failures()
            self.total_successes += 1
            self.logger.info("Fetched %s on attempt %s/%s", symbol, attempt_number, attempts_allowed)
            return payload

        self.total_failures += 1
        if last_failure is None:
            raise RuntimeError(f"Fetch loop for {symbol} ended without an attempt")
        self.logger.error(
            "Giving up on %s after %s attempt(s); last cause %s",
            symbol,
            attempts_allowed,
            last_failure.cause.value,
        )
        raise FetchError(
            symbol,
            last_failure.cause,
            attempts=attempts_allowed,
            last_failure=last_failure,
        ) from last_failure

    async def fetch_many(
        self,
        symbols: Iterable[str],
        *,
        concurrent: bool = True,
        inter_symbol_delay: float = 0.0,
    ) -> Dict[str, FetchOutcome]:
        """Fetch several symbols; each result is a payload or the ``FetchError`` it raised."""
        symbol_list = list(symbols)
        if concurrent:
            tasks = [asyncio.create_task(self._fetch_or_error(symbol)) for symbol in symbol_list]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
            # Every task has settled; surface the first unexpected error
            for outcome in outcomes:
                if isinstance(outcome, BaseException) and not isinstance(outcome, FetchError):
                    raise outcome
            return dict(zip(symbol_list, outcomes))

        results: Dict[str, FetchOutcome] = {}
        for index, symbol in enumerate(symbol_list):
            if index and inter_symbol_delay > 0:
                await self._sleep(inter_symbol_delay)
            results[symbol] = await self._fetch_or_error(symbol)
        return results

    async def _fetch_or_error(self, symbol: str) -> FetchOutcome:
        try:
            return await self.fetch(symbol)
        except FetchError as exc:
            return exc

    async def _cooldown_if_needed(self) -> None:
        async with self._cooldown_lock:
            streak = self._store.consecutive_failures
            if not self._policy.should_cooldown(streak):
                return
            self.total_cooldowns += 1
            self.logger.warning(
                "Failure streak %s reached threshold %s - cooling down for %ss",
                streak,
                self._policy.failure_streak_threshold,
                self._policy.cooldown_seconds,
            )
            await self._sleep(self._policy.cooldown_seconds)
            self._store.reset_failures()

    async def _attempt(self, symbol: str, attempt_number: int) -> Dict[str, Any]:
        try:
            # A failed prior attempt is presumed to be session related
            token = await self._acquirer.acquire(force_refresh=attempt_number > 1)
        except SessionError as exc:
            raise AttemptFailure(FetchFailureCause.SESSION, str(exc), error=exc) from exc

        await self._governor.gate()
        await self._think_time()

        url = self._endpoints.data_url(symbol)
        headers = build_ajax_headers(token, self._endpoints.data_referer, self._user_agent)
        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as response:
                return await read_option_chain_payload(response)
        except NETWORK_ERROR_TYPES as exc:
            raise AttemptFailure(
                FetchFailureCause.NETWORK_TIMEOUT,
                describe_network_error(exc),
                error=exc,
            ) from exc

    async def _think_time(self) -> None:
        low, high = self._pre_request_delay
        delay = pacing_random.uniform(low, high) if high > low else low
        if delay > 0:
            await self._sleep(delay)

    def recent_attempts(self) -> List[Dict[str, Any]]:
        return [attempt.to_dict() for attempt in self._attempts]

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "total_fetches": self.total_fetches,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "total_cooldowns": self.total_cooldowns,
            "consecutive_failures": self._store.consecutive_failures,
            "session_valid": self._store.is_valid(),
        }


__all__ = ["DEFAULT_MAX_ATTEMPTS", "FetchOutcome", "ResilientFetcher"]
