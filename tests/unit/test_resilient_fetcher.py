"""Tests for the resilient fetcher's retry loop and circuit breaker."""

import asyncio

import aiohttp
import pytest

from pcr_tracker.exceptions import FetchError, FetchFailureCause
from pcr_tracker.resilient_fetcher import ResilientFetcher
from pcr_tracker.session_acquirer import SessionAcquirer
from tests.helpers.http_stubs import (
    DATA_URL_PREFIX,
    OPTION_CHAIN_PAYLOAD,
    StubHttpSession,
    StubResponse,
    sequence,
    upstream_router,
)


def _build(http, store, governor, policy, clock, **kwargs):
    acquirer = SessionAcquirer(http, store, governor, handshake_delay=(0.0, 0.0), sleep=clock.sleep)
    kwargs.setdefault("pre_request_delay", (0.0, 0.0))
    return ResilientFetcher(
        http,
        acquirer,
        store,
        governor,
        policy,
        sleep=clock.sleep,
        clock=clock,
        **kwargs,
    )


class TestFetchSuccess:
    @pytest.mark.asyncio
    async def test_returns_payload_unchanged(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(200, body=OPTION_CHAIN_PAYLOAD)))
        fetcher = _build(http, store, governor, policy, clock)

        payload = await fetcher.fetch("NIFTY")

        assert payload == OPTION_CHAIN_PAYLOAD
        assert http.data_calls() == 1
        assert http.urls()[-1] == f"{DATA_URL_PREFIX}?symbol=NIFTY"
        assert fetcher.total_successes == 1

    @pytest.mark.asyncio
    async def test_data_request_carries_session_and_xhr_headers(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(200, body=OPTION_CHAIN_PAYLOAD)))
        fetcher = _build(http, store, governor, policy, clock)

        await fetcher.fetch("BANKNIFTY")

        _, headers = http.calls[-1]
        assert headers["Cookie"] == "nsit=abc123; nseappid=xyz789"
        assert headers["Referer"] == "https://www.nseindia.com/option-chain"
        assert headers["X-Requested-With"] == "XMLHttpRequest"

    @pytest.mark.asyncio
    async def test_recovers_after_a_blocked_attempt(self, store, governor, policy, clock):
        data = sequence(StubResponse(403), StubResponse(200, body=OPTION_CHAIN_PAYLOAD))
        http = StubHttpSession(upstream_router(data))
        fetcher = _build(http, store, governor, policy, clock)

        payload = await fetcher.fetch("NIFTY")

        assert payload == OPTION_CHAIN_PAYLOAD
        assert http.data_calls() == 2
        assert http.landing_calls() == 2
        assert store.consecutive_failures == 0
        assert clock.sleeps == [3.0]

    @pytest.mark.asyncio
    async def test_think_time_precedes_data_call(self, store, governor, policy, clock, no_jitter):
        http = StubHttpSession(upstream_router(StubResponse(200, body=OPTION_CHAIN_PAYLOAD)))
        fetcher = _build(http, store, governor, policy, clock, pre_request_delay=(2.0, 4.0))

        await fetcher.fetch("NIFTY")

        assert clock.sleeps == [2.0]


class TestFetchExhaustion:
    @pytest.mark.asyncio
    async def test_blocked_on_every_attempt(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(403)))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=3)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("NIFTY")

        error = exc_info.value
        assert error.cause is FetchFailureCause.BLOCKED
        assert error.attempts == 3
        assert error.symbol == "NIFTY"
        assert http.data_calls() == 3
        # Attempts 2 and 3 force a fresh handshake
        assert http.landing_calls() == 3
        assert clock.sleeps == [3.0, 6.0]
        assert fetcher.total_failures == 1
        assert store.consecutive_failures == 3

    @pytest.mark.parametrize("attempts", [1, 2, 5])
    @pytest.mark.asyncio
    async def test_bad_status_makes_exactly_k_attempts(self, store, governor, policy, clock, attempts):
        http = StubHttpSession(upstream_router(StubResponse(500)))
        fetcher = _build(http, store, governor, policy, clock)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("NIFTY", max_attempts=attempts)

        assert exc_info.value.cause is FetchFailureCause.BAD_STATUS
        assert exc_info.value.last_failure.status == 500
        assert http.data_calls() == attempts

    @pytest.mark.asyncio
    async def test_malformed_payload(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(200, body="<html>Access Denied</html>")))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=1)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("NIFTY")

        assert exc_info.value.cause is FetchFailureCause.MALFORMED_PAYLOAD

    @pytest.mark.asyncio
    async def test_payload_without_records_is_malformed(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(200, body={"filtered": {}})))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=1)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("NIFTY")

        assert exc_info.value.cause is FetchFailureCause.MALFORMED_PAYLOAD

    @pytest.mark.asyncio
    async def test_network_timeout(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(error=asyncio.TimeoutError())))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=2)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("NIFTY")

        assert exc_info.value.cause is FetchFailureCause.NETWORK_TIMEOUT
        assert isinstance(exc_info.value.last_failure.error, asyncio.TimeoutError)

    @pytest.mark.asyncio
    async def test_session_failure_never_reaches_data_endpoint(self, store, governor, policy, clock):
        router = upstream_router(StubResponse(200, body=OPTION_CHAIN_PAYLOAD), landing=StubResponse(503))
        http = StubHttpSession(router)
        fetcher = _build(http, store, governor, policy, clock, max_attempts=2)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("NIFTY")

        assert exc_info.value.cause is FetchFailureCause.SESSION
        assert http.data_calls() == 0
        # Counted once per failed handshake
        assert store.consecutive_failures == 2

    @pytest.mark.asyncio
    async def test_rejects_zero_attempts(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(200)))
        fetcher = _build(http, store, governor, policy, clock)

        with pytest.raises(ValueError):
            await fetcher.fetch("NIFTY", max_attempts=0)


class TestCircuitBreaker:
    @pytest.mark.asyncio
    async def test_cooldown_after_streak_threshold(self, store, governor, policy, clock):
        streak_at_data_call = []

        def _blocked(_url):
            streak_at_data_call.append(store.consecutive_failures)
            return StubResponse(403)

        http = StubHttpSession(upstream_router(_blocked))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=1)

        for symbol in ("NIFTY", "BANKNIFTY", "NIFTY"):
            with pytest.raises(FetchError):
                await fetcher.fetch(symbol)
        assert store.consecutive_failures == 3
        assert clock.sleeps == []
        calls_before = len(http.calls)

        with pytest.raises(FetchError):
            await fetcher.fetch("BANKNIFTY")

        assert clock.sleeps == [60.0]
        assert streak_at_data_call[-1] == 0
        assert len(http.calls) == calls_before + 1
        assert fetcher.total_cooldowns == 1

    @pytest.mark.asyncio
    async def test_constant_block_trips_breaker_across_handshakes(self, store, governor, policy, clock):
        streak_at_data_call = []

        def _blocked(_url):
            streak_at_data_call.append(store.consecutive_failures)
            return StubResponse(403)

        http = StubHttpSession(upstream_router(_blocked))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=3)

        with pytest.raises(FetchError):
            await fetcher.fetch("NIFTY")
        # Re-handshakes between attempts leave the streak counting
        assert streak_at_data_call == [0, 1, 2]
        assert store.consecutive_failures == 3
        assert http.landing_calls() == 3

        with pytest.raises(FetchError):
            await fetcher.fetch("NIFTY")

        assert clock.sleeps == [3.0, 6.0, 60.0, 3.0, 6.0]
        assert streak_at_data_call[3:] == [0, 1, 2]
        assert fetcher.total_cooldowns == 1

        with pytest.raises(FetchError):
            await fetcher.fetch("BANKNIFTY")

        assert clock.sleeps[5] == 60.0
        assert fetcher.total_cooldowns == 2

    @pytest.mark.asyncio
    async def test_success_resets_streak(self, store, governor, policy, clock):
        data = sequence(StubResponse(403), StubResponse(403), StubResponse(200, body=OPTION_CHAIN_PAYLOAD), StubResponse(403))
        http = StubHttpSession(upstream_router(data))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=1)

        for _ in range(2):
            with pytest.raises(FetchError):
                await fetcher.fetch("NIFTY")
        assert store.consecutive_failures == 2

        await fetcher.fetch("NIFTY")
        assert store.consecutive_failures == 0

        with pytest.raises(FetchError):
            await fetcher.fetch("NIFTY")
        assert clock.sleeps == []
        assert store.consecutive_failures == 1


class TestFetchMany:
    @pytest.mark.asyncio
    async def test_concurrent_mode_returns_payloads_and_errors(self, store, governor, policy, clock):
        def _data(url):
            if url.endswith("BANKNIFTY"):
                return StubResponse(500)
            return StubResponse(200, body=OPTION_CHAIN_PAYLOAD)

        http = StubHttpSession(upstream_router(_data))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=1)

        results = await fetcher.fetch_many(["NIFTY", "BANKNIFTY"])

        assert results["NIFTY"] == OPTION_CHAIN_PAYLOAD
        assert isinstance(results["BANKNIFTY"], FetchError)
        # Both symbols share one handshake
        assert http.landing_calls() == 1

    @pytest.mark.asyncio
    async def test_sequential_mode_spaces_symbols(self, store, governor, policy, clock):
        http = StubHttpSession(upstream_router(StubResponse(200, body=OPTION_CHAIN_PAYLOAD)))
        fetcher = _build(http, store, governor, policy, clock)

        results = await fetcher.fetch_many(["NIFTY", "BANKNIFTY", "FINNIFTY"], concurrent=False, inter_symbol_delay=5.0)

        assert list(results) == ["NIFTY", "BANKNIFTY", "FINNIFTY"]
        assert clock.sleeps == [5.0, 5.0]
        data_urls = [url for url in http.urls() if url.startswith(DATA_URL_PREFIX)]
        assert [url.rsplit("=", 1)[1] for url in data_urls] == ["NIFTY", "BANKNIFTY", "FINNIFTY"]


def test_metrics_snapshot(store, governor, policy, clock):
    http = StubHttpSession(upstream_router(StubResponse(200)))
    fetcher = _build(http, store, governor, policy, clock)

    metrics = fetcher.get_metrics()

    assert metrics["total_fetches"] == 0
    assert metrics["consecutive_failures"] == 0
    assert metrics["session_valid"] is False
    assert fetcher.recent_attempts() == []

    @pytest.mark.asyncio
    async def test_unexpected_error_waits_for_siblings(self, store, governor, policy, clock):
        nifty_responses = sequence(StubResponse(500), StubResponse(200, body=OPTION_CHAIN_PAYLOAD))

        def _data(url):
            if url.endswith("BANKNIFTY"):
                return StubResponse(error=aiohttp.InvalidURL(url))
            return nifty_responses(url)

        http = StubHttpSession(upstream_router(_data))
        fetcher = _build(http, store, governor, policy, clock, max_attempts=2, pre_request_delay=(1.0, 1.0))

        with pytest.raises(aiohttp.InvalidURL):
            await fetcher.fetch_many(["BANKNIFTY", "NIFTY"])

        # NIFTY finished its retry before the error surfaced
        assert fetcher.total_successes == 1
        assert http.data_calls() == 3
