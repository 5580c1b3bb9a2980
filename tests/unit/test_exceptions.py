import asyncio

from pcr_tracker.exceptions import (
    ApplicationError,
    AttemptFailure,
    FetchError,
    FetchFailureCause,
    SessionError,
)


def test_application_error_defaults_to_docstring():
    assert str(ApplicationError()).startswith("Base exception for all application errors.")


def test_application_error_stores_context():
    err = ApplicationError("boom", symbol="NIFTY")
    assert err.symbol == "NIFTY"


def test_session_error_includes_cause():
    err = SessionError(step="landing", cause=ConnectionResetError("reset"))
    assert str(err) == "Session handshake failed: reset"
    assert err.step == "landing"


def test_session_error_with_silent_cause():
    err = SessionError(step="warmup", cause=asyncio.TimeoutError())
    assert str(err) == "Session handshake failed"


def test_session_error_factories():
    missing = SessionError.no_cookies("https://www.nseindia.com")
    assert str(missing) == "no cookies"
    assert missing.step == "landing"

    rejected = SessionError.bad_status("warmup", "https://www.nseindia.com/option-chain", 403)
    assert rejected.status == 403
    assert "HTTP 403" in str(rejected)


def test_attempt_failure_default_message():
    failure = AttemptFailure(FetchFailureCause.MALFORMED_PAYLOAD)
    assert str(failure) == "malformed payload"
    assert failure.status is None


def test_fetch_error_message_and_attributes():
    last = AttemptFailure(FetchFailureCause.BLOCKED, "HTTP 403 forbidden (blocked)", status=403)
    err = FetchError("NIFTY", FetchFailureCause.BLOCKED, attempts=3, last_failure=last)

    assert isinstance(err, ApplicationError)
    assert err.symbol == "NIFTY"
    assert err.attempts == 3
    assert err.last_failure is last
    assert str(err) == "Fetch for NIFTY failed after 3 attempt(s) (blocked): HTTP 403 forbidden (blocked)"
