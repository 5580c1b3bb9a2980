"""Classify data-endpoint responses into a payload or an attempt failure."""

from typing import Any, Dict

import orjson

from ..exceptions import AttemptFailure, FetchFailureCause

HTTP_OK = 200
HTTP_FORBIDDEN = 403


def validate_option_chain_payload(payload: Any) -> Dict[str, Any]:
    """
    Check the top-level shape of an option-chain document.

    Raises:
        AttemptFailure: MALFORMED_PAYLOAD when ``records`` is missing or not an object,
            or when ``records.data`` is present but not a list
    """
    if not isinstance(payload, dict):
        raise AttemptFailure(FetchFailureCause.MALFORMED_PAYLOAD, "payload is not a JSON object")
    records = payload.get("records")
    if not isinstance(records, dict):
        raise AttemptFailure(FetchFailureCause.MALFORMED_PAYLOAD, "payload has no 'records' object")
    data = records.get("data")
    if data is not None and not isinstance(data, list):
        raise AttemptFailure(FetchFailureCause.MALFORMED_PAYLOAD, "'records.data' is not a list")
    return payload


async def read_option_chain_payload(response) -> Dict[str, Any]:
    """Return the decoded payload of a 200 response or raise the classified failure."""
    status = response.status
    if status == HTTP_FORBIDDEN:
        raise AttemptFailure(FetchFailureCause.BLOCKED, "HTTP 403 forbidden (blocked)", status=status)
    if status != HTTP_OK:
        raise AttemptFailure(FetchFailureCause.BAD_STATUS, f"HTTP {status}", status=status)

    body = await response.read()
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise AttemptFailure(
            FetchFailureCause.MALFORMED_PAYLOAD,
            "response body is not valid JSON",
            status=status,
            error=exc,
        ) from exc
    return validate_option_chain_payload(payload)
