"""
Network error detection and classification.

Separates transport-level failures (connection refused, DNS, timeouts) from
application-level answers such as a 403 page. Transport failures are retried
exactly like any other attempt failure.
"""

import asyncio
import socket

import aiohttp

NETWORK_ERROR_TYPES = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    aiohttp.ClientResponseError,
    asyncio.TimeoutError,
    socket.gaierror,
    OSError,
)


def describe_network_error(exception: BaseException) -> str:
    """Render a short, log-friendly description of a transport failure."""
    if isinstance(exception, asyncio.TimeoutError):
        return "request timed out"
    text = str(exception)
    name = type(exception).__name__
    return f"{name}: {text}" if text else name


__all__ = ["NETWORK_ERROR_TYPES", "describe_network_error"]
