"""Serialize received cookie directives into the opaque session token."""

from typing import Any, Iterable, List


def extract_set_cookie_headers(headers: Any) -> List[str]:
    """Return every ``Set-Cookie`` value from a multi-valued header mapping."""
    getall = getattr(headers, "getall", None)
    if getall is not None:
        return list(getall("Set-Cookie", []))
    value = headers.get("Set-Cookie") if headers else None
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def build_cookie_token(directives: Iterable[str]) -> str:
    """
    Keep the ``name=value`` part of each directive and join them with ``"; "``.

    Attribute flags (``Path``, ``Expires``, ``HttpOnly``...) are dropped: only
    the first ``;``-delimited segment of each directive survives.

    Args:
        directives: Raw ``Set-Cookie`` header values

    Returns:
        Cookie header value; empty string when nothing usable was received
    """
    pairs = []
    for directive in directives:
        first_segment = directive.split(";", 1)[0].strip()
        if first_segment:
            pairs.append(first_segment)
    return "; ".join(pairs)
