"""Browser-like request headers for the upstream handshake and data calls."""

from typing import Dict, Optional

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


def build_navigation_headers(
    user_agent: str = DEFAULT_USER_AGENT,
    *,
    cookie: Optional[str] = None,
    referer: Optional[str] = None,
) -> Dict[str, str]:
    """Headers a browser sends when navigating to an HTML page."""
    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }
    if cookie:
        headers["Cookie"] = cookie
    if referer:
        headers["Referer"] = referer
    return headers


def build_ajax_headers(
    cookie: str,
    referer: str,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Dict[str, str]:
    """Headers for the in-page XHR call to the JSON data endpoint."""
    return {
        "User-Agent": user_agent,
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "X-Requested-With": "XMLHttpRequest",
        "Cookie": cookie,
        "Referer": referer,
    }
