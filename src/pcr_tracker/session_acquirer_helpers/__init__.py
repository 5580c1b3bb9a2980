"""Helper modules for the session acquirer."""

from .browser_headers import (
    DEFAULT_USER_AGENT,
    build_ajax_headers,
    build_navigation_headers,
)
from .cookie_token import build_cookie_token, extract_set_cookie_headers

__all__ = [
    "DEFAULT_USER_AGENT",
    "build_ajax_headers",
    "build_cookie_token",
    "build_navigation_headers",
    "extract_set_cookie_headers",
]
