"""Upstream resource locations for the handshake and the option-chain API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .http_utils import ensure_http_url, join_url, with_query

DEFAULT_BASE_URL = "https://www.nseindia.com"
DEFAULT_WARMUP_PATHS = ("get-quotes/derivatives?symbol={symbol}", "option-chain")
DEFAULT_DATA_PATH = "api/option-chain-indices"
DEFAULT_WARMUP_SYMBOL = "NIFTY"


@dataclass(frozen=True)
class UpstreamEndpoints:
    """URLs visited in order: landing page, warm-up pages, then the data API.

    ``warmup_paths`` may contain ``{symbol}``; it is filled with
    ``warmup_symbol`` because the handshake is shared by every symbol.
    The last warm-up page doubles as the referer for data requests.
    """

    base_url: str = DEFAULT_BASE_URL
    warmup_paths: Tuple[str, ...] = field(default=DEFAULT_WARMUP_PATHS)
    data_path: str = DEFAULT_DATA_PATH
    warmup_symbol: str = DEFAULT_WARMUP_SYMBOL

    def __post_init__(self) -> None:
        ensure_http_url(self.base_url)

    @property
    def landing_url(self) -> str:
        return self.base_url.rstrip("/")

    @property
    def warmup_urls(self) -> Tuple[str, ...]:
        return tuple(
            join_url(self.base_url, path.format(symbol=self.warmup_symbol)) for path in self.warmup_paths
        )

    @property
    def data_referer(self) -> str:
        urls = self.warmup_urls
        return urls[-1] if urls else self.landing_url

    def data_url(self, symbol: str) -> str:
        return with_query(join_url(self.base_url, self.data_path), symbol=symbol)


__all__ = ["DEFAULT_BASE_URL", "UpstreamEndpoints"]
