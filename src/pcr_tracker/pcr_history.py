"""In-memory per-symbol PCR history for the current trading day."""

from __future__ import annotations

import copy
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from .market_hours import MarketHours
from .pcr_aggregator import PCRSnapshot

logger = logging.getLogger(__name__)


class PCRHistory:
    """Today's snapshots per symbol plus a frozen copy served after the close."""

    def __init__(self, symbols: Iterable[str], *, market_hours: Optional[MarketHours] = None):
        self.symbols = tuple(symbols)
        if not self.symbols:
            raise ValueError("PCRHistory requires at least one symbol")
        self.market_hours = market_hours if market_hours is not None else MarketHours()
        self.date: date = self.market_hours.local_date()
        self.market_open = False
        self._entries: Dict[str, List[Dict[str, Any]]] = {symbol: [] for symbol in self.symbols}
        self._frozen: Optional[Dict[str, Any]] = None

    def record(self, snapshot: PCRSnapshot) -> Dict[str, Any]:
        if snapshot.symbol not in self._entries:
            raise KeyError(f"Symbol {snapshot.symbol!r} is not tracked")
        entry = snapshot.to_dict()
        self._entries[snapshot.symbol].append(entry)
        return entry

    def entries(self, symbol: str) -> List[Dict[str, Any]]:
        return list(self._entries[symbol])

    def latest(self, symbol: str) -> Optional[Dict[str, Any]]:
        entries = self._entries.get(symbol)
        if not entries:
            return None
        return entries[-1]

    def entries_count(self) -> Dict[str, int]:
        return {symbol.lower(): len(entries) for symbol, entries in self._entries.items()}

    def freeze(self) -> None:
        """Remember the data as of the last tick so it can be served after the close."""
        frozen: Dict[str, Any] = {symbol: copy.deepcopy(entries) for symbol, entries in self._entries.items()}
        frozen["date"] = self.date.isoformat()
        self._frozen = frozen

    @property
    def frozen(self) -> Optional[Dict[str, Any]]:
        return self._frozen

    def history_view(self, is_open: bool) -> Dict[str, Any]:
        if not is_open and self._frozen is not None:
            view: Dict[str, Any] = {"success": True, "marketOpen": False, "frozen": True}
            view.update(self._frozen)
            return view

        view = {"success": True, "date": self.date.isoformat(), "marketOpen": is_open}
        for symbol, entries in self._entries.items():
            view[symbol] = list(entries)
        return view

    def latest_view(self, is_open: bool) -> Dict[str, Any]:
        view: Dict[str, Any] = {"success": True, "marketOpen": is_open}
        for symbol in self.symbols:
            view[symbol] = self.latest(symbol)
        return view

    def reset_if_new_day(self, now: Optional[datetime] = None) -> bool:
        """Start a fresh day once the local date changed and the reset time has passed."""
        local = self.market_hours.local_now(now)
        if local.date() == self.date or local.time() < self.market_hours.daily_reset_time:
            return False

        logger.info("New trading day %s - resetting PCR history (was %s)", local.date(), self.date)
        self.date = local.date()
        self.market_open = False
        self._entries = {symbol: [] for symbol in self.symbols}
        self._frozen = None
        return True


__all__ = ["PCRHistory"]
