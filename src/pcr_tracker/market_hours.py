from __future__ import annotations

"""Trading-session predicate for the exchange's local clock."""


from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

DEFAULT_MARKET_TIMEZONE = "Asia/Kolkata"
DEFAULT_OPEN_TIME = time(9, 15)
DEFAULT_CLOSE_TIME = time(15, 30)
DEFAULT_DAILY_RESET_TIME = time(9, 0)
_SATURDAY = 5


@dataclass
class MarketHours:
    """Mon-Fri session between ``open_time`` and ``close_time`` inclusive, local time.

    ``first_fetch_delay_minutes`` holds scheduled fetching back until the
    first interval after the open has elapsed.
    """

    timezone_name: str = DEFAULT_MARKET_TIMEZONE
    open_time: time = DEFAULT_OPEN_TIME
    close_time: time = DEFAULT_CLOSE_TIME
    first_fetch_delay_minutes: int = 3
    daily_reset_time: time = DEFAULT_DAILY_RESET_TIME

    def __post_init__(self) -> None:
        try:
            self._tz = pytz.timezone(self.timezone_name)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone '{self.timezone_name}'") from exc
        if self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time")

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        """Return ``now`` (default: current UTC time) in the exchange timezone."""
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self._tz)

    def local_date(self, now: Optional[datetime] = None) -> date:
        return self.local_now(now).date()

    def is_trading_day(self, now: Optional[datetime] = None) -> bool:
        return self.local_now(now).weekday() < _SATURDAY

    def is_open(self, now: Optional[datetime] = None) -> bool:
        if not self.is_trading_day(now):
            return False
        current = self.local_now(now).time().replace(second=0, microsecond=0)
        return self.open_time <= current <= self.close_time

    def first_fetch_time(self) -> time:
        opened = datetime.combine(date.min, self.open_time)
        return (opened + timedelta(minutes=self.first_fetch_delay_minutes)).time()

    def is_fetch_window(self, now: Optional[datetime] = None) -> bool:
        """Open, and at least ``first_fetch_delay_minutes`` past the open."""
        if not self.is_open(now):
            return False
        current = self.local_now(now).time().replace(second=0, microsecond=0)
        return current >= self.first_fetch_time()

    def format_clock(self, now: Optional[datetime] = None) -> str:
        """24-hour ``HH:MM`` label used for history entries."""
        return self.local_now(now).strftime("%H:%M")


__all__ = ["DEFAULT_MARKET_TIMEZONE", "MarketHours"]
