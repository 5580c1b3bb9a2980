"""Reduce a raw option-chain payload to put/call ratio figures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

# Sentiment bands, upper bounds on the OI put/call ratio
_STRONG_BEARISH_BELOW = 0.7
_BEARISH_BELOW = 0.9
_NEUTRAL_MAX = 1.1
_NEUTRAL_BULLISH_MAX = 1.3
_BULLISH_MAX = 1.5


def sentiment_for(pcr: float) -> str:
    """Map an open-interest PCR to its sentiment label."""
    if pcr < _STRONG_BEARISH_BELOW:
        return "Strong Bearish"
    if pcr < _BEARISH_BELOW:
        return "Bearish"
    if pcr <= _NEUTRAL_MAX:
        return "Neutral"
    if pcr <= _NEUTRAL_BULLISH_MAX:
        return "Neutral-Bullish"
    if pcr <= _BULLISH_MAX:
        return "Bullish"
    return "Strong Bullish"


def _ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator, 2)


def _number(leg: Mapping[str, Any], key: str) -> float:
    value = leg.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


@dataclass
class PCRSnapshot:
    symbol: str
    total_call_oi: float = 0
    total_put_oi: float = 0
    total_call_volume: float = 0
    total_put_volume: float = 0
    call_oi_change: float = 0
    put_oi_change: float = 0
    underlying_value: float = 0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    local_time: Optional[str] = None

    @property
    def pcr(self) -> float:
        return _ratio(self.total_put_oi, self.total_call_oi)

    @property
    def volume_pcr(self) -> float:
        return _ratio(self.total_put_volume, self.total_call_volume)

    @property
    def sentiment(self) -> str:
        return sentiment_for(self.pcr)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "symbol": self.symbol,
            "time": self.local_time,
            "totalCallOI": self.total_call_oi,
            "totalPutOI": self.total_put_oi,
            "pcr": self.pcr,
            "volumePCR": self.volume_pcr,
            "callOIChange": self.call_oi_change,
            "putOIChange": self.put_oi_change,
            "totalCallVolume": self.total_call_volume,
            "totalPutVolume": self.total_put_volume,
            "underlyingValue": self.underlying_value,
            "sentiment": self.sentiment,
            "fetchedAt": self.fetched_at.isoformat(),
        }


def aggregate(
    symbol: str,
    payload: Mapping[str, Any],
    *,
    fetched_at: Optional[datetime] = None,
    local_time: Optional[str] = None,
) -> PCRSnapshot:
    """Sum call/put open interest, volume and OI change across every strike in one pass."""
    snapshot = PCRSnapshot(symbol=symbol, local_time=local_time)
    if fetched_at is not None:
        snapshot.fetched_at = fetched_at

    records = payload.get("records") or {}
    for strike in records.get("data") or []:
        call_leg = strike.get("CE")
        if isinstance(call_leg, Mapping):
            snapshot.total_call_oi += _number(call_leg, "openInterest")
            snapshot.total_call_volume += _number(call_leg, "totalTradedVolume")
            snapshot.call_oi_change += _number(call_leg, "changeinOpenInterest")
        put_leg = strike.get("PE")
        if isinstance(put_leg, Mapping):
            snapshot.total_put_oi += _number(put_leg, "openInterest")
            snapshot.total_put_volume += _number(put_leg, "totalTradedVolume")
            snapshot.put_oi_change += _number(put_leg, "changeinOpenInterest")

    snapshot.underlying_value = _number(records, "underlyingValue")
    return snapshot


__all__ = ["PCRSnapshot", "aggregate", "sentiment_for"]
