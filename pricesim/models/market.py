from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class PricePoint:
    """
    PricePoint = one recorded (or simulated) price observation.

    time: when the price was observed (UTC)
    price: the resolved price
    """
    time: datetime
    price: float

    def to_dict(self) -> dict:
        return {"time": self.time.isoformat(), "price": self.price}


@dataclass(frozen=True)
class Candle:
    """
    Candle (OHLCV) for one calendar day.

    date: the trading day this candle summarises
    open/high/low/close: prices for the day
    volume: synthetic volume (0 when derived from recorded points)
    """
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def to_dict(self) -> dict:
        return {
            "time": self.date.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }


@dataclass(frozen=True)
class DayClose:
    """
    Aggregate of the recorded points for one day.

    open = first point, close = last point, high/low = max/min.
    """
    date: date
    open: float
    close: float
    high: float
    low: float

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "open": self.open,
            "close": self.close,
            "high": self.high,
            "low": self.low,
        }
