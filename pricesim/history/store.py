from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pricesim.history.backends import KeyValueStore
from pricesim.models.market import PricePoint

MAX_HISTORY = 365

log = logging.getLogger("history_store")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(ts_raw: Any) -> datetime:
    """
    Converts a stored timestamp to datetime (UTC).
    Handles:
      - epoch seconds/millis
      - ISO strings, including a trailing "Z"
    """
    if isinstance(ts_raw, (int, float)):
        if ts_raw > 1_000_000_000_000:  # millis
            return datetime.fromtimestamp(ts_raw / 1000.0, tz=timezone.utc)
        return datetime.fromtimestamp(ts_raw, tz=timezone.utc)

    s = str(ts_raw).strip().replace(" ", "T")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _to_point(row: Any) -> Optional[PricePoint]:
    if not isinstance(row, dict):
        return None
    ts_raw = row.get("time")
    price = row.get("price")
    if ts_raw is None or price is None:
        return None
    try:
        return PricePoint(time=parse_ts(ts_raw), price=float(price))
    except (TypeError, ValueError, OverflowError, OSError):
        return None


@dataclass
class HistoryStore:
    """
    Append-only per-symbol price log on top of a KeyValueStore.

    history[SYMBOL] -> points in insertion order (= time order), latest N kept
    Every mutation is one read-modify-write of the backend document, done
    under a lock so concurrent writers in this process cannot drop updates.
    """
    backend: KeyValueStore
    max_history: int = MAX_HISTORY
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def read(self, symbol: str) -> Tuple[PricePoint, ...]:
        document = await self.backend.load()
        rows = document["priceHistory"].get(symbol.upper())
        if not isinstance(rows, list):
            if rows is not None:
                log.warning("Ignoring non-list history symbol=%s value=%r", symbol, rows)
            rows = []

        points = []
        for row in rows:
            point = _to_point(row)
            if point is None:
                log.debug("Skipping malformed history row symbol=%s row=%r", symbol, row)
                continue
            points.append(point)
        return tuple(points)

    async def append(self, symbol: str, point: PricePoint) -> None:
        async with self._lock:
            document = await self.backend.load()
            self._push(document, symbol.upper(), point)
            await self.backend.save(document)

    async def record(self, symbol: str, price: float, at: Optional[datetime] = None) -> PricePoint:
        """Append `price` stamped with `at` (default: now)."""
        point = PricePoint(time=at or utcnow(), price=price)
        await self.append(symbol, point)
        return point

    async def append_batch(self, prices: Mapping[str, float], at: Optional[datetime] = None) -> int:
        """
        Append one point per symbol, all stamped with the same time,
        in a single read-modify-write. Returns number of symbols written.
        """
        if not prices:
            return 0

        ts = at or utcnow()
        async with self._lock:
            document = await self.backend.load()
            for symbol, price in prices.items():
                self._push(document, symbol.upper(), PricePoint(time=ts, price=price))
            await self.backend.save(document)
        return len(prices)

    async def symbols(self) -> List[str]:
        document = await self.backend.load()
        return list(document["priceHistory"].keys())

    async def holdings_symbols(self) -> List[str]:
        """Symbols held by any user in the persisted document."""
        document = await self.backend.load()
        out: List[str] = []
        users: Dict[str, Any] = document["users"]
        for user in users.values():
            holdings = user.get("holdings") if isinstance(user, dict) else None
            if isinstance(holdings, dict):
                out.extend(holdings.keys())
        return out

    def _push(self, document: Dict[str, Any], symbol: str, point: PricePoint) -> None:
        hist = document["priceHistory"].get(symbol)
        if not isinstance(hist, list):
            hist = document["priceHistory"][symbol] = []
        hist.append(point.to_dict())

        if len(hist) > self.max_history:
            del hist[:-self.max_history]
