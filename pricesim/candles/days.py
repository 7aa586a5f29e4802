from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from pricesim.models.market import DayClose, PricePoint


def day_key(ts: datetime) -> date:
    """Calendar day (UTC) a timestamp belongs to."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).date()


def group_by_day(points: Iterable[PricePoint]) -> Dict[date, List[PricePoint]]:
    """
    Bucket points by day_key().
    Keys come back in ascending order; points keep their insertion order.
    """
    groups: Dict[date, List[PricePoint]] = {}
    for p in points:
        groups.setdefault(day_key(p.time), []).append(p)
    return {d: groups[d] for d in sorted(groups)}


def aggregate(day: date, points: Sequence[PricePoint]) -> DayClose:
    """open = first, close = last, high/low = max/min. `points` must be non-empty."""
    prices = [p.price for p in points]
    return DayClose(
        date=day,
        open=prices[0],
        close=prices[-1],
        high=max(prices),
        low=min(prices),
    )


def previous_close(points: Iterable[PricePoint], today: date) -> Optional[DayClose]:
    """
    t-1: latest day strictly before `today`.
    Falls back to the latest day overall when no earlier day exists.
    """
    groups = group_by_day(points)
    if not groups:
        return None

    days = list(groups)
    earlier = [d for d in days if d < today]
    target = earlier[-1] if earlier else days[-1]
    return aggregate(target, groups[target])


def next_close(points: Iterable[PricePoint], today: date) -> Optional[DayClose]:
    """
    t+1: earliest day strictly after `today`.
    Falls back to the latest day overall when no later day exists.
    """
    groups = group_by_day(points)
    if not groups:
        return None

    days = list(groups)
    later = [d for d in days if d > today]
    target = later[0] if later else days[-1]
    return aggregate(target, groups[target])
