from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import List, Optional

from pricesim.models.market import PricePoint
from pricesim.sim.rng import RandomSource

SESSION_OPEN = time(9, 30)
SESSION_CLOSE = time(15, 30)
MIN_VOL = 0.0005
DEFAULT_PRICE = 100.0


def session_bounds(day: date) -> tuple[datetime, datetime]:
    """(open, close) of the simulated trading window for `day`, UTC."""
    start = datetime.combine(day, SESSION_OPEN, tzinfo=timezone.utc)
    end = datetime.combine(day, SESSION_CLOSE, tzinfo=timezone.utc)
    return start, end


class IntradaySimulator:
    """
    Intraday path between two daily closes.

    The path follows a straight line from prev_close to next_close over the
    session, with a normal shock on each point sized by the day's move.
    Every call draws fresh numbers from the RandomSource.
    """

    def __init__(self, rng: RandomSource) -> None:
        self.rng = rng

    def interpolate_session(
        self,
        prev_close: Optional[float],
        next_close: Optional[float],
        day: date,
        point_count: int = 60,
    ) -> List[PricePoint]:
        if point_count <= 0:
            return []

        if prev_close is not None:
            start_price = prev_close
        elif next_close is not None:
            start_price = next_close
        else:
            start_price = DEFAULT_PRICE
        end_price = next_close if next_close is not None else start_price

        pct_change = abs(end_price - start_price) / max(1.0, start_price)
        vol = max(MIN_VOL, pct_change * 0.02)

        start, end = session_bounds(day)
        span = end - start

        out: List[PricePoint] = []
        for i in range(point_count):
            t = i / (point_count - 1) if point_count > 1 else 0.0
            trend = start_price + (end_price - start_price) * t
            shock = self.rng.normal() * vol * trend
            price = max(0.01, trend + shock)
            out.append(PricePoint(time=start + span * t, price=price))

        return out
