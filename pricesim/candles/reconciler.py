from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from pricesim.candles.days import aggregate, group_by_day
from pricesim.candles.synth import CandleSynthesizer, utc_today
from pricesim.history.store import HistoryStore
from pricesim.models.market import Candle, DayClose, PricePoint
from pricesim.prices.source import PriceSource, normalise_symbol

# Fewest recorded points trusted to represent a real session.
MIN_REAL_SAMPLES = 4

log = logging.getLogger("gap_reconciler")


def candle_from_day(day_close: DayClose) -> Candle:
    return Candle(
        date=day_close.date,
        open=day_close.open,
        high=day_close.high,
        low=day_close.low,
        close=day_close.close,
    )


class GapReconciler:
    """
    Builds one daily candle per requested day from recorded history.

    Per day (ascending):
    1. >= MIN_REAL_SAMPLES points  -> aggregate the real points
    2. sparse, earlier day on record -> synthesize from that day's close
    3. sparse, no earlier day        -> aggregate whatever points exist
    4. nothing at all                -> resolve + record a live price, flat candle
    """

    def __init__(
        self,
        store: HistoryStore,
        price_source: PriceSource,
        synthesizer: CandleSynthesizer,
    ) -> None:
        self.store = store
        self.price_source = price_source
        self.synthesizer = synthesizer

    async def build_candles(
        self,
        symbol: str,
        days: Optional[Iterable[date]] = None,
        *,
        include_today: bool = False,
        today: Optional[date] = None,
    ) -> List[Candle]:
        """
        `days` defaults to every day present in the history.
        include_today=False keeps only completed sessions (days before today).
        """
        s = normalise_symbol(symbol)
        today = today or utc_today()
        groups = group_by_day(await self.store.read(s))

        wanted = sorted(set(days)) if days is not None else list(groups)
        if not include_today:
            wanted = [d for d in wanted if d < today]

        candles: List[Candle] = []
        flat_price: Optional[float] = None

        for day in wanted:
            points = groups.get(day, [])

            if len(points) >= MIN_REAL_SAMPLES:
                candles.append(candle_from_day(aggregate(day, points)))
                continue

            prev = self._prior_close(groups, day)
            if prev is not None:
                candles.append(self.synthesizer.synthesize_day(prev, day))
                continue

            if points:
                candles.append(candle_from_day(aggregate(day, points)))
                continue

            # No data at all: one live price per call, recorded once.
            if flat_price is None:
                flat_price = await self.price_source.resolve(s)
                await self.store.record(s, flat_price)
                log.info("No history for %s, using flat candle at %s", s, flat_price)
            candles.append(
                Candle(date=day, open=flat_price, high=flat_price, low=flat_price, close=flat_price)
            )

        return candles

    def _prior_close(self, groups: Dict[date, List[PricePoint]], day: date) -> Optional[float]:
        """Last recorded price of the latest day strictly before `day`."""
        earlier = [d for d in groups if d < day]
        if not earlier:
            return None
        return groups[earlier[-1]][-1].price
