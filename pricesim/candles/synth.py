from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from pricesim.models.market import Candle
from pricesim.sim.rng import RandomSource

MIN_PRICE = 0.01
MIN_LOW = 0.0001
TICK = 0.0001

VOLUME_MIN = 50_000
VOLUME_SPAN = 300_000


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class CandleSynthesizer:
    """
    Daily OHLCV from a previous close, single-step lognormal jump-diffusion.

    Per day:
    - sigma = base_vol * U(0.6, 1.4), mu = U(-0.001, 0.001)
    - open = prev close, gapped by U(-jump_scale, jump_scale) with prob jump_prob
    - close = open * exp((mu - sigma^2 / 2) + sigma * Z)
    - high/low = wicks beyond max/min(open, close) scaled by sigma

    Draw order is fixed (sigma, mu, jump test, [jump], Z, high, low, volume)
    so a scripted RandomSource reproduces a candle exactly.
    """

    def __init__(
        self,
        rng: RandomSource,
        base_vol: float = 0.02,
        jump_prob: float = 0.08,
        jump_scale: float = 0.06,
    ) -> None:
        self.rng = rng
        self.base_vol = base_vol
        self.jump_prob = jump_prob
        self.jump_scale = jump_scale

    def synthesize_day(self, prev_close: float, day: Optional[date] = None) -> Candle:
        rng = self.rng
        sigma = self.base_vol * rng.uniform_between(0.6, 1.4)
        mu = rng.uniform_between(-0.001, 0.001)

        # Gap at open.
        open_ = round(max(MIN_PRICE, prev_close), 4)
        if rng.uniform() < self.jump_prob:
            jump = rng.uniform_between(-self.jump_scale, self.jump_scale)
            open_ = max(MIN_PRICE, round(open_ * (1 + jump), 4))

        z = rng.normal()
        factor = math.exp((mu - 0.5 * sigma * sigma) + sigma * z)
        close = max(MIN_PRICE, round(open_ * factor, 4))

        up = max(open_, close)
        down = min(open_, close)

        high = round(max(up * (1 + rng.uniform() * sigma * 1.5), up + TICK), 4)
        if high <= up:
            high = round(up + TICK, 4)

        low = round(max(down * (1 - rng.uniform() * sigma * 1.5), MIN_LOW), 4)
        low = min(low, down)

        volume = VOLUME_MIN + int(rng.uniform() * VOLUME_SPAN)

        return Candle(
            date=day or utc_today(),
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=volume,
        )

    def random_walk_candles(
        self,
        last_close: float,
        days: int = 20,
        today: Optional[date] = None,
    ) -> List[Candle]:
        """
        Chained candles for the `days` calendar days before `today`
        (oldest first), each opening from the previous candle's close.
        """
        today = today or utc_today()
        candles: List[Candle] = []
        prev = last_close

        for offset in range(days, 0, -1):
            candle = self.synthesize_day(prev, today - timedelta(days=offset))
            candles.append(candle)
            prev = candle.close

        return candles
