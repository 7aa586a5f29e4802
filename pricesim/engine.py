from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from pricesim.candles.days import group_by_day, next_close, previous_close
from pricesim.candles.reconciler import GapReconciler
from pricesim.candles.synth import CandleSynthesizer, utc_today
from pricesim.config import Settings, get_settings
from pricesim.history.backends import HistoryStoreError, JsonFileStore
from pricesim.history.store import HistoryStore
from pricesim.jobs.poller import Poller
from pricesim.models.market import Candle
from pricesim.prices.source import PriceSource, normalise_symbol, seed_price
from pricesim.providers.base import QuoteProvider
from pricesim.providers.loader import get_provider
from pricesim.sim.intraday import IntradaySimulator
from pricesim.sim.rng import RandomSource, SystemRandomSource
from pricesim.state import RuntimeFlags

log = logging.getLogger("engine")

QUOTE_HISTORY_POINTS = 20


def _candles_payload(candles: List[Candle], with_volume: bool = False) -> List[Dict[str, Any]]:
    out = []
    for c in candles:
        row = c.to_dict()
        if with_volume:
            row["volume"] = c.volume
        out.append(row)
    return out


class Engine:
    """
    One price engine per process: owns the runtime flags, the history store,
    the price source, the simulators and the poller, and serves the read
    shapes used by the HTTP layer.
    """

    def __init__(
        self,
        store: HistoryStore,
        provider: QuoteProvider,
        rng: Optional[RandomSource] = None,
        *,
        use_random_prices: bool = False,
        base_vol: float = 0.02,
        jump_prob: float = 0.08,
        jump_scale: float = 0.06,
        poll_symbols: Iterable[str] = (),
        poll_interval_seconds: float = 300.0,
    ) -> None:
        self.flags = RuntimeFlags(use_random_prices=use_random_prices)
        self.store = store
        self.provider = provider
        self.rng = rng or SystemRandomSource()

        self.price_source = PriceSource(provider, store, self.rng, self.flags)
        self.synthesizer = CandleSynthesizer(
            self.rng, base_vol=base_vol, jump_prob=jump_prob, jump_scale=jump_scale
        )
        self.reconciler = GapReconciler(store, self.price_source, self.synthesizer)
        self.intraday = IntradaySimulator(self.rng)
        self.poller = Poller(
            store,
            self.price_source,
            tracked_symbols=poll_symbols,
            interval_seconds=poll_interval_seconds,
        )

    # -------------------------
    # Runtime flags
    # -------------------------
    def get_random_mode(self) -> bool:
        return self.flags.use_random_prices

    def set_random_mode(self, enabled: bool, actor: str = "admin") -> bool:
        self.flags.use_random_prices = bool(enabled)
        log.info("User %s set useRandomPrices=%s", actor, self.flags.use_random_prices)
        return self.flags.use_random_prices

    # -------------------------
    # Read shapes
    # -------------------------
    async def record_and_quote(self, symbol: str) -> Dict[str, Any]:
        """Resolve, record, and return the price with the last 20 recorded points."""
        s = normalise_symbol(symbol)
        price = await self.price_source.resolve(s)
        await self.store.record(s, price)

        history = await self.store.read(s)
        return {
            "symbol": s,
            "currentPrice": price,
            "history": [p.to_dict() for p in history[-QUOTE_HISTORY_POINTS:]],
        }

    async def get_candles(
        self, symbol: str, days: int = 20, today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Completed daily candles, most recent `days` of them.
        Random mode returns a fresh random-walk run instead.
        """
        s = normalise_symbol(symbol)
        days = max(1, days)

        if self.flags.use_random_prices:
            candles = await self._random_run(s, days, today)
            return {"symbol": s, "candles": _candles_payload(candles, with_volume=True)}

        if not await self.store.read(s):
            # ensure at least one price exists
            await self.store.record(s, await self.price_source.resolve(s))

        candles = await self.reconciler.build_candles(s, include_today=False, today=today)
        return {"symbol": s, "candles": _candles_payload(candles[-days:])}

    async def get_chart_series(
        self, symbol: str, points: int = 60, days: int = 20
    ) -> Dict[str, Any]:
        """
        Random mode: close-only series of a random-walk run over `days`.
        Real mode: record a live price, then the last `points` recorded points.
        """
        s = normalise_symbol(symbol)

        if self.flags.use_random_prices:
            candles = await self._random_run(s, max(1, days))
            chart = [{"time": c.date.isoformat(), "price": c.close} for c in candles]
            return {"symbol": s, "chartData": chart}

        await self._record_live(s)
        history = await self.store.read(s)
        points = max(1, points)
        return {"symbol": s, "chartData": [p.to_dict() for p in history[-points:]]}

    async def get_simulated_series(
        self, symbol: str, day: date, days: int = 20
    ) -> Dict[str, Any]:
        """
        Daily series ending on `day`.

        Random mode: a random-walk run of `days` candles ending on `day`.
        Real mode: recorded days up to `day` plus `day` itself, gaps filled
        by the reconciler, today's partial session included.
        """
        s = normalise_symbol(symbol)
        days = max(1, days)

        if self.flags.use_random_prices:
            candles = await self._random_run(s, days, day + timedelta(days=1))
            return {"symbol": s, "candles": _candles_payload(candles, with_volume=True)}

        await self._record_live(s)
        groups = group_by_day(await self.store.read(s))
        wanted = [d for d in groups if d <= day] + [day]

        candles = await self.reconciler.build_candles(s, wanted, include_today=True)
        return {"symbol": s, "candles": _candles_payload(candles[-days:])}

    async def get_intraday_series(
        self, symbol: str, day: date, points: int = 60
    ) -> Dict[str, Any]:
        """Intraday path for `day` between its t-1 and t+1 recorded closes."""
        s = normalise_symbol(symbol)
        history = await self.store.read(s)
        prev = previous_close(history, day)
        nxt = next_close(history, day)

        path = self.intraday.interpolate_session(
            prev.close if prev else None,
            nxt.close if nxt else None,
            day,
            points,
        )
        return {
            "symbol": s,
            "date": day.isoformat(),
            "prevClose": prev.to_dict() if prev else None,
            "nextClose": nxt.to_dict() if nxt else None,
            "points": [p.to_dict() for p in path],
        }

    async def get_closes(self, symbol: str, today: Optional[date] = None) -> Dict[str, Any]:
        s = normalise_symbol(symbol)
        history = await self.store.read(s)
        today = today or utc_today()
        prev = previous_close(history, today)
        nxt = next_close(history, today)
        return {
            "symbol": s,
            "previous": prev.to_dict() if prev else None,
            "next": nxt.to_dict() if nxt else None,
        }

    async def _random_run(
        self, symbol: str, days: int, today: Optional[date] = None
    ) -> List[Candle]:
        history = await self.store.read(symbol)
        last = history[-1].price if history else seed_price(symbol)
        return self.synthesizer.random_walk_candles(last, days, today)

    async def _record_live(self, symbol: str) -> None:
        # Charts still render from stored points if the write fails.
        try:
            price = await self.price_source.resolve(symbol)
            await self.store.record(symbol, price)
        except HistoryStoreError as e:
            log.warning("Live price record failed for %s: %s", symbol, e)

    # -------------------------
    # Lifecycle
    # -------------------------
    def start(self) -> None:
        self.poller.start()

    async def stop(self) -> None:
        await self.poller.stop()
        await self.provider.close()


def create_engine(settings: Optional[Settings] = None) -> Engine:
    """Build the production engine from settings (file store, configured provider)."""
    settings = settings or get_settings()
    return Engine(
        HistoryStore(JsonFileStore(settings.data_file)),
        get_provider(settings),
        SystemRandomSource(settings.random_seed),
        use_random_prices=settings.use_random_prices,
        base_vol=settings.random_base_vol,
        jump_prob=settings.random_jump_prob,
        jump_scale=settings.random_jump_scale,
        poll_symbols=settings.poll_symbols,
        poll_interval_seconds=settings.poll_interval_seconds,
    )
