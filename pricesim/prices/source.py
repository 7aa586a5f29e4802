from __future__ import annotations

import logging
from typing import Dict, List

from pricesim.history.store import HistoryStore
from pricesim.providers.base import QuoteProvider
from pricesim.sim.rng import RandomSource
from pricesim.state import RuntimeFlags

log = logging.getLogger("price_source")

# Static fallback prices keyed by base symbol.
MOCK_PRICES: Dict[str, float] = {
    "AAPL": 230.5,
    "GOOGL": 175.2,
    "MSFT": 415.8,
    "TSLA": 245.3,
    "AMZN": 198.7,
    "META": 520.4,
    "NVDA": 890.2,
}
DEFAULT_PRICE = 100.0

# Tried in order before the bare symbol.
MARKET_SUFFIXES = (".NS", ".BO")

RANDOM_WALK_PCT = 0.02  # +/-1%


def normalise_symbol(symbol: str) -> str:
    return (symbol or "").strip().upper()


def candidate_symbols(symbol: str) -> List[str]:
    """
    Exchange symbols to try for a live quote.

    Already qualified (contains "." or ":") -> only itself.
    Otherwise -> each market suffix, then the bare symbol.
    """
    s = normalise_symbol(symbol)
    if "." in s or ":" in s:
        return [s]
    return [f"{s}{suffix}" for suffix in MARKET_SUFFIXES] + [s]


def default_price(symbol: str) -> float:
    """Static price for a symbol: base symbol, then full symbol, then DEFAULT_PRICE."""
    s = normalise_symbol(symbol)
    base = s.split(".")[0]
    return MOCK_PRICES.get(base) or MOCK_PRICES.get(s) or DEFAULT_PRICE


def seed_price(symbol: str) -> float:
    return MOCK_PRICES.get(normalise_symbol(symbol), DEFAULT_PRICE)


class PriceSource:
    """
    Resolves a current price for a symbol.

    - random mode: +/-1% uniform step from the last recorded price
    - live mode: provider lookups over candidate_symbols(), first non-null wins
    - anything else: default_price()

    resolve() never raises and never persists; callers decide whether to record.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        store: HistoryStore,
        rng: RandomSource,
        flags: RuntimeFlags,
    ) -> None:
        self.provider = provider
        self.store = store
        self.rng = rng
        self.flags = flags

    async def resolve(self, symbol: str) -> float:
        s = normalise_symbol(symbol)

        if self.flags.use_random_prices:
            try:
                return await self._random_walk_price(s)
            except Exception as e:
                log.warning("Random price generation failed for %s, falling back: %s", s, e)
                return default_price(s)

        for cand in candidate_symbols(s):
            try:
                price = await self.provider.fetch_quote(cand)
            except Exception as e:
                log.warning("Failed to fetch real price for %s, trying next (%s)", cand, e)
                continue

            if price is not None:
                if cand != s:
                    log.info("Resolved %s -> %s", s, cand)
                return price

        log.warning("Failed to fetch real price for %s, using mock", s)
        return default_price(s)

    async def _random_walk_price(self, symbol: str) -> float:
        history = await self.store.read(symbol)
        last = history[-1].price if history else seed_price(symbol)

        pct = (self.rng.uniform() - 0.5) * RANDOM_WALK_PCT
        next_price = max(0.01, round(last * (1 + pct), 4))
        log.info("Using random price for %s: %s", symbol, next_price)
        return next_price
