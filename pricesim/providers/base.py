from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class QuoteProvider(ABC):
    """
    Provider contract (interface).

    Any provider must implement:
    - fetch_quote(): current market price for one exchange symbol, or None
      when the provider has no price for it. Network and HTTP errors are
      raised; PriceSource decides what to do with them.
    """

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> Optional[float]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class OfflineQuoteProvider(QuoteProvider):
    """Never has a price; every lookup falls through to static defaults."""

    async def fetch_quote(self, symbol: str) -> Optional[float]:
        return None
