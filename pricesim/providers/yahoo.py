from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from pricesim.providers.base import QuoteProvider

log = logging.getLogger("yahoo_provider")


class YahooQuoteProvider(QuoteProvider):
    """
    Yahoo Finance quote provider (REST).

    GET {base_url}/v10/finance/quoteSummary/{symbol}?modules=price
    and read quoteSummary.result[0].price.regularMarketPrice.
    """

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com",
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"User-Agent": "Mozilla/5.0 (pricesim)"},
        )

    async def fetch_quote(self, symbol: str) -> Optional[float]:
        url = f"{self.base_url}/v10/finance/quoteSummary/{quote(symbol, safe='')}"
        resp = await self._client.get(url, params={"modules": "price"})
        resp.raise_for_status()
        return self._extract_price(resp.json())

    def _extract_price(self, data: Any) -> Optional[float]:
        """
        Pulls regularMarketPrice out of the payload.
        Handles both the plain number and the {"raw": ..., "fmt": ...} variant.
        """
        try:
            result = data["quoteSummary"]["result"]
            price_block = result[0]["price"]
        except (KeyError, IndexError, TypeError):
            log.debug("Unexpected quote payload=%r", data)
            return None

        value = price_block.get("regularMarketPrice") if isinstance(price_block, dict) else None
        if isinstance(value, dict):
            value = value.get("raw")
        if value is None:
            return None

        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    async def close(self) -> None:
        await self._client.aclose()
