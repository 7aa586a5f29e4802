from __future__ import annotations

import asyncio
import contextlib
import logging
import traceback
from typing import Dict, Iterable, List, Optional

from pricesim.history.store import HistoryStore, utcnow
from pricesim.prices.source import MOCK_PRICES, PriceSource, normalise_symbol

log = logging.getLogger("poller")


class Poller:
    """
    Background poll of every tracked symbol into the history store.

    One cycle:
    - collect tracked + held + already-recorded + default symbols
    - resolve all prices concurrently
    - write them as one batch (single read-modify-write)

    A cycle started while another is running returns immediately.
    """

    def __init__(
        self,
        store: HistoryStore,
        price_source: PriceSource,
        tracked_symbols: Iterable[str] = (),
        interval_seconds: float = 300.0,
    ) -> None:
        self.store = store
        self.price_source = price_source
        self.tracked_symbols = [normalise_symbol(s) for s in tracked_symbols if s.strip()]
        self.interval_seconds = interval_seconds
        self._polling = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_polling(self) -> bool:
        return self._polling

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def collect_symbols(self) -> List[str]:
        found: List[str] = []
        found.extend(self.tracked_symbols)
        found.extend(await self.store.holdings_symbols())
        found.extend(await self.store.symbols())
        found.extend(MOCK_PRICES)

        # Keep first-seen order, drop duplicates and blanks.
        seen: Dict[str, None] = {}
        for s in found:
            s = normalise_symbol(s)
            if s:
                seen.setdefault(s, None)
        return list(seen)

    async def poll_once(self) -> int:
        """Run one cycle. Returns how many symbols were recorded (0 if skipped or failed)."""
        if self._polling:
            log.debug("Poll already in progress, skipping")
            return 0

        self._polling = True
        try:
            symbols = await self.collect_symbols()
            if not symbols:
                return 0

            log.info("Polling prices for symbols: %s", ", ".join(symbols))
            results = await asyncio.gather(
                *(self.price_source.resolve(s) for s in symbols),
                return_exceptions=True,
            )

            prices: Dict[str, float] = {}
            for symbol, result in zip(symbols, results):
                if isinstance(result, BaseException):
                    log.warning("Price resolution failed for %s: %r", symbol, result)
                    continue
                prices[symbol] = result

            now = utcnow()
            written = await self.store.append_batch(prices, at=now)
            log.info("Recorded %d prices at %s", written, now.isoformat())
            return written

        except Exception as e:
            # Keep the schedule alive; the next cycle starts from the stored state.
            log.error("Polling error: %s", repr(e))
            log.error(traceback.format_exc())
            return 0

        finally:
            self._polling = False

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Poll now, then every interval_seconds, until stop()."""
        if self.is_running:
            return
        log.info("Starting price poller interval=%ss", self.interval_seconds)
        self._task = asyncio.create_task(self._run(), name="price-poller")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        log.info("Stopped price poller")
