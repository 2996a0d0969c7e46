"""Time-boxed price cache that serves stale data while it revalidates."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, Literal

from tracker_server.providers.tickers import normalize_ticker_for_api

CacheStatus = Literal["empty", "loading", "ready", "stale", "stale-revalidating", "error"]
CacheKey = tuple[str, ...]
PriceMap = dict[str, Decimal | None]
PriceFetcher = Callable[[list[str]], Awaitable[PriceMap]]

DEFAULT_FRESHNESS_SECONDS = 300.0
LOGGER = logging.getLogger(__name__)


def make_key(tickers: Iterable[str]) -> CacheKey:
    return tuple(sorted({normalize_ticker_for_api(ticker) for ticker in tickers if ticker and ticker.strip()}))


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    prices: PriceMap
    fetched_at: float


@dataclass(frozen=True)
class PriceSnapshot:
    key: CacheKey
    status: CacheStatus
    prices: PriceMap = field(default_factory=dict)
    fetched_at: float | None = None
    age_seconds: float | None = None
    error: str | None = None

    def price(self, ticker: str) -> Decimal | None:
        return self.prices.get(normalize_ticker_for_api(ticker))


class PriceCache:
    """Price cache keyed by the exact requested ticker set.

    Only one key is "desired" at a time: the last set passed to ``get`` or
    ``refresh``. Fetches that complete for any other key are returned to
    their awaiters but never stored. Revalidation happens on the timer
    (``revalidate_if_stale`` / ``run_auto_refresh``) or on a manual
    ``refresh``; plain reads never trigger it once data exists.
    """

    def __init__(
        self,
        fetcher: PriceFetcher,
        freshness_seconds: float = DEFAULT_FRESHNESS_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.freshness_seconds = max(1.0, float(freshness_seconds))
        self._fetcher = fetcher
        self._clock = clock
        self._sleep = sleep
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._errors: dict[CacheKey, str] = {}
        self._inflight: dict[CacheKey, asyncio.Task[PriceMap | None]] = {}
        self._desired: CacheKey | None = None
        self._auto_refresh_active = False

    @property
    def desired_key(self) -> CacheKey | None:
        return self._desired

    def select(self, tickers: Iterable[str]) -> CacheKey:
        """Mark ``tickers`` as the desired set without fetching."""
        self._desired = make_key(tickers)
        return self._desired

    def _is_stale(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at >= self.freshness_seconds

    def snapshot(self, tickers: Iterable[str] | None = None) -> PriceSnapshot:
        """Current view of a key without triggering any fetch."""
        key = make_key(tickers) if tickers is not None else self._desired
        if key is None:
            return PriceSnapshot(key=(), status="empty")
        entry = self._entries.get(key)
        inflight = key in self._inflight
        error = self._errors.get(key)
        status: CacheStatus
        if entry is None:
            status = "loading" if inflight else ("error" if error else "empty")
            return PriceSnapshot(key=key, status=status, error=error)
        if error and not inflight:
            status = "error"
        elif self._is_stale(entry):
            # stale data is only "revalidating" when something will replace it
            status = "stale-revalidating" if inflight or self._auto_refresh_active else "stale"
        else:
            status = "ready"
        return PriceSnapshot(
            key=key,
            status=status,
            prices=dict(entry.prices),
            fetched_at=entry.fetched_at,
            age_seconds=max(0.0, self._clock() - entry.fetched_at),
            error=error,
        )

    async def get(self, tickers: Iterable[str]) -> PriceSnapshot:
        """Select ``tickers`` as the desired set; waits only when there is no data yet."""
        key = make_key(tickers)
        self._desired = key
        if key and key not in self._entries:
            await self._join_or_start(key)
        return self.snapshot(key)

    async def refresh(self, tickers: Iterable[str] | None = None) -> PriceSnapshot:
        """Manual refresh; joins the in-flight fetch for the key when there is one."""
        key = make_key(tickers) if tickers is not None else self._desired
        if not key:
            return self.snapshot(key)
        self._desired = key
        await self._join_or_start(key)
        return self.snapshot(key)

    def revalidate_if_stale(self) -> asyncio.Task[PriceMap | None] | None:
        """Timer step: start a background refresh when the desired key has aged out."""
        key = self._desired
        if not key:
            return None
        task = self._inflight.get(key)
        if task is not None:
            return task
        entry = self._entries.get(key)
        if entry is not None and not self._is_stale(entry):
            return None
        LOGGER.debug("revalidating prices: tickers=%s", len(key))
        return self._start(key)

    def seconds_until_stale(self) -> float:
        entry = self._entries.get(self._desired) if self._desired else None
        if entry is None:
            return self.freshness_seconds
        return max(0.0, entry.fetched_at + self.freshness_seconds - self._clock())

    async def run_auto_refresh(self, stop_event: asyncio.Event) -> None:
        """Revalidate the desired key, then sleep until it ages out again."""
        self._auto_refresh_active = True
        try:
            while not stop_event.is_set():
                task = self.revalidate_if_stale()
                if task is not None:
                    await asyncio.shield(task)
                await self._sleep(self.seconds_until_stale() or self.freshness_seconds)
        finally:
            self._auto_refresh_active = False

    def _start(self, key: CacheKey) -> asyncio.Task[PriceMap | None]:
        task = asyncio.get_running_loop().create_task(self._run_fetch(key))
        self._inflight[key] = task
        return task

    async def _join_or_start(self, key: CacheKey) -> PriceMap | None:
        task = self._inflight.get(key) or self._start(key)
        return await asyncio.shield(task)

    async def _run_fetch(self, key: CacheKey) -> PriceMap | None:
        try:
            prices = await self._fetcher(list(key))
        except Exception as error:
            LOGGER.exception("price refresh failed: tickers=%s", len(key))
            self._errors[key] = str(error) or type(error).__name__
            return None
        finally:
            self._inflight.pop(key, None)

        if key != self._desired:
            LOGGER.info("discarding superseded prices: tickers=%s", len(key))
            return prices
        self._entries[key] = CacheEntry(
            key=key,
            prices={symbol: prices.get(symbol) for symbol in key},
            fetched_at=self._clock(),
        )
        self._errors.pop(key, None)
        return prices
