"""Batch price acquisition grouped by instrument category."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from tracker_server.providers.data912 import Data912Client, DataSourceUnavailable, best_price
from tracker_server.providers.models import RetrievableCategory
from tracker_server.providers.tickers import get_ticker_category, is_ticker_api_available, normalize_ticker_for_api

LOGGER = logging.getLogger(__name__)

PriceMap = dict[str, Decimal | None]


def group_by_category(tickers: Iterable[str]) -> dict[RetrievableCategory, list[str]]:
    """Normalized tickers per retrievable category; fci and unknown tickers are left out."""
    grouped: defaultdict[RetrievableCategory, list[str]] = defaultdict(list)
    for ticker in tickers:
        if not is_ticker_api_available(ticker):
            continue
        symbol = normalize_ticker_for_api(ticker)
        category = get_ticker_category(ticker)
        if symbol not in grouped[category]:  # type: ignore[index]
            grouped[category].append(symbol)  # type: ignore[index]
    return dict(grouped)


class PriceService:
    def __init__(self, client: Data912Client) -> None:
        self.client = client

    async def _fetch_category(self, category: RetrievableCategory, symbols: list[str]) -> PriceMap:
        try:
            quotes = await asyncio.to_thread(self.client.fetch_category, category)
        except DataSourceUnavailable as error:
            LOGGER.warning(
                "category prices unavailable: category=%s tickers=%s cause=%s",
                category,
                len(symbols),
                error.cause,
            )
            return {symbol: None for symbol in symbols}
        except Exception:
            LOGGER.exception("category price fetch failed: category=%s tickers=%s", category, len(symbols))
            return {symbol: None for symbol in symbols}
        by_symbol = {quote.symbol: quote for quote in quotes}
        prices: PriceMap = {}
        for symbol in symbols:
            quote = by_symbol.get(symbol)
            prices[symbol] = best_price(quote) if quote is not None else None
        return prices

    async def fetch_many(self, tickers: Iterable[str]) -> PriceMap:
        """Latest close for every requested ticker; tickers without a usable quote map to None."""
        requested = [normalize_ticker_for_api(ticker) for ticker in tickers]
        results: PriceMap = {symbol: None for symbol in requested}
        grouped = group_by_category(requested)
        if not grouped:
            return results

        partials = await asyncio.gather(
            *(self._fetch_category(category, symbols) for category, symbols in grouped.items())
        )
        for partial in partials:
            results.update(partial)
        LOGGER.info(
            "prices fetched: requested=%s categories=%s priced=%s",
            len(results),
            len(grouped),
            sum(1 for price in results.values() if price is not None),
        )
        return results
