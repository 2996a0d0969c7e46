"""Portfolio orchestration service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from tracker_server.cache.price_cache import PriceCache, PriceSnapshot
from tracker_server.portfolio.ledger import Ledger
from tracker_server.portfolio.metrics import build_asset_metrics, period_time_series, portfolio_totals
from tracker_server.portfolio.models import (
    AssetDefinition,
    AssetMetrics,
    DerivedAssetState,
    Operation,
    PortfolioTotals,
    SeriesPoint,
    ValidationError,
    ValidationIssue,
)
from tracker_server.portfolio.validation import parse_decimal, validate_operation
from tracker_server.providers.tickers import normalize_ticker_for_api

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceStatus:
    status: str
    fetched_at: float | None
    age_seconds: float | None
    error: str | None


@dataclass(frozen=True)
class PortfolioSnapshot:
    assets: list[AssetMetrics]
    totals: PortfolioTotals
    prices: PriceStatus


def _price_status(snapshot: PriceSnapshot) -> PriceStatus:
    return PriceStatus(
        status=snapshot.status,
        fetched_at=snapshot.fetched_at,
        age_seconds=None if snapshot.age_seconds is None else round(snapshot.age_seconds, 3),
        error=snapshot.error,
    )


class PortfolioService:
    """Accepts ledger commands and answers read-only portfolio views.

    Asset state is never stored: every read derives it again from the
    current ledger, then marks it with whatever prices the cache holds.
    """

    def __init__(self, ledger: Ledger, prices: PriceCache) -> None:
        self.ledger = ledger
        self.prices = prices
        self._manual_prices: dict[str, Decimal] = {}

    @property
    def catalog(self) -> tuple[AssetDefinition, ...]:
        return self.ledger.catalog

    @property
    def tickers(self) -> list[str]:
        return [asset.ticker for asset in self.catalog]

    def add_operation(self, ticker: str, date: object, amount: object, qty: object | None = None) -> tuple[int, Operation]:
        operation = validate_operation(self.catalog, ticker, date, amount, qty)
        return self.ledger.add(operation), operation

    def delete_operation(self, index: int) -> Operation:
        return self.ledger.delete(index)

    def list_operations(self) -> list[Operation]:
        return list(self.ledger.operations)

    def derived_state(self) -> list[DerivedAssetState]:
        return self.ledger.derive()

    def set_manual_price(self, ticker: str, price: object | None) -> Decimal | None:
        """Store a fallback price for ``ticker``; ``None`` clears it.

        A manual price is used only while the market data source has no
        price for the ticker.
        """
        symbol = normalize_ticker_for_api(ticker)
        if symbol not in {normalize_ticker_for_api(item) for item in self.tickers}:
            raise ValidationError(
                [ValidationIssue(field="ticker", code="unknown_ticker", message=f"Ticker not in catalog: {ticker}")]
            )
        if price is None:
            self._manual_prices.pop(symbol, None)
            return None
        issues: list[ValidationIssue] = []
        value = parse_decimal("price", price, issues)
        if value is not None and value == 0:
            issues.append(ValidationIssue(field="price", code="non_positive_price", message="price must be greater than 0."))
        if issues:
            raise ValidationError(issues)
        self._manual_prices[symbol] = value  # type: ignore[assignment]
        LOGGER.info("manual price set: ticker=%s", symbol)
        return value

    def _effective_prices(self, snapshot: PriceSnapshot) -> tuple[dict[str, Decimal | None], dict[str, str]]:
        prices: dict[str, Decimal | None] = {}
        sources: dict[str, str] = {}
        for ticker in self.tickers:
            symbol = normalize_ticker_for_api(ticker)
            market = snapshot.price(symbol)
            if market is not None:
                prices[symbol] = market
                sources[symbol] = "data912"
            elif symbol in self._manual_prices:
                prices[symbol] = self._manual_prices[symbol]
                sources[symbol] = "manual"
            else:
                prices[symbol] = None
        return prices, sources

    async def snapshot(self) -> PortfolioSnapshot:
        states = self.derived_state()
        price_snapshot = await self.prices.get(self.tickers)
        prices, sources = self._effective_prices(price_snapshot)
        assets = build_asset_metrics(states, prices, sources)
        return PortfolioSnapshot(assets=assets, totals=portfolio_totals(assets), prices=_price_status(price_snapshot))

    async def chart(self) -> list[SeriesPoint]:
        states = self.derived_state()
        price_snapshot = await self.prices.get(self.tickers)
        prices, _ = self._effective_prices(price_snapshot)
        return period_time_series(states, prices)

    async def refresh_prices(self) -> PriceStatus:
        return _price_status(await self.prices.refresh(self.tickers))

    def current_resource_snapshot(self) -> dict[str, Any]:
        """Synchronous view for resources: whatever prices the cache holds, no fetch."""
        states = self.derived_state()
        price_snapshot = self.prices.snapshot(self.tickers)
        prices, sources = self._effective_prices(price_snapshot)
        assets = build_asset_metrics(states, prices, sources)
        return {
            "uri": "portfolio://current",
            "payload": PortfolioSnapshot(
                assets=assets,
                totals=portfolio_totals(assets),
                prices=_price_status(price_snapshot),
            ),
        }
