"""data912 live snapshot adapter with normalized outputs."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

import requests

from tracker_server.providers.http import MalformedResponse, ProviderError, fetch_json
from tracker_server.providers.models import InstrumentQuote, RetrievableCategory
from tracker_server.providers.tickers import get_ticker_category, is_ticker_api_available, normalize_ticker_for_api

DATA912_BASE_URL = "https://data912.com"
DATA912_ENDPOINTS: dict[RetrievableCategory, str] = {
    "cedear": "/live/arg_cedears",
    "bond": "/live/arg_bonds",
    "corp": "/live/arg_corp",
    "stock": "/live/arg_stocks",
    "note": "/live/arg_notes",
}
LOGGER = logging.getLogger(__name__)


class DataSourceUnavailable(Exception):
    """A category snapshot could not be fetched after all retries."""

    def __init__(self, category: str, cause: BaseException) -> None:
        self.category = category
        self.cause = cause
        super().__init__(f"Failed to fetch {category} data: {cause}")


def _to_decimal(value: object) -> Decimal | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _to_quote(item: object) -> InstrumentQuote | None:
    if not isinstance(item, dict):
        return None
    symbol = item.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        return None
    return InstrumentQuote(
        symbol=symbol.strip().upper(),
        close=_to_decimal(item.get("c")),
        bid=_to_decimal(item.get("px_bid")),
        ask=_to_decimal(item.get("px_ask")),
        bid_qty=_to_decimal(item.get("q_bid")),
        ask_qty=_to_decimal(item.get("q_ask")),
        volume=_to_decimal(item.get("v")),
        operations=_to_decimal(item.get("q_op")),
        percent_change=_to_decimal(item.get("pct_change")),
    )


def best_price(quote: InstrumentQuote) -> Decimal | None:
    """Close price only; bid/ask are never used as a substitute."""
    if quote.close is not None and quote.close > 0:
        return quote.close
    return None


class Data912Client:
    def __init__(
        self,
        base_url: str = DATA912_BASE_URL,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        retry_delay_seconds: float = 1.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.session = session

    def endpoint_for(self, category: RetrievableCategory) -> str:
        try:
            path = DATA912_ENDPOINTS[category]
        except KeyError:
            raise ValueError(f"Category has no data912 endpoint: {category}") from None
        return f"{self.base_url}{path}"

    def fetch_category(self, category: RetrievableCategory) -> list[InstrumentQuote]:
        """Return the latest snapshot for ``category``.

        Raises ``DataSourceUnavailable`` once every retry has failed. A
        payload of the wrong shape is logged and treated as an empty snapshot.
        """
        url = self.endpoint_for(category)
        try:
            data = fetch_json(
                url,
                provider="data912",
                timeout_seconds=self.timeout_seconds,
                headers={"Accept": "application/json"},
                max_retries=self.max_retries,
                retry_delay_seconds=self.retry_delay_seconds,
                session=self.session,
            )
        except MalformedResponse as error:
            LOGGER.warning("malformed snapshot: category=%s error=%s", category, error)
            return []
        except ProviderError as error:
            LOGGER.error("snapshot unavailable: category=%s code=%s status=%s", category, error.code, error.status)
            raise DataSourceUnavailable(category, error) from error

        if not isinstance(data, list):
            LOGGER.warning("malformed snapshot: category=%s payload_type=%s", category, type(data).__name__)
            return []
        quotes = [quote for quote in (_to_quote(item) for item in data) if quote is not None]
        LOGGER.debug("snapshot fetched: category=%s instruments=%s", category, len(quotes))
        return quotes

    def find_instrument(self, ticker: str) -> InstrumentQuote | None:
        if not is_ticker_api_available(ticker):
            return None
        category = get_ticker_category(ticker)
        try:
            quotes = self.fetch_category(category)  # type: ignore[arg-type]
        except DataSourceUnavailable as error:
            LOGGER.warning("instrument lookup failed: ticker=%s error=%s", ticker, error)
            return None
        symbol = normalize_ticker_for_api(ticker)
        return next((quote for quote in quotes if quote.symbol == symbol), None)
