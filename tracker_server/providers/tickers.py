"""Ticker to instrument category routing for the data912 endpoints."""

from __future__ import annotations

from tracker_server.providers.models import InstrumentCategory

TICKER_CATEGORY_MAP: dict[str, InstrumentCategory] = {
    # CEDEARs - equities growth
    "AMZND": "cedear",
    "MSFTD": "cedear",
    "JPMD": "cedear",
    "XLFD": "cedear",
    "GSD": "cedear",
    # CEDEARs - equities value/defensive
    "UNHD": "cedear",
    "XLVD": "cedear",
    "CATD": "cedear",
    "PFED": "cedear",
    "BIIBD": "cedear",
    "MMMD": "cedear",
    "DIAD": "cedear",
    "JNJD": "cedear",
    # Local stocks
    "YPFDD": "stock",
    "PAMPD": "stock",
    "TXARD": "stock",
    # Corporate bonds (obligaciones negociables)
    "YM39D": "corp",
    "YMCID": "corp",
    # Sovereign bonds
    "GD30D": "bond",
    "GD35D": "bond",
    # Money market fund, no external quote
    "Ciclo Nova II Clase A": "fci",
}

NON_RETRIEVABLE_CATEGORIES: frozenset[InstrumentCategory] = frozenset({"fci"})
FIXED_UNIT_CATEGORIES: frozenset[InstrumentCategory] = frozenset({"bond", "fci"})

_LOOKUP: dict[str, InstrumentCategory] = {ticker.upper(): category for ticker, category in TICKER_CATEGORY_MAP.items()}


def normalize_ticker_for_api(ticker: str) -> str:
    return ticker.strip().upper()


def get_ticker_category(ticker: str) -> InstrumentCategory | None:
    """Return the category for ``ticker`` or None when it is unknown."""
    return _LOOKUP.get(normalize_ticker_for_api(ticker))


def is_ticker_api_available(ticker: str) -> bool:
    category = get_ticker_category(ticker)
    return category is not None and category not in NON_RETRIEVABLE_CATEGORIES


def is_fixed_unit(ticker: str) -> bool:
    """Fixed-unit instruments hold one lump-sum unit and are never marked to market."""
    return get_ticker_category(ticker) in FIXED_UNIT_CATEGORIES
