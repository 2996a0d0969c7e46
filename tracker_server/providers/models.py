"""Normalized data models shared across the market data layer."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

ProviderName = Literal["data912"]
InstrumentCategory = Literal["cedear", "bond", "corp", "stock", "note", "fci"]
RetrievableCategory = Literal["cedear", "bond", "corp", "stock", "note"]


@dataclass(frozen=True)
class InstrumentQuote:
    """One row of a data912 live snapshot."""

    symbol: str
    close: Decimal | None = None
    bid: Decimal | None = None
    ask: Decimal | None = None
    bid_qty: Decimal | None = None
    ask_qty: Decimal | None = None
    volume: Decimal | None = None
    operations: Decimal | None = None
    percent_change: Decimal | None = None
    source: ProviderName = "data912"
