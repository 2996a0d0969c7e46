"""Typed portfolio models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

DATE_FORMAT = "%d/%m/%Y"


@dataclass(frozen=True)
class Operation:
    """One recorded contribution. Never mutated once it is in the ledger."""

    date: date
    ticker: str
    amount: Decimal
    qty: Decimal

    def to_record(self) -> dict[str, str]:
        return {
            "date": self.date.strftime(DATE_FORMAT),
            "ticker": self.ticker,
            "amount": str(self.amount),
            "qty": str(self.qty),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Operation":
        return cls(
            date=datetime.strptime(str(record["date"]), DATE_FORMAT).date(),
            ticker=str(record["ticker"]),
            amount=Decimal(str(record["amount"])),
            qty=Decimal(str(record["qty"])),
        )


@dataclass(frozen=True)
class AssetDefinition:
    id: int
    category: str
    ticker: str
    declared_weight: Decimal = Decimal("0")


@dataclass(frozen=True)
class PeriodBucket:
    amount: Decimal = Decimal("0")
    qty: Decimal = Decimal("0")

    def add(self, amount: Decimal, qty: Decimal) -> "PeriodBucket":
        return PeriodBucket(amount=self.amount + amount, qty=self.qty + qty)


@dataclass(frozen=True)
class DerivedAssetState:
    definition: AssetDefinition
    periods: dict[str, PeriodBucket] = field(default_factory=dict)

    @property
    def ticker(self) -> str:
        return self.definition.ticker


@dataclass(frozen=True)
class AssetMetrics:
    asset_id: int
    category: str
    ticker: str
    declared_weight: Decimal
    cumulative_invested: Decimal
    cumulative_qty: Decimal
    average_price: Decimal
    dynamic_weight_percent: Decimal
    price: Decimal | None
    price_source: str | None
    marked_value: Decimal | None
    gain_loss_percent: Decimal | None


@dataclass(frozen=True)
class PortfolioTotals:
    total_invested: Decimal
    total_marked_value: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal
    unpriced_tickers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SeriesPoint:
    period: str
    invested: Decimal
    marked_value: Decimal
    gain_loss: Decimal


@dataclass
class ValidationIssue:
    field: str
    message: str
    code: str = "invalid_value"


class ValidationError(ValueError):
    """Operation input rejected before it reaches the ledger."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__("; ".join(f"{issue.field}: {issue.message}" for issue in issues))


class OperationNotFound(IndexError):
    def __init__(self, index: int, size: int) -> None:
        self.index = index
        self.size = size
        super().__init__(f"No operation at position {index} (ledger holds {size}).")
