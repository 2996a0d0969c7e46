"""Ledger of operations and the projection that derives asset state from it."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Sequence

from tracker_server.portfolio.models import (
    AssetDefinition,
    DerivedAssetState,
    Operation,
    OperationNotFound,
    PeriodBucket,
    ValidationError,
)
from tracker_server.portfolio.storage import LedgerStore
from tracker_server.portfolio.validation import validate_operation

LOGGER = logging.getLogger(__name__)


def period_key(day: date) -> str:
    """Day-granularity bucket key, zero-padded and year first (YYYY-MM-DD)."""
    return day.isoformat()


def _ticker_key(ticker: str) -> str:
    return ticker.strip().upper()


def derive(operations: Iterable[Operation], catalog: Sequence[AssetDefinition]) -> list[DerivedAssetState]:
    """Fold the operations into per-asset period buckets.

    Pure and order-insensitive: Decimal addition is exact, so the same
    multiset of operations always yields the same buckets. Operations whose
    ticker is not in the catalog do not contribute to any asset.
    """
    by_ticker: defaultdict[str, list[Operation]] = defaultdict(list)
    for operation in operations:
        by_ticker[_ticker_key(operation.ticker)].append(operation)

    states: list[DerivedAssetState] = []
    for asset in catalog:
        buckets: dict[str, PeriodBucket] = {}
        for operation in by_ticker.get(_ticker_key(asset.ticker), []):
            key = period_key(operation.date)
            buckets[key] = buckets.get(key, PeriodBucket()).add(operation.amount, operation.qty)
        states.append(DerivedAssetState(definition=asset, periods=dict(sorted(buckets.items()))))
    return states


class Ledger:
    """Append-only operation list; the only mutable state of the portfolio.

    Each change swaps in a new tuple and persists it, so readers always see
    either the old or the new sequence.
    """

    def __init__(self, store: LedgerStore, catalog: Sequence[AssetDefinition]) -> None:
        self.store = store
        self.catalog = tuple(catalog)
        self._operations: tuple[Operation, ...] = tuple(self._load_operations())
        LOGGER.info("ledger loaded: operations=%s", len(self._operations))

    def _load_operations(self) -> list[Operation]:
        """Stored records pass the same checks as new operations."""
        source = getattr(self.store, "file_path", type(self.store).__name__)
        operations = []
        for index, record in enumerate(self.store.load_records()):
            if not isinstance(record, dict):
                raise ValueError(f"Invalid ledger record {index} in {source}: expected an object.")
            try:
                operation = validate_operation(
                    self.catalog, record.get("ticker"), record.get("date"), record.get("amount"), record.get("qty")
                )
            except ValidationError as error:
                LOGGER.error("ledger record rejected: source=%s index=%s", source, index)
                raise ValueError(f"Invalid ledger record {index} in {source}: {error}") from error
            operations.append(operation)
        return operations

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    def add(self, operation: Operation) -> int:
        self._operations = (*self._operations, operation)
        self.store.save(self._operations)
        LOGGER.info("operation added: ticker=%s date=%s", operation.ticker, period_key(operation.date))
        return len(self._operations) - 1

    def delete(self, index: int) -> Operation:
        size = len(self._operations)
        if index < 0 or index >= size:
            raise OperationNotFound(index, size)
        removed = self._operations[index]
        self._operations = self._operations[:index] + self._operations[index + 1 :]
        self.store.save(self._operations)
        LOGGER.info("operation deleted: index=%s ticker=%s", index, removed.ticker)
        return removed

    def derive(self) -> list[DerivedAssetState]:
        return derive(self._operations, self.catalog)
