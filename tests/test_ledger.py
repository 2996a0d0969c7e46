from datetime import date
from decimal import Decimal

import pytest

from tracker_server.portfolio.catalog import DEFAULT_CATALOG
from tracker_server.portfolio.ledger import Ledger, derive, period_key
from tracker_server.portfolio.models import Operation, OperationNotFound, PeriodBucket
from tracker_server.portfolio.storage import MemoryLedgerStore


def _op(day: date, ticker: str, amount: str, qty: str) -> Operation:
    return Operation(date=day, ticker=ticker, amount=Decimal(amount), qty=Decimal(qty))


OPERATIONS = [
    _op(date(2024, 1, 5), "AMZND", "100", "10"),
    _op(date(2024, 1, 5), "amznd", "50.5", "4"),
    _op(date(2024, 2, 1), "MSFTD", "200", "3"),
    _op(date(2024, 3, 9), "GD30D", "1000", "1"),
]


def _state(states, ticker: str):
    return next(state for state in states if state.ticker == ticker)


def test_period_key_is_zero_padded_year_first() -> None:
    assert period_key(date(2024, 3, 7)) == "2024-03-07"


def test_derive_is_idempotent_and_order_insensitive() -> None:
    first = derive(OPERATIONS, DEFAULT_CATALOG)
    assert derive(OPERATIONS, DEFAULT_CATALOG) == first
    assert derive(list(reversed(OPERATIONS)), DEFAULT_CATALOG) == first


def test_same_period_operations_merge_into_one_bucket() -> None:
    amazon = _state(derive(OPERATIONS, DEFAULT_CATALOG), "AMZND")
    assert amazon.periods == {"2024-01-05": PeriodBucket(amount=Decimal("150.5"), qty=Decimal("14"))}


def test_assets_without_operations_have_no_buckets() -> None:
    states = derive(OPERATIONS, DEFAULT_CATALOG)
    assert len(states) == len(DEFAULT_CATALOG)
    assert _state(states, "JNJD").periods == {}


def test_unknown_tickers_do_not_contribute() -> None:
    states = derive([_op(date(2024, 1, 1), "AAPL", "10", "1")], DEFAULT_CATALOG)
    assert all(not state.periods for state in states)


def test_derived_buckets_are_non_negative() -> None:
    for state in derive(OPERATIONS, DEFAULT_CATALOG):
        for bucket in state.periods.values():
            assert bucket.amount >= 0
            assert bucket.qty >= 0


def test_delete_is_inverse_of_add() -> None:
    ledger = Ledger(MemoryLedgerStore(), DEFAULT_CATALOG)
    for operation in OPERATIONS:
        ledger.add(operation)
    before = derive([OPERATIONS[0], OPERATIONS[1], OPERATIONS[3]], DEFAULT_CATALOG)

    removed = ledger.delete(2)

    assert removed == OPERATIONS[2]
    assert ledger.derive() == before


def test_ledger_persists_every_change() -> None:
    store = MemoryLedgerStore()
    ledger = Ledger(store, DEFAULT_CATALOG)
    assert ledger.add(OPERATIONS[0]) == 0
    assert ledger.add(OPERATIONS[2]) == 1
    assert store.load() == [OPERATIONS[0], OPERATIONS[2]]
    ledger.delete(0)
    assert store.load() == [OPERATIONS[2]]
    assert Ledger(store, DEFAULT_CATALOG).operations == (OPERATIONS[2],)


def test_delete_out_of_range() -> None:
    ledger = Ledger(MemoryLedgerStore([OPERATIONS[0]]), DEFAULT_CATALOG)
    with pytest.raises(OperationNotFound):
        ledger.delete(1)
    with pytest.raises(IndexError):
        ledger.delete(-1)
    assert len(ledger.operations) == 1
