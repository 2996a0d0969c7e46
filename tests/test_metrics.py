from datetime import date
from decimal import Decimal

from tracker_server.portfolio.catalog import DEFAULT_CATALOG
from tracker_server.portfolio.ledger import derive
from tracker_server.portfolio.metrics import (
    PRICE_PLACES,
    average_price,
    build_asset_metrics,
    dynamic_weight,
    gain_loss_percent,
    marked_value,
    period_time_series,
    portfolio_totals,
    truncate,
)
from tracker_server.portfolio.models import Operation


def _op(day: date, ticker: str, amount: str, qty: str) -> Operation:
    return Operation(date=day, ticker=ticker, amount=Decimal(amount), qty=Decimal(qty))


def _state(operations: list[Operation], ticker: str):
    return next(state for state in derive(operations, DEFAULT_CATALOG) if state.ticker == ticker)


def test_single_operation_scenario() -> None:
    state = _state([_op(date(2024, 1, 5), "AMZND", "100", "10")], "AMZND")
    metrics = build_asset_metrics([state], {"AMZND": Decimal("12")})[0]
    assert metrics.cumulative_invested == Decimal("100")
    assert metrics.cumulative_qty == Decimal("10")
    assert str(metrics.average_price) == "10.000"
    assert metrics.marked_value == Decimal("120")
    assert str(metrics.gain_loss_percent) == "20.00"
    assert str(metrics.dynamic_weight_percent) == "100.00"


def test_average_price_truncates() -> None:
    assert str(average_price(_state([_op(date(2024, 1, 5), "MSFTD", "10", "3")], "MSFTD"))) == "3.333"
    assert str(average_price(_state([_op(date(2024, 1, 5), "MSFTD", "2", "3")], "MSFTD"))) == "0.666"


def test_average_price_without_quantity_is_zero() -> None:
    state = _state([_op(date(2024, 1, 5), "MSFTD", "10", "0")], "MSFTD")
    assert average_price(state) == Decimal("0")


def test_negative_gain_truncates_toward_zero() -> None:
    state = _state([_op(date(2024, 1, 5), "JPMD", "3", "1")], "JPMD")
    assert str(gain_loss_percent(state, Decimal("1"))) == "-66.66"


def test_gain_without_price_is_absent() -> None:
    state = _state([_op(date(2024, 1, 5), "JPMD", "3", "1")], "JPMD")
    assert gain_loss_percent(state, None) is None
    assert marked_value(state, None) is None


def test_fixed_unit_assets_are_carried_at_cost() -> None:
    state = _state([_op(date(2024, 1, 5), "GD30D", "1000", "1")], "GD30D")
    assert str(gain_loss_percent(state, Decimal("70000"))) == "0.00"
    assert marked_value(state, Decimal("70000")) == Decimal("1000")
    fund = _state([_op(date(2024, 1, 5), "Ciclo Nova II Clase A", "500", "1")], "Ciclo Nova II Clase A")
    assert str(gain_loss_percent(fund, None)) == "0.00"
    assert marked_value(fund, None) == Decimal("500")


def test_dynamic_weight() -> None:
    assert str(dynamic_weight(Decimal("0"), Decimal("0"))) == "0.00"
    assert str(dynamic_weight(Decimal("100"), Decimal("300"))) == "33.33"
    assert str(dynamic_weight(Decimal("200"), Decimal("300"))) == "66.66"


def test_portfolio_totals_report_unpriced_assets() -> None:
    operations = [
        _op(date(2024, 1, 5), "AMZND", "100", "10"),
        _op(date(2024, 1, 6), "MSFTD", "50", "5"),
        _op(date(2024, 1, 7), "GD30D", "1000", "1"),
    ]
    states = derive(operations, DEFAULT_CATALOG)
    metrics = build_asset_metrics(states, {"AMZND": Decimal("12"), "MSFTD": None})
    totals = portfolio_totals(metrics)
    assert totals.total_invested == Decimal("1150")
    assert totals.total_marked_value == Decimal("1120")
    assert totals.total_gain_loss == Decimal("-30")
    assert str(totals.total_gain_loss_percent) == "-2.60"
    assert totals.unpriced_tickers == ["MSFTD"]


def test_period_time_series_accumulates_to_each_period() -> None:
    operations = [
        _op(date(2024, 1, 5), "AMZND", "100", "10"),
        _op(date(2024, 2, 5), "MSFTD", "50", "5"),
        _op(date(2024, 2, 5), "GD30D", "1000", "1"),
    ]
    points = period_time_series(derive(operations, DEFAULT_CATALOG), {"AMZND": Decimal("12"), "MSFTD": Decimal("10")})
    assert [point.period for point in points] == ["2024-01-05", "2024-02-05"]
    assert points[0].invested == Decimal("100")
    assert points[0].marked_value == Decimal("120")
    assert points[1].invested == Decimal("1150")
    assert points[1].marked_value == Decimal("1170")
    assert points[1].gain_loss == Decimal("20")


def test_period_time_series_empty_ledger() -> None:
    assert period_time_series(derive([], DEFAULT_CATALOG), {}) == []


def test_truncate_keeps_every_integer_digit() -> None:
    assert str(truncate(Decimal("1E+33"), PRICE_PLACES)) == "1" + "0" * 33 + ".000"
    assert str(truncate(Decimal("-2.5559"), PRICE_PLACES)) == "-2.555"


def test_extreme_scale_position_still_reports_metrics() -> None:
    state = _state([_op(date(2024, 1, 1), "AMZND", "1000", "1e-30")], "AMZND")
    metrics = build_asset_metrics([state], {"AMZND": Decimal("12")})[0]
    assert metrics.average_price == Decimal("1E+33")
    assert str(metrics.gain_loss_percent) == "-99.99"
    assert portfolio_totals([metrics]).total_invested == Decimal("1000")
