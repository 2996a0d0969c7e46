"""Portfolio metrics over derived asset state.

Every sum and division here is Decimal. Presented ratios are truncated
toward zero (``ROUND_DOWN``), never rounded, so a cost basis or a gain is
never overstated by the display precision.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal, localcontext
from typing import Iterable, Mapping, Sequence

from tracker_server.portfolio.models import AssetMetrics, DerivedAssetState, PortfolioTotals, SeriesPoint
from tracker_server.providers.tickers import is_fixed_unit, normalize_ticker_for_api

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PRICE_PLACES = Decimal("0.001")
PERCENT_PLACES = Decimal("0.01")

_CONTEXT = Context(prec=34, rounding=ROUND_DOWN)


def truncate(value: Decimal, places: Decimal) -> Decimal:
    # precision must cover every integer digit plus the kept places
    digits = max(_CONTEXT.prec, value.adjusted() - places.as_tuple().exponent + 2)
    return value.quantize(places, context=Context(prec=digits, rounding=ROUND_DOWN))


def _ratio_percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return truncate(ZERO, PERCENT_PLACES)
    with localcontext(_CONTEXT):
        return truncate(numerator / denominator * HUNDRED, PERCENT_PLACES)


def _sum(values: Iterable[Decimal]) -> Decimal:
    with localcontext(_CONTEXT):
        return sum(values, ZERO)


def cumulative_invested(state: DerivedAssetState) -> Decimal:
    return _sum(bucket.amount for bucket in state.periods.values())


def cumulative_qty(state: DerivedAssetState) -> Decimal:
    return _sum(bucket.qty for bucket in state.periods.values())


def average_price(state: DerivedAssetState) -> Decimal:
    qty = cumulative_qty(state)
    if qty == 0:
        return truncate(ZERO, PRICE_PLACES)
    with localcontext(_CONTEXT):
        return truncate(cumulative_invested(state) / qty, PRICE_PLACES)


def dynamic_weight(cumul: Decimal, total_invested: Decimal) -> Decimal:
    """Share of deployed capital held by one asset, in percent."""
    return _ratio_percent(cumul, total_invested)


def marked_value(state: DerivedAssetState, price: Decimal | None) -> Decimal | None:
    # fixed-unit instruments are carried at cost
    if is_fixed_unit(state.ticker):
        return cumulative_invested(state)
    if price is None:
        return None
    with localcontext(_CONTEXT):
        return cumulative_qty(state) * price


def gain_loss_percent(state: DerivedAssetState, price: Decimal | None) -> Decimal | None:
    if is_fixed_unit(state.ticker):
        return truncate(ZERO, PERCENT_PLACES)
    if price is None:
        return None
    invested = cumulative_invested(state)
    with localcontext(_CONTEXT):
        return _ratio_percent(cumulative_qty(state) * price - invested, invested)


def _lookup(prices: Mapping[str, Decimal | None], ticker: str) -> Decimal | None:
    return prices.get(normalize_ticker_for_api(ticker))


def asset_metrics(
    state: DerivedAssetState,
    price: Decimal | None,
    total_invested: Decimal,
    price_source: str | None = None,
) -> AssetMetrics:
    invested = cumulative_invested(state)
    return AssetMetrics(
        asset_id=state.definition.id,
        category=state.definition.category,
        ticker=state.ticker,
        declared_weight=state.definition.declared_weight,
        cumulative_invested=invested,
        cumulative_qty=cumulative_qty(state),
        average_price=average_price(state),
        dynamic_weight_percent=dynamic_weight(invested, total_invested),
        price=price,
        price_source=price_source if price is not None else None,
        marked_value=marked_value(state, price),
        gain_loss_percent=gain_loss_percent(state, price),
    )


def build_asset_metrics(
    states: Sequence[DerivedAssetState],
    prices: Mapping[str, Decimal | None],
    sources: Mapping[str, str] | None = None,
) -> list[AssetMetrics]:
    total = _sum(cumulative_invested(state) for state in states)
    sources = sources or {}
    return [
        asset_metrics(
            state,
            _lookup(prices, state.ticker),
            total,
            sources.get(normalize_ticker_for_api(state.ticker)),
        )
        for state in states
    ]


def portfolio_totals(metrics: Sequence[AssetMetrics]) -> PortfolioTotals:
    """Aggregate over assets that hold a non-zero quantity."""
    held = [item for item in metrics if item.cumulative_qty != 0]
    invested = _sum(item.cumulative_invested for item in held)
    marked = _sum(item.marked_value for item in held if item.marked_value is not None)
    with localcontext(_CONTEXT):
        gain = marked - invested
    return PortfolioTotals(
        total_invested=invested,
        total_marked_value=marked,
        total_gain_loss=gain,
        total_gain_loss_percent=_ratio_percent(gain, invested),
        unpriced_tickers=[item.ticker for item in held if item.marked_value is None],
    )


def period_time_series(
    states: Sequence[DerivedAssetState],
    prices: Mapping[str, Decimal | None],
) -> list[SeriesPoint]:
    """Cumulative invested and marked value at every period any asset has a bucket in.

    Period keys are zero-padded and year first, so comparing them as strings
    orders them chronologically.
    """
    periods = sorted({key for state in states for key in state.periods})
    points: list[SeriesPoint] = []
    with localcontext(_CONTEXT):
        for point in periods:
            invested = ZERO
            value = ZERO
            for state in states:
                fixed = is_fixed_unit(state.ticker)
                price = _lookup(prices, state.ticker) or ZERO
                for key, bucket in state.periods.items():
                    if key > point:
                        continue
                    invested += bucket.amount
                    value += bucket.amount if fixed else bucket.qty * price
            points.append(SeriesPoint(period=point, invested=invested, marked_value=value, gain_loss=value - invested))
    return points
