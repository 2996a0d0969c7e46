"""Operation input validation."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Sequence

from tracker_server.portfolio.catalog import find_asset
from tracker_server.portfolio.models import DATE_FORMAT, AssetDefinition, Operation, ValidationError, ValidationIssue
from tracker_server.providers.tickers import is_fixed_unit

DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")
MAX_VALUE = Decimal("1000000000")
MAX_DECIMAL_PLACES = 8


def _parse_date(value: object, issues: list[ValidationIssue]) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not DATE_PATTERN.match(text):
        issues.append(ValidationIssue(field="date", code="invalid_date_format", message="Date must use DD/MM/YYYY."))
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        issues.append(ValidationIssue(field="date", code="invalid_date", message=f"Not a calendar date: {text}"))
        return None


def parse_decimal(field: str, value: object, issues: list[ValidationIssue]) -> Decimal | None:
    if isinstance(value, bool):
        issues.append(ValidationIssue(field=field, code="not_a_number", message=f"{field} must be a number."))
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        issues.append(ValidationIssue(field=field, code="not_a_number", message=f"{field} must be a number."))
        return None
    if not number.is_finite():
        issues.append(ValidationIssue(field=field, code="not_a_number", message=f"{field} must be a finite number."))
        return None
    if number < 0:
        issues.append(ValidationIssue(field=field, code="negative_value", message=f"{field} cannot be negative."))
        return None
    if number > MAX_VALUE:
        issues.append(ValidationIssue(field=field, code="value_too_large", message=f"{field} is too large."))
        return None
    if number.normalize().as_tuple().exponent < -MAX_DECIMAL_PLACES:
        issues.append(
            ValidationIssue(
                field=field,
                code="too_many_decimals",
                message=f"{field} accepts at most {MAX_DECIMAL_PLACES} decimal places.",
            )
        )
        return None
    return number


def validate_operation(
    catalog: Sequence[AssetDefinition],
    ticker: object,
    date_value: object,
    amount: object,
    qty: object | None = None,
) -> Operation:
    """Build an Operation from raw input or raise ValidationError with every issue found."""
    issues: list[ValidationIssue] = []

    ticker_text = str(ticker or "").strip()
    asset = find_asset(catalog, ticker_text) if ticker_text else None
    if not ticker_text:
        issues.append(ValidationIssue(field="ticker", code="missing_ticker", message="Ticker is required."))
    elif asset is None:
        issues.append(ValidationIssue(field="ticker", code="unknown_ticker", message=f"Ticker not in catalog: {ticker}"))

    parsed_date = _parse_date(date_value, issues)
    parsed_amount = parse_decimal("amount", amount, issues)
    if qty is None or (isinstance(qty, str) and not qty.strip()):
        parsed_qty: Decimal | None = Decimal("1") if asset is not None and is_fixed_unit(asset.ticker) else Decimal("0")
    else:
        parsed_qty = parse_decimal("qty", qty, issues)

    if parsed_amount is not None and parsed_qty is not None and parsed_amount == 0 and parsed_qty == 0:
        issues.append(
            ValidationIssue(field="amount", code="empty_operation", message="Either amount or qty must be greater than 0.")
        )

    if issues:
        raise ValidationError(issues)
    return Operation(
        date=parsed_date,  # type: ignore[arg-type]
        ticker=asset.ticker,  # type: ignore[union-attr]
        amount=parsed_amount,  # type: ignore[arg-type]
        qty=parsed_qty,  # type: ignore[arg-type]
    )
