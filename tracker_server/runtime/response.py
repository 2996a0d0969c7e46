"""Response shaping helpers for MCP tools and resources."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from tracker_server.portfolio.models import DATE_FORMAT, ValidationIssue


def _convert_data(data: Any) -> Any:
    if is_dataclass(data) and not isinstance(data, type):
        return _convert_data(asdict(data))
    if isinstance(data, Decimal):
        return str(data)
    if isinstance(data, date):
        return data.strftime(DATE_FORMAT)
    if isinstance(data, (list, tuple)):
        return [_convert_data(item) for item in data]
    if isinstance(data, dict):
        return {key: _convert_data(value) for key, value in data.items()}
    return data


def to_payload(data: Any) -> Any:
    """Dataclasses to dicts, Decimals to strings, dates to DD/MM/YYYY."""
    return _convert_data(data)


def success_response(data: Any, warning: str | None = None) -> str:
    payload: dict[str, Any] = {"ok": True, "data": _convert_data(data), "timestamp": int(time.time())}
    if warning:
        payload["warning"] = warning
    return json.dumps(payload, ensure_ascii=True)


def validation_error_response(issues: list[ValidationIssue]) -> str:
    return json.dumps(
        {
            "ok": False,
            "error": {
                "type": "validation_error",
                "errors": [{"field": issue.field, "message": issue.message, "code": issue.code} for issue in issues],
            },
        },
        ensure_ascii=True,
    )


def error_response(code: str, message: str) -> str:
    return json.dumps(
        {
            "ok": False,
            "error": {"type": code, "message": message},
            "timestamp": int(time.time()),
        },
        ensure_ascii=True,
    )
