"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Runtime settings for local/stdio and HTTP-hosted modes."""

    app_name: str = "investment-tracker"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8000
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    data912_base_url: str = "https://data912.com"
    request_timeout_seconds: float = 10.0
    request_max_retries: int = 2
    request_retry_delay_seconds: float = 1.0
    price_freshness_seconds: float = 300.0
    price_auto_refresh: bool = True
    ledger_path: str = "ledger.json"
    catalog_path: str | None = None
    log_level: str = "INFO"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        data912_base_url=os.getenv("DATA912_BASE_URL", "https://data912.com"),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 10.0),
        request_max_retries=max(0, _as_int(os.getenv("REQUEST_MAX_RETRIES"), 2)),
        request_retry_delay_seconds=_as_float(os.getenv("REQUEST_RETRY_DELAY_SECONDS"), 1.0),
        price_freshness_seconds=_as_float(os.getenv("PRICE_FRESHNESS_SECONDS"), 300.0),
        price_auto_refresh=_as_bool(os.getenv("PRICE_AUTO_REFRESH"), True),
        ledger_path=os.getenv("LEDGER_PATH", "ledger.json"),
        catalog_path=os.getenv("CATALOG_PATH") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
