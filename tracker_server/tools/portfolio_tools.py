"""Portfolio-domain MCP tools."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from tracker_server.portfolio.models import OperationNotFound, ValidationError
from tracker_server.providers.data912 import best_price
from tracker_server.providers.tickers import get_ticker_category, is_ticker_api_available
from tracker_server.runtime.monitoring import log_tool_event
from tracker_server.runtime.response import error_response, success_response, validation_error_response

if TYPE_CHECKING:
    from tracker_server.tools.registry import ToolServices


def _record(services: ToolServices, tool: str, started: float, success: bool, warning: str | None = None) -> None:
    latency_ms = (time.perf_counter() - started) * 1000.0
    log_tool_event(tool=tool, latency_ms=latency_ms, success=success, warning=warning)
    metrics = getattr(services, "metrics", None)
    if metrics is not None:
        metrics.record(latency_ms=latency_ms, success=success)


def _price_warning(status: str, error: str | None) -> str | None:
    if status == "error":
        return f"prices unavailable: {error}" if error else "prices unavailable"
    if status == "stale-revalidating":
        return "prices are older than the freshness window; a refresh is running"
    if status == "stale":
        return "prices are older than the freshness window; call refresh_prices to update"
    return None


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Record an investment operation. Date uses DD/MM/YYYY; amount and qty are decimals.")
    async def add_operation(ticker: str, date: str, amount: str | float, qty: str | float | None = None) -> str:
        started = time.perf_counter()
        try:
            index, operation = services.portfolio.add_operation(ticker, date, amount, qty)
        except ValidationError as error:
            _record(services, "add_operation", started, success=False)
            return validation_error_response(error.issues)
        _record(services, "add_operation", started, success=True)
        return success_response({"index": index, "operation": operation})

    @mcp.tool(description="Delete the operation at the given ledger position (0-based).")
    async def delete_operation(index: int) -> str:
        started = time.perf_counter()
        try:
            operation = services.portfolio.delete_operation(index)
        except OperationNotFound as error:
            _record(services, "delete_operation", started, success=False)
            return error_response("not_found", str(error))
        _record(services, "delete_operation", started, success=True)
        return success_response({"index": index, "operation": operation})

    @mcp.tool(description="List every recorded operation in ledger order.")
    async def list_operations() -> str:
        started = time.perf_counter()
        operations = services.portfolio.list_operations()
        _record(services, "list_operations", started, success=True)
        return success_response([{"index": idx, **operation.to_record()} for idx, operation in enumerate(operations)])

    @mcp.tool(description="List the asset catalog with declared weights and market data categories.")
    async def list_assets() -> str:
        started = time.perf_counter()
        rows = [
            {
                "id": asset.id,
                "category": asset.category,
                "ticker": asset.ticker,
                "declared_weight": asset.declared_weight,
                "instrument_category": get_ticker_category(asset.ticker),
                "api_available": is_ticker_api_available(asset.ticker),
            }
            for asset in services.portfolio.catalog
        ]
        _record(services, "list_assets", started, success=True)
        return success_response(rows)

    @mcp.tool(description="Per-asset metrics and portfolio totals marked with the cached prices.")
    async def portfolio_snapshot() -> str:
        started = time.perf_counter()
        snapshot = await services.portfolio.snapshot()
        warning = _price_warning(snapshot.prices.status, snapshot.prices.error)
        _record(services, "portfolio_snapshot", started, success=True, warning=warning)
        return success_response(snapshot, warning=warning)

    @mcp.tool(description="Invested, marked value and gain/loss to date for every period with operations.")
    async def portfolio_chart() -> str:
        started = time.perf_counter()
        points = await services.portfolio.chart()
        _record(services, "portfolio_chart", started, success=True)
        return success_response(points)

    @mcp.tool(description="Force a market price refresh for the catalog tickers.")
    async def refresh_prices() -> str:
        started = time.perf_counter()
        status = await services.portfolio.refresh_prices()
        warning = _price_warning(status.status, status.error)
        _record(services, "refresh_prices", started, success=status.status != "error", warning=warning)
        return success_response(status, warning=warning)

    @mcp.tool(description="Set a fallback price used while the market has no quote for the ticker. Omit price to clear.")
    async def set_manual_price(ticker: str, price: str | float | None = None) -> str:
        started = time.perf_counter()
        try:
            value = services.portfolio.set_manual_price(ticker, price)
        except ValidationError as error:
            _record(services, "set_manual_price", started, success=False)
            return validation_error_response(error.issues)
        _record(services, "set_manual_price", started, success=True)
        return success_response({"ticker": ticker.strip().upper(), "price": value})

    @mcp.tool(description="Live data912 quote for a single ticker.")
    async def get_instrument_quote(ticker: str) -> str:
        started = time.perf_counter()
        if not is_ticker_api_available(ticker):
            _record(services, "get_instrument_quote", started, success=False)
            return error_response("not_available", f"No market data source for ticker: {ticker}")
        quote = await asyncio.to_thread(services.data912.find_instrument, ticker)
        if quote is None:
            _record(services, "get_instrument_quote", started, success=False)
            return error_response("not_found", f"No quote returned for ticker: {ticker}")
        _record(services, "get_instrument_quote", started, success=True)
        return success_response({"quote": quote, "price": best_price(quote)})
