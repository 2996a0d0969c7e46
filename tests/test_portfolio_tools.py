import asyncio
import json
from decimal import Decimal
from types import SimpleNamespace

from mcp.server.fastmcp import FastMCP

from tracker_server.cache.price_cache import PriceCache
from tracker_server.portfolio.catalog import DEFAULT_CATALOG
from tracker_server.portfolio.ledger import Ledger
from tracker_server.portfolio.portfolio_service import PortfolioService
from tracker_server.portfolio.storage import MemoryLedgerStore
from tracker_server.providers.models import InstrumentQuote
from tracker_server.runtime.monitoring import ServerMetrics
from tracker_server.tools.portfolio_tools import register_portfolio_tools


class _MockData912Client:
    def __init__(self) -> None:
        self.lookups: list[str] = []

    def find_instrument(self, ticker: str) -> InstrumentQuote | None:
        self.lookups.append(ticker)
        if ticker.upper() == "AMZND":
            return InstrumentQuote(symbol="AMZND", close=Decimal("1500.5"), bid=Decimal("1499"))
        return None


async def _fetch_prices(tickers: list[str]) -> dict[str, Decimal | None]:
    return {ticker: (Decimal("12") if ticker == "AMZND" else None) for ticker in tickers}


def _build() -> tuple[FastMCP, SimpleNamespace]:
    mcp = FastMCP(name="test-portfolio-tools")
    portfolio = PortfolioService(Ledger(MemoryLedgerStore(), DEFAULT_CATALOG), PriceCache(_fetch_prices))
    services = SimpleNamespace(portfolio=portfolio, data912=_MockData912Client(), metrics=ServerMetrics())
    register_portfolio_tools(mcp, services)
    return mcp, services


def _call_tool_result(mcp: FastMCP, name: str, arguments: dict[str, object]) -> dict:
    _, metadata = asyncio.run(mcp.call_tool(name, arguments))
    return json.loads(str(metadata.get("result") or ""))


def test_register_portfolio_tools() -> None:
    mcp, _ = _build()
    tools = asyncio.run(mcp.list_tools())
    assert {tool.name for tool in tools} == {
        "add_operation",
        "delete_operation",
        "list_operations",
        "list_assets",
        "portfolio_snapshot",
        "portfolio_chart",
        "refresh_prices",
        "set_manual_price",
        "get_instrument_quote",
    }


def test_add_list_and_delete_operations() -> None:
    mcp, services = _build()
    added = _call_tool_result(mcp, "add_operation", {"ticker": "amznd", "date": "05/01/2024", "amount": "100", "qty": "10"})
    assert added["ok"] is True
    assert added["data"] == {
        "index": 0,
        "operation": {"date": "05/01/2024", "ticker": "AMZND", "amount": "100", "qty": "10"},
    }

    listed = _call_tool_result(mcp, "list_operations", {})
    assert listed["data"] == [{"index": 0, "date": "05/01/2024", "ticker": "AMZND", "amount": "100", "qty": "10"}]

    deleted = _call_tool_result(mcp, "delete_operation", {"index": 0})
    assert deleted["ok"] is True
    assert services.portfolio.list_operations() == []

    missing = _call_tool_result(mcp, "delete_operation", {"index": 3})
    assert missing["ok"] is False
    assert missing["error"]["type"] == "not_found"
    assert services.metrics.error_requests == 1


def test_add_operation_validation_errors() -> None:
    mcp, services = _build()
    result = _call_tool_result(mcp, "add_operation", {"ticker": "AAPL", "date": "2024-01-05", "amount": "-5"})
    assert result["ok"] is False
    assert result["error"]["type"] == "validation_error"
    fields = {error["field"] for error in result["error"]["errors"]}
    assert fields == {"ticker", "date", "amount"}
    assert services.portfolio.list_operations() == []


def test_snapshot_and_chart_payloads_use_decimal_strings() -> None:
    mcp, _ = _build()
    _call_tool_result(mcp, "add_operation", {"ticker": "AMZND", "date": "05/01/2024", "amount": "100", "qty": "10"})

    snapshot = _call_tool_result(mcp, "portfolio_snapshot", {})
    amazon = next(item for item in snapshot["data"]["assets"] if item["ticker"] == "AMZND")
    assert amazon["average_price"] == "10.000"
    assert amazon["marked_value"] == "120"
    assert amazon["gain_loss_percent"] == "20.00"
    assert snapshot["data"]["totals"]["total_invested"] == "100"
    assert snapshot["data"]["prices"]["status"] == "ready"
    assert "warning" not in snapshot

    chart = _call_tool_result(mcp, "portfolio_chart", {})
    assert chart["data"] == [{"period": "2024-01-05", "invested": "100", "marked_value": "120", "gain_loss": "20"}]


def test_manual_price_and_refresh() -> None:
    mcp, _ = _build()
    _call_tool_result(mcp, "add_operation", {"ticker": "MSFTD", "date": "05/01/2024", "amount": "100", "qty": "10"})
    manual = _call_tool_result(mcp, "set_manual_price", {"ticker": "msftd", "price": "11"})
    assert manual["data"] == {"ticker": "MSFTD", "price": "11"}

    rejected = _call_tool_result(mcp, "set_manual_price", {"ticker": "MSFTD", "price": "0"})
    assert rejected["error"]["type"] == "validation_error"

    refreshed = _call_tool_result(mcp, "refresh_prices", {})
    assert refreshed["data"]["status"] == "ready"

    snapshot = _call_tool_result(mcp, "portfolio_snapshot", {})
    msft = next(item for item in snapshot["data"]["assets"] if item["ticker"] == "MSFTD")
    assert msft["price"] == "11"
    assert msft["price_source"] == "manual"


def test_list_assets() -> None:
    mcp, _ = _build()
    assets = _call_tool_result(mcp, "list_assets", {})["data"]
    assert len(assets) == len(DEFAULT_CATALOG)
    fund = next(item for item in assets if item["ticker"] == "Ciclo Nova II Clase A")
    assert fund["instrument_category"] == "fci"
    assert fund["api_available"] is False


def test_get_instrument_quote() -> None:
    mcp, services = _build()
    quote = _call_tool_result(mcp, "get_instrument_quote", {"ticker": "AMZND"})
    assert quote["data"]["price"] == "1500.5"
    assert quote["data"]["quote"]["bid"] == "1499"

    unavailable = _call_tool_result(mcp, "get_instrument_quote", {"ticker": "Ciclo Nova II Clase A"})
    assert unavailable["error"]["type"] == "not_available"

    missing = _call_tool_result(mcp, "get_instrument_quote", {"ticker": "MSFTD"})
    assert missing["error"]["type"] == "not_found"
    assert services.data912.lookups == ["AMZND", "MSFTD"]


def test_snapshot_warns_when_prices_are_stale_and_idle() -> None:
    now = [1000.0]
    mcp = FastMCP(name="test-stale-prices")
    portfolio = PortfolioService(
        Ledger(MemoryLedgerStore(), DEFAULT_CATALOG),
        PriceCache(_fetch_prices, freshness_seconds=300, clock=lambda: now[0]),
    )
    register_portfolio_tools(mcp, SimpleNamespace(portfolio=portfolio, data912=_MockData912Client(), metrics=None))
    _call_tool_result(mcp, "add_operation", {"ticker": "AMZND", "date": "05/01/2024", "amount": "100", "qty": "10"})
    assert "warning" not in _call_tool_result(mcp, "portfolio_snapshot", {})

    now[0] += 301
    snapshot = _call_tool_result(mcp, "portfolio_snapshot", {})
    assert snapshot["data"]["prices"]["status"] == "stale"
    assert "refresh_prices" in snapshot["warning"]
    amazon = next(item for item in snapshot["data"]["assets"] if item["ticker"] == "AMZND")
    assert amazon["marked_value"] == "120"
