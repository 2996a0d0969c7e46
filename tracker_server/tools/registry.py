"""Domain tool registry entrypoint."""

from __future__ import annotations

from dataclasses import dataclass, field

from mcp.server.fastmcp import FastMCP

from tracker_server.cache.price_cache import PriceCache
from tracker_server.config.settings import Settings
from tracker_server.portfolio.catalog import load_catalog
from tracker_server.portfolio.ledger import Ledger
from tracker_server.portfolio.portfolio_service import PortfolioService
from tracker_server.portfolio.storage import JsonFileLedgerStore
from tracker_server.providers.data912 import Data912Client
from tracker_server.runtime.monitoring import ServerMetrics
from tracker_server.services.price_service import PriceService
from tracker_server.tools.portfolio_tools import register_portfolio_tools


@dataclass
class ToolServices:
    portfolio: PortfolioService
    data912: Data912Client
    metrics: ServerMetrics = field(default_factory=ServerMetrics)


def build_tool_services(settings: Settings) -> ToolServices:
    client = Data912Client(
        base_url=settings.data912_base_url,
        timeout_seconds=settings.request_timeout_seconds,
        max_retries=settings.request_max_retries,
        retry_delay_seconds=settings.request_retry_delay_seconds,
    )
    cache = PriceCache(PriceService(client).fetch_many, freshness_seconds=settings.price_freshness_seconds)
    ledger = Ledger(JsonFileLedgerStore(settings.ledger_path), load_catalog(settings.catalog_path))
    return ToolServices(portfolio=PortfolioService(ledger, cache), data912=client)


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_portfolio_tools(mcp, services)
