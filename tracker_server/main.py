"""Application entrypoint for the investment tracker MCP server."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from dataclasses import asdict

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from tracker_server.config.settings import get_settings
from tracker_server.resources.portfolio_resources import register_portfolio_resources
from tracker_server.runtime.monitoring import configure_logging
from tracker_server.runtime.response import to_payload
from tracker_server.tools.registry import build_tool_services, register_all_tools

LOGGER = logging.getLogger(__name__)


def resolve_transport_mode(configured_mode: str) -> str:
    if os.getenv("RENDER") and configured_mode == "stdio":
        return "http"
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("RENDER") or os.getenv("PORT"):
        return "http"
    return "stdio"


def resolve_http_transport(configured_transport: str) -> str:
    if configured_transport in {"sse", "streamable"}:
        return configured_transport
    return "sse"


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    mcp = FastMCP(
        name=settings.app_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.mcp_path,
    )
    services = build_tool_services(settings)
    register_all_tools(mcp, services)
    register_portfolio_resources(mcp, services)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        price_status = services.portfolio.prices.snapshot()
        health = services.metrics.snapshot(
            {"status": price_status.status, "age_seconds": price_status.age_seconds, "error": price_status.error}
        )
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "mode": resolved_mode,
                "operations": len(services.portfolio.list_operations()),
                **to_payload(asdict(health)),
            }
        )

    LOGGER.info(
        "starting server: mode=%s http_transport=%s ledger=%s auto_refresh=%s",
        resolved_mode,
        resolved_http_transport,
        settings.ledger_path,
        settings.price_auto_refresh,
    )
    stop_event = asyncio.Event()
    refresher: asyncio.Task[None] | None = None
    if settings.price_auto_refresh:
        services.portfolio.prices.select(services.portfolio.tickers)
        refresher = asyncio.create_task(services.portfolio.prices.run_auto_refresh(stop_event))
    try:
        if resolved_mode == "stdio":
            await mcp.run_stdio_async()
        elif resolved_http_transport == "streamable":
            await mcp.run_streamable_http_async()
        else:
            await mcp.run_sse_async()
    finally:
        stop_event.set()
        if refresher is not None:
            refresher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await refresher


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
