"""Portfolio resource definitions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from tracker_server.runtime.response import to_payload

if TYPE_CHECKING:
    from tracker_server.tools.registry import ToolServices

CURRENT_PORTFOLIO_URI = "portfolio://current"
OPERATIONS_URI = "portfolio://operations"


def register_portfolio_resources(mcp: FastMCP, services: "ToolServices") -> None:
    @mcp.resource(
        CURRENT_PORTFOLIO_URI,
        name="current-portfolio",
        title="Current Portfolio Snapshot",
        description="Per-asset metrics and totals marked with whatever prices are cached. Never triggers a fetch.",
        mime_type="application/json",
    )
    def current_portfolio_resource() -> str:
        snapshot = services.portfolio.current_resource_snapshot()
        return json.dumps(to_payload(snapshot), ensure_ascii=True)

    @mcp.resource(
        OPERATIONS_URI,
        name="portfolio-operations",
        title="Recorded Operations",
        description="The operation ledger in insertion order.",
        mime_type="application/json",
    )
    def operations_resource() -> str:
        operations = services.portfolio.list_operations()
        return json.dumps(
            {"uri": OPERATIONS_URI, "operations": [operation.to_record() for operation in operations]},
            ensure_ascii=True,
        )
