"""Logging setup, structured tool telemetry and health metrics aggregation."""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import dataclass
from typing import Any

LOGGER = logging.getLogger("tracker_server.tools")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class HealthSnapshot:
    uptime_seconds: float
    total_requests: int
    error_rate: float
    avg_latency_ms: float
    price_status: dict[str, Any]


class ServerMetrics:
    def __init__(self, started_at: float | None = None) -> None:
        self.started_at = started_at or time.time()
        self._lock = threading.Lock()
        self.total_requests = 0
        self.error_requests = 0
        self.total_latency_ms = 0.0

    def record(self, latency_ms: float, success: bool) -> None:
        with self._lock:
            self.total_requests += 1
            if not success:
                self.error_requests += 1
            self.total_latency_ms += max(0.0, latency_ms)

    def snapshot(self, price_status: dict[str, Any]) -> HealthSnapshot:
        with self._lock:
            requests = self.total_requests
            avg_latency = (self.total_latency_ms / requests) if requests else 0.0
            error_rate = (self.error_requests / requests) if requests else 0.0
        return HealthSnapshot(
            uptime_seconds=max(0.0, time.time() - self.started_at),
            total_requests=requests,
            error_rate=error_rate,
            avg_latency_ms=avg_latency,
            price_status=price_status,
        )


def configure_logging(level: str = "INFO") -> None:
    # stdout carries the stdio MCP transport
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def log_tool_event(tool: str, latency_ms: float, success: bool, warning: str | None = None) -> None:
    payload = {
        "tool": tool,
        "latency_ms": round(latency_ms, 3),
        "success": success,
        "timestamp": int(time.time()),
    }
    if warning:
        payload["warning"] = warning
    LOGGER.info(json.dumps(payload, ensure_ascii=True))
