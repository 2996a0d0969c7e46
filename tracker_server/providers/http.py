"""HTTP utilities and normalized provider errors."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Literal

import requests
from requests.adapters import HTTPAdapter

from tracker_server.providers.models import ProviderName

ProviderErrorCode = Literal["RATE_LIMIT", "AUTH", "NOT_FOUND", "UPSTREAM", "NETWORK", "BAD_RESPONSE"]
LOGGER = logging.getLogger(__name__)

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=10, pool_maxsize=20))
_SESSION.mount("http://", HTTPAdapter(pool_connections=10, pool_maxsize=20))


@dataclass
class ProviderError(Exception):
    provider: ProviderName
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


class MalformedResponse(ProviderError):
    """Upstream answered, but not with a payload we can parse."""

    def __init__(self, provider: ProviderName, message: str, status: int | None = None) -> None:
        super().__init__(provider, "BAD_RESPONSE", message, status)


def map_status_to_code(status: int) -> ProviderErrorCode:
    if status in {401, 403}:
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


def fetch_json(
    url: str,
    provider: ProviderName,
    timeout_seconds: float = 10.0,
    headers: dict[str, str] | None = None,
    max_retries: int = 2,
    retry_delay_seconds: float = 1.0,
    session: requests.Session | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Fetch JSON with per-attempt timeout and a fixed delay between attempts.

    ``max_retries`` counts the attempts made after the first one. Timeouts,
    transport errors and non-2xx statuses are all retried. A body that does
    not decode as JSON raises ``MalformedResponse`` straight away since
    asking again will not change the upstream's shape.
    """
    http = session or _SESSION
    attempts = 1 + max(0, max_retries)
    last_error: ProviderError | None = None
    for attempt in range(1, attempts + 1):
        try:
            response = http.get(url, timeout=timeout_seconds, headers=headers)
        except requests.RequestException as error:
            mapped = ProviderError(provider, "NETWORK", f"Provider request failed due to network error: {error}")
            last_error = mapped
            LOGGER.warning(
                "request attempt failed: provider=%s attempt=%s/%s url=%s error=%s",
                provider,
                attempt,
                attempts,
                url,
                type(error).__name__,
            )
            if attempt < attempts:
                sleep(retry_delay_seconds)
                continue
            raise mapped from error

        if not 200 <= response.status_code < 300:
            mapped = ProviderError(
                provider,
                map_status_to_code(response.status_code),
                f"Provider request failed with status {response.status_code}.",
                response.status_code,
            )
            last_error = mapped
            LOGGER.warning(
                "request attempt failed: provider=%s attempt=%s/%s url=%s status=%s",
                provider,
                attempt,
                attempts,
                url,
                response.status_code,
            )
            if attempt < attempts:
                sleep(retry_delay_seconds)
                continue
            raise mapped

        raw = response.text or ""
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as error:
            raise MalformedResponse(
                provider,
                "Provider returned non-JSON content.",
                response.status_code,
            ) from error

    if last_error:
        raise last_error
    raise ProviderError(provider, "UPSTREAM", "Provider request failed.")
