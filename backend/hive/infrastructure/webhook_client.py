"""Webhook Client: outbound HTTP delivery for webhook events.

Invariants:
    - deliver() never raises for delivery failures; it returns a DeliveryResult
    - Disallowed URLs and oversized payloads fail without a network request
    - Response bodies are truncated to 10_000 chars before they are stored

Design Decisions:
    - httpx.AsyncClient injected: tests mount httpx.MockTransport instead of patching
"""

import logging
import time
from dataclasses import dataclass

import httpx

from hive.core.webhook_signing import (
    DISALLOWED_URL_MESSAGE, is_allowed_url, truncate_response_body,
)

logger = logging.getLogger(__name__)

USER_AGENT = "HiveMind-Webhook/1.0"


@dataclass
class DeliveryResult:
    success: bool
    status_code: int | None
    response_body: str | None
    error_message: str | None
    duration_ms: int


class WebhookClient:
    """POSTs JSON payloads to subscriber URLs."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        max_payload_bytes: int = 1024 * 1024,
        response_body_limit: int = 10_000,
    ):
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self.max_payload_bytes = max_payload_bytes
        self.response_body_limit = response_body_limit

    async def aclose(self) -> None:
        await self._http.aclose()

    async def deliver(self, url: str, body: str, headers: dict[str, str]) -> DeliveryResult:
        start = time.perf_counter()

        def elapsed() -> int:
            return int((time.perf_counter() - start) * 1000)

        if not is_allowed_url(url):
            return DeliveryResult(False, None, None, DISALLOWED_URL_MESSAGE, elapsed())
        if len(body.encode("utf-8")) > self.max_payload_bytes:
            return DeliveryResult(
                False, None, None, "Payload exceeds maximum size limit", elapsed(),
            )

        request_headers = {
            "Content-Type": "application/json", "User-Agent": USER_AGENT, **headers,
        }
        try:
            response = await self._http.post(url, content=body, headers=request_headers)
        except httpx.TimeoutException:
            return DeliveryResult(False, None, None, "Request timeout", elapsed())
        except httpx.HTTPError as e:
            logger.warning(f"Webhook delivery to {url} failed: {e}")
            return DeliveryResult(False, None, None, str(e) or type(e).__name__, elapsed())

        success = response.is_success
        return DeliveryResult(
            success=success,
            status_code=response.status_code,
            response_body=truncate_response_body(response.text, self.response_body_limit),
            error_message=(
                None if success
                else f"HTTP {response.status_code}: {response.reason_phrase}"
            ),
            duration_ms=elapsed(),
        )
