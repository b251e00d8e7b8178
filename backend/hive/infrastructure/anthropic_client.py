"""Anthropic streaming client with retry and HIVE error mapping.

Invariants:
    - 429 waits for Retry-After when present, otherwise jittered exponential backoff
    - 5xx, 529 and connection failures retry up to max_retries; other 4xx fail at once
    - Every SDK failure surfaces as ProviderAPIError (core/errors.py)
    - Retries happen only before the first text delta; once output has streamed, a
      failure is raised instead of restarting the completion

Design Decisions:
    - Constructed per request with the key resolved for that agent's owner
    - SDK retries are off (max_retries=0); this class owns the backoff schedule
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)

from hive.core.errors import ErrorContext, ProviderAPIError

logger = logging.getLogger(__name__)

# OverloadedError (HTTP 529) is not re-exported by every SDK version; match on status.
_OVERLOADED_STATUS = 529
_PROVIDER = "anthropic"


def _is_overloaded(e: APIError) -> bool:
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


class ResilientAnthropicClient:
    """AsyncAnthropic plus a retry loop around messages.stream()."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 60_000,
        timeout_seconds: int = 120,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def aclose(self) -> None:
        await self.client.close()

    async def stream_text(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list[dict],
        temperature: float = 0.7,
        context: ErrorContext | None = None,
    ) -> AsyncIterator[str]:
        """Yield text deltas, retrying transient failures that happen before output."""
        for attempt in range(self.max_retries + 1):
            yielded = False
            try:
                async with self.client.messages.stream(
                    model=model, max_tokens=max_tokens, system=system,
                    messages=messages, temperature=temperature,
                ) as stream:
                    async for text in stream.text_stream:
                        yielded = True
                        yield text
                    final = await stream.get_final_message()
                self._log_success(final, attempt)
                return

            except RateLimitError as e:
                if yielded:
                    raise self._map_error(e, context)
                await self._handle_rate_limit(e, attempt, context)

            except (APIConnectionError, InternalServerError) as e:
                if yielded or isinstance(e, APITimeoutError):
                    raise self._map_error(e, context)
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if _is_overloaded(e) and not yielded:
                    await self._handle_transient_error(e, attempt, context)
                    continue
                raise self._map_error(e, context)

    def _map_error(self, e: Exception, context: ErrorContext | None) -> ProviderAPIError:
        if isinstance(e, RateLimitError):
            return ProviderAPIError(
                f"RATE_LIMIT: {e}", "RATE_LIMIT", _PROVIDER,
                retry_after=self._extract_retry_after(e), context=context,
            )
        if isinstance(e, (AuthenticationError, PermissionDeniedError)):
            return ProviderAPIError(
                "Invalid Anthropic API key", "AUTH_ERROR", _PROVIDER, context=context,
            )
        if isinstance(e, APITimeoutError):
            return ProviderAPIError(
                "Anthropic API timeout", "TIMEOUT", _PROVIDER, context=context,
            )
        message = str(e)
        kind = "QUOTA_EXCEEDED" if "quota" in message.lower() else "PROVIDER_ERROR"
        return ProviderAPIError(
            f"Anthropic API error: {message}", kind, _PROVIDER, context=context,
        )

    def _log_success(self, response, attempt: int) -> None:
        usage = getattr(response, "usage", None)
        logger.info(
            "Anthropic stream completed",
            extra={
                "attempt": attempt + 1,
                "input_tokens": getattr(usage, "input_tokens", None),
                "output_tokens": getattr(usage, "output_tokens", None),
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        if attempt >= self.max_retries:
            raise self._map_error(e, context)
        retry_after = self._extract_retry_after(e)
        delay_ms = retry_after * 1000 if retry_after else self._backoff(attempt)
        logger.warning(
            f"Rate limit hit, retry after {delay_ms}ms (attempt {attempt + 1})",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay_ms / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        if attempt >= self.max_retries:
            raise ProviderAPIError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "PROVIDER_ERROR", _PROVIDER, context=context,
            )
        delay_ms = self._backoff(attempt)
        logger.warning(
            f"Transient error, retry after {delay_ms}ms: {e}",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay_ms / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter (milliseconds)."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: APIStatusError) -> int | None:
        """Retry-After header in seconds, when the provider sent one."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        value = response.headers.get("retry-after")
        try:
            return int(value) if value else None
        except ValueError:
            return None
