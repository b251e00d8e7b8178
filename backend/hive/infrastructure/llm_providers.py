"""Provider Gateway: one streaming interface over Anthropic, OpenAI and Google.

Invariants:
    - stream_completion yields plain content strings (never provider JSON)
    - Non-2xx responses raise ProviderAPIError before any content is yielded:
      429 -> RATE_LIMIT, 401 (and 403 for Google) -> AUTH_ERROR,
      body mentioning "quota" -> QUOTA_EXCEEDED, anything else -> PROVIDER_ERROR
    - Network failures and timeouts map to PROVIDER_ERROR / TIMEOUT

Design Decisions:
    - Anthropic goes through the SDK (ResilientAnthropicClient); OpenAI and Google through
      httpx streaming, parsed by core/sse.py
    - httpx.AsyncClient is injected so tests can mount httpx.MockTransport
    - Anthropic SDK clients are cached per API key in a bounded MemoryCache (one hour
      TTL). Evicted clients are not closed here (an in-flight stream may hold one);
      aclose() closes whatever is still cached
"""

import logging
from collections.abc import AsyncIterator, Callable

import httpx

from hive.core.errors import ErrorContext, ProviderAPIError
from hive.core.sse import normalize_provider_stream
from hive.core.ttl_cache import CacheTTL, MemoryCache
from hive.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
GOOGLE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

ANTHROPIC_CLIENT_CACHE_SIZE = 64

_PROVIDER_NAMES = {"openai": "OpenAI", "anthropic": "Anthropic", "google": "Google"}


def classify_http_error(framework: str, status_code: int, body: str) -> ProviderAPIError:
    name = _PROVIDER_NAMES.get(framework, framework)
    if status_code == 429:
        return ProviderAPIError(f"RATE_LIMIT: {body}", "RATE_LIMIT", framework)
    auth_statuses = (401, 403) if framework == "google" else (401,)
    if status_code in auth_statuses:
        return ProviderAPIError(f"Invalid {name} API key", "AUTH_ERROR", framework)
    if "quota" in body.lower():
        return ProviderAPIError(
            f"{name} API error: {status_code} - {body}", "QUOTA_EXCEEDED", framework,
        )
    return ProviderAPIError(
        f"{name} API error: {status_code} - {body}", "PROVIDER_ERROR", framework,
    )


class ProviderGateway:
    """Dispatches streaming chat completions to the agent's framework."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        anthropic_factory: Callable[[str], ResilientAnthropicClient] | None = None,
        timeout_seconds: float = 120,
        anthropic_clients: MemoryCache | None = None,
    ):
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._anthropic_factory = anthropic_factory or (
            lambda key: ResilientAnthropicClient(
                api_key=key, timeout_seconds=int(timeout_seconds),
            )
        )
        if anthropic_clients is None:
            anthropic_clients = MemoryCache(max_size=ANTHROPIC_CLIENT_CACHE_SIZE)
        self._anthropic_clients = anthropic_clients

    async def aclose(self) -> None:
        for client in self._anthropic_clients.drain():
            await client.aclose()
        await self._http.aclose()

    async def stream_completion(
        self,
        *,
        framework: str,
        api_key: str,
        model: str,
        system: str,
        messages: list[dict],
        user_message: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        context: ErrorContext | None = None,
    ) -> AsyncIterator[str]:
        if framework == "anthropic":
            turns = [
                {"role": "assistant" if m["role"] == "assistant" else "user",
                 "content": m["content"]}
                for m in messages if m["role"] != "system"
            ]
            turns.append({"role": "user", "content": user_message})
            client = self._anthropic_client(api_key)
            async for text in client.stream_text(
                model=model, max_tokens=max_tokens, system=system,
                messages=turns, temperature=temperature, context=context,
            ):
                yield text
            return

        if framework == "google":
            url, headers, body = self._google_request(
                api_key, model, system, messages, user_message, max_tokens, temperature,
            )
        else:
            framework = "openai"
            url, headers, body = self._openai_request(
                api_key, model, system, messages, user_message, max_tokens, temperature,
            )

        async for content in self._stream_http(framework, url, headers, body):
            yield content

    def _anthropic_client(self, api_key: str) -> ResilientAnthropicClient:
        client = self._anthropic_clients.get(api_key)
        if client is None:
            client = self._anthropic_factory(api_key)
            self._anthropic_clients.set(api_key, client, CacheTTL.HOUR)
        return client

    async def _stream_http(
        self, framework: str, url: str, headers: dict, body: dict,
    ) -> AsyncIterator[str]:
        try:
            async with self._http.stream("POST", url, headers=headers, json=body) as response:
                if response.status_code >= 400:
                    raw = (await response.aread()).decode("utf-8", errors="replace")
                    raise classify_http_error(framework, response.status_code, raw)
                async for content in normalize_provider_stream(
                    framework, response.aiter_text(),
                ):
                    yield content
        except httpx.TimeoutException as e:
            raise ProviderAPIError(f"{framework} request timed out: {e}", "TIMEOUT", framework)
        except httpx.HTTPError as e:
            raise ProviderAPIError(f"{framework} request failed: {e}", "PROVIDER_ERROR", framework)

    @staticmethod
    def _openai_request(
        api_key, model, system, messages, user_message, max_tokens, temperature,
    ) -> tuple[str, dict, dict]:
        return OPENAI_URL, {"Authorization": f"Bearer {api_key}"}, {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                *messages,
                {"role": "user", "content": user_message},
            ],
            "stream": True,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    @staticmethod
    def _google_request(
        api_key, model, system, messages, user_message, max_tokens, temperature,
    ) -> tuple[str, dict, dict]:
        contents = [
            {"role": "model" if m["role"] == "assistant" else "user",
             "parts": [{"text": m["content"]}]}
            for m in messages
        ]
        contents.append({"role": "user", "parts": [{"text": user_message}]})
        url = f"{GOOGLE_URL}/{model}:streamGenerateContent?alt=sse"
        return url, {"x-goog-api-key": api_key}, {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": system}]},
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
        }
