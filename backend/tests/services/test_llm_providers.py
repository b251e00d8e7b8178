"""Provider gateway: HTTP streaming, error classification, Anthropic client cache."""

import httpx
import pytest

from hive.core.errors import ProviderAPIError
from hive.core.ttl_cache import MemoryCache
from hive.infrastructure.llm_providers import ProviderGateway, classify_http_error

OPENAI_SSE = (
    'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\n'
    'data: {"choices": [{"delta": {"content": "lo"}}]}\n\n'
    "data: [DONE]\n\n"
)


class FakeAnthropicClient:
    def __init__(self, api_key: str):
        self.api_key = api_key
        self.closed = False

    async def stream_text(self, **kwargs):
        yield f"reply via {self.api_key[-4:]}"

    async def aclose(self):
        self.closed = True


def _gateway(handler=None, **kwargs) -> tuple[ProviderGateway, list[FakeAnthropicClient]]:
    created: list[FakeAnthropicClient] = []

    def factory(key):
        created.append(FakeAnthropicClient(key))
        return created[-1]

    transport = httpx.MockTransport(handler or (lambda request: httpx.Response(200)))
    gateway = ProviderGateway(
        http_client=httpx.AsyncClient(transport=transport), anthropic_factory=factory, **kwargs,
    )
    return gateway, created


async def _collect(gateway, **overrides) -> list[str]:
    params = dict(
        framework="openai", api_key="sk-test-0001", model="gpt-4o-mini",
        system="Be brief.", messages=[], user_message="hi",
    )
    params.update(overrides)
    return [chunk async for chunk in gateway.stream_completion(**params)]


def test_classify_http_error_kinds():
    assert classify_http_error("openai", 429, "slow down").code == "RATE_LIMIT"
    assert classify_http_error("openai", 401, "").code == "AUTH_ERROR"
    assert classify_http_error("openai", 403, "").code == "PROVIDER_ERROR"
    assert classify_http_error("google", 403, "").code == "AUTH_ERROR"
    assert classify_http_error("google", 400, "Quota exhausted").code == "QUOTA_EXCEEDED"


async def test_openai_stream_yields_content():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, text=OPENAI_SSE)

    gateway, _ = _gateway(handler)
    assert await _collect(gateway) == ["Hel", "lo"]
    assert requests[0].headers["Authorization"] == "Bearer sk-test-0001"
    await gateway.aclose()


async def test_http_error_raised_before_content():
    gateway, _ = _gateway(lambda request: httpx.Response(401, text="bad key"))
    with pytest.raises(ProviderAPIError) as exc_info:
        await _collect(gateway)
    assert exc_info.value.code == "AUTH_ERROR"
    await gateway.aclose()


async def test_anthropic_clients_reused_per_key_and_closed_on_shutdown():
    gateway, created = _gateway()
    assert await _collect(gateway, framework="anthropic", api_key="sk-ant-aaaa") == [
        "reply via aaaa",
    ]
    await _collect(gateway, framework="anthropic", api_key="sk-ant-aaaa")
    await _collect(gateway, framework="anthropic", api_key="sk-ant-bbbb")
    assert [c.api_key for c in created] == ["sk-ant-aaaa", "sk-ant-bbbb"]

    await gateway.aclose()
    assert all(c.closed for c in created)


async def test_anthropic_client_cache_is_bounded():
    cache = MemoryCache(max_size=2)
    gateway, created = _gateway(anthropic_clients=cache)
    for key in ("sk-ant-0001", "sk-ant-0002", "sk-ant-0003"):
        await _collect(gateway, framework="anthropic", api_key=key)
    assert len(cache) == 2

    await _collect(gateway, framework="anthropic", api_key="sk-ant-0001")
    assert len(created) == 4
    await gateway.aclose()
    assert len(cache) == 0
