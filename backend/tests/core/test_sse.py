"""Server-Sent Events: provider stream normalization across frameworks."""

import json

from hive.core.sse import (
    SSE_DONE, SSELineDecoder, extract_content, format_sse, iter_client_events,
    normalize_provider_stream,
)


async def _collect(framework, chunks):
    async def source():
        for chunk in chunks:
            yield chunk

    return [text async for text in normalize_provider_stream(framework, source())]


def test_format_sse_keeps_unicode():
    assert format_sse({"content": "olá"}) == 'data: {"content": "olá"}\n\n'


def test_decoder_buffers_partial_lines():
    decoder = SSELineDecoder()
    assert decoder.feed("data: {\"a\"") == []
    assert decoder.feed(": 1}\r\ndata: x") == ['data: {"a": 1}']
    assert decoder.flush() == "data: x"


def test_extract_content_per_framework():
    anthropic = {"type": "content_block_delta", "delta": {"text": "hi"}}
    assert extract_content("anthropic", anthropic) == ("hi", False)
    assert extract_content("anthropic", {"type": "message_stop"}) == ("", True)
    google = {"candidates": [{"content": {"parts": [{"text": "yo"}]}, "finishReason": "STOP"}]}
    assert extract_content("google", google) == ("yo", True)
    openai = {"choices": [{"delta": {"content": "hey"}}]}
    assert extract_content("openai", openai) == ("hey", False)


async def test_openai_stream_split_across_chunks():
    event = json.dumps({"choices": [{"delta": {"content": "Hello"}}]})
    chunks = [f"data: {event[:10]}", f"{event[10:]}\n\n", ": keepalive\n", "data: [DONE]\n\n"]
    assert await _collect("openai", chunks) == ["Hello"]


async def test_anthropic_stream_stops_at_message_stop():
    lines = [
        "event: content_block_delta\n",
        'data: {"type":"content_block_delta","delta":{"text":"A"}}\n',
        "data: not-json\n",
        'data: {"type":"message_stop"}\n',
        'data: {"type":"content_block_delta","delta":{"text":"ignored"}}\n',
    ]
    assert await _collect("anthropic", lines) == ["A"]


async def test_google_final_payload_without_newline_is_flushed():
    final = json.dumps({"candidates": [{"content": {"parts": [{"text": "end"}]}}]})
    assert await _collect("google", [f"data: {final}"]) == ["end"]


def test_iter_client_events_stops_at_done():
    lines = [
        format_sse({"content": "a"}).strip(),
        format_sse({"error": {"code": "X"}}).strip(),
        SSE_DONE.strip(),
        format_sse({"content": "late"}).strip(),
    ]
    assert iter_client_events(lines) == ["a"]
