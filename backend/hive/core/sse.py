"""Server-Sent Events: provider stream parsing and normalized re-emission.

Invariants:
    - The normalized stream is only `data: {"content": ...}` events, optional
      `data: {"error": ...}` events, and a single terminal `data: [DONE]`
    - Partial lines are buffered across chunks (SSELineDecoder); a chunk boundary never
      splits an event
    - Malformed JSON, blank lines, comments (":") and `event:` lines are skipped
    - Google's finishing payload emits its text before the stream ends

Design Decisions:
    - Provider differences isolated in extract_content(): the gateway only moves bytes
    - Async generators end-to-end so FastAPI's StreamingResponse can consume them
"""

import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable

SSE_DONE = "data: [DONE]\n\n"
_DATA_PREFIX = "data: "


def format_sse(data: dict) -> str:
    return f"{_DATA_PREFIX}{json.dumps(data, ensure_ascii=False)}\n\n"


class SSELineDecoder:
    """Incremental line splitter: feed() text chunks, get back complete lines."""

    def __init__(self):
        self._buffer = ""

    def feed(self, chunk: str) -> list[str]:
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> str:
        remainder, self._buffer = self._buffer, ""
        return remainder.rstrip("\r")


def extract_content(framework: str, payload: dict) -> tuple[str, bool]:
    """Pull the text delta out of one provider event. Returns (content, finished)."""
    if framework == "anthropic":
        kind = payload.get("type")
        if kind == "content_block_delta":
            return (payload.get("delta") or {}).get("text") or "", False
        return "", kind == "message_stop"

    if framework == "google":
        candidates = payload.get("candidates") or [{}]
        candidate = candidates[0] or {}
        parts = (candidate.get("content") or {}).get("parts") or [{}]
        text = (parts[0] or {}).get("text") or ""
        return text, candidate.get("finishReason") == "STOP"

    choices = payload.get("choices") or [{}]
    delta = (choices[0] or {}).get("delta") or {}
    return delta.get("content") or "", False


def _parse_data_line(line: str) -> str | None:
    """Return the data field of an SSE line, or None for lines to skip."""
    if not line.strip() or line.startswith(":") or line.startswith("event:"):
        return None
    if not line.startswith(_DATA_PREFIX):
        return None
    return line[len(_DATA_PREFIX):]


async def normalize_provider_stream(
    framework: str, chunks: AsyncIterable[str],
) -> AsyncIterator[str]:
    """Yield content strings from a raw provider SSE stream until it finishes."""
    decoder = SSELineDecoder()

    async for chunk in chunks:
        for line in decoder.feed(chunk):
            result = _handle_line(framework, line)
            if result is None:
                continue
            content, finished = result
            if content:
                yield content
            if finished:
                return

    tail = decoder.flush()
    if tail:
        result = _handle_line(framework, tail)
        if result is not None and result[0]:
            yield result[0]


def _handle_line(framework: str, line: str) -> tuple[str, bool] | None:
    data = _parse_data_line(line)
    if data is None:
        return None
    if data == "[DONE]":
        return "", True
    try:
        payload = json.loads(data)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return extract_content(framework, payload)


def iter_client_events(lines: Iterable[str]) -> list[str]:
    """Consumer side of the normalized stream: content chunks up to [DONE]."""
    chunks = []
    for line in lines:
        data = _parse_data_line(line)
        if data is None:
            continue
        if data == "[DONE]":
            break
        try:
            payload = json.loads(data)
        except ValueError:
            continue
        if isinstance(payload, dict) and payload.get("content"):
            chunks.append(payload["content"])
    return chunks
