"""Webhook Signing: destination URL policy and HMAC signatures for outbound webhooks.

Invariants:
    - Only http/https destinations with public hostnames are allowed (SSRF guard)
    - sign_payload -> "sha256=<hex>" over the raw body
    - sign_timestamped -> "t=<ts>,v1=<hex>" over "<ts>.<body>"
    - Verification uses hmac.compare_digest (constant time)
    - Retry delay doubles per attempt and is capped at RETRY_MAX_DELAY
"""

import hashlib
import hmac
import re
from datetime import timedelta
from urllib.parse import urlsplit

DISALLOWED_URL_MESSAGE = (
    "Invalid or disallowed URL. Private IPs and metadata endpoints are blocked."
)

_BLOCKED_HOSTS = [
    re.compile(r"^localhost$", re.IGNORECASE),
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^169\.254\."),
    re.compile(r"^0\."),
    re.compile(r"^::1$"),
    re.compile(r"^fc00:", re.IGNORECASE),
    re.compile(r"^fe80:", re.IGNORECASE),
    re.compile(r"\.local$", re.IGNORECASE),
    re.compile(r"\.internal$", re.IGNORECASE),
    re.compile(r"^metadata\.", re.IGNORECASE),
    re.compile(r"^metadata\.google\.internal$", re.IGNORECASE),
]

RETRY_BASE_DELAY = timedelta(minutes=1)
RETRY_MAX_DELAY = timedelta(hours=1)


def is_allowed_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
        hostname = (parts.hostname or "").lower()
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not hostname:
        return False
    return not any(p.search(hostname) for p in _BLOCKED_HOSTS)


def _hmac_hex(message: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256,
    ).hexdigest()


def sign_payload(payload: str, secret: str) -> str:
    return f"sha256={_hmac_hex(payload, secret)}"


def sign_timestamped(payload: str, secret: str, timestamp: int) -> str:
    return f"t={timestamp},v1={_hmac_hex(f'{timestamp}.{payload}', secret)}"


def verify_signature(payload: str, secret: str, signature: str) -> bool:
    """Accept either signature format produced by this module."""
    if signature.startswith("sha256="):
        expected = sign_payload(payload, secret)
        return hmac.compare_digest(expected, signature)

    fields = dict(
        part.split("=", 1) for part in signature.split(",") if "=" in part
    )
    if "t" not in fields or "v1" not in fields:
        return False
    try:
        timestamp = int(fields["t"])
    except ValueError:
        return False
    expected = sign_timestamped(payload, secret, timestamp)
    return hmac.compare_digest(expected, signature)


def retry_delay(attempt: int) -> timedelta:
    """Delay before retrying after the given (1-based) failed attempt."""
    delay = RETRY_BASE_DELAY * (2 ** max(0, attempt - 1))
    return min(delay, RETRY_MAX_DELAY)


def truncate_response_body(body: str | None, limit: int = 10_000) -> str | None:
    if body is None or len(body) <= limit:
        return body
    return body[:limit] + "... (truncated)"
