"""Webhook Signing: SSRF guard, both signature formats and retry backoff."""

from datetime import timedelta

import pytest

from hive.core.webhook_signing import (
    RETRY_MAX_DELAY, is_allowed_url, retry_delay, sign_payload, sign_timestamped,
    truncate_response_body, verify_signature,
)

SECRET = "whsec_0123456789abcdef"


@pytest.mark.parametrize("url", [
    "http://localhost:8000/hook",
    "http://127.0.0.1/hook",
    "http://10.1.2.3/",
    "http://172.16.0.1/",
    "http://192.168.1.1/",
    "http://169.254.169.254/latest/meta-data",
    "http://metadata.google.internal/",
    "http://printer.local/",
    "ftp://example.com/",
])
def test_blocked_destinations(url):
    assert not is_allowed_url(url)


def test_public_https_destination_allowed():
    assert is_allowed_url("https://hooks.example.com/hive")


def test_plain_signature_verifies():
    body = '{"event":"swarm.created"}'
    signature = sign_payload(body, SECRET)
    assert signature.startswith("sha256=")
    assert verify_signature(body, SECRET, signature)
    assert not verify_signature(body + " ", SECRET, signature)


def test_timestamped_signature_verifies():
    body = '{"message":"test"}'
    signature = sign_timestamped(body, SECRET, 1_700_000_000)
    assert signature.startswith("t=1700000000,v1=")
    assert verify_signature(body, SECRET, signature)
    assert not verify_signature(body, "other-secret-value", signature)
    assert not verify_signature(body, SECRET, "t=abc,v1=00")
    assert not verify_signature(body, SECRET, "garbage")


def test_retry_delay_doubles_and_caps():
    assert retry_delay(1) == timedelta(minutes=1)
    assert retry_delay(2) == timedelta(minutes=2)
    assert retry_delay(4) == timedelta(minutes=8)
    assert retry_delay(20) == RETRY_MAX_DELAY


def test_truncate_response_body():
    assert truncate_response_body(None) is None
    assert truncate_response_body("short") == "short"
    assert truncate_response_body("x" * 20, limit=5) == "xxxxx... (truncated)"
