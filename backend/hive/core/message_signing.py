"""Message Signing: tamper-evidence for stored swarm messages.

Invariants:
    - Signature = HMAC-SHA256(secret, "<message_id>:<swarm_id>:<sender_type>:<content>")
    - content_hash = SHA-256(content); both hex-encoded
    - A signature stays valid only while id, swarm, sender type and content are unchanged
"""

import hashlib
import hmac


def canonical_message(message_id, swarm_id, sender_type: str, content: str) -> str:
    return f"{message_id}:{swarm_id}:{sender_type}:{content}"


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def sign_message(
    message_id, swarm_id, sender_type: str, content: str, secret: str,
) -> str:
    canonical = canonical_message(message_id, swarm_id, sender_type, content)
    return hmac.new(
        secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256,
    ).hexdigest()


def verify_message(
    message_id, swarm_id, sender_type: str, content: str,
    signature: str | None, stored_hash: str | None, secret: str,
) -> bool:
    if not signature:
        return False
    if stored_hash is not None and not hmac.compare_digest(
        stored_hash, content_hash(content),
    ):
        return False
    expected = sign_message(message_id, swarm_id, sender_type, content, secret)
    return hmac.compare_digest(expected, signature)
