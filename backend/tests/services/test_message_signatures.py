"""Message signature routes: status, verify (single and batch) and re-signing."""

from uuid import UUID, uuid4

from hive.models.message import Message

BASE = "/api/v1/messages"


async def _message(client, auth, content="signed words", visibility="private"):
    swarm = await client.post(
        "/api/v1/swarms", json={"name": "Ledger", "visibility": visibility}, headers=auth,
    )
    res = await client.post(
        f"/api/v1/swarms/{swarm.json()['id']}/messages", json={"content": content}, headers=auth,
    )
    return res.json()["id"]


async def test_new_messages_are_signed_and_valid(client, auth):
    message_id = await _message(client, auth)
    res = await client.get(f"{BASE}/status", params={"message_id": message_id}, headers=auth)
    data = res.json()
    assert data["message_id"] == message_id
    assert data["is_signed"] is True
    assert data["is_valid"] is True
    assert data["signed_at"] is not None


async def test_tampered_content_fails_verification(client, auth, test_db):
    message_id = await _message(client, auth)
    message = await test_db.get(Message, UUID(message_id))
    message.content = "forged words"
    await test_db.commit()

    res = await client.post(f"{BASE}/verify", json={"message_id": message_id}, headers=auth)
    assert res.json()["is_valid"] is False

    resigned = await client.post(f"{BASE}/sign", json={"message_id": message_id}, headers=auth)
    assert resigned.json()["success"] is True
    assert len(resigned.json()["content_hash"]) == 64
    res = await client.post(f"{BASE}/verify", json={"message_id": message_id}, headers=auth)
    assert res.json()["is_valid"] is True


async def test_unsigned_message_reports_invalid(client, auth, test_db):
    message_id = await _message(client, auth)
    message = await test_db.get(Message, UUID(message_id))
    message.signature = None
    message.content_hash = None
    message.signed_at = None
    await test_db.commit()

    res = await client.get(f"{BASE}/status", params={"message_id": message_id}, headers=auth)
    assert res.json() == {
        "message_id": message_id, "is_signed": False, "is_valid": False, "signed_at": None,
    }


async def test_batch_verify(client, auth, test_db):
    good = await _message(client, auth, "first")
    bad = await _message(client, auth, "second")
    message = await test_db.get(Message, UUID(bad))
    message.content = "changed"
    await test_db.commit()

    res = await client.post(f"{BASE}/verify", json={"message_ids": [good, bad]}, headers=auth)
    data = res.json()
    assert [r["is_valid"] for r in data["results"]] == [True, False]
    assert data["all_valid"] is False


async def test_private_messages_hidden(client, auth, other_auth):
    message_id = await _message(client, auth)
    res = await client.post(f"{BASE}/sign", json={"message_id": message_id}, headers=other_auth)
    assert res.status_code == 404
    missing = await client.get(f"{BASE}/status", params={"message_id": str(uuid4())}, headers=auth)
    assert missing.status_code == 404


async def test_verify_requires_an_id(client, auth):
    res = await client.post(f"{BASE}/verify", json={}, headers=auth)
    assert res.status_code == 400
