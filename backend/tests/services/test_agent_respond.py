"""Streamed agent replies: SSE framing, persistence, provider keys and error paths."""

import json
from uuid import UUID

from sqlalchemy import select

from hive.core.errors import ProviderAPIError
from hive.models.ai_usage import AIUsage
from hive.models.message import Message
from hive.models.webhook import WebhookEvent


async def _swarm_with_agent(client, auth, framework="anthropic", name="Nova Prime"):
    agent = await client.post(
        "/api/v1/agents",
        json={"name": name, "framework": framework, "system_prompt": "Be brief."},
        headers=auth,
    )
    agent_id = agent.json()["id"]
    swarm = await client.post(
        "/api/v1/swarms",
        json={"name": "Respond Team", "task": "Answer questions", "agent_ids": [agent_id]},
        headers=auth,
    )
    return swarm.json()["id"], agent_id


def _events(body: str) -> list[str]:
    return [line[len("data: "):] for line in body.split("\n") if line.startswith("data: ")]


async def _messages(db, swarm_id):
    result = await db.execute(
        select(Message).where(Message.swarm_id == UUID(swarm_id)).order_by(Message.created_at),
    )
    return list(result.scalars().all())


async def test_stream_relays_chunks_and_persists_reply(client, auth, fake_gateway, test_db):
    swarm_id, agent_id = await _swarm_with_agent(client, auth)

    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond", json={"message": "What is the plan?"}, headers=auth,
    )
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    assert res.headers["x-agent-id"] == agent_id
    assert res.headers["x-agent-name"] == "Nova%20Prime"

    events = _events(res.text)
    assert events[-1] == "[DONE]"
    chunks = [json.loads(e)["content"] for e in events[:-1]]
    assert "".join(chunks) == "Hello from the swarm"

    call = fake_gateway.calls[0]
    assert call["framework"] == "anthropic"
    assert call["user_message"] == "What is the plan?"
    assert "Be brief." in call["system"]

    messages = await _messages(test_db, swarm_id)
    assert [m.sender_type for m in messages] == ["human", "agent"]
    assert messages[1].content == "Hello from the swarm"
    assert str(messages[1].sender_id) == agent_id
    assert messages[1].signature is not None

    usage = (await test_db.execute(select(AIUsage))).scalars().all()
    assert len(usage) == 1
    assert usage[0].status == "success"
    assert usage[0].provider == "anthropic"
    assert usage[0].output_tokens > 0


async def test_history_sent_on_second_turn(client, auth, fake_gateway):
    swarm_id, _ = await _swarm_with_agent(client, auth)
    await client.post(f"/api/v1/swarms/{swarm_id}/respond", json={"message": "one"}, headers=auth)
    await client.post(f"/api/v1/swarms/{swarm_id}/respond", json={"message": "two"}, headers=auth)

    second = fake_gateway.calls[1]
    contents = [turn["content"] for turn in second["messages"]]
    assert any("one" in c for c in contents)
    assert any("Hello from the swarm" in c for c in contents)


async def test_missing_api_key_is_400_and_stores_nothing(client, auth, fake_gateway, test_db):
    swarm_id, _ = await _swarm_with_agent(client, auth, framework="openai")

    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond", json={"message": "hello"}, headers=auth,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "MISSING_API_KEY"
    assert fake_gateway.calls == []
    assert await _messages(test_db, swarm_id) == []


async def test_user_integration_key_is_used(client, auth, fake_gateway):
    swarm_id, _ = await _swarm_with_agent(client, auth, framework="openai")
    await client.put(
        "/api/v1/integrations/openai", json={"api_key": "sk-test-12345678"}, headers=auth,
    )

    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond", json={"message": "hello"}, headers=auth,
    )
    assert res.status_code == 200
    assert fake_gateway.calls[0]["api_key"] == "sk-test-12345678"


async def test_error_before_first_chunk_is_http_error(client, auth, fake_gateway, test_db):
    swarm_id, _ = await _swarm_with_agent(client, auth)
    fake_gateway.error = ProviderAPIError("upstream down", "PROVIDER_ERROR", "anthropic")
    fake_gateway.error_after = 0

    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond", json={"message": "hello"}, headers=auth,
    )
    assert res.status_code == 502
    assert res.json()["error"]["code"] == "PROVIDER_ERROR"

    usage = (await test_db.execute(select(AIUsage))).scalars().all()
    assert [u.status for u in usage] == ["error"]
    assert usage[0].error_message == "upstream down"
    events = (await test_db.execute(
        select(WebhookEvent).where(WebhookEvent.event_type == "agent.error"),
    )).scalars().all()
    assert len(events) == 1


async def test_mid_stream_error_becomes_sse_event(client, auth, fake_gateway, test_db):
    swarm_id, _ = await _swarm_with_agent(client, auth)
    fake_gateway.error = ProviderAPIError("connection reset", "RATE_LIMIT", "anthropic")
    fake_gateway.error_after = 2

    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond", json={"message": "hello"}, headers=auth,
    )
    assert res.status_code == 200
    events = _events(res.text)
    assert events[-1] == "[DONE]"
    payloads = [json.loads(e) for e in events[:-1]]
    assert [p["content"] for p in payloads if "content" in p] == ["Hello", " from"]
    error = payloads[-1]["error"]
    assert error["code"] == "RATE_LIMIT"
    assert error["recoverable"] is False

    messages = await _messages(test_db, swarm_id)
    assert [m.sender_type for m in messages] == ["human"]


async def test_empty_swarm_rejected(client, auth):
    swarm = await client.post("/api/v1/swarms", json={"name": "Empty"}, headers=auth)
    res = await client.post(
        f"/api/v1/swarms/{swarm.json()['id']}/respond", json={"message": "hi"}, headers=auth,
    )
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "No agents in swarm"


async def test_unknown_target_agent_rejected(client, auth):
    swarm_id, _ = await _swarm_with_agent(client, auth)
    other = await client.post(
        "/api/v1/agents", json={"name": "Loner", "framework": "anthropic"}, headers=auth,
    )
    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond",
        json={"message": "hi", "agent_id": other.json()["id"]},
        headers=auth,
    )
    assert res.status_code == 400


async def test_private_swarm_hidden_from_others(client, auth, other_auth):
    swarm_id, _ = await _swarm_with_agent(client, auth)
    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/respond", json={"message": "hi"}, headers=other_auth,
    )
    assert res.status_code == 404
