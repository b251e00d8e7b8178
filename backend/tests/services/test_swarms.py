"""Swarm routes: CRUD, slugs, visibility, membership, messages and context blocks."""

from uuid import uuid4

from sqlalchemy import select

from hive.models.message import Message


async def _agent(client, auth, name="Scout", framework="openai"):
    res = await client.post(
        "/api/v1/agents", json={"name": name, "framework": framework}, headers=auth,
    )
    return res.json()["id"]


async def _swarm(client, auth, **overrides):
    body = {"name": "Launch Team", "task": "Plan the launch", **overrides}
    return await client.post("/api/v1/swarms", json=body, headers=auth)


async def test_create_swarm_with_agents(client, auth):
    agent_id = await _agent(client, auth)
    res = await _swarm(client, auth, agent_ids=[agent_id, agent_id])
    assert res.status_code == 201
    data = res.json()
    assert data["slug"] == "launch-team"
    assert data["status"] == "active"
    assert data["visibility"] == "private"
    assert [a["id"] for a in data["agents"]] == [agent_id]


async def test_slugs_are_unique_per_owner(client, auth, other_auth):
    first = await _swarm(client, auth)
    second = await _swarm(client, auth)
    foreign = await _swarm(client, other_auth)
    assert first.json()["slug"] == "launch-team"
    assert second.json()["slug"] == "launch-team-1"
    assert foreign.json()["slug"] == "launch-team"


async def test_create_with_foreign_agent_is_404(client, auth, other_auth):
    foreign_agent = await _agent(client, other_auth)
    res = await _swarm(client, auth, agent_ids=[foreign_agent])
    assert res.status_code == 404


async def test_list_filters_by_status(client, auth):
    active = (await _swarm(client, auth, name="One")).json()["id"]
    paused = (await _swarm(client, auth, name="Two")).json()["id"]
    await client.patch(f"/api/v1/swarms/{paused}", json={"status": "paused"}, headers=auth)

    res = await client.get("/api/v1/swarms", params={"status": "active"}, headers=auth)
    assert [s["id"] for s in res.json()] == [active]
    res = await client.get("/api/v1/swarms", params={"status": "bogus"}, headers=auth)
    assert res.status_code == 400


async def test_rename_updates_slug(client, auth):
    swarm_id = (await _swarm(client, auth)).json()["id"]
    res = await client.patch(
        f"/api/v1/swarms/{swarm_id}", json={"name": "Growth Squad"}, headers=auth,
    )
    assert res.json()["slug"] == "growth-squad"


async def test_private_swarm_hidden_public_swarm_readable(client, auth, other_auth):
    private_id = (await _swarm(client, auth, name="Secret")).json()["id"]
    public_id = (await _swarm(client, auth, name="Open", visibility="public")).json()["id"]

    assert (await client.get(f"/api/v1/swarms/{private_id}", headers=other_auth)).status_code == 404
    assert (await client.get(f"/api/v1/swarms/{public_id}", headers=other_auth)).status_code == 200
    res = await client.patch(
        f"/api/v1/swarms/{public_id}", json={"name": "Mine"}, headers=other_auth,
    )
    assert res.status_code == 404


async def test_membership_add_duplicate_remove(client, auth):
    agent_id = await _agent(client, auth)
    swarm_id = (await _swarm(client, auth)).json()["id"]

    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/agents", json={"agent_id": agent_id}, headers=auth,
    )
    assert res.status_code == 201
    assert [a["id"] for a in res.json()["agents"]] == [agent_id]

    dup = await client.post(
        f"/api/v1/swarms/{swarm_id}/agents", json={"agent_id": agent_id}, headers=auth,
    )
    assert dup.status_code == 409

    removed = await client.delete(f"/api/v1/swarms/{swarm_id}/agents/{agent_id}", headers=auth)
    assert removed.status_code == 200
    assert removed.json()["agents"] == []

    missing = await client.delete(f"/api/v1/swarms/{swarm_id}/agents/{uuid4()}", headers=auth)
    assert missing.status_code == 404


async def test_post_and_list_messages(client, auth):
    swarm_id = (await _swarm(client, auth)).json()["id"]
    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/messages",
        json={"content": "  hi <script>x</script>team  ", "metadata": {"source": "web"}},
        headers=auth,
    )
    assert res.status_code == 201
    message = res.json()
    assert message["content"] == "hi team"
    assert message["sender_type"] == "human"
    assert message["metadata"] == {"source": "web"}
    assert message["is_signed"] is True

    await client.post(
        f"/api/v1/swarms/{swarm_id}/messages", json={"content": "second"}, headers=auth,
    )
    listed = await client.get(f"/api/v1/swarms/{swarm_id}/messages", headers=auth)
    assert [m["content"] for m in listed.json()] == ["hi team", "second"]

    page = await client.get(
        f"/api/v1/swarms/{swarm_id}/messages", params={"limit": 1, "offset": 1}, headers=auth,
    )
    assert [m["content"] for m in page.json()] == ["second"]


async def test_empty_message_rejected(client, auth):
    swarm_id = (await _swarm(client, auth)).json()["id"]
    res = await client.post(
        f"/api/v1/swarms/{swarm_id}/messages", json={"content": "<script></script>"}, headers=auth,
    )
    assert res.status_code == 400


async def test_context_blocks_owner_only_and_shared_filter(client, auth, other_auth):
    swarm_id = (await _swarm(client, auth, visibility="public")).json()["id"]
    shared = await client.post(
        f"/api/v1/swarms/{swarm_id}/context",
        json={"name": "Brief", "content": "Budget is 10k", "priority": "high"},
        headers=auth,
    )
    assert shared.status_code == 201
    await client.post(
        f"/api/v1/swarms/{swarm_id}/context",
        json={"name": "Notes", "content": "private notes", "shared": False},
        headers=auth,
    )

    owner_view = await client.get(f"/api/v1/swarms/{swarm_id}/context", headers=auth)
    assert {b["name"] for b in owner_view.json()} == {"Brief", "Notes"}
    visitor_view = await client.get(f"/api/v1/swarms/{swarm_id}/context", headers=other_auth)
    assert [b["name"] for b in visitor_view.json()] == ["Brief"]

    forbidden = await client.post(
        f"/api/v1/swarms/{swarm_id}/context",
        json={"name": "X", "content": "y"},
        headers=other_auth,
    )
    assert forbidden.status_code == 404

    block_id = shared.json()["id"]
    assert (await client.delete(
        f"/api/v1/swarms/{swarm_id}/context/{block_id}", headers=auth,
    )).status_code == 204


async def test_delete_swarm_removes_messages(client, auth, test_db):
    swarm_id = (await _swarm(client, auth)).json()["id"]
    await client.post(f"/api/v1/swarms/{swarm_id}/messages", json={"content": "hi"}, headers=auth)

    assert (await client.delete(f"/api/v1/swarms/{swarm_id}", headers=auth)).status_code == 204
    assert (await client.get(f"/api/v1/swarms/{swarm_id}", headers=auth)).status_code == 404
    result = await test_db.execute(select(Message))
    assert result.scalars().all() == []
