"""Swarm presence: join, heartbeat, viewer partitions, leave and stale pruning."""

from datetime import timedelta
from uuid import UUID

from hive.core.domain_types import utcnow
from hive.jobs import prune_presence_once
from hive.services.presence_service import PresenceService


async def _public_swarm(client, auth):
    res = await client.post(
        "/api/v1/swarms", json={"name": "Watch Party", "visibility": "public"}, headers=auth,
    )
    return res.json()["id"]


async def test_join_heartbeat_and_partition(client, auth, other_auth, user, other_user):
    swarm_id = await _public_swarm(client, auth)
    base = f"/api/v1/swarms/{swarm_id}/presence"

    joined = await client.post(base, headers=auth)
    assert joined.status_code == 201
    assert joined.json() == {"success": True, "heartbeat_interval_seconds": 30}
    await client.post(base, headers=other_auth)
    await client.put(base, json={"is_active": False}, headers=other_auth)

    res = await client.get(base, headers=auth)
    data = res.json()
    assert data["total"] == 2
    assert [v["user_id"] for v in data["other_viewers"]] == [str(other_user.id)]
    assert data["active"] == []
    assert [v["full_name"] for v in data["inactive"]] == ["Grace"]


async def test_heartbeat_without_join_creates_row(client, auth):
    swarm_id = await _public_swarm(client, auth)
    res = await client.put(f"/api/v1/swarms/{swarm_id}/presence", headers=auth)
    assert res.json() == {"success": True}
    listed = await client.get(f"/api/v1/swarms/{swarm_id}/presence", headers=auth)
    assert listed.json()["total"] == 1


async def test_leave_removes_viewer(client, auth):
    swarm_id = await _public_swarm(client, auth)
    base = f"/api/v1/swarms/{swarm_id}/presence"
    await client.post(base, headers=auth)
    assert (await client.delete(base, headers=auth)).status_code == 204
    assert (await client.get(base, headers=auth)).json()["total"] == 0


async def test_private_swarm_presence_hidden(client, auth, other_auth):
    res = await client.post("/api/v1/swarms", json={"name": "Closed"}, headers=auth)
    swarm_id = res.json()["id"]
    assert (await client.post(
        f"/api/v1/swarms/{swarm_id}/presence", headers=other_auth,
    )).status_code == 404


async def test_stale_viewers_hidden_and_pruned(client, auth, user, test_db, test_session_factory):
    swarm_id = await _public_swarm(client, auth)
    service = PresenceService(test_db)
    old = utcnow() - timedelta(minutes=5)
    await service.join(UUID(swarm_id), user.id, now=old)

    assert await service.list_viewers(UUID(swarm_id)) == []
    assert len(await service.list_viewers(UUID(swarm_id), now=old)) == 1

    assert await prune_presence_once(test_session_factory) == 1
    assert await prune_presence_once(test_session_factory) == 0
