"""Team templates: CRUD, inheritance resolution, cycles and parameter rendering."""

BASE = "/api/v1/templates"

WRITER_SETTINGS = {
    "parameters": [
        {"key": "tone", "label": "Tone", "type": "select", "options": ["formal", "casual"],
         "default": "formal"},
        {"key": "words", "label": "Word count", "type": "number", "min": 50, "max": 500},
        {"key": "topic", "label": "Topic", "type": "text", "required": True},
    ],
}


async def _create(client, auth, **body):
    res = await client.post(BASE, json={"name": "Base Writer", **body}, headers=auth)
    assert res.status_code == 201, res.text
    return res.json()


async def test_create_and_list_visibility(client, auth, other_auth):
    private = await _create(client, auth, tags=[" Writing ", "writing", "Docs"])
    public = await _create(client, auth, name="Shared Writer", is_public=True)
    assert private["slug"] == "base-writer"
    assert private["tags"] == ["writing", "docs"]

    mine = await client.get(BASE, headers=auth)
    assert {t["id"] for t in mine.json()} == {private["id"], public["id"]}
    theirs = await client.get(BASE, headers=other_auth)
    assert [t["id"] for t in theirs.json()] == [public["id"]]

    hidden = await client.get(f"{BASE}/{private['id']}", headers=other_auth)
    assert hidden.status_code == 404
    edit = await client.patch(f"{BASE}/{public['id']}", json={"name": "Mine"}, headers=other_auth)
    assert edit.status_code == 404


async def test_unknown_override_field_rejected(client, auth):
    res = await client.post(
        BASE, json={"name": "Bad", "override_fields": ["name"]}, headers=auth,
    )
    assert res.status_code == 400


async def test_resolved_template_inherits_and_composes(client, auth):
    parent = await _create(
        client, auth, role="Writer", system_prompt="Write clearly.",
        tags=["writing"], settings={"temperature": 0.3}, framework="openai",
    )
    child = await _create(
        client, auth, name="Blog Writer", system_prompt="Focus on blogs.",
        tags=["blog"], settings={"max_tokens": 800},
        parent_template_id=parent["id"], inheritance_mode="compose",
    )

    res = await client.get(f"{BASE}/{child['id']}/resolved", headers=auth)
    resolved = res.json()
    assert resolved["name"] == "Blog Writer"
    assert resolved["role"] == "Writer"
    assert resolved["framework"] == "openai"
    assert resolved["system_prompt"] == "Write clearly.\n\n---\n\nFocus on blogs."
    assert resolved["tags"] == ["writing", "blog"]
    assert resolved["settings"] == {"temperature": 0.3, "max_tokens": 800}
    assert resolved["inheritance_chain"] == [child["id"], parent["id"]]

    children = await client.get(f"{BASE}/{parent['id']}/children", headers=auth)
    assert [c["id"] for c in children.json()] == [child["id"]]


async def test_override_fields_force_child_value(client, auth):
    parent = await _create(client, auth, role="Writer", tags=["writing"])
    child = await _create(
        client, auth, name="Blank Child", parent_template_id=parent["id"],
        override_fields=["role", "tags"],
    )
    resolved = (await client.get(f"{BASE}/{child['id']}/resolved", headers=auth)).json()
    assert resolved["role"] is None
    assert resolved["tags"] == []


async def test_cycle_rejected(client, auth):
    a = await _create(client, auth, name="A")
    b = await _create(client, auth, name="B", parent_template_id=a["id"])
    c = await _create(client, auth, name="C", parent_template_id=b["id"])

    res = await client.patch(
        f"{BASE}/{a['id']}", json={"parent_template_id": c["id"]}, headers=auth,
    )
    assert res.status_code == 409
    self_parent = await client.patch(
        f"{BASE}/{a['id']}", json={"parent_template_id": a["id"]}, headers=auth,
    )
    assert self_parent.status_code == 409


async def test_delete_detaches_children(client, auth):
    grandparent = await _create(client, auth, name="Root")
    parent = await _create(client, auth, parent_template_id=grandparent["id"])
    child = await _create(client, auth, name="Child", parent_template_id=parent["id"])
    assert (await client.delete(f"{BASE}/{parent['id']}", headers=auth)).status_code == 204
    fetched = await client.get(f"{BASE}/{child['id']}", headers=auth)
    assert fetched.json()["parent_template_id"] is None


async def test_render_substitutes_values(client, auth):
    template = await _create(
        client, auth, system_prompt="Write {{words}} words about {{topic}} in a {{tone}} tone.",
        settings=WRITER_SETTINGS,
    )
    res = await client.post(
        f"{BASE}/{template['id']}/render",
        json={"values": {"topic": "bees", "words": 120}},
        headers=auth,
    )
    assert res.status_code == 200
    data = res.json()
    assert data["system_prompt"] == "Write 120 words about bees in a formal tone."
    assert data["variables"] == ["words", "topic", "tone"]
    assert data["values"]["tone"] == "formal"


async def test_render_reports_invalid_values(client, auth):
    template = await _create(client, auth, system_prompt="{{topic}}", settings=WRITER_SETTINGS)
    res = await client.post(
        f"{BASE}/{template['id']}/render",
        json={"values": {"words": 5000, "tone": "angry"}},
        headers=auth,
    )
    assert res.status_code == 400
    details = {d["field"]: d["message"] for d in res.json()["error"]["details"]}
    assert details == {
        "topic": "Topic is required",
        "words": "Word count must be at most 500",
        "tone": "Tone must be one of: formal, casual",
    }
