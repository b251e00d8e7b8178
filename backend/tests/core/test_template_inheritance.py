"""Template Inheritance: chain walking, merge rules and cycle detection."""

from dataclasses import dataclass, field
from typing import Any

from hive.core.template_inheritance import (
    PROMPT_SEPARATOR, build_templates_map, get_ancestor_chain, get_child_templates,
    resolve_template, would_create_circular_ref,
)


@dataclass
class Tpl:
    id: Any
    name: str
    parent_template_id: Any = None
    role: str | None = None
    framework: str = "anthropic"
    system_prompt: str | None = None
    description: str | None = None
    tags: list = field(default_factory=list)
    category: str = "general"
    icon: str = "Bot"
    settings: dict | None = None
    permission_level: str = "use"
    override_fields: list = field(default_factory=list)
    inheritance_mode: str = "inherit"


def _family():
    base = Tpl(
        id="base", name="Base", role="Analyst", framework="openai",
        system_prompt="Be precise.", tags=["research"], category="analysis",
        settings={"temperature": 0.2, "tone": "formal"},
    )
    child = Tpl(
        id="child", name="Child", parent_template_id="base",
        system_prompt="Focus on markets.", tags=["markets", "research"],
        settings={"tone": "casual"}, inheritance_mode="compose",
    )
    grandchild = Tpl(id="grand", name="Grand", parent_template_id="child", icon="Rocket")
    return base, child, grandchild


def test_template_without_parent_resolves_to_itself():
    base, _, _ = _family()
    resolved = resolve_template(base, build_templates_map([base]))
    assert resolved.name == "Base"
    assert resolved.framework == "openai"
    assert resolved.inheritance_chain == ["base"]


def test_child_inherits_unset_fields_and_merges():
    base, child, grand = _family()
    templates = build_templates_map([base, child, grand])
    resolved = resolve_template(child, templates)
    assert resolved.name == "Child"
    assert resolved.role == "Analyst"
    assert resolved.framework == "openai"
    assert resolved.category == "analysis"
    assert resolved.tags == ["research", "markets"]
    assert resolved.settings == {"temperature": 0.2, "tone": "casual"}
    assert resolved.system_prompt == f"Be precise.{PROMPT_SEPARATOR}Focus on markets."
    assert resolved.inheritance_chain == ["child", "base"]


def test_grandchild_folds_whole_chain():
    base, child, grand = _family()
    resolved = resolve_template(grand, build_templates_map([base, child, grand]))
    assert resolved.icon == "Rocket"
    assert resolved.role == "Analyst"
    assert resolved.system_prompt == f"Be precise.{PROMPT_SEPARATOR}Focus on markets."
    assert resolved.to_dict()["inheritance_chain"] == ["grand", "child", "base"]


def test_inherit_mode_replaces_prompt():
    base, child, _ = _family()
    child.inheritance_mode = "inherit"
    resolved = resolve_template(child, build_templates_map([base, child]))
    assert resolved.system_prompt == "Focus on markets."


def test_override_fields_force_empty_child_values():
    base, child, _ = _family()
    child.override_fields = ["role", "tags", "settings"]
    child.tags = []
    child.settings = None
    resolved = resolve_template(child, build_templates_map([base, child]))
    assert resolved.role is None
    assert resolved.tags == []
    assert resolved.settings is None


def test_missing_parent_stops_chain():
    orphan = Tpl(id="orphan", name="Orphan", parent_template_id="gone", role="Solo")
    resolved = resolve_template(orphan, build_templates_map([orphan]))
    assert resolved.role == "Solo"
    assert resolved.inheritance_chain == ["orphan"]


def test_ancestor_chain_stops_on_cycle():
    a = Tpl(id="a", name="A", parent_template_id="b")
    b = Tpl(id="b", name="B", parent_template_id="a")
    chain = get_ancestor_chain("a", build_templates_map([a, b]))
    assert [t.id for t in chain] == ["a", "b"]


def test_would_create_circular_ref():
    base, child, grand = _family()
    templates = build_templates_map([base, child, grand])
    assert would_create_circular_ref("base", "grand", templates)
    assert would_create_circular_ref("base", "base", templates)
    assert not would_create_circular_ref("grand", "base", templates)


def test_get_child_templates():
    base, child, grand = _family()
    assert get_child_templates("base", [base, child, grand]) == [child]
