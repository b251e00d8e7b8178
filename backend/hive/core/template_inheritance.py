"""Template Inheritance: resolves a team template against its ancestor chain.

Invariants:
    - Chains are walked at most max_depth (10) levels and stop on cycles or missing ids
    - Resolution folds from the deepest ancestor upward; each level merges on top of the
      level below it
    - override_fields force the child's value even when it is empty or default
    - inheritance_chain is self-first
    - Pure: no IO, inputs are never mutated

Design Decisions:
    - Templates accepted via a structural Protocol: ORM rows and plain dataclasses both work
    - Defaults (anthropic/general/Bot) mean "not set" for framework/category/icon, matching
      the column defaults of TeamTemplate
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

INHERITABLE_FIELDS = (
    "role", "framework", "system_prompt", "description", "category",
    "icon", "tags", "settings", "permission_level",
)

DEFAULT_FRAMEWORK = "anthropic"
DEFAULT_CATEGORY = "general"
DEFAULT_ICON = "Bot"
PROMPT_SEPARATOR = "\n\n---\n\n"
MAX_CHAIN_DEPTH = 10


class TemplateLike(Protocol):
    id: Any
    name: str
    role: str | None
    framework: str
    system_prompt: str | None
    description: str | None
    tags: list[str] | None
    category: str
    icon: str
    settings: dict | None
    permission_level: str
    parent_template_id: Any
    override_fields: list[str] | None
    inheritance_mode: str | None


@dataclass
class ResolvedTemplate:
    name: str
    role: str | None
    framework: str
    system_prompt: str | None
    description: str | None
    tags: list[str]
    category: str
    icon: str
    settings: dict | None
    permission_level: str
    inheritance_chain: list = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["inheritance_chain"] = [str(i) for i in self.inheritance_chain]
        return data


def build_templates_map(templates: Iterable[TemplateLike]) -> dict:
    return {t.id: t for t in templates}


def get_child_templates(template_id, templates: Iterable[TemplateLike]) -> list:
    return [t for t in templates if t.parent_template_id == template_id]


def get_ancestor_chain(
    template_id, templates_map: dict, max_depth: int = MAX_CHAIN_DEPTH,
) -> list:
    """[self, parent, grandparent, ...] up to max_depth entries."""
    chain = []
    visited = set()
    current_id = template_id
    while current_id is not None and len(chain) < max_depth:
        if current_id in visited:
            break
        visited.add(current_id)
        template = templates_map.get(current_id)
        if template is None:
            break
        chain.append(template)
        current_id = template.parent_template_id
    return chain


def would_create_circular_ref(template_id, proposed_parent_id, templates_map: dict) -> bool:
    """True if setting proposed_parent_id as parent of template_id closes a loop."""
    if template_id == proposed_parent_id:
        return True
    visited = set()
    current_id = proposed_parent_id
    while current_id is not None:
        if current_id in visited or current_id == template_id:
            return True
        visited.add(current_id)
        parent = templates_map.get(current_id)
        current_id = parent.parent_template_id if parent is not None else None
    return False


def resolve_template(template: TemplateLike, templates_map: dict) -> ResolvedTemplate:
    chain = get_ancestor_chain(template.id, templates_map)
    chain_ids = [t.id for t in chain]

    if len(chain) <= 1 or template.parent_template_id is None:
        resolved = _own_fields(template)
        resolved.inheritance_chain = chain_ids or [template.id]
        return resolved

    # Fold deepest ancestor upward; chain[0] is the template itself
    current = _own_fields(chain[-1])
    for level in reversed(chain[:-1]):
        current = _merge(level, current)
    current.inheritance_chain = chain_ids
    return current


def _own_fields(t: TemplateLike) -> ResolvedTemplate:
    return ResolvedTemplate(
        name=t.name,
        role=t.role,
        framework=t.framework,
        system_prompt=t.system_prompt,
        description=t.description,
        tags=list(t.tags or []),
        category=t.category,
        icon=t.icon,
        settings=dict(t.settings) if t.settings else None,
        permission_level=t.permission_level,
    )


def _merge(child: TemplateLike, parent: ResolvedTemplate) -> ResolvedTemplate:
    overrides = set(child.override_fields or [])
    mode = child.inheritance_mode or "inherit"

    def pick_nullable(name: str):
        value = getattr(child, name)
        if name in overrides or value is not None:
            return value
        return getattr(parent, name)

    def pick_defaulted(name: str, default: str):
        value = getattr(child, name)
        if name in overrides or value != default:
            return value
        return getattr(parent, name)

    return ResolvedTemplate(
        name=child.name,
        role=pick_nullable("role"),
        framework=pick_defaulted("framework", DEFAULT_FRAMEWORK),
        system_prompt=_resolve_system_prompt(child, parent, mode, overrides),
        description=pick_nullable("description"),
        tags=(
            list(child.tags or []) if "tags" in overrides
            else _merge_unique_tags(parent.tags, child.tags or [])
        ),
        category=pick_defaulted("category", DEFAULT_CATEGORY),
        icon=pick_defaulted("icon", DEFAULT_ICON),
        settings=_merge_settings(
            parent.settings, child.settings, "settings" in overrides,
        ),
        permission_level=(
            child.permission_level if "permission_level" in overrides
            else parent.permission_level or child.permission_level
        ),
    )


def _resolve_system_prompt(
    child: TemplateLike, parent: ResolvedTemplate, mode: str, overrides: set[str],
) -> str | None:
    if "system_prompt" in overrides:
        return child.system_prompt
    if not parent.system_prompt:
        return child.system_prompt
    if not child.system_prompt:
        return parent.system_prompt
    if mode == "compose":
        return f"{parent.system_prompt}{PROMPT_SEPARATOR}{child.system_prompt}"
    return child.system_prompt


def _merge_unique_tags(parent_tags: list[str], child_tags: list[str]) -> list[str]:
    return list(dict.fromkeys([*parent_tags, *child_tags]))


def _merge_settings(
    parent_settings: dict | None, child_settings: dict | None, full_override: bool,
) -> dict | None:
    if full_override:
        return child_settings
    if not parent_settings and not child_settings:
        return None
    if not parent_settings:
        return child_settings
    if not child_settings:
        return dict(parent_settings)
    return {**parent_settings, **child_settings}
