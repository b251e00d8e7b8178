"""Template Service: team template CRUD, inheritance resolution and rendering.

Invariants:
    - A template is visible to its owner and, when is_public, to everyone
    - Only the owner edits or deletes; a parent must be visible to the caller
    - parent_template_id changes never introduce a cycle (ConflictError)
    - Deleting a template sets its children's parent_template_id to None
    - render validates merged parameter values before substituting {{variables}}
"""

import logging
import uuid

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.errors import ConflictError, InputValidationError, ResourceNotFoundError
from hive.core.slug import generate_slug, generate_unique_slug
from hive.core.template_inheritance import (
    ResolvedTemplate, build_templates_map, get_child_templates,
    resolve_template, would_create_circular_ref,
)
from hive.core.template_parameters import (
    extract_variables, get_default_values, get_parameters_from_settings,
    substitute_variables, validate_parameter_values,
)
from hive.models.profile import Profile
from hive.models.team_template import TeamTemplate
from hive.schemas.template import TemplateCreate, TemplateUpdate

logger = logging.getLogger(__name__)


class TemplateService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_visible(self, user: Profile) -> list[TeamTemplate]:
        result = await self.db.execute(
            select(TeamTemplate)
            .where(or_(TeamTemplate.user_id == user.id, TeamTemplate.is_public.is_(True)))
            .order_by(TeamTemplate.created_at),
        )
        return list(result.scalars().all())

    async def get_visible(self, template_id: uuid.UUID, user: Profile) -> TeamTemplate:
        template = await self.db.get(TeamTemplate, template_id)
        if template is None or (template.user_id != user.id and not template.is_public):
            raise ResourceNotFoundError("Template", str(template_id))
        return template

    async def get_owned(self, template_id: uuid.UUID, user: Profile) -> TeamTemplate:
        template = await self.db.get(TeamTemplate, template_id)
        if template is None or template.user_id != user.id:
            raise ResourceNotFoundError("Template", str(template_id))
        return template

    async def _unique_slug(self, user_id: uuid.UUID, name: str) -> str:
        result = await self.db.execute(
            select(TeamTemplate.slug).where(TeamTemplate.user_id == user_id),
        )
        return generate_unique_slug(
            generate_slug(name) or "template", set(result.scalars().all()),
        )

    async def create(self, user: Profile, body: TemplateCreate) -> TeamTemplate:
        if body.parent_template_id is not None:
            await self.get_visible(body.parent_template_id, user)
        data = body.model_dump()
        template = TeamTemplate(
            user_id=user.id, slug=await self._unique_slug(user.id, body.name), **data,
        )
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)
        logger.info(f"Template created: {template.id}")
        return template

    async def update(
        self, template_id: uuid.UUID, user: Profile, body: TemplateUpdate,
    ) -> TeamTemplate:
        template = await self.get_owned(template_id, user)
        changes = body.model_dump(exclude_unset=True)

        if "parent_template_id" in changes:
            parent_id = changes["parent_template_id"]
            if parent_id is not None:
                await self.get_visible(parent_id, user)
                templates_map = build_templates_map(await self.list_visible(user))
                if would_create_circular_ref(template.id, parent_id, templates_map):
                    raise ConflictError("Circular template inheritance is not allowed")

        if "name" in changes and changes["name"] and changes["name"] != template.name:
            template.slug = await self._unique_slug(user.id, changes["name"])
        for name, value in changes.items():
            if value is None and name not in (
                "parent_template_id", "role", "system_prompt", "description", "settings",
            ):
                continue
            setattr(template, name, value)
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def delete(self, template_id: uuid.UUID, user: Profile) -> None:
        template = await self.get_owned(template_id, user)
        await self.db.execute(
            update(TeamTemplate)
            .where(TeamTemplate.parent_template_id == template.id)
            .values(parent_template_id=None)
            .execution_options(synchronize_session=False),
        )
        await self.db.delete(template)
        await self.db.commit()

    async def children(self, template_id: uuid.UUID, user: Profile) -> list[TeamTemplate]:
        await self.get_visible(template_id, user)
        return get_child_templates(template_id, await self.list_visible(user))

    async def resolve(self, template_id: uuid.UUID, user: Profile) -> ResolvedTemplate:
        template = await self.get_visible(template_id, user)
        templates_map = build_templates_map(await self.list_visible(user))
        return resolve_template(template, templates_map)

    async def render(self, template_id: uuid.UUID, user: Profile, values: dict) -> dict:
        resolved = await self.resolve(template_id, user)
        parameters = get_parameters_from_settings(resolved.settings)
        merged = {**get_default_values(parameters), **values}
        errors = validate_parameter_values(parameters, merged)
        if errors:
            raise InputValidationError(
                "Invalid template parameters", field="values", details=errors,
            )
        prompt = resolved.system_prompt or ""
        return {
            "template_id": str(template_id),
            "name": resolved.name,
            "parameters": parameters,
            "values": merged,
            "variables": extract_variables(prompt),
            "system_prompt": substitute_variables(prompt, merged),
            "resolved": resolved.to_dict(),
        }
