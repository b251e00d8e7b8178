"""Team Template Routes: CRUD, inheritance resolution and parameter rendering.

Invariants:
    - Templates are visible to their owner, and to everyone once is_public
    - Only the owner may update or delete
    - Changing parent_template_id to a descendant is rejected with 409
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.schemas.template import (
    TemplateCreate, TemplateRenderRequest, TemplateResponse, TemplateUpdate,
)
from hive.services.templates import TemplateService

router = APIRouter(prefix="/api/v1/templates", tags=["templates"])


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).create(user, body)


@router.get("", response_model=list[TemplateResponse])
async def list_templates(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).list_visible(user)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).get_visible(template_id, user)


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    body: TemplateUpdate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).update(template_id, user, body)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a template; its children become root templates (parent set to null)."""
    await TemplateService(db).delete(template_id, user)


@router.get("/{template_id}/resolved")
async def get_resolved_template(
    template_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    resolved = await TemplateService(db).resolve(template_id, user)
    return resolved.to_dict()


@router.get("/{template_id}/children", response_model=list[TemplateResponse])
async def list_children(
    template_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).children(template_id, user)


@router.post("/{template_id}/render")
async def render_template(
    template_id: UUID,
    body: TemplateRenderRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).render(template_id, user, body.values)
