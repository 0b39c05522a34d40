"""
Trigger templates: defaults applied when a work item of a type is created.

Everyone can list active templates; managing them is admin only.
"""

import uuid

from fastapi import APIRouter, Query, status
from sqlalchemy import select

from opsdesk.core.errors import NotFound
from opsdesk.core.logging import get_logger
from opsdesk.dependencies import AdminUser, CurrentUser, DBSession
from opsdesk.models.work_item import TriggerTemplate
from opsdesk.schemas.common import DataResponse
from opsdesk.schemas.template import (
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
    stored_subtasks,
)

logger = get_logger(__name__)

router = APIRouter()


async def _get_template(db: DBSession, template_id: uuid.UUID) -> TriggerTemplate:
    template = await db.get(TriggerTemplate, template_id)
    if template is None:
        raise NotFound("Template not found")
    return template


@router.get("/templates", response_model=DataResponse[list[TemplateResponse]])
async def list_templates(
    user: CurrentUser,
    db: DBSession,
    include_inactive: bool = Query(default=False, alias="all"),
) -> DataResponse[list[TemplateResponse]]:
    """Active templates by type and name. Admins can pass all=true to see inactive ones too."""
    query = select(TriggerTemplate).order_by(TriggerTemplate.work_item_type, TriggerTemplate.name)
    if not (include_inactive and user.is_admin):
        query = query.where(TriggerTemplate.is_active.is_(True))
    result = await db.execute(query)
    return DataResponse(data=[TemplateResponse.model_validate(t) for t in result.scalars().all()])


@router.post(
    "/templates",
    response_model=DataResponse[TemplateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    body: TemplateCreate, admin: AdminUser, db: DBSession
) -> DataResponse[TemplateResponse]:
    template = TriggerTemplate(
        name=body.name,
        description=body.description or None,
        work_item_type=body.work_item_type,
        subtasks=stored_subtasks(body.subtasks),
        due_days_offset=body.due_days_offset,
        is_active=body.is_active,
    )
    db.add(template)
    await db.flush()
    await db.refresh(template)
    logger.bind(template_id=str(template.id), type=template.work_item_type.value).info(
        "template_created"
    )
    return DataResponse(data=TemplateResponse.model_validate(template))


@router.get("/templates/{template_id}", response_model=DataResponse[TemplateResponse])
async def get_template(
    template_id: uuid.UUID, admin: AdminUser, db: DBSession
) -> DataResponse[TemplateResponse]:
    template = await _get_template(db, template_id)
    return DataResponse(data=TemplateResponse.model_validate(template))


@router.patch("/templates/{template_id}", response_model=DataResponse[TemplateResponse])
async def update_template(
    template_id: uuid.UUID, body: TemplateUpdate, admin: AdminUser, db: DBSession
) -> DataResponse[TemplateResponse]:
    template = await _get_template(db, template_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("name") is not None:
        template.name = changes["name"]
    if "description" in changes:
        template.description = changes["description"] or None
    if body.subtasks is not None:
        template.subtasks = stored_subtasks(body.subtasks)
    if changes.get("due_days_offset") is not None:
        template.due_days_offset = changes["due_days_offset"]
    if changes.get("is_active") is not None:
        template.is_active = changes["is_active"]

    await db.flush()
    logger.bind(template_id=str(template.id), fields=sorted(changes)).info("template_updated")
    return DataResponse(data=TemplateResponse.model_validate(template))


@router.delete("/templates/{template_id}")
async def delete_template(template_id: uuid.UUID, admin: AdminUser, db: DBSession) -> dict:
    template = await _get_template(db, template_id)
    await db.delete(template)
    await db.flush()
    logger.bind(template_id=str(template_id)).info("template_deleted")
    return {"data": {"deleted": True}}
