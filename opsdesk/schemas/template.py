import uuid
from datetime import datetime

from pydantic import Field

from opsdesk.models.work_item import WorkItemType
from opsdesk.schemas.common import CamelModel


class TemplateSubtask(CamelModel):
    """Subtask created with each new work item.

    offset_days places the subtask's due date relative to the item's
    (negative means before it).
    """

    title: str = Field(min_length=1, max_length=200)
    offset_days: int | None = Field(default=None, ge=-365, le=365)


class TemplateCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    work_item_type: WorkItemType
    subtasks: list[TemplateSubtask] = Field(default_factory=list)
    due_days_offset: int = Field(default=7, ge=0, le=365)
    is_active: bool = True


class TemplateUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    subtasks: list[TemplateSubtask] | None = None
    due_days_offset: int | None = Field(default=None, ge=0, le=365)
    is_active: bool | None = None


class TemplateResponse(CamelModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    work_item_type: WorkItemType
    subtasks: list[TemplateSubtask]
    due_days_offset: int | None = None
    is_active: bool
    created_at: datetime


def stored_subtasks(subtasks: list[TemplateSubtask]) -> list[dict]:
    """JSON column form: camelCase keys, unset offsets left out."""
    return [s.model_dump(by_alias=True, exclude_none=True) for s in subtasks]
