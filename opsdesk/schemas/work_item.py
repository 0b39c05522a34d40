import uuid
from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from opsdesk.models.work_item import QCStatus, WorkItemPriority, WorkItemStatus, WorkItemType
from opsdesk.schemas.auth import UserSummary
from opsdesk.schemas.common import CamelModel, naive_utc


class SubtaskResponse(CamelModel):
    id: uuid.UUID
    work_item_id: uuid.UUID
    title: str
    order: int
    due_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class CommentResponse(CamelModel):
    id: uuid.UUID
    work_item_id: uuid.UUID
    author: UserSummary | None = None
    body: str
    created_at: datetime


class QCCheckResponse(CamelModel):
    id: uuid.UUID
    work_item_id: uuid.UUID
    checkpoint: str
    status: QCStatus
    notes: str | None = None
    checked_at: datetime | None = None
    checked_by_id: uuid.UUID | None = None


class AuditLogResponse(CamelModel):
    id: uuid.UUID
    work_item_id: uuid.UUID | None = None
    actor_id: uuid.UUID | None = None
    action: str
    from_value: str | None = None
    to_value: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime


class WorkItemResponse(CamelModel):
    id: uuid.UUID
    type: WorkItemType
    title: str
    description: str | None = None
    status: WorkItemStatus
    priority: WorkItemPriority
    due_at: datetime | None = None
    owner_id: uuid.UUID | None = None
    owner: UserSummary | None = None
    created_by_id: uuid.UUID | None = None
    updated_by_id: uuid.UUID | None = None
    status_changed_at: datetime | None = None
    owner_changed_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    needs_proofing: bool = False
    blocked_reason: str | None = None
    tbp_graphics_location: str | None = None
    tbp_publish_date: datetime | None = None
    tbp_article_link: str | None = None
    tbp_tx_tie: str | None = None
    requester_name: str | None = None
    requester_email: str | None = None
    subtasks: list[SubtaskResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class WorkItemDetail(WorkItemResponse):
    comments: list[CommentResponse] = Field(default_factory=list)
    audit_logs: list[AuditLogResponse] = Field(default_factory=list)


class WorkItemCreate(CamelModel):
    """Request body for creating a work item."""

    type: WorkItemType
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    priority: WorkItemPriority = WorkItemPriority.MEDIUM
    due_at: datetime | None = None
    owner_id: uuid.UUID | None = None
    requester_name: str | None = Field(default=None, max_length=255)
    requester_email: EmailStr | None = None

    @field_validator("due_at")
    @classmethod
    def normalize_due_at(cls, v: datetime | None) -> datetime | None:
        return naive_utc(v)


class WorkItemUpdate(CamelModel):
    """Partial update. Only fields present in the request body are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    status: WorkItemStatus | None = None
    priority: WorkItemPriority | None = None
    due_at: datetime | None = None
    owner_id: uuid.UUID | None = None
    blocked_reason: str | None = Field(default=None, max_length=2000)
    tbp_graphics_location: str | None = Field(default=None, max_length=1000)
    tbp_publish_date: datetime | None = None
    tbp_article_link: str | None = Field(default=None, max_length=1000)
    tbp_tx_tie: str | None = None

    @field_validator("due_at", "tbp_publish_date")
    @classmethod
    def normalize_dates(cls, v: datetime | None) -> datetime | None:
        return naive_utc(v)

    @field_validator("tbp_article_link")
    @classmethod
    def validate_article_link(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("Article link must be an http(s) URL")
        return v

    @field_validator("title", "status", "priority")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class SubtaskCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    order: int | None = Field(default=None, ge=0)
    due_at: datetime | None = None

    @field_validator("due_at")
    @classmethod
    def normalize_due_at(cls, v: datetime | None) -> datetime | None:
        return naive_utc(v)


class SubtaskUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    order: int | None = Field(default=None, ge=0)
    completed: bool | None = None


class CommentCreate(CamelModel):
    body: str = Field(min_length=1, max_length=5000)


class QCCheckpointsCreate(CamelModel):
    checkpoints: list[str] = Field(min_length=1)


class QCCheckUpdate(CamelModel):
    checkpoint: str
    status: QCStatus
    notes: str | None = None


class QCStats(CamelModel):
    total: int
    passed: int
    failed: int
    pending: int
    completion_rate: int


class QCOverview(CamelModel):
    checks: list[QCCheckResponse]
    stats: QCStats
