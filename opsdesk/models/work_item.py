from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsdesk.core.datetime_utils import utc_now
from opsdesk.models.base import Base, TimestampMixin, UpdatedAtMixin, str_enum
from opsdesk.models.user import User


class WorkItemType(str, enum.Enum):
    SOCIAL_ASSET_REQUEST = "SOCIAL_ASSET_REQUEST"
    SPONSORED_EDITORIAL_REVIEW = "SPONSORED_EDITORIAL_REVIEW"
    BOOK_CAMPAIGN = "BOOK_CAMPAIGN"
    WEBSITE_EVENT = "WEBSITE_EVENT"
    TX_BOOK_PREVIEW_LEAD = "TX_BOOK_PREVIEW_LEAD"
    ACCESS_REQUEST = "ACCESS_REQUEST"
    GENERAL = "GENERAL"


class WorkItemStatus(str, enum.Enum):
    BACKLOG = "BACKLOG"
    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    NEEDS_QA = "NEEDS_QA"
    BLOCKED = "BLOCKED"
    DONE = "DONE"


class WorkItemPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class QCStatus(str, enum.Enum):
    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


# Types that carry Texas Book Preview publishing fields
TBP_TYPES = frozenset({WorkItemType.TX_BOOK_PREVIEW_LEAD, WorkItemType.SPONSORED_EDITORIAL_REVIEW})

PRIORITY_RANK = {
    WorkItemPriority.LOW: 0,
    WorkItemPriority.MEDIUM: 1,
    WorkItemPriority.HIGH: 2,
    WorkItemPriority.URGENT: 3,
}


class WorkItem(Base, TimestampMixin, UpdatedAtMixin):
    """A unit of editorial work tracked on the board."""

    __tablename__ = "work_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[WorkItemType] = mapped_column(str_enum(WorkItemType, "workitemtype"), index=True)
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[WorkItemStatus] = mapped_column(
        str_enum(WorkItemStatus, "workitemstatus"), default=WorkItemStatus.BACKLOG, index=True
    )
    priority: Mapped[WorkItemPriority] = mapped_column(
        str_enum(WorkItemPriority, "workitempriority"), default=WorkItemPriority.MEDIUM
    )
    due_at: Mapped[datetime | None] = mapped_column(index=True)

    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    updated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )

    status_changed_at: Mapped[datetime | None] = mapped_column(default=utc_now)
    owner_changed_at: Mapped[datetime | None] = mapped_column()
    started_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()

    needs_proofing: Mapped[bool] = mapped_column(Boolean, default=False)
    blocked_reason: Mapped[str | None] = mapped_column(Text)

    # Texas Book Preview publishing fields
    tbp_graphics_location: Mapped[str | None] = mapped_column(String(1000))
    tbp_publish_date: Mapped[datetime | None] = mapped_column()
    tbp_article_link: Mapped[str | None] = mapped_column(String(1000))
    tbp_tx_tie: Mapped[str | None] = mapped_column(Text)

    requester_name: Mapped[str | None] = mapped_column(String(255))
    requester_email: Mapped[str | None] = mapped_column(String(255))

    # Relationships
    owner: Mapped[User | None] = relationship(foreign_keys=[owner_id], lazy="selectin")
    subtasks: Mapped[list[Subtask]] = relationship(
        back_populates="work_item",
        cascade="all, delete-orphan",
        order_by="Subtask.order",
        lazy="selectin",
    )
    comments: Mapped[list[Comment]] = relationship(
        back_populates="work_item",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    qc_checks: Mapped[list[QCCheck]] = relationship(
        back_populates="work_item",
        cascade="all, delete-orphan",
        order_by="QCCheck.created_at",
    )

    def __repr__(self) -> str:
        return f"<WorkItem {self.type.value} {self.title!r}>"


class Subtask(Base, TimestampMixin):
    """Checklist entry under a work item. completed_at is null until done."""

    __tablename__ = "subtasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    work_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("work_items.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(500))
    order: Mapped[int] = mapped_column(Integer, default=0)
    due_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()

    work_item: Mapped[WorkItem] = relationship(back_populates="subtasks")


class Comment(Base, TimestampMixin):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    work_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("work_items.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    body: Mapped[str] = mapped_column(Text)

    work_item: Mapped[WorkItem] = relationship(back_populates="comments")
    author: Mapped[User | None] = relationship(lazy="selectin")


class QCCheck(Base, TimestampMixin):
    """Proofing checkpoint. A work item cannot be DONE until all checks pass."""

    __tablename__ = "qc_checks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    work_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("work_items.id", ondelete="CASCADE"), index=True
    )
    checkpoint: Mapped[str] = mapped_column(String(255))
    status: Mapped[QCStatus] = mapped_column(str_enum(QCStatus, "qcstatus"), default=QCStatus.PENDING)
    notes: Mapped[str | None] = mapped_column(Text)
    checked_at: Mapped[datetime | None] = mapped_column()
    checked_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )

    work_item: Mapped[WorkItem] = relationship(back_populates="qc_checks")


class TriggerTemplate(Base, TimestampMixin):
    """Defaults applied when a work item of a given type is created."""

    __tablename__ = "trigger_templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    work_item_type: Mapped[WorkItemType] = mapped_column(
        str_enum(WorkItemType, "workitemtype"), index=True
    )
    description: Mapped[str | None] = mapped_column(Text)
    due_days_offset: Mapped[int | None] = mapped_column(Integer)
    subtasks: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class AuditLog(Base, TimestampMixin):
    """Who changed what. work_item_id is null for account-level actions."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    work_item_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("work_items.id", ondelete="CASCADE"), index=True
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    action: Mapped[str] = mapped_column(String(100))
    from_value: Mapped[str | None] = mapped_column(String(255))
    to_value: Mapped[str | None] = mapped_column(String(255))
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON)
