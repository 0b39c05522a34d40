"""
Work item lifecycle rules.

Creation applies the active trigger template for the type (due date
offset and starter subtasks). Updates enforce the publishing gates:
Texas Book Preview and SER items need their publishing fields before
NEEDS_QA or DONE, and no item is DONE while a QC check is not PASSED.
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.core.datetime_utils import utc_now
from opsdesk.core.errors import NotFound, ValidationFailed
from opsdesk.core.logging import get_logger
from opsdesk.models.user import User
from opsdesk.models.work_item import (
    PRIORITY_RANK,
    TBP_TYPES,
    QCCheck,
    QCStatus,
    Subtask,
    TriggerTemplate,
    WorkItem,
    WorkItemStatus,
    WorkItemType,
)
from opsdesk.schemas.work_item import WorkItemCreate
from opsdesk.services.audit import record_audit

logger = get_logger(__name__)

DEFAULT_DUE_DAYS = 7
LIST_LIMIT = 200

STATUS_ORDER = [
    WorkItemStatus.BACKLOG,
    WorkItemStatus.READY,
    WorkItemStatus.IN_PROGRESS,
    WorkItemStatus.IN_REVIEW,
    WorkItemStatus.NEEDS_QA,
    WorkItemStatus.BLOCKED,
    WorkItemStatus.DONE,
]

TBP_REQUIRED_FIELDS = (
    ("tbp_graphics_location", "Graphics location is required for TBP/Magazine items"),
    ("tbp_publish_date", "Publish date is required for TBP/Magazine items"),
    ("tbp_article_link", "Article link is required for TBP/Magazine items"),
    ("tbp_tx_tie", "Texas tie/connection is required for TBP/Magazine items"),
)

GATED_STATUSES = frozenset({WorkItemStatus.NEEDS_QA, WorkItemStatus.DONE})


@dataclass
class QCSummary:
    total: int
    passed: int
    failed: int
    pending: int

    @property
    def completion_rate(self) -> int:
        return round(self.passed / self.total * 100) if self.total else 0

    @property
    def complete(self) -> bool:
        return self.passed == self.total

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "pending": self.pending,
            "completion_rate": self.completion_rate,
        }


def summarize_qc(checks: list[QCCheck]) -> QCSummary:
    return QCSummary(
        total=len(checks),
        passed=sum(1 for c in checks if c.status == QCStatus.PASSED),
        failed=sum(1 for c in checks if c.status == QCStatus.FAILED),
        pending=sum(1 for c in checks if c.status == QCStatus.PENDING),
    )


def sort_work_items(items: list[WorkItem]) -> list[WorkItem]:
    """Status column order, then highest priority first, then soonest due (undated last)."""
    far_future = utc_now() + timedelta(days=365 * 100)
    return sorted(
        items,
        key=lambda i: (
            STATUS_ORDER.index(i.status),
            -PRIORITY_RANK[i.priority],
            i.due_at or far_future,
        ),
    )


async def get_work_item(session: AsyncSession, item_id: uuid.UUID) -> WorkItem:
    item = await session.get(WorkItem, item_id)
    if item is None:
        raise NotFound("Work item not found")
    return item


async def list_work_items(
    session: AsyncSession,
    user: User,
    status: WorkItemStatus | None = None,
    item_type: WorkItemType | None = None,
    owner_id: uuid.UUID | None = None,
    assigned_to_me: bool = False,
    unassigned: bool = False,
) -> list[WorkItem]:
    query = select(WorkItem)
    if status is not None:
        query = query.where(WorkItem.status == status)
    if item_type is not None:
        query = query.where(WorkItem.type == item_type)
    if assigned_to_me:
        query = query.where(WorkItem.owner_id == user.id)
    elif unassigned:
        query = query.where(WorkItem.owner_id.is_(None))
    elif owner_id is not None:
        query = query.where(WorkItem.owner_id == owner_id)

    result = await session.execute(query.order_by(WorkItem.created_at.desc()).limit(LIST_LIMIT))
    return sort_work_items(list(result.scalars().all()))


async def active_template(session: AsyncSession, item_type: WorkItemType) -> TriggerTemplate | None:
    result = await session.execute(
        select(TriggerTemplate)
        .where(TriggerTemplate.work_item_type == item_type, TriggerTemplate.is_active.is_(True))
        .order_by(TriggerTemplate.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_work_item(session: AsyncSession, body: WorkItemCreate, actor: User) -> WorkItem:
    now = utc_now()
    template = await active_template(session, body.type)

    due_at = body.due_at
    if due_at is None:
        offset = (
            template.due_days_offset
            if template is not None and template.due_days_offset is not None
            else DEFAULT_DUE_DAYS
        )
        due_at = now + timedelta(days=offset)

    item = WorkItem(
        type=body.type,
        title=body.title,
        description=body.description,
        priority=body.priority,
        due_at=due_at,
        owner_id=body.owner_id,
        owner_changed_at=now if body.owner_id else None,
        created_by_id=actor.id,
        updated_by_id=actor.id,
        requester_name=body.requester_name,
        requester_email=body.requester_email,
        status_changed_at=now,
    )
    session.add(item)
    await session.flush()

    if template is not None:
        for index, spec in enumerate(template.subtasks or []):
            title = spec.get("title") if isinstance(spec, dict) else str(spec)
            if not title:
                continue
            offset = spec.get("offsetDays") if isinstance(spec, dict) else None
            subtask_due = due_at + timedelta(days=offset) if offset is not None else None
            session.add(
                Subtask(work_item_id=item.id, title=title, order=index, due_at=subtask_due)
            )

    await record_audit(
        session,
        "created",
        actor_id=actor.id,
        work_item_id=item.id,
        to_value=item.status.value,
        details={"type": item.type.value, "title": item.title},
    )
    await session.refresh(item, attribute_names=["subtasks", "owner"])
    logger.bind(work_item_id=str(item.id), type=item.type.value).info("work_item_created")
    return item


def _missing_tbp_fields(item: WorkItem, changes: dict[str, Any]) -> list[str]:
    missing = []
    for field_name, message in TBP_REQUIRED_FIELDS:
        value = changes[field_name] if field_name in changes else getattr(item, field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(message)
    return missing


async def _qc_checks(session: AsyncSession, item_id: uuid.UUID) -> list[QCCheck]:
    result = await session.execute(select(QCCheck).where(QCCheck.work_item_id == item_id))
    return list(result.scalars().all())


async def update_work_item(
    session: AsyncSession, item: WorkItem, changes: dict[str, Any], actor: User
) -> WorkItem:
    """
    Apply a validated partial update.

    Args:
        changes: Field values keyed by attribute name; only keys present are applied

    Raises:
        ValidationFailed: A publishing or QC gate blocks the status change
    """
    now = utc_now()
    new_status: WorkItemStatus | None = changes.get("status")
    status_changed = new_status is not None and new_status != item.status

    if status_changed and new_status in GATED_STATUSES and item.type in TBP_TYPES:
        missing = _missing_tbp_fields(item, changes)
        if missing:
            raise ValidationFailed(
                f"Cannot move to {new_status.value}: {'; '.join(missing)}",
                errors={"status": missing},
            )

    if status_changed and new_status == WorkItemStatus.DONE:
        checks = await _qc_checks(session, item.id)
        summary = summarize_qc(checks)
        if checks and not summary.complete:
            raise ValidationFailed(
                "Cannot mark as DONE: QA not complete "
                f"({summary.passed}/{summary.total} passed, {summary.failed} failed)"
            )

    old_status = item.status
    old_owner_id = item.owner_id
    owner_changed = "owner_id" in changes and changes["owner_id"] != item.owner_id

    for field_name, value in changes.items():
        setattr(item, field_name, value)

    if status_changed:
        item.status_changed_at = now
        if new_status == WorkItemStatus.IN_PROGRESS and item.started_at is None:
            item.started_at = now
        if new_status == WorkItemStatus.DONE:
            item.completed_at = now
        elif old_status == WorkItemStatus.DONE:
            item.completed_at = None
    if owner_changed:
        item.owner_changed_at = now
    item.updated_by_id = actor.id
    await session.flush()

    if status_changed:
        await record_audit(
            session,
            "status_changed",
            actor_id=actor.id,
            work_item_id=item.id,
            from_value=old_status.value,
            to_value=item.status.value,
        )
    if owner_changed:
        await record_audit(
            session,
            "owner_changed",
            actor_id=actor.id,
            work_item_id=item.id,
            from_value=str(old_owner_id) if old_owner_id else None,
            to_value=str(item.owner_id) if item.owner_id else None,
        )

    await session.refresh(item, attribute_names=["owner", "subtasks"])
    logger.bind(work_item_id=str(item.id), fields=sorted(changes)).info("work_item_updated")
    return item


async def delete_work_item(session: AsyncSession, item: WorkItem, actor: User) -> None:
    details = {"id": str(item.id), "title": item.title, "type": item.type.value}
    await session.delete(item)
    await session.flush()
    await record_audit(session, "deleted", actor_id=actor.id, details=details)
    logger.bind(work_item_id=details["id"], actor=str(actor.id)).info("work_item_deleted")


async def next_subtask_order(session: AsyncSession, item_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.max(Subtask.order)).where(Subtask.work_item_id == item_id)
    )
    current = result.scalar()
    return 0 if current is None else current + 1
