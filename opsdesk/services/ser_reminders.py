"""
Reminder emails for Sponsored Editorial Review (SER) work items.

Windows, by whole days until due (rounded up):
    - DUE_7DAY: 5 to 8 days out, sent once per item
    - DUE_2DAY: 0 to 3 days out, sent once per item
    - OVERDUE: past due, re-sent every `overdue_resend_days`

Recipients are the item owner plus ADMIN_EMAIL. A reminder is recorded
even when email is not configured, so it is not retried on every run.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.config import AppConfig, Settings
from opsdesk.core.datetime_utils import days_until, utc_now
from opsdesk.core.errors import error_message
from opsdesk.core.logging import get_logger
from opsdesk.models.ser_reminder import ReminderKind, SerReminder
from opsdesk.models.work_item import WorkItem, WorkItemStatus, WorkItemType
from opsdesk.services.email_service import send_ser_reminder_email

logger = get_logger(__name__)


def reminder_kind_for(days_until_due: int) -> ReminderKind | None:
    if 5 <= days_until_due <= 8:
        return ReminderKind.DUE_7DAY
    if 0 <= days_until_due <= 3:
        return ReminderKind.DUE_2DAY
    if days_until_due < 0:
        return ReminderKind.OVERDUE
    return None


def recipients_for(item: WorkItem, admin_email: str) -> list[str]:
    recipients: list[str] = []
    for email in (item.owner.email if item.owner else None, admin_email):
        if email and email.lower() not in recipients:
            recipients.append(email.lower())
    return recipients


async def send_ser_reminders(
    session: AsyncSession,
    settings: Settings,
    config: AppConfig,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Send due and overdue reminders for open SER items.

    Returns:
        {"sent": n, "skipped": n, "errors": [str], "detail": [{workItemId, type, emailed}]}
    """
    now = now or utc_now()
    resend_after = timedelta(days=config.reminders.overdue_resend_days)
    result: dict[str, Any] = {"sent": 0, "skipped": 0, "errors": [], "detail": []}

    items_result = await session.execute(
        select(WorkItem).where(
            WorkItem.type == WorkItemType.SPONSORED_EDITORIAL_REVIEW,
            WorkItem.status != WorkItemStatus.DONE,
            WorkItem.due_at.is_not(None),
        )
    )
    items = list(items_result.scalars().all())
    if not items:
        return result

    reminders_result = await session.execute(
        select(SerReminder).where(SerReminder.work_item_id.in_([item.id for item in items]))
    )
    already_sent: set[tuple[uuid.UUID, ReminderKind]] = set()
    last_overdue: dict[uuid.UUID, datetime] = {}
    for reminder in reminders_result.scalars().all():
        already_sent.add((reminder.work_item_id, reminder.kind))
        if reminder.kind == ReminderKind.OVERDUE:
            previous = last_overdue.get(reminder.work_item_id)
            if previous is None or reminder.sent_at > previous:
                last_overdue[reminder.work_item_id] = reminder.sent_at

    for item in items:
        days_until_due = days_until(item.due_at, now)
        kind = reminder_kind_for(days_until_due)
        if kind is None:
            continue

        if kind == ReminderKind.OVERDUE:
            last = last_overdue.get(item.id)
            if last is not None and now - last <= resend_after:
                result["skipped"] += 1
                continue
        elif (item.id, kind) in already_sent:
            result["skipped"] += 1
            continue

        recipients = recipients_for(item, settings.admin_email)
        try:
            emailed = await send_ser_reminder_email(item, kind, days_until_due, recipients)
            session.add(
                SerReminder(
                    work_item_id=item.id,
                    kind=kind,
                    sent_to=",".join(recipients),
                    sent_at=now,
                )
            )
            await session.flush()
        except Exception as e:
            result["errors"].append(f"{kind.value} {item.id}: {error_message(e)}")
            logger.bind(work_item_id=str(item.id), kind=kind.value, error=str(e)).error(
                "ser_reminder_failed"
            )
            continue

        result["sent"] += 1
        result["detail"].append(
            {"workItemId": str(item.id), "type": kind.value, "emailed": emailed}
        )

    logger.bind(sent=result["sent"], skipped=result["skipped"], errors=len(result["errors"])).info(
        "ser_reminders_completed"
    )
    return result
