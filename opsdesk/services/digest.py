"""
Daily digest: what is overdue, due today, due soon or stuck in BLOCKED.

Delivered over up to three channels (email, Slack, GHL). Each channel is
independent: an unconfigured channel is skipped, a failing one is logged
and reported as not sent without stopping the others.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.config import AppConfig
from opsdesk.core.datetime_utils import start_of_day, utc_now
from opsdesk.core.logging import get_logger
from opsdesk.models.work_item import WorkItem, WorkItemStatus

logger = get_logger(__name__)

TYPE_LABELS = {
    "SOCIAL_ASSET_REQUEST": "Graphics",
    "SPONSORED_EDITORIAL_REVIEW": "SER",
    "BOOK_CAMPAIGN": "Campaign",
    "WEBSITE_EVENT": "Event",
    "TX_BOOK_PREVIEW_LEAD": "TX Preview",
    "ACCESS_REQUEST": "Access",
    "GENERAL": "General",
}


@dataclass
class DigestEntry:
    id: str
    title: str
    type: str
    status: str
    due_at: datetime | None
    status_changed_at: datetime | None
    blocked_reason: str | None
    owner_name: str | None
    owner_email: str | None

    @property
    def type_label(self) -> str:
        return TYPE_LABELS.get(self.type, self.type)

    @property
    def owner_label(self) -> str:
        return self.owner_name or self.owner_email or "Unassigned"

    def days_between(self, moment: datetime | None, now: datetime) -> int | None:
        if moment is None:
            return None
        return round(abs((now - moment).total_seconds()) / 86400)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "dueAt": self.due_at.isoformat() if self.due_at else None,
            "owner": self.owner_label,
        }

    @classmethod
    def from_item(cls, item: WorkItem) -> "DigestEntry":
        return cls(
            id=str(item.id),
            title=item.title,
            type=item.type.value,
            status=item.status.value,
            due_at=item.due_at,
            status_changed_at=item.status_changed_at,
            blocked_reason=item.blocked_reason,
            owner_name=item.owner.name if item.owner else None,
            owner_email=item.owner.email if item.owner else None,
        )


@dataclass
class Digest:
    generated_at: datetime
    overdue: list[DigestEntry]
    due_today: list[DigestEntry]
    due_soon: list[DigestEntry]
    blocked: list[DigestEntry]
    due_soon_days: int = 3
    blocked_days: int = 3

    @property
    def day(self) -> date:
        return self.generated_at.date()

    def summary(self) -> dict[str, int]:
        counts = {
            "overdue": len(self.overdue),
            "dueToday": len(self.due_today),
            "dueSoon": len(self.due_soon),
            "blockedOver3d": len(self.blocked),
        }
        counts["total"] = sum(counts.values())
        return counts

    def sections(self) -> list[tuple[str, list[DigestEntry]]]:
        return [
            ("Overdue", self.overdue),
            ("Due today", self.due_today),
            (f"Due soon (next {self.due_soon_days} days)", self.due_soon),
            (f"Blocked over {self.blocked_days} days", self.blocked),
        ]

    def to_payload(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "overdue": [e.to_payload() for e in self.overdue],
            "dueToday": [e.to_payload() for e in self.due_today],
            "dueSoon": [e.to_payload() for e in self.due_soon],
            "blocked": [e.to_payload() for e in self.blocked],
        }


async def build_digest(
    session: AsyncSession, config: AppConfig, now: datetime | None = None
) -> Digest:
    """Collect digest sections. Day boundaries are UTC."""
    now = now or utc_now()
    today_start = start_of_day(now)
    tomorrow_start = today_start + timedelta(days=1)
    soon_end = tomorrow_start + timedelta(days=config.digest.due_soon_days)
    blocked_threshold = now - timedelta(days=config.digest.blocked_days)

    open_items = select(WorkItem).where(WorkItem.status != WorkItemStatus.DONE)

    async def _fetch(query) -> list[DigestEntry]:
        result = await session.execute(query)
        return [DigestEntry.from_item(item) for item in result.scalars().all()]

    overdue = await _fetch(
        open_items.where(WorkItem.due_at.is_not(None), WorkItem.due_at < today_start).order_by(
            WorkItem.due_at
        )
    )
    due_today = await _fetch(
        open_items.where(WorkItem.due_at >= today_start, WorkItem.due_at < tomorrow_start).order_by(
            WorkItem.due_at
        )
    )
    due_soon = await _fetch(
        open_items.where(WorkItem.due_at >= tomorrow_start, WorkItem.due_at < soon_end).order_by(
            WorkItem.due_at
        )
    )
    blocked = await _fetch(
        select(WorkItem)
        .where(
            WorkItem.status == WorkItemStatus.BLOCKED,
            WorkItem.status_changed_at < blocked_threshold,
        )
        .order_by(WorkItem.status_changed_at)
    )

    return Digest(
        generated_at=now,
        overdue=overdue,
        due_today=due_today,
        due_soon=due_soon,
        blocked=blocked,
        due_soon_days=config.digest.due_soon_days,
        blocked_days=config.digest.blocked_days,
    )


async def _deliver(channel: str, send) -> bool:
    try:
        return bool(await send())
    except Exception as e:
        logger.bind(channel=channel, error=str(e)).error("digest_channel_failed")
        return False


async def send_digest(
    session: AsyncSession, config: AppConfig, now: datetime | None = None
) -> dict[str, Any]:
    """
    Build and deliver the digest.

    Returns:
        {"summary": {...counts}, "sent": {"email": bool, "slack": bool, "ghl": bool}}
    """
    from opsdesk.services.email_service import send_digest_email
    from opsdesk.services.slack_service import send_digest_to_ghl, send_digest_to_slack

    digest = await build_digest(session, config, now=now)

    sent = {
        "email": await _deliver("email", lambda: send_digest_email(digest)),
        "slack": await _deliver(
            "slack", lambda: send_digest_to_slack(digest, max_items=config.digest.slack_max_items)
        ),
        "ghl": await _deliver("ghl", lambda: send_digest_to_ghl(digest)),
    }

    summary = digest.summary()
    logger.bind(**summary, **{f"sent_{k}": v for k, v in sent.items()}).info("digest_sent")
    return {"summary": summary, "sent": sent}
