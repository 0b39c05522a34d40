"""SLA tracking: per-type breach/due-soon counts and the items behind them."""

import math
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.core.datetime_utils import utc_now
from opsdesk.models.sla import SlaDefinition
from opsdesk.models.work_item import WorkItem, WorkItemStatus, WorkItemType

DUE_SOON_WINDOW = timedelta(hours=48)
MISSED_LOOKBACK = timedelta(days=30)
RECENT_MISSES_LIMIT = 20

# (type, label, target_days, due_date_driven)
DEFAULT_SLA_DEFINITIONS: list[tuple[WorkItemType, str, int | None, bool]] = [
    (WorkItemType.SOCIAL_ASSET_REQUEST, "Graphics request", 7, False),
    (WorkItemType.SPONSORED_EDITORIAL_REVIEW, "Sponsored editorial review", None, True),
    (WorkItemType.BOOK_CAMPAIGN, "Book campaign", 30, False),
    (WorkItemType.WEBSITE_EVENT, "Website event", 3, False),
    (WorkItemType.TX_BOOK_PREVIEW_LEAD, "TX Book Preview lead", 14, False),
    (WorkItemType.ACCESS_REQUEST, "Access request", 2, False),
    (WorkItemType.GENERAL, "General", None, True),
]


def _owner(item: WorkItem) -> dict[str, str | None] | None:
    if item.owner is None:
        return None
    return {"name": item.owner.name, "email": item.owner.email}


async def compute_sla_overview(
    session: AsyncSession, now: datetime | None = None
) -> dict[str, Any]:
    """
    Evaluate every work item against its type's SLA.

    Returns:
        {"summary": {...}, "rules": [...], "flagged": [...], "recentMisses": [...]}
    """
    now = now or utc_now()

    definitions = (
        (await session.execute(select(SlaDefinition).order_by(SlaDefinition.work_item_type)))
        .scalars()
        .all()
    )
    by_type = {d.work_item_type: d for d in definitions}

    items = (
        (await session.execute(select(WorkItem).where(WorkItem.type.in_(list(by_type)))))
        .scalars()
        .all()
    )

    rules: dict[WorkItemType, dict[str, Any]] = {
        d.work_item_type: {
            "workItemType": d.work_item_type.value,
            "label": d.label,
            "targetDays": d.target_days,
            "dueDateDriven": d.due_date_driven,
            "activeCount": 0,
            "breachCount": 0,
            "dueSoonCount": 0,
            "completedCount": 0,
            "missedCount": 0,
            "missedPct": None,
        }
        for d in definitions
    }
    flagged: list[dict[str, Any]] = []
    misses: list[dict[str, Any]] = []

    for item in items:
        definition = by_type[item.type]
        rule = rules[item.type]
        deadline = definition.deadline_for(item.created_at, item.due_at)

        if item.status != WorkItemStatus.DONE:
            rule["activeCount"] += 1
            if deadline is None:
                continue
            if deadline < now:
                rule["breachCount"] += 1
                sla_status = "BREACH"
                days_overdue: int | None = math.ceil((now - deadline).total_seconds() / 86400)
            elif deadline < now + DUE_SOON_WINDOW:
                rule["dueSoonCount"] += 1
                sla_status = "DUE_SOON"
                days_overdue = None
            else:
                continue
            flagged.append(
                {
                    "id": str(item.id),
                    "title": item.title,
                    "type": item.type.value,
                    "status": item.status.value,
                    "owner": _owner(item),
                    "deadline": deadline.isoformat(),
                    "daysOverdue": days_overdue,
                    "slaStatus": sla_status,
                }
            )
            continue

        rule["completedCount"] += 1
        if deadline is not None and item.completed_at is not None and item.completed_at > deadline:
            rule["missedCount"] += 1
            if item.completed_at > now - MISSED_LOOKBACK:
                misses.append(
                    {
                        "id": str(item.id),
                        "title": item.title,
                        "type": item.type.value,
                        "completedAt": item.completed_at.isoformat(),
                        "daysLate": round((item.completed_at - deadline).total_seconds() / 86400, 1),
                    }
                )

    for rule in rules.values():
        if rule["completedCount"]:
            rule["missedPct"] = round(rule["missedCount"] / rule["completedCount"] * 100)

    ordered_rules = sorted(
        rules.values(), key=lambda r: (-r["breachCount"], -r["dueSoonCount"], r["workItemType"])
    )
    flagged.sort(key=lambda f: (f["slaStatus"] != "BREACH", f["deadline"]))
    misses.sort(key=lambda m: m["completedAt"], reverse=True)

    worst = None
    for rule in ordered_rules:
        if rule["missedPct"] is None:
            continue
        if worst is None or rule["missedPct"] > worst["missedPct"]:
            worst = rule

    return {
        "summary": {
            "totalBreach": sum(r["breachCount"] for r in ordered_rules),
            "totalDueSoon": sum(r["dueSoonCount"] for r in ordered_rules),
            "worstType": (
                {"label": worst["label"], "missedPct": worst["missedPct"]} if worst else None
            ),
        },
        "rules": ordered_rules,
        "flagged": flagged,
        "recentMisses": misses[:RECENT_MISSES_LIMIT],
    }
