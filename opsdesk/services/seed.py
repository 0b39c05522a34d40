"""Reference data: SLA definitions and default trigger templates. Idempotent."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.core.logging import get_logger
from opsdesk.models.sla import SlaDefinition
from opsdesk.models.work_item import TriggerTemplate, WorkItemType
from opsdesk.services.sla import DEFAULT_SLA_DEFINITIONS

logger = get_logger(__name__)

# (type, name, due_days_offset, subtask titles)
DEFAULT_TEMPLATES: list[tuple[WorkItemType, str, int, list[str]]] = [
    (
        WorkItemType.BOOK_CAMPAIGN,
        "Book Campaign Default",
        30,
        [
            "Receive book materials from author/publisher",
            "Create campaign folder in Drive",
            "Design social graphics (carousel + stories)",
            "Write social copy",
            "Schedule posts",
            "Send folder to reviewers",
            "Follow up on reviews",
            "Campaign wrap-up and metrics",
        ],
    ),
    (
        WorkItemType.SOCIAL_ASSET_REQUEST,
        "Social Asset Request Default",
        7,
        ["Gather brand assets and copy", "Design graphics", "Get approval", "Deliver final files"],
    ),
    (
        WorkItemType.SPONSORED_EDITORIAL_REVIEW,
        "Sponsored Editorial Review Default",
        30,
        [
            "Log book receipt",
            "Assign to reviewer",
            "Review completed",
            "Edit and format review",
            "Publish review",
            "Notify author/publisher",
        ],
    ),
    (
        WorkItemType.TX_BOOK_PREVIEW_LEAD,
        "TX Book Preview Lead Default",
        14,
        ["Verify contact info", "Send preview PDF", "Add to newsletter", "Follow up"],
    ),
    (
        WorkItemType.WEBSITE_EVENT,
        "Website Event Default",
        3,
        ["Verify event details", "Create event post", "Add to calendar", "Promote on social"],
    ),
    (
        WorkItemType.ACCESS_REQUEST,
        "Access Request Default",
        2,
        ["Verify requester identity", "Create/update account", "Send credentials", "Confirm access"],
    ),
]


async def seed_reference_data(session: AsyncSession) -> dict[str, int]:
    """Insert missing SLA definitions and templates; existing rows are left alone."""
    existing_sla = set(
        (await session.execute(select(SlaDefinition.work_item_type))).scalars().all()
    )
    sla_created = 0
    for work_item_type, label, target_days, due_date_driven in DEFAULT_SLA_DEFINITIONS:
        if work_item_type in existing_sla:
            continue
        session.add(
            SlaDefinition(
                work_item_type=work_item_type,
                label=label,
                target_days=target_days,
                due_date_driven=due_date_driven,
            )
        )
        sla_created += 1

    existing_templates = set(
        (await session.execute(select(TriggerTemplate.work_item_type))).scalars().all()
    )
    templates_created = 0
    for work_item_type, name, offset, subtasks in DEFAULT_TEMPLATES:
        if work_item_type in existing_templates:
            continue
        session.add(
            TriggerTemplate(
                name=name,
                work_item_type=work_item_type,
                due_days_offset=offset,
                subtasks=[{"title": title} for title in subtasks],
                is_active=True,
            )
        )
        templates_created += 1

    await session.flush()
    logger.bind(sla_created=sla_created, templates_created=templates_created).info("seed_completed")
    return {"slaDefinitions": sla_created, "templates": templates_created}
