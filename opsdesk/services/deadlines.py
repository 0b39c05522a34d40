"""
Recurring editorial deadline generator.

Cadences (all times UTC):
    - Newsletter: every Monday 09:00
    - Events upload: every Friday 12:00
    - Weekend events post: every Sunday 17:00
    - Magazine: the 15th of each month, 12:00

Each occurrence has a cadence_key, so running the generator repeatedly
never creates duplicates. Deadlines created by hand have no cadence and
are never touched.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.core.datetime_utils import start_of_day, utc_now
from opsdesk.core.logging import get_logger
from opsdesk.models.deadline import DeadlineKind, EditorialDeadline

logger = get_logger(__name__)

MONDAY, FRIDAY, SUNDAY = 0, 4, 6


@dataclass
class DeadlineSpec:
    cadence_key: str
    kind: DeadlineKind
    title: str
    due_at: datetime


def _weekday_dates(weekday: int, lookahead_days: int, now: datetime) -> list[datetime]:
    """Midnights of every `weekday` from today through today + lookahead_days."""
    first = start_of_day(now)
    return [
        first + timedelta(days=offset)
        for offset in range(lookahead_days + 1)
        if (first + timedelta(days=offset)).weekday() == weekday
    ]


def _months_in_range(lookahead_days: int, now: datetime) -> list[tuple[int, int]]:
    months: list[tuple[int, int]] = []
    for offset in range(lookahead_days + 1):
        day = now + timedelta(days=offset)
        if (day.year, day.month) not in months:
            months.append((day.year, day.month))
    return months


def build_specs(now: datetime, lookahead_days: int) -> list[DeadlineSpec]:
    specs: list[DeadlineSpec] = []

    weekly = [
        (MONDAY, 9, "NEWSLETTER", DeadlineKind.NEWSLETTER, "Newsletter: week of {slug}"),
        (FRIDAY, 12, "EVENTS_UPLOAD", DeadlineKind.EVENTS_UPLOAD, "Events upload: {slug}"),
        (SUNDAY, 17, "WEEKEND_EVENTS", DeadlineKind.WEEKEND_EVENTS, "Weekend events post: {slug}"),
    ]
    for weekday, hour, prefix, kind, title in weekly:
        for midnight in _weekday_dates(weekday, lookahead_days, now):
            slug = midnight.date().isoformat()
            specs.append(
                DeadlineSpec(
                    cadence_key=f"{prefix}_{slug}",
                    kind=kind,
                    title=title.format(slug=slug),
                    due_at=midnight.replace(hour=hour),
                )
            )

    for year, month in _months_in_range(lookahead_days, now):
        due_at = datetime(year, month, 15, 12, 0, 0)
        if due_at < now:
            continue
        specs.append(
            DeadlineSpec(
                cadence_key=f"MAGAZINE_{year}-{month:02d}",
                kind=DeadlineKind.MAGAZINE,
                title=f"Magazine: {calendar.month_name[month]} {year}",
                due_at=due_at,
            )
        )

    return specs


async def generate_deadlines(
    session: AsyncSession,
    lookahead_days: int = 35,
    now: datetime | None = None,
) -> dict[str, int]:
    """
    Create any missing recurring deadlines in the lookahead window.

    Returns:
        {"created": n, "skipped": m} where skipped counts already-present keys
    """
    now = now or utc_now()
    specs = build_specs(now, lookahead_days)

    keys = [spec.cadence_key for spec in specs]
    result = await session.execute(
        select(EditorialDeadline.cadence_key).where(EditorialDeadline.cadence_key.in_(keys))
    )
    existing = set(result.scalars().all())

    created = 0
    for spec in specs:
        if spec.cadence_key in existing:
            continue
        session.add(
            EditorialDeadline(
                cadence_key=spec.cadence_key,
                kind=spec.kind,
                title=spec.title,
                due_at=spec.due_at,
            )
        )
        created += 1
    await session.flush()

    skipped = len(specs) - created
    logger.bind(created=created, skipped=skipped, lookahead_days=lookahead_days).info(
        "deadlines_generated"
    )
    return {"created": created, "skipped": skipped}
