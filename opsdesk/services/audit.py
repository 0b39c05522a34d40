import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.models.work_item import AuditLog


async def record_audit(
    session: AsyncSession,
    action: str,
    actor_id: uuid.UUID | None,
    work_item_id: uuid.UUID | None = None,
    from_value: str | None = None,
    to_value: str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Append one audit entry. Flushed, not committed."""
    entry = AuditLog(
        work_item_id=work_item_id,
        actor_id=actor_id,
        action=action,
        from_value=from_value,
        to_value=to_value,
        details=details,
    )
    session.add(entry)
    await session.flush()
    return entry


async def recent_for_item(
    session: AsyncSession, work_item_id: uuid.UUID, limit: int = 20
) -> list[AuditLog]:
    result = await session.execute(
        select(AuditLog)
        .where(AuditLog.work_item_id == work_item_id)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
