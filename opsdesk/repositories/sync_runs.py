"""Typed access to the sync-run audit table."""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.core.datetime_utils import get_cutoff, utc_now
from opsdesk.models.sync_run import SyncKind, SyncRun, SyncStatus


class SyncRunRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def latest(self, kind: SyncKind, status: SyncStatus | None = None) -> SyncRun | None:
        """Newest run of a kind, optionally restricted to one status."""
        query = select(SyncRun).where(SyncRun.kind == kind)
        if status is not None:
            query = query.where(SyncRun.status == status)
        result = await self.session.execute(query.order_by(SyncRun.created_at.desc()).limit(1))
        return result.scalar_one_or_none()

    async def recent(self, kind: SyncKind, limit: int = 20) -> list[SyncRun]:
        result = await self.session.execute(
            select(SyncRun)
            .where(SyncRun.kind == kind)
            .order_by(SyncRun.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def has_failure_since(self, kind: SyncKind, hours: int) -> bool:
        result = await self.session.execute(
            select(SyncRun.id)
            .where(
                SyncRun.kind == kind,
                SyncRun.status == SyncStatus.FAILED,
                SyncRun.created_at >= get_cutoff(hours=hours),
            )
            .limit(1)
        )
        return result.first() is not None

    async def start(
        self, kind: SyncKind, spreadsheet_id: str | None = None, range_a1: str | None = None
    ) -> SyncRun:
        run = SyncRun(
            kind=kind,
            status=SyncStatus.RUNNING,
            spreadsheet_id=spreadsheet_id,
            range_a1=range_a1,
        )
        self.session.add(run)
        await self.session.flush()
        return run

    async def mark_failed(self, run_id: uuid.UUID, error: str) -> None:
        """Flag a run as failed by id; safe to call after the session rolled back."""
        await self.session.execute(
            update(SyncRun)
            .where(SyncRun.id == run_id)
            .values(status=SyncStatus.FAILED, error=error, finished_at=utc_now())
        )
