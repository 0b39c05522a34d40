"""Typed access to the cron run-log table."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.models.cron_run_log import CronRunLog, RunStatus


@dataclass
class JobStats:
    job_name: str
    total_runs: int
    successful_runs: int
    failed_runs: int
    success_rate: float
    avg_duration_ms: float | None
    last_run: datetime | None
    last_status: str | None


class RunLogRepository:
    """Append-only store of cron executions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(
        self,
        job_name: str,
        status: RunStatus,
        result: dict[str, Any] | None = None,
        error: str | None = None,
        duration_ms: int | None = None,
    ) -> CronRunLog:
        log = CronRunLog(
            job_name=job_name,
            status=status,
            result=result,
            error=error,
            duration_ms=duration_ms,
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def list_runs(
        self, job_name: str | None = None, limit: int = 50, offset: int = 0
    ) -> list[CronRunLog]:
        query = select(CronRunLog).order_by(CronRunLog.created_at.desc())
        if job_name:
            query = query.where(CronRunLog.job_name == job_name)
        result = await self.session.execute(query.offset(offset).limit(limit))
        return list(result.scalars().all())

    async def latest(self, job_name: str) -> CronRunLog | None:
        result = await self.session.execute(
            select(CronRunLog)
            .where(CronRunLog.job_name == job_name)
            .order_by(CronRunLog.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def job_names(self) -> list[str]:
        result = await self.session.execute(select(CronRunLog.job_name).distinct())
        return sorted(result.scalars().all())

    async def latest_per_job(self) -> dict[str, CronRunLog]:
        """Most recent record for every job name that has run at least once."""
        latest: dict[str, CronRunLog] = {}
        for job_name in await self.job_names():
            log = await self.latest(job_name)
            if log is not None:
                latest[job_name] = log
        return latest

    async def stats(self) -> list[JobStats]:
        stats = []
        for job_name in await self.job_names():
            total = (
                await self.session.execute(
                    select(func.count(CronRunLog.id)).where(CronRunLog.job_name == job_name)
                )
            ).scalar() or 0

            successful = (
                await self.session.execute(
                    select(func.count(CronRunLog.id)).where(
                        CronRunLog.job_name == job_name,
                        CronRunLog.status == RunStatus.SUCCESS,
                    )
                )
            ).scalar() or 0

            avg_duration = (
                await self.session.execute(
                    select(func.avg(CronRunLog.duration_ms)).where(
                        CronRunLog.job_name == job_name,
                        CronRunLog.status == RunStatus.SUCCESS,
                    )
                )
            ).scalar()

            last = await self.latest(job_name)

            stats.append(
                JobStats(
                    job_name=job_name,
                    total_runs=total,
                    successful_runs=successful,
                    failed_runs=total - successful,
                    success_rate=successful / total if total > 0 else 0.0,
                    avg_duration_ms=float(avg_duration) if avg_duration is not None else None,
                    last_run=last.created_at if last else None,
                    last_status=last.status.value if last else None,
                )
            )
        return stats
