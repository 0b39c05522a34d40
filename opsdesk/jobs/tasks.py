"""
Cron job definitions.

Each factory closes over the configuration a job needs and returns a
coroutine function the runner calls with a fresh session. The same jobs
back the HTTP cron endpoints and the CLI.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.config import AppConfig, Settings
from opsdesk.jobs.runner import Job, JobResult
from opsdesk.services.deadlines import generate_deadlines
from opsdesk.services.digest import send_digest
from opsdesk.services.ser_reminders import send_ser_reminders
from opsdesk.services.sheets_client import GoogleSheetsClient, SheetsSource
from opsdesk.services.texas_authors import sync_texas_authors

DIGEST_JOB = "daily-digest"
DEADLINES_JOB = "generate-deadlines"
SER_REMINDERS_JOB = "ser-reminders"
TEXAS_AUTHORS_SYNC_JOB = "texas-authors-sync"
TEXAS_AUTHORS_IMPORT_JOB = "texas-authors-import"


def digest_job(config: AppConfig) -> Job:
    async def run(session: AsyncSession) -> JobResult:
        result = await send_digest(session, config)
        # Run log keeps the flat counts next to the delivery flags
        return JobResult(
            payload=result,
            log_payload={**result["summary"], "sent": result["sent"]},
        )

    return run


def deadlines_job(config: AppConfig) -> Job:
    async def run(session: AsyncSession) -> JobResult:
        result = await generate_deadlines(session, lookahead_days=config.deadlines.lookahead_days)
        return JobResult(payload=result)

    return run


def ser_reminders_job(settings: Settings, config: AppConfig) -> Job:
    async def run(session: AsyncSession) -> JobResult:
        result = await send_ser_reminders(session, settings, config)
        return JobResult(payload=result)

    return run


def texas_authors_sync_job(
    settings: Settings,
    config: AppConfig,
    sheets: SheetsSource | None = None,
    force: bool = False,
) -> Job:
    async def run(session: AsyncSession) -> JobResult:
        source = sheets if sheets is not None else GoogleSheetsClient.from_settings(settings)
        summary = await sync_texas_authors(session, settings, config, source, force=force)
        return JobResult(payload=summary.to_dict())

    return run
