"""
Cron endpoints, called by an external scheduler.

Every endpoint checks the x-cron-secret header before anything else, then
hands exactly one job to the runner, which records exactly one run log.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from opsdesk.dependencies import AppSettings, Config, CronAuthorized, SessionFactory, Sheets
from opsdesk.jobs.runner import run_job
from opsdesk.jobs.tasks import (
    DEADLINES_JOB,
    DIGEST_JOB,
    SER_REMINDERS_JOB,
    TEXAS_AUTHORS_SYNC_JOB,
    deadlines_job,
    digest_job,
    ser_reminders_job,
    texas_authors_sync_job,
)

router = APIRouter()


@router.post("/cron/digest")
async def cron_digest(
    _: CronAuthorized, settings: AppSettings, config: Config, session_factory: SessionFactory
) -> JSONResponse:
    outcome = await run_job(
        DIGEST_JOB, digest_job(config), session_factory, timeout=settings.job_timeout_seconds
    )
    return outcome.to_response()


@router.post("/cron/generate-deadlines")
async def cron_generate_deadlines(
    _: CronAuthorized, settings: AppSettings, config: Config, session_factory: SessionFactory
) -> JSONResponse:
    outcome = await run_job(
        DEADLINES_JOB, deadlines_job(config), session_factory, timeout=settings.job_timeout_seconds
    )
    return outcome.to_response()


@router.post("/cron/ser-reminders")
async def cron_ser_reminders(
    _: CronAuthorized, settings: AppSettings, config: Config, session_factory: SessionFactory
) -> JSONResponse:
    outcome = await run_job(
        SER_REMINDERS_JOB,
        ser_reminders_job(settings, config),
        session_factory,
        timeout=settings.job_timeout_seconds,
    )
    return outcome.to_response()


@router.post("/cron/sync/texas-authors")
async def cron_sync_texas_authors(
    _: CronAuthorized,
    settings: AppSettings,
    config: Config,
    session_factory: SessionFactory,
    sheets: Sheets,
) -> JSONResponse:
    outcome = await run_job(
        TEXAS_AUTHORS_SYNC_JOB,
        texas_authors_sync_job(settings, config, sheets),
        session_factory,
        timeout=settings.job_timeout_seconds,
    )
    return outcome.to_response()
