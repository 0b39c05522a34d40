"""
Cron job runner.

Runs exactly one job function in its own database session, times it, and
writes exactly one CronRunLog row once the job has settled. The run-log
write happens in a separate session so that a rolled-back job still leaves
its audit record, and a failing write never changes the job's response.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.responses import JSONResponse

from opsdesk.core.errors import APIError, error_message
from opsdesk.core.logging import get_logger
from opsdesk.models.cron_run_log import RunStatus
from opsdesk.repositories.run_logs import RunLogRepository
from opsdesk.services.slack_service import send_slack_error

logger = get_logger(__name__)


@dataclass
class JobResult:
    """What a job returns: response fields, plus an optional different run-log payload."""

    payload: dict[str, Any]
    log_payload: dict[str, Any] | None = None

    @property
    def logged(self) -> dict[str, Any]:
        return self.log_payload if self.log_payload is not None else self.payload


Job = Callable[[AsyncSession], Awaitable[JobResult]]


@dataclass
class JobOutcome:
    """Settled result of one runner invocation, ready to become an HTTP response."""

    job_name: str
    ok: bool
    duration_ms: int
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body, headers=self.headers)


class JobTimeout(APIError):
    status_code = 504


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def _invoke(job: Job, session_factory: async_sessionmaker[AsyncSession]) -> JobResult:
    async with session_factory() as session:
        try:
            result = await job(session)
            await session.commit()
            return result
        except BaseException:
            await session.rollback()
            raise


async def write_run_log(
    session_factory: async_sessionmaker[AsyncSession],
    job_name: str,
    status: RunStatus,
    result: dict[str, Any] | None = None,
    error: str | None = None,
    duration_ms: int | None = None,
) -> bool:
    """
    Persist one run-log row. Best effort.

    A failure here is logged and reported, never raised, so the caller's
    response stays the one determined by the job.
    """
    try:
        async with session_factory() as session:
            await RunLogRepository(session).record(
                job_name=job_name,
                status=status,
                result=result,
                error=error,
                duration_ms=duration_ms,
            )
            await session.commit()
        return True
    except Exception as e:
        logger.bind(job=job_name, error=str(e)).error("failed_to_record_cron_run")
        await send_slack_error(
            title="Cron run-log write failed",
            error=str(e),
            context={"job": job_name, "job_status": status.value},
        )
        return False


async def run_job(
    job_name: str,
    job: Job,
    session_factory: async_sessionmaker[AsyncSession],
    timeout: float | None = None,
) -> JobOutcome:
    """
    Run one job and record it.

    Args:
        job_name: Stable name stored in the run log (e.g. "daily-digest")
        job: Coroutine function taking a session and returning a JobResult
        session_factory: Factory for the job session and the run-log session
        timeout: Upper bound for the whole job in seconds

    Returns:
        JobOutcome with 200 {ok, ...payload, durationMs} on success, or the
        error's status (500 for untyped failures) with {error} on failure
    """
    started = time.perf_counter()
    logger.bind(job=job_name).info("cron_job_started")

    try:
        result = await asyncio.wait_for(_invoke(job, session_factory), timeout=timeout)
    except TimeoutError:
        duration_ms = _elapsed_ms(started)
        message = f"Job timed out after {timeout:g}s"
        return await _failed(
            session_factory, job_name, JobTimeout(message), message, duration_ms
        )
    except Exception as e:
        duration_ms = _elapsed_ms(started)
        return await _failed(session_factory, job_name, e, error_message(e), duration_ms)

    duration_ms = _elapsed_ms(started)
    await write_run_log(
        session_factory,
        job_name,
        RunStatus.SUCCESS,
        result=result.logged,
        duration_ms=duration_ms,
    )
    logger.bind(job=job_name, duration_ms=duration_ms).info("cron_job_succeeded")

    return JobOutcome(
        job_name=job_name,
        ok=True,
        duration_ms=duration_ms,
        status_code=200,
        body={"ok": True, **result.payload, "durationMs": duration_ms},
    )


async def _failed(
    session_factory: async_sessionmaker[AsyncSession],
    job_name: str,
    exc: Exception,
    message: str,
    duration_ms: int,
) -> JobOutcome:
    await write_run_log(
        session_factory,
        job_name,
        RunStatus.ERROR,
        error=message,
        duration_ms=duration_ms,
    )

    if isinstance(exc, APIError) and exc.status_code < 500:
        status_code = exc.status_code
        body = exc.to_body()
        headers = exc.headers
        logger.bind(job=job_name, error=message, status=status_code).warning("cron_job_rejected")
    else:
        status_code = exc.status_code if isinstance(exc, APIError) else 500
        # Upstream failures surface as 500 from cron endpoints
        if status_code == 502:
            status_code = 500
        body = {"error": message}
        headers = {}
        logger.bind(job=job_name, error=message, duration_ms=duration_ms).error("cron_job_failed")

    return JobOutcome(
        job_name=job_name,
        ok=False,
        duration_ms=duration_ms,
        status_code=status_code,
        body=body,
        headers=headers,
    )
