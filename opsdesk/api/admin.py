"""Admin-only endpoints: health, sync and cron audit, users, SLA settings."""

import uuid
from datetime import timedelta

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from opsdesk.core.database import ping
from opsdesk.core.datetime_utils import utc_now
from opsdesk.core.errors import NotFound, ValidationFailed
from opsdesk.core.logging import get_logger
from opsdesk.core.security import hash_password
from opsdesk.dependencies import AdminUser, AppSettings, Config, DBSession, SessionFactory, Sheets
from opsdesk.jobs.runner import run_job
from opsdesk.jobs.tasks import (
    DIGEST_JOB,
    TEXAS_AUTHORS_IMPORT_JOB,
    digest_job,
    texas_authors_sync_job,
)
from opsdesk.models.deadline import EditorialDeadline
from opsdesk.models.sla import SlaDefinition
from opsdesk.models.sync_run import SyncKind
from opsdesk.models.user import User, UserRole
from opsdesk.models.work_item import WorkItemType
from opsdesk.repositories.run_logs import RunLogRepository
from opsdesk.repositories.sync_runs import SyncRunRepository
from opsdesk.schemas.admin import (
    CronRunResponse,
    DeadlineResponse,
    HealthResponse,
    JobStatsResponse,
    PasswordUpdate,
    RoleUpdate,
    SlaDefinitionResponse,
    SlaUpdate,
    SyncStatusResponse,
    UserListItem,
)
from opsdesk.schemas.common import DataResponse
from opsdesk.schemas.texas_author import SyncRunResponse
from opsdesk.services.audit import record_audit

logger = get_logger(__name__)

router = APIRouter(prefix="/admin")

SYNC_HISTORY_LIMIT = 20


# =============================================================================
# Health & audit
# =============================================================================


@router.get("/health", response_model=DataResponse[HealthResponse])
async def admin_health(
    admin: AdminUser, db: DBSession, settings: AppSettings, config: Config
) -> DataResponse[HealthResponse]:
    """
    Operational overview.

    Database reachability, the last directory sync, the most recent run of
    every cron job and the deadlines coming up.
    """
    db_ok = await ping(db)

    last_sync = None
    cron: dict[str, CronRunResponse] = {}
    upcoming: list[DeadlineResponse] = []
    if db_ok:
        last_sync = await SyncRunRepository(db).latest(SyncKind.TEXAS_AUTHORS)
        cron = {
            name: CronRunResponse.model_validate(log)
            for name, log in (await RunLogRepository(db).latest_per_job()).items()
        }
        now = utc_now()
        result = await db.execute(
            select(EditorialDeadline)
            .where(
                EditorialDeadline.due_at >= now,
                EditorialDeadline.due_at < now + timedelta(days=config.admin.upcoming_deadline_days),
            )
            .order_by(EditorialDeadline.due_at)
        )
        upcoming = [DeadlineResponse.model_validate(d) for d in result.scalars().all()]

    return DataResponse(
        data=HealthResponse(
            db=db_ok,
            last_sync=SyncRunResponse.model_validate(last_sync) if last_sync else None,
            cron=cron,
            upcoming_deadlines=upcoming,
            revision=settings.k_revision or None,
            service=settings.k_service or None,
        )
    )


@router.get("/sync-status", response_model=DataResponse[SyncStatusResponse])
async def sync_status(
    admin: AdminUser, db: DBSession, config: Config
) -> DataResponse[SyncStatusResponse]:
    repo = SyncRunRepository(db)
    runs = await repo.recent(SyncKind.TEXAS_AUTHORS, limit=SYNC_HISTORY_LIMIT)
    recent_failure = await repo.has_failure_since(
        SyncKind.TEXAS_AUTHORS, hours=config.admin.sync_failure_window_hours
    )
    return DataResponse(
        data=SyncStatusResponse(
            last_run=SyncRunResponse.model_validate(runs[0]) if runs else None,
            recent_failure=recent_failure,
            runs=[SyncRunResponse.model_validate(r) for r in runs],
        )
    )


@router.get("/cron-runs", response_model=DataResponse[list[CronRunResponse]])
async def list_cron_runs(
    admin: AdminUser,
    db: DBSession,
    job: str | None = Query(default=None, description="Filter by job name"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> DataResponse[list[CronRunResponse]]:
    """Cron execution history, newest first."""
    runs = await RunLogRepository(db).list_runs(job_name=job, limit=limit, offset=offset)
    return DataResponse(data=[CronRunResponse.model_validate(r) for r in runs])


@router.get("/cron-runs/stats", response_model=DataResponse[list[JobStatsResponse]])
async def cron_run_stats(admin: AdminUser, db: DBSession) -> DataResponse[list[JobStatsResponse]]:
    """Success rates, average durations and last run per job."""
    stats = await RunLogRepository(db).stats()
    return DataResponse(data=[JobStatsResponse.model_validate(s) for s in stats])


@router.post("/digest")
async def trigger_digest(
    admin: AdminUser, settings: AppSettings, config: Config, session_factory: SessionFactory
) -> JSONResponse:
    """Send the daily digest now. Recorded in the run log like the cron run."""
    logger.bind(user_id=str(admin.id)).info("digest_triggered_manually")
    outcome = await run_job(
        DIGEST_JOB, digest_job(config), session_factory, timeout=settings.job_timeout_seconds
    )
    return outcome.to_response()


@router.post("/texas-authors/import")
async def import_texas_authors(
    admin: AdminUser,
    settings: AppSettings,
    config: Config,
    session_factory: SessionFactory,
    sheets: Sheets,
) -> JSONResponse:
    """
    Full re-import of the Texas Authors sheet.

    Ignores the sync cooldown and the unchanged-sheet shortcut; every row is
    upserted. Recorded as a sync run and in the run log.
    """
    logger.bind(user_id=str(admin.id)).info("texas_authors_import_triggered")
    outcome = await run_job(
        TEXAS_AUTHORS_IMPORT_JOB,
        texas_authors_sync_job(settings, config, sheets, force=True),
        session_factory,
        timeout=settings.job_timeout_seconds,
    )
    return outcome.to_response()


# =============================================================================
# Users
# =============================================================================


async def _get_user(db: DBSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.patch("/users/{user_id}/role", response_model=DataResponse[UserListItem])
async def update_user_role(
    user_id: uuid.UUID, body: RoleUpdate, admin: AdminUser, db: DBSession
) -> DataResponse[UserListItem]:
    target = await _get_user(db, user_id)

    if target.role == UserRole.ADMIN and body.role != UserRole.ADMIN:
        if target.id == admin.id:
            raise ValidationFailed("You cannot remove your own admin role")
        admin_count = (
            await db.execute(select(func.count(User.id)).where(User.role == UserRole.ADMIN))
        ).scalar() or 0
        if admin_count <= 1:
            raise ValidationFailed("Cannot demote the last admin")

    old_role = target.role
    if old_role != body.role:
        target.role = body.role
        await db.flush()
        await record_audit(
            db,
            "role_changed",
            actor_id=admin.id,
            from_value=old_role.value,
            to_value=body.role.value,
            details={"userId": str(target.id), "email": target.email},
        )
        logger.bind(user_id=str(target.id), role=body.role.value).info("user_role_changed")

    return DataResponse(data=UserListItem.model_validate(target))


@router.patch("/users/{user_id}/password")
async def update_user_password(
    user_id: uuid.UUID, body: PasswordUpdate, admin: AdminUser, db: DBSession
) -> dict:
    target = await _get_user(db, user_id)
    target.password_hash = hash_password(body.password)
    await db.flush()
    await record_audit(
        db,
        "password_changed",
        actor_id=admin.id,
        details={"userId": str(target.id), "email": target.email},
    )
    logger.bind(user_id=str(target.id)).info("user_password_changed")
    return {"data": {"ok": True}}


# =============================================================================
# SLA definitions
# =============================================================================


@router.get("/sla", response_model=DataResponse[list[SlaDefinitionResponse]])
async def list_sla_definitions(
    admin: AdminUser, db: DBSession
) -> DataResponse[list[SlaDefinitionResponse]]:
    result = await db.execute(select(SlaDefinition).order_by(SlaDefinition.work_item_type))
    return DataResponse(data=[SlaDefinitionResponse.model_validate(d) for d in result.scalars().all()])


@router.patch("/sla/{work_item_type}", response_model=DataResponse[SlaDefinitionResponse])
async def update_sla_definition(
    work_item_type: WorkItemType, body: SlaUpdate, admin: AdminUser, db: DBSession
) -> DataResponse[SlaDefinitionResponse]:
    result = await db.execute(
        select(SlaDefinition).where(SlaDefinition.work_item_type == work_item_type)
    )
    definition = result.scalar_one_or_none()
    if definition is None:
        raise NotFound("SLA definition not found")

    changes = body.model_dump(exclude_unset=True)
    if changes.get("label") is not None:
        definition.label = changes["label"]
    if "target_days" in changes:
        definition.target_days = changes["target_days"]
    if changes.get("due_date_driven") is not None:
        definition.due_date_driven = changes["due_date_driven"]

    if not definition.due_date_driven and definition.target_days is None:
        raise ValidationFailed(
            "Validation failed",
            errors={"targetDays": ["Required unless the SLA is due-date driven"]},
        )

    await db.flush()
    logger.bind(work_item_type=work_item_type.value, **changes).info("sla_definition_updated")
    return DataResponse(data=SlaDefinitionResponse.model_validate(definition))
