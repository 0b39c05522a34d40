import uuid
from datetime import date, datetime, time

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy import Select, func, or_, select

from opsdesk.core.datetime_utils import utc_now
from opsdesk.core.errors import NotFound
from opsdesk.core.logging import get_logger
from opsdesk.dependencies import AppSettings, Config, CurrentUser, DBSession, SessionFactory, Sheets
from opsdesk.jobs.runner import run_job
from opsdesk.jobs.tasks import TEXAS_AUTHORS_SYNC_JOB, texas_authors_sync_job
from opsdesk.models.sync_run import SyncKind
from opsdesk.models.texas_author import TexasAuthor
from opsdesk.repositories.sync_runs import SyncRunRepository
from opsdesk.schemas.common import DataResponse
from opsdesk.schemas.texas_author import (
    SyncRunResponse,
    TexasAuthorDetail,
    TexasAuthorPage,
    TexasAuthorResponse,
    TexasAuthorUpdate,
)
from opsdesk.services.exports import texas_authors_csv

logger = get_logger(__name__)

router = APIRouter()

MAX_PAGE_SIZE = 50


def filter_authors(query: Select, q: str | None, contacted: bool | None) -> Select:
    """Case-insensitive search over name, email, city and state, plus the contacted flag."""
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(TexasAuthor.name).like(pattern),
                func.lower(TexasAuthor.email).like(pattern),
                func.lower(TexasAuthor.city).like(pattern),
                func.lower(TexasAuthor.state).like(pattern),
            )
        )
    if contacted is not None:
        query = query.where(TexasAuthor.contacted == contacted)
    return query


@router.get("/texas-authors", response_model=DataResponse[TexasAuthorPage])
async def list_authors(
    user: CurrentUser,
    db: DBSession,
    q: str | None = Query(default=None, max_length=200),
    contacted: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=25, ge=1, le=MAX_PAGE_SIZE),
) -> DataResponse[TexasAuthorPage]:
    """
    Search the directory by name, email, city or state.

    Also returns the most recent sync run so the UI can show freshness.
    """
    query = filter_authors(select(TexasAuthor), q, contacted)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(TexasAuthor.name).offset((page - 1) * limit).limit(limit)
    )
    last_run = await SyncRunRepository(db).latest(SyncKind.TEXAS_AUTHORS)

    return DataResponse(
        data=TexasAuthorPage(
            items=[TexasAuthorResponse.model_validate(a) for a in result.scalars().all()],
            total=total,
            page=page,
            limit=limit,
            last_run=SyncRunResponse.model_validate(last_run) if last_run else None,
        )
    )


async def _get_author(db: DBSession, author_id: uuid.UUID) -> TexasAuthor:
    author = await db.get(TexasAuthor, author_id)
    if author is None:
        raise NotFound("Author not found")
    return author


@router.get("/texas-authors/{author_id}", response_model=DataResponse[TexasAuthorDetail])
async def get_author(
    author_id: uuid.UUID, user: CurrentUser, db: DBSession
) -> DataResponse[TexasAuthorDetail]:
    author = await _get_author(db, author_id)
    return DataResponse(data=TexasAuthorDetail.model_validate(author))


@router.patch("/texas-authors/{author_id}", response_model=DataResponse[TexasAuthorDetail])
async def update_author(
    author_id: uuid.UUID, body: TexasAuthorUpdate, user: CurrentUser, db: DBSession
) -> DataResponse[TexasAuthorDetail]:
    author = await _get_author(db, author_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("contacted") is not None and changes["contacted"] != author.contacted:
        author.contacted = changes["contacted"]
        author.contacted_at = utc_now() if author.contacted else None
    if "notes" in changes:
        author.notes = changes["notes"]

    await db.flush()
    return DataResponse(data=TexasAuthorDetail.model_validate(author))


@router.post("/texas-authors/sync")
async def sync_authors(
    user: CurrentUser,
    settings: AppSettings,
    config: Config,
    session_factory: SessionFactory,
    sheets: Sheets,
) -> JSONResponse:
    """Manual sync from the directory page. Same job, cooldown and run log as the cron."""
    logger.bind(user_id=str(user.id)).info("texas_authors_manual_sync")
    outcome = await run_job(
        TEXAS_AUTHORS_SYNC_JOB,
        texas_authors_sync_job(settings, config, sheets),
        session_factory,
        timeout=settings.job_timeout_seconds,
    )
    return outcome.to_response()


@router.get("/export/texas-authors")
async def export_authors(
    user: CurrentUser,
    db: DBSession,
    q: str | None = Query(default=None, max_length=200),
    contacted: bool | None = Query(default=None),
    created_from: date | None = Query(default=None, alias="createdFrom"),
    created_to: date | None = Query(default=None, alias="createdTo"),
) -> Response:
    """Download the filtered directory as CSV. createdTo includes the whole day."""
    query = filter_authors(select(TexasAuthor), q, contacted)
    if created_from is not None:
        query = query.where(TexasAuthor.created_at >= datetime.combine(created_from, time.min))
    if created_to is not None:
        query = query.where(TexasAuthor.created_at <= datetime.combine(created_to, time.max))

    result = await db.execute(query.order_by(TexasAuthor.name))
    authors = result.scalars().all()
    logger.bind(user_id=str(user.id), rows=len(authors)).info("texas_authors_exported")

    filename = f"texas-authors-{utc_now().date().isoformat()}.csv"
    return Response(
        content=texas_authors_csv(authors),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
