from datetime import datetime, timedelta

from fastapi import APIRouter, Query
from sqlalchemy import select

from opsdesk.core.datetime_utils import start_of_day, to_naive_utc, utc_now
from opsdesk.core.errors import ValidationFailed
from opsdesk.dependencies import CurrentUser, DBSession
from opsdesk.models.deadline import EditorialDeadline
from opsdesk.schemas.admin import DeadlineResponse
from opsdesk.schemas.common import DataResponse

router = APIRouter()

DEFAULT_WINDOW_DAYS = 35


@router.get("/deadlines", response_model=DataResponse[list[DeadlineResponse]])
async def list_deadlines(
    user: CurrentUser,
    db: DBSession,
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
) -> DataResponse[list[DeadlineResponse]]:
    """Editorial deadlines in [start, end) for the calendar. Defaults to today plus 35 days."""
    start_at = to_naive_utc(start) if start else start_of_day(utc_now())
    end_at = to_naive_utc(end) if end else start_at + timedelta(days=DEFAULT_WINDOW_DAYS)
    if end_at <= start_at:
        raise ValidationFailed("Validation failed", errors={"end": ["end must be after start"]})

    result = await db.execute(
        select(EditorialDeadline)
        .where(EditorialDeadline.due_at >= start_at, EditorialDeadline.due_at < end_at)
        .order_by(EditorialDeadline.due_at)
    )
    return DataResponse(data=[DeadlineResponse.model_validate(d) for d in result.scalars().all()])
