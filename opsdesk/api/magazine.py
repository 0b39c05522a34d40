import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body
from sqlalchemy import select

from opsdesk.core.datetime_utils import to_naive_utc
from opsdesk.core.errors import NotFound
from opsdesk.core.logging import get_logger
from opsdesk.dependencies import CurrentUser, DBSession
from opsdesk.models.magazine import MagazineIssue, MagazineItem
from opsdesk.schemas.common import DataResponse
from opsdesk.schemas.magazine import MagazineIssueDetail, MagazineIssueSummary, MagazineItemResponse

logger = get_logger(__name__)

router = APIRouter()

ISSUE_LIST_LIMIT = 24

# Body key -> model attribute, by accepted JSON type
BOOLEAN_FIELDS = {"proofed": "proofed", "inFolder": "in_folder", "needsProofing": "needs_proofing"}
STRING_FIELDS = {"title": "title", "url": "url", "notes": "notes"}


def _parse_owner_id(value: Any) -> tuple[bool, uuid.UUID | None]:
    if value is None:
        return True, None
    if isinstance(value, str):
        try:
            return True, uuid.UUID(value)
        except ValueError:
            return False, None
    return False, None


def _parse_due_at(value: Any) -> tuple[bool, datetime | None]:
    if value is None:
        return True, None
    if isinstance(value, str):
        try:
            return True, to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return False, None
    return False, None


def item_changes(body: dict[str, Any]) -> dict[str, Any]:
    """
    Pick the editable fields out of a raw PATCH body.

    Only allow-listed keys with the right JSON type are kept. Unknown keys
    and wrong-typed values are dropped without an error.
    """
    changes: dict[str, Any] = {}
    for key, attr in BOOLEAN_FIELDS.items():
        if isinstance(body.get(key), bool):
            changes[attr] = body[key]
    for key, attr in STRING_FIELDS.items():
        if isinstance(body.get(key), str):
            changes[attr] = body[key]
    if "ownerId" in body:
        ok, owner_id = _parse_owner_id(body["ownerId"])
        if ok:
            changes["owner_id"] = owner_id
    if "dueAt" in body:
        ok, due_at = _parse_due_at(body["dueAt"])
        if ok:
            changes["due_at"] = due_at
    return changes


@router.get("/magazine/issues", response_model=DataResponse[list[MagazineIssueSummary]])
async def list_issues(user: CurrentUser, db: DBSession) -> DataResponse[list[MagazineIssueSummary]]:
    """Most recent issues first."""
    result = await db.execute(
        select(MagazineIssue)
        .order_by(MagazineIssue.year.desc(), MagazineIssue.month.desc())
        .limit(ISSUE_LIST_LIMIT)
    )
    issues = result.scalars().all()
    return DataResponse(
        data=[
            MagazineIssueSummary(
                id=issue.id,
                year=issue.year,
                month=issue.month,
                title=issue.title,
                item_count=len(issue.items),
            )
            for issue in issues
        ]
    )


@router.get("/magazine/issues/{issue_id}", response_model=DataResponse[MagazineIssueDetail])
async def get_issue(
    issue_id: uuid.UUID, user: CurrentUser, db: DBSession
) -> DataResponse[MagazineIssueDetail]:
    issue = await db.get(MagazineIssue, issue_id)
    if issue is None:
        raise NotFound("Issue not found")
    return DataResponse(data=MagazineIssueDetail.model_validate(issue))


@router.patch("/magazine/items/{item_id}", response_model=DataResponse[MagazineItemResponse])
async def update_item(
    item_id: uuid.UUID,
    user: CurrentUser,
    db: DBSession,
    body: dict[str, Any] = Body(...),
) -> DataResponse[MagazineItemResponse]:
    item = await db.get(MagazineItem, item_id)
    if item is None:
        raise NotFound("Item not found")

    changes = item_changes(body)
    for attr, value in changes.items():
        setattr(item, attr, value)
    await db.flush()

    logger.bind(item_id=str(item.id), fields=sorted(changes)).info("magazine_item_updated")
    return DataResponse(data=MagazineItemResponse.model_validate(item))
