import uuid

from fastapi import APIRouter, Query, status
from sqlalchemy import select

from opsdesk.core.datetime_utils import utc_now
from opsdesk.core.errors import NotFound, ValidationFailed
from opsdesk.core.logging import get_logger
from opsdesk.dependencies import AdminUser, CurrentUser, DBSession
from opsdesk.models.user import User
from opsdesk.models.work_item import (
    Comment,
    QCCheck,
    QCStatus,
    Subtask,
    WorkItemStatus,
    WorkItemType,
)
from opsdesk.schemas.common import DataResponse
from opsdesk.schemas.work_item import (
    AuditLogResponse,
    CommentCreate,
    CommentResponse,
    QCCheckpointsCreate,
    QCCheckResponse,
    QCCheckUpdate,
    QCOverview,
    QCStats,
    SubtaskCreate,
    SubtaskResponse,
    SubtaskUpdate,
    WorkItemCreate,
    WorkItemDetail,
    WorkItemResponse,
    WorkItemUpdate,
)
from opsdesk.services.audit import recent_for_item, record_audit
from opsdesk.services.work_items import (
    create_work_item,
    delete_work_item,
    get_work_item,
    list_work_items,
    next_subtask_order,
    summarize_qc,
    update_work_item,
)

logger = get_logger(__name__)

router = APIRouter()


async def _ensure_user_exists(db: DBSession, user_id: uuid.UUID | None) -> None:
    if user_id is not None and await db.get(User, user_id) is None:
        raise ValidationFailed("Validation failed", errors={"ownerId": ["User not found"]})


# =============================================================================
# Work items
# =============================================================================


@router.get("/work-items", response_model=DataResponse[list[WorkItemResponse]])
async def list_items(
    user: CurrentUser,
    db: DBSession,
    status_filter: WorkItemStatus | None = Query(default=None, alias="status"),
    type_filter: WorkItemType | None = Query(default=None, alias="type"),
    owner_id: uuid.UUID | None = Query(default=None, alias="ownerId"),
    assigned_to_me: bool = Query(default=False, alias="assignedToMe"),
    unassigned: bool = Query(default=False),
) -> DataResponse[list[WorkItemResponse]]:
    """
    List work items for the board.

    Ordered by status column, then priority (highest first), then due date.
    """
    items = await list_work_items(
        db,
        user,
        status=status_filter,
        item_type=type_filter,
        owner_id=owner_id,
        assigned_to_me=assigned_to_me,
        unassigned=unassigned,
    )
    return DataResponse(data=[WorkItemResponse.model_validate(i) for i in items])


@router.post(
    "/work-items",
    response_model=DataResponse[WorkItemResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_item(
    body: WorkItemCreate, user: CurrentUser, db: DBSession
) -> DataResponse[WorkItemResponse]:
    await _ensure_user_exists(db, body.owner_id)
    item = await create_work_item(db, body, user)
    return DataResponse(data=WorkItemResponse.model_validate(item))


@router.get("/work-items/{item_id}", response_model=DataResponse[WorkItemDetail])
async def get_item(
    item_id: uuid.UUID, user: CurrentUser, db: DBSession
) -> DataResponse[WorkItemDetail]:
    """Work item with subtasks, comments and the 20 most recent audit entries."""
    item = await get_work_item(db, item_id)

    comments = await db.execute(
        select(Comment).where(Comment.work_item_id == item.id).order_by(Comment.created_at)
    )
    audit_logs = await recent_for_item(db, item.id)

    detail = WorkItemDetail(
        **WorkItemResponse.model_validate(item).model_dump(),
        comments=[CommentResponse.model_validate(c) for c in comments.scalars().all()],
        audit_logs=[AuditLogResponse.model_validate(a) for a in audit_logs],
    )
    return DataResponse(data=detail)


@router.patch("/work-items/{item_id}", response_model=DataResponse[WorkItemResponse])
async def update_item(
    item_id: uuid.UUID, body: WorkItemUpdate, user: CurrentUser, db: DBSession
) -> DataResponse[WorkItemResponse]:
    item = await get_work_item(db, item_id)
    changes = body.model_dump(exclude_unset=True)
    if "owner_id" in changes:
        await _ensure_user_exists(db, changes["owner_id"])
    item = await update_work_item(db, item, changes, user)
    return DataResponse(data=WorkItemResponse.model_validate(item))


@router.delete("/work-items/{item_id}")
async def delete_item(item_id: uuid.UUID, admin: AdminUser, db: DBSession) -> dict:
    item = await get_work_item(db, item_id)
    await delete_work_item(db, item, admin)
    return {"data": {"deleted": True}}


# =============================================================================
# Subtasks
# =============================================================================


@router.get("/work-items/{item_id}/subtasks", response_model=DataResponse[list[SubtaskResponse]])
async def list_subtasks(
    item_id: uuid.UUID, user: CurrentUser, db: DBSession
) -> DataResponse[list[SubtaskResponse]]:
    item = await get_work_item(db, item_id)
    result = await db.execute(
        select(Subtask).where(Subtask.work_item_id == item.id).order_by(Subtask.order)
    )
    return DataResponse(data=[SubtaskResponse.model_validate(s) for s in result.scalars().all()])


@router.post(
    "/work-items/{item_id}/subtasks",
    response_model=DataResponse[SubtaskResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_subtask(
    item_id: uuid.UUID, body: SubtaskCreate, user: CurrentUser, db: DBSession
) -> DataResponse[SubtaskResponse]:
    item = await get_work_item(db, item_id)
    order = body.order if body.order is not None else await next_subtask_order(db, item.id)
    subtask = Subtask(work_item_id=item.id, title=body.title, order=order, due_at=body.due_at)
    db.add(subtask)
    await db.flush()
    return DataResponse(data=SubtaskResponse.model_validate(subtask))


async def _get_subtask(db: DBSession, subtask_id: uuid.UUID) -> Subtask:
    subtask = await db.get(Subtask, subtask_id)
    if subtask is None:
        raise NotFound("Subtask not found")
    return subtask


@router.patch("/subtasks/{subtask_id}", response_model=DataResponse[SubtaskResponse])
async def update_subtask(
    subtask_id: uuid.UUID, body: SubtaskUpdate, user: CurrentUser, db: DBSession
) -> DataResponse[SubtaskResponse]:
    subtask = await _get_subtask(db, subtask_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("title") is not None:
        subtask.title = changes["title"]
    if changes.get("order") is not None:
        subtask.order = changes["order"]
    if "completed" in changes:
        if changes["completed"]:
            subtask.completed_at = subtask.completed_at or utc_now()
        else:
            subtask.completed_at = None

    await db.flush()
    return DataResponse(data=SubtaskResponse.model_validate(subtask))


@router.delete("/subtasks/{subtask_id}")
async def delete_subtask(subtask_id: uuid.UUID, user: CurrentUser, db: DBSession) -> dict:
    subtask = await _get_subtask(db, subtask_id)
    await db.delete(subtask)
    await db.flush()
    return {"data": {"deleted": True}}


# =============================================================================
# Comments
# =============================================================================


@router.get("/work-items/{item_id}/comments", response_model=DataResponse[list[CommentResponse]])
async def list_comments(
    item_id: uuid.UUID, user: CurrentUser, db: DBSession
) -> DataResponse[list[CommentResponse]]:
    item = await get_work_item(db, item_id)
    result = await db.execute(
        select(Comment).where(Comment.work_item_id == item.id).order_by(Comment.created_at)
    )
    return DataResponse(data=[CommentResponse.model_validate(c) for c in result.scalars().all()])


@router.post(
    "/work-items/{item_id}/comments",
    response_model=DataResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    item_id: uuid.UUID, body: CommentCreate, user: CurrentUser, db: DBSession
) -> DataResponse[CommentResponse]:
    item = await get_work_item(db, item_id)
    comment = Comment(work_item_id=item.id, author_id=user.id, body=body.body)
    db.add(comment)
    await db.flush()
    await db.refresh(comment, attribute_names=["author"])
    await record_audit(db, "commented", actor_id=user.id, work_item_id=item.id)
    return DataResponse(data=CommentResponse.model_validate(comment))


# =============================================================================
# QC checks
# =============================================================================


async def _qc_checks(db: DBSession, item_id: uuid.UUID) -> list[QCCheck]:
    result = await db.execute(
        select(QCCheck).where(QCCheck.work_item_id == item_id).order_by(QCCheck.created_at)
    )
    return list(result.scalars().all())


@router.get("/work-items/{item_id}/qc", response_model=DataResponse[QCOverview])
async def get_qc(item_id: uuid.UUID, user: CurrentUser, db: DBSession) -> DataResponse[QCOverview]:
    """QC checkpoints for an item with pass/fail counts."""
    item = await get_work_item(db, item_id)
    checks = await _qc_checks(db, item.id)
    return DataResponse(
        data=QCOverview(
            checks=[QCCheckResponse.model_validate(c) for c in checks],
            stats=QCStats(**summarize_qc(checks).to_dict()),
        )
    )


@router.post("/work-items/{item_id}/qc", status_code=status.HTTP_201_CREATED)
async def add_qc_checkpoints(
    item_id: uuid.UUID, body: QCCheckpointsCreate, user: CurrentUser, db: DBSession
) -> dict:
    """Add checkpoints (existing names are kept as they are) and flag the item for proofing."""
    item = await get_work_item(db, item_id)
    existing = {c.checkpoint for c in await _qc_checks(db, item.id)}

    created = 0
    for name in body.checkpoints:
        name = name.strip()
        if not name or name in existing:
            continue
        db.add(QCCheck(work_item_id=item.id, checkpoint=name, status=QCStatus.PENDING))
        existing.add(name)
        created += 1

    item.needs_proofing = True
    await db.flush()
    return {"data": {"created": created}}


@router.patch("/work-items/{item_id}/qc", response_model=DataResponse[QCCheckResponse])
async def update_qc_checkpoint(
    item_id: uuid.UUID, body: QCCheckUpdate, user: CurrentUser, db: DBSession
) -> DataResponse[QCCheckResponse]:
    item = await get_work_item(db, item_id)
    checks = await _qc_checks(db, item.id)

    check = next((c for c in checks if c.checkpoint == body.checkpoint), None)
    if check is None:
        raise NotFound("Checkpoint not found")

    check.status = body.status
    if body.notes is not None:
        check.notes = body.notes
    if body.status in (QCStatus.PASSED, QCStatus.FAILED):
        check.checked_at = utc_now()
        check.checked_by_id = user.id

    if all(c.status in (QCStatus.PASSED, QCStatus.SKIPPED) for c in checks):
        item.needs_proofing = False

    await db.flush()
    await record_audit(
        db,
        "qc_updated",
        actor_id=user.id,
        work_item_id=item.id,
        to_value=body.status.value,
        details={"checkpoint": body.checkpoint},
    )
    return DataResponse(data=QCCheckResponse.model_validate(check))
