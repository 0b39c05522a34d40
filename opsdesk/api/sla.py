from typing import Any

from fastapi import APIRouter

from opsdesk.dependencies import CurrentUser, DBSession
from opsdesk.services.sla import compute_sla_overview

router = APIRouter()


@router.get("/sla")
async def get_sla_overview(user: CurrentUser, db: DBSession) -> dict[str, Any]:
    """
    SLA dashboard data.

    Per-type breach and due-soon counts for open items, missed percentages
    for completed ones, the flagged open items and the latest misses.
    """
    return {"data": await compute_sla_overview(db)}
