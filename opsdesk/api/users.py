from fastapi import APIRouter
from sqlalchemy import select

from opsdesk.dependencies import CurrentUser, CurrentUserOptional, DBSession
from opsdesk.models.user import User
from opsdesk.schemas.admin import UserListItem
from opsdesk.schemas.auth import MeResponse, UserSummary
from opsdesk.schemas.common import DataResponse

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(user: CurrentUserOptional) -> MeResponse:
    """
    Get current user information.

    Returns authed=false if not logged in, otherwise returns user details.
    """
    if not user:
        return MeResponse(authed=False)
    return MeResponse(authed=True, user=UserSummary.model_validate(user))


@router.get("/users", response_model=DataResponse[list[UserListItem]])
async def list_users(user: CurrentUser, db: DBSession) -> DataResponse[list[UserListItem]]:
    """All accounts, for owner pickers."""
    result = await db.execute(select(User).order_by(User.name, User.email))
    return DataResponse(data=[UserListItem.model_validate(u) for u in result.scalars().all()])
