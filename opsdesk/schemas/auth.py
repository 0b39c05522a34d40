import uuid

from pydantic import BaseModel, EmailStr, Field

from opsdesk.models.user import UserRole
from opsdesk.schemas.common import CamelModel


class LoginRequest(BaseModel):
    """Request body for email/password sign-in."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=200)


class UserSummary(CamelModel):
    id: uuid.UUID
    email: str
    name: str | None = None
    role: UserRole


class MeResponse(CamelModel):
    """Response for /api/me endpoint."""

    authed: bool
    user: UserSummary | None = None
