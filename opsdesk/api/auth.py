import uuid

from fastapi import APIRouter, Request, Response
from sqlalchemy import func, select

from opsdesk.core.errors import Forbidden, Unauthorized
from opsdesk.core.logging import get_logger
from opsdesk.core.rate_limit import LOGIN_RATE_LIMIT, limiter
from opsdesk.core.security import (
    SESSION_DAYS,
    generate_session_id,
    get_session_expiry,
    verify_password,
)
from opsdesk.dependencies import SESSION_COOKIE, AppSettings, CurrentUserOptional, DBSession
from opsdesk.models.user import Session, User
from opsdesk.schemas.auth import LoginRequest, MeResponse, UserSummary

logger = get_logger(__name__)

router = APIRouter()


@router.post("/login", response_model=MeResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: DBSession,
    settings: AppSettings,
) -> MeResponse:
    """
    Sign in with email and password.

    Sets an HTTP-only session cookie on success. Unknown emails and wrong
    passwords get the same 401 so accounts cannot be enumerated.
    """
    email = body.email.lower()

    allowed = settings.allowed_email_list
    if allowed and email not in allowed:
        logger.bind(email=email).warning("login_email_not_allowed")
        raise Forbidden("This email is not allowed to sign in")

    result = await db.execute(select(User).where(func.lower(User.email) == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.password_hash):
        logger.bind(email=email).info("login_failed")
        raise Unauthorized("Invalid email or password")

    session = Session(
        id=generate_session_id(),
        user_id=user.id,
        expires_at=get_session_expiry(),
    )
    db.add(session)
    await db.flush()

    response.set_cookie(
        key=SESSION_COOKIE,
        value=str(session.id),
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=SESSION_DAYS * 24 * 60 * 60,
    )

    logger.bind(user_id=str(user.id)).info("login_succeeded")
    return MeResponse(authed=True, user=UserSummary.model_validate(user))


@router.post("/logout")
async def logout(
    response: Response,
    db: DBSession,
    user: CurrentUserOptional,
    request: Request,
) -> dict:
    """Delete the current session and clear the cookie."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if user and session_id:
        # A resolved user means the cookie already parsed as a session UUID
        session = await db.get(Session, uuid.UUID(session_id))
        if session is not None:
            await db.delete(session)
            await db.flush()
        logger.bind(user_id=str(user.id)).info("logout")

    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}
