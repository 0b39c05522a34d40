import uuid
from typing import Annotated

from fastapi import Cookie, Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsdesk.config import AppConfig, Settings, get_config, get_settings
from opsdesk.core.database import get_db, get_session_factory
from opsdesk.core.errors import Forbidden, Unauthorized
from opsdesk.core.logging import get_logger
from opsdesk.core.security import is_expired, secrets_match
from opsdesk.models.user import Session, User
from opsdesk.services.sheets_client import GoogleSheetsClient, SheetsSource

logger = get_logger(__name__)

SESSION_COOKIE = "session_id"

# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Config = Annotated[AppConfig, Depends(get_config)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_current_user_optional(
    db: DBSession,
    session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE),
) -> User | None:
    """Get the current user if authenticated, None otherwise."""
    if not session_id:
        return None

    try:
        session_uuid = uuid.UUID(session_id)
    except ValueError:
        return None

    result = await db.execute(select(Session).where(Session.id == session_uuid))
    session = result.scalar_one_or_none()

    if not session:
        return None

    if is_expired(session.expires_at):
        # Clean up expired session
        await db.delete(session)
        return None

    return await db.get(User, session.user_id)


async def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    """Get the current user, raise 401 if not authenticated."""
    if not user:
        raise Unauthorized("Unauthorized")
    return user


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Get the current user, raise 403 unless they hold the ADMIN role."""
    if not user.is_admin:
        logger.bind(user_id=str(user.id)).warning("admin_access_denied")
        raise Forbidden("Forbidden: Admin access required")
    return user


async def verify_cron_secret(
    settings: AppSettings,
    x_cron_secret: str | None = Header(default=None),
) -> None:
    """Reject cron calls whose x-cron-secret header does not match CRON_SYNC_SECRET."""
    if not secrets_match(x_cron_secret, settings.cron_sync_secret):
        logger.warning("cron_secret_rejected")
        raise Unauthorized("Unauthorized")


CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(get_admin_user)]
CronAuthorized = Annotated[None, Depends(verify_cron_secret)]


def get_sheets_source(settings: AppSettings) -> SheetsSource:
    """Sheets client for directory syncs; credentials load on first call."""
    return GoogleSheetsClient.from_settings(settings)


Sheets = Annotated[SheetsSource, Depends(get_sheets_source)]
