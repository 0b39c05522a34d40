import ssl
from collections.abc import AsyncGenerator
from functools import lru_cache
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from opsdesk.config import get_settings
from opsdesk.core.logging import get_logger

logger = get_logger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1", "db")


def normalize_database_url(url: str) -> tuple[str, dict]:
    """
    Normalize a Postgres URL for asyncpg.

    libpq-style params (sslmode, channel_binding, options) are rejected by
    asyncpg, so they are stripped and SSL is passed through connect_args.
    Plain ``postgresql://`` / ``postgres://`` URLs are switched to the
    asyncpg driver.

    - Remote hosts: SSL with the default context
    - Local dev (localhost/127.0.0.1/db): no SSL
    """
    parsed = urlparse(url)
    if parsed.scheme in ("postgres", "postgresql"):
        parsed = parsed._replace(scheme="postgresql+asyncpg")
    if not parsed.scheme.startswith("postgresql"):
        return urlunparse(parsed), {}

    params = parse_qs(parsed.query)
    for param in ["sslmode", "channel_binding", "options", "schema"]:
        params.pop(param, None)

    new_query = urlencode(params, doseq=True)
    clean_url = urlunparse(parsed._replace(query=new_query))

    hostname = parsed.hostname or ""
    if hostname in LOCAL_HOSTS:
        return clean_url, {}
    return clean_url, {"ssl": ssl.create_default_context()}


@lru_cache
def get_engine() -> AsyncEngine:
    """Create the process-wide engine on first use."""
    settings = get_settings()
    url, connect_args = normalize_database_url(settings.database_url)
    return create_async_engine(
        url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=280,
        connect_args=connect_args,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that runs outside the request session (cron jobs)."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.bind(error=str(e)).error("database_transaction_rollback")
            await session.rollback()
            raise


async def ping(session: AsyncSession) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.bind(error=str(e)).warning("database_ping_failed")
        return False
