"""
Pytest configuration and fixtures for Ops Desk tests.

Provides:
- Async test database with SQLite
- Test client for API testing (request session, job session factory and
  Sheets source all pointed at the test database / a fake)
- Factory fixtures for creating test data

All sessions share one in-memory connection (StaticPool). The job runner
commits and rolls back on that connection, so tests that go through the
runner commit their setup data first.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from opsdesk.config import AppConfig, Settings, get_config, get_settings
from opsdesk.core.database import get_db, get_session_factory
from opsdesk.core.datetime_utils import utc_now
from opsdesk.core.security import hash_password
from opsdesk.dependencies import get_sheets_source
from opsdesk.main import app
from opsdesk.models import Base
from opsdesk.models.magazine import MagazineIssue, MagazineItem
from opsdesk.models.sla import SlaDefinition
from opsdesk.models.sync_run import SyncKind, SyncRun, SyncStatus
from opsdesk.models.texas_author import TexasAuthor
from opsdesk.models.user import Session, User, UserRole
from opsdesk.models.work_item import WorkItem, WorkItemPriority, WorkItemStatus, WorkItemType

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CRON_SECRET = "test-cron-secret"

SHEET_VALUES = [
    ["Author", "Email", "City", "State", "Website"],
    ["Jane Doe", "Jane@Example.com", "Austin", "TX", ""],
    ["John Roe", "", "Houston", "TX", "https://johnroe.example"],
]


# Override settings for testing
class TestSettings(Settings):
    database_url: str = TEST_DATABASE_URL
    debug: bool = True
    auth_secret: str = "test-auth-secret"
    auth_url: str = "http://test"
    allowed_emails: str = ""
    cron_sync_secret: str = CRON_SECRET
    google_sheets_texas_authors_spreadsheet_id: str = "sheet-123"
    google_sheets_texas_authors_sheet_name: str = "Authors"
    resend_api_key: str = ""
    admin_email: str = "admin@example.com"
    slack_webhook_url: str = ""
    slack_error_webhook_url: str = ""
    ghl_digest_webhook_url: str = ""
    job_timeout_seconds: float = 10.0


class FakeSheets:
    """In-memory stand-in for the Google Sheets client."""

    def __init__(self, values: list[list[str]] | None = None, title: str | None = "Authors"):
        self.values = values if values is not None else [list(r) for r in SHEET_VALUES]
        self.title = title
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []
        self.title_calls = 0

    async def get_values(self, spreadsheet_id: str, range_a1: str) -> list[list[str]]:
        self.calls.append((spreadsheet_id, range_a1))
        if self.error is not None:
            raise self.error
        return self.values

    async def first_sheet_title(self, spreadsheet_id: str) -> str | None:
        self.title_calls += 1
        return self.title


@pytest.fixture
def test_settings() -> TestSettings:
    return TestSettings()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def fake_sheets() -> FakeSheets:
    return FakeSheets()


@pytest_asyncio.fixture
async def db_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def job_session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory the job runner uses (separate sessions, same database)."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(job_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with job_session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    job_session_factory,
    test_settings: TestSettings,
    app_config: AppConfig,
    fake_sheets: FakeSheets,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with database, settings and Sheets overrides."""
    from opsdesk.core.rate_limit import limiter

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_config] = lambda: app_config
    app.dependency_overrides[get_session_factory] = lambda: job_session_factory
    app.dependency_overrides[get_sheets_source] = lambda: fake_sheets

    # Reset rate limiter storage before each test
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"x-cron-secret": CRON_SECRET}


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):
    """Factory for creating test users."""

    async def _create_user(
        email: str | None = None,
        name: str | None = None,
        role: UserRole = UserRole.STAFF,
        password: str | None = None,
    ) -> User:
        if email is None:
            email = f"test-{uuid.uuid4().hex[:8]}@example.com"

        user = User(
            email=email,
            name=name,
            role=role,
            password_hash=hash_password(password) if password else None,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _create_user


@pytest_asyncio.fixture
async def auth_headers(db_session: AsyncSession, user_factory):
    """Factory returning a Cookie header for a fresh session of the given user."""

    async def _headers(user: User | None = None, expired: bool = False) -> dict[str, str]:
        if user is None:
            user = await user_factory()

        expires_at = utc_now() + timedelta(days=-1 if expired else 30)
        session = Session(user_id=user.id, expires_at=expires_at)
        db_session.add(session)
        await db_session.flush()
        return {"Cookie": f"session_id={session.id}"}

    return _headers


@pytest_asyncio.fixture
async def work_item_factory(db_session: AsyncSession):
    """Factory for creating test work items."""

    async def _create_work_item(
        title: str = "Test item",
        type: WorkItemType = WorkItemType.GENERAL,
        status: WorkItemStatus = WorkItemStatus.BACKLOG,
        priority: WorkItemPriority = WorkItemPriority.MEDIUM,
        due_at: datetime | None = None,
        owner: User | None = None,
        **fields,
    ) -> WorkItem:
        item = WorkItem(
            title=title,
            type=type,
            status=status,
            priority=priority,
            due_at=due_at,
            owner_id=owner.id if owner else None,
            **fields,
        )
        db_session.add(item)
        await db_session.flush()
        await db_session.refresh(item, attribute_names=["owner", "subtasks"])
        return item

    return _create_work_item


@pytest_asyncio.fixture
async def texas_author_factory(db_session: AsyncSession):
    """Factory for creating directory entries."""

    async def _create_author(
        name: str = "Test Author",
        email: str | None = None,
        city: str | None = "Austin",
        contacted: bool = False,
    ) -> TexasAuthor:
        author = TexasAuthor(
            external_key=f"{'_'.join(name.lower().split())}::{email or uuid.uuid4().hex}",
            name=name,
            email=email,
            city=city,
            state="TX",
            contacted=contacted,
        )
        db_session.add(author)
        await db_session.flush()
        return author

    return _create_author


@pytest_asyncio.fixture
async def sync_run_factory(db_session: AsyncSession):
    """Factory for sync runs created a given number of seconds ago."""

    async def _create_run(
        seconds_ago: float = 0,
        status: SyncStatus = SyncStatus.SUCCESS,
        content_hash: str | None = None,
    ) -> SyncRun:
        run = SyncRun(
            kind=SyncKind.TEXAS_AUTHORS,
            status=status,
            content_hash=content_hash,
            created_at=utc_now() - timedelta(seconds=seconds_ago),
        )
        db_session.add(run)
        await db_session.flush()
        return run

    return _create_run


@pytest_asyncio.fixture
async def magazine_factory(db_session: AsyncSession):
    """Factory for an issue with items in the given sections."""

    async def _create_issue(
        year: int = 2026, month: int = 10, sections: tuple[str, ...] = ("Features", "Books")
    ) -> MagazineIssue:
        issue = MagazineIssue(year=year, month=month, title=f"{year}-{month:02d}")
        db_session.add(issue)
        await db_session.flush()
        for section in sections:
            for order in (1, 0):
                db_session.add(
                    MagazineItem(
                        issue_id=issue.id,
                        section=section,
                        sort_order=order,
                        title=f"{section} #{order}",
                    )
                )
        await db_session.flush()
        await db_session.refresh(issue, attribute_names=["items"])
        return issue

    return _create_issue


@pytest_asyncio.fixture
async def sla_definition_factory(db_session: AsyncSession):
    """Factory for SLA definitions."""

    async def _create_definition(
        work_item_type: WorkItemType = WorkItemType.SOCIAL_ASSET_REQUEST,
        label: str = "Graphics request",
        target_days: int | None = 7,
        due_date_driven: bool = False,
    ) -> SlaDefinition:
        definition = SlaDefinition(
            work_item_type=work_item_type,
            label=label,
            target_days=target_days,
            due_date_driven=due_date_driven,
        )
        db_session.add(definition)
        await db_session.flush()
        return definition

    return _create_definition
