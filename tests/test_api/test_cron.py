"""Tests for the cron endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from opsdesk.core.errors import UpstreamError
from opsdesk.models.cron_run_log import CronRunLog, RunStatus
from opsdesk.models.deadline import EditorialDeadline
from opsdesk.models.sync_run import SyncRun, SyncStatus
from opsdesk.models.texas_author import TexasAuthor

pytestmark = pytest.mark.asyncio

DIGEST_SUMMARY = {"overdue": 2, "dueToday": 1, "dueSoon": 4, "blockedOver3d": 0, "total": 7}


async def _logs(session, job_name: str | None = None) -> list[CronRunLog]:
    query = select(CronRunLog)
    if job_name:
        query = query.where(CronRunLog.job_name == job_name)
    result = await session.execute(query.order_by(CronRunLog.created_at))
    return list(result.scalars().all())


class TestCronSecret:
    """Every cron endpoint checks x-cron-secret before doing anything."""

    @pytest.mark.parametrize(
        "path",
        [
            "/api/cron/digest",
            "/api/cron/generate-deadlines",
            "/api/cron/ser-reminders",
            "/api/cron/sync/texas-authors",
        ],
    )
    async def test_missing_secret_rejected(self, client: AsyncClient, db_session, path: str):
        """Should return 401 and write no run log."""
        response = await client.post(path)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert await _logs(db_session) == []

    @patch("opsdesk.jobs.tasks.send_digest", new_callable=AsyncMock)
    async def test_wrong_secret_rejected(
        self, mock_send: AsyncMock, client: AsyncClient, db_session
    ):
        """Should not run the job when the secret does not match."""
        response = await client.post("/api/cron/digest", headers={"x-cron-secret": "nope"})

        assert response.status_code == 401
        mock_send.assert_not_awaited()
        assert await _logs(db_session) == []

    async def test_unset_secret_rejects_everything(
        self, client: AsyncClient, test_settings, fake_sheets
    ):
        """Should reject even an empty header when CRON_SYNC_SECRET is unset."""
        test_settings.cron_sync_secret = ""

        response = await client.post(
            "/api/cron/sync/texas-authors", headers={"x-cron-secret": ""}
        )

        assert response.status_code == 401
        assert fake_sheets.calls == []


class TestCronDigest:
    """Tests for POST /api/cron/digest."""

    @patch("opsdesk.jobs.tasks.send_digest", new_callable=AsyncMock)
    async def test_digest_success(
        self, mock_send: AsyncMock, client: AsyncClient, cron_headers, db_session
    ):
        """Should return the digest result and log flat counts plus delivery."""
        mock_send.return_value = {"summary": DIGEST_SUMMARY, "sent": 12}

        response = await client.post("/api/cron/digest", headers=cron_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["summary"] == DIGEST_SUMMARY
        assert body["sent"] == 12
        assert isinstance(body["durationMs"], int)
        mock_send.assert_awaited_once()

        logs = await _logs(db_session, "daily-digest")
        assert len(logs) == 1
        assert logs[0].status == RunStatus.SUCCESS
        assert logs[0].result == {**DIGEST_SUMMARY, "sent": 12}

    @patch("opsdesk.jobs.tasks.send_digest", new_callable=AsyncMock)
    async def test_digest_failure(
        self, mock_send: AsyncMock, client: AsyncClient, cron_headers, db_session
    ):
        """Should return 500 with the error and log exactly one error run."""
        mock_send.side_effect = RuntimeError("smtp exploded")

        response = await client.post("/api/cron/digest", headers=cron_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "smtp exploded"}

        logs = await _logs(db_session, "daily-digest")
        assert len(logs) == 1
        assert logs[0].status == RunStatus.ERROR
        assert logs[0].error == "smtp exploded"

    async def test_digest_with_no_channels_configured(
        self, client: AsyncClient, cron_headers, db_session
    ):
        """Should succeed with every channel reported as not sent."""
        response = await client.post("/api/cron/digest", headers=cron_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["total"] == 0
        assert body["sent"] == {"email": False, "slack": False, "ghl": False}


class TestCronGenerateDeadlines:
    """Tests for POST /api/cron/generate-deadlines."""

    async def test_generates_and_is_idempotent(
        self, client: AsyncClient, cron_headers, db_session
    ):
        """Should create deadlines once and skip them on the next run."""
        first = await client.post("/api/cron/generate-deadlines", headers=cron_headers)
        assert first.status_code == 200
        created = first.json()["created"]
        assert created > 0

        second = await client.post("/api/cron/generate-deadlines", headers=cron_headers)
        assert second.status_code == 200
        assert second.json()["created"] == 0
        assert second.json()["skipped"] == created

        count = (await db_session.execute(select(func.count(EditorialDeadline.id)))).scalar()
        assert count == created
        assert len(await _logs(db_session, "generate-deadlines")) == 2


class TestCronSerReminders:
    """Tests for POST /api/cron/ser-reminders."""

    async def test_nothing_to_send(self, client: AsyncClient, cron_headers, db_session):
        """Should succeed with zero counts when there are no open SER items."""
        response = await client.post("/api/cron/ser-reminders", headers=cron_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["sent"] == 0
        assert body["skipped"] == 0
        assert body["errors"] == []
        assert len(await _logs(db_session, "ser-reminders")) == 1


class TestCronTexasAuthorsSync:
    """Tests for POST /api/cron/sync/texas-authors."""

    async def test_sync_success(self, client: AsyncClient, cron_headers, db_session, fake_sheets):
        """Should upsert sheet rows and return the sync summary."""
        response = await client.post("/api/cron/sync/texas-authors", headers=cron_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["created"] == 2
        assert body["updated"] == 0
        assert body["rowCount"] == 2
        assert body["changed"] is True
        assert fake_sheets.calls == [("sheet-123", "Authors!A:Z")]

        count = (await db_session.execute(select(func.count(TexasAuthor.id)))).scalar()
        assert count == 2

    async def test_second_call_inside_cooldown(
        self, client: AsyncClient, cron_headers, db_session, fake_sheets
    ):
        """Should answer 429 with retryAfter and not touch the sheet again."""
        first = await client.post("/api/cron/sync/texas-authors", headers=cron_headers)
        assert first.status_code == 200

        second = await client.post("/api/cron/sync/texas-authors", headers=cron_headers)

        assert second.status_code == 429
        body = second.json()
        assert 299 <= body["retryAfter"] <= 300
        assert second.headers["retry-after"] == str(body["retryAfter"])
        assert len(fake_sheets.calls) == 1

        logs = await _logs(db_session, "texas-authors-sync")
        assert [log.status for log in logs] == [RunStatus.SUCCESS, RunStatus.ERROR]

        runs = (await db_session.execute(select(SyncRun))).scalars().all()
        assert len(runs) == 1

    async def test_sheets_failure_marks_run_failed(
        self, client: AsyncClient, cron_headers, db_session, fake_sheets
    ):
        """Should return 500 and leave a FAILED sync run with the error."""
        fake_sheets.error = UpstreamError("Sheets API error: quota exceeded")

        response = await client.post("/api/cron/sync/texas-authors", headers=cron_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Sheets API error: quota exceeded"}

        runs = (await db_session.execute(select(SyncRun))).scalars().all()
        assert len(runs) == 1
        assert runs[0].status == SyncStatus.FAILED
        assert runs[0].error == "Sheets API error: quota exceeded"
        assert runs[0].finished_at is not None

        logs = await _logs(db_session, "texas-authors-sync")
        assert len(logs) == 1
        assert logs[0].status == RunStatus.ERROR
