"""Tests for admin-only endpoints."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select

from opsdesk.core.datetime_utils import utc_now
from opsdesk.core.security import verify_password
from opsdesk.models.cron_run_log import CronRunLog, RunStatus
from opsdesk.models.deadline import DeadlineKind, EditorialDeadline
from opsdesk.models.sync_run import SyncStatus
from opsdesk.models.user import UserRole
from opsdesk.models.work_item import AuditLog

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def admin_headers(user_factory, auth_headers):
    admin = await user_factory(email="admin@example.com", name="Admin", role=UserRole.ADMIN)
    return await auth_headers(admin)


class TestAdminAccess:
    """Every admin endpoint rejects signed-out users and staff."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/admin/health"),
            ("get", "/api/admin/sync-status"),
            ("get", "/api/admin/cron-runs"),
            ("get", "/api/admin/cron-runs/stats"),
            ("post", "/api/admin/digest"),
            ("post", "/api/admin/texas-authors/import"),
            ("get", "/api/admin/sla"),
        ],
    )
    async def test_staff_forbidden(self, client: AsyncClient, auth_headers, method, path):
        headers = await auth_headers()

        response = await getattr(client, method)(path, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden: Admin access required"}

    async def test_anonymous_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/admin/health")

        assert response.status_code == 401

    async def test_staff_cannot_change_roles(
        self, client: AsyncClient, user_factory, auth_headers, db_session
    ):
        """Should reject the change without touching the target."""
        target = await user_factory()
        headers = await auth_headers()

        response = await client.patch(
            f"/api/admin/users/{target.id}/role", json={"role": "ADMIN"}, headers=headers
        )

        assert response.status_code == 403
        assert target.role == UserRole.STAFF
        assert (await db_session.execute(select(AuditLog))).scalars().all() == []


class TestAdminHealth:
    """Tests for GET /api/admin/health."""

    async def test_health_overview(
        self, client: AsyncClient, admin_headers, db_session, sync_run_factory
    ):
        await sync_run_factory(seconds_ago=30)
        db_session.add_all(
            [
                CronRunLog(job_name="daily-digest", status=RunStatus.SUCCESS, duration_ms=12),
                EditorialDeadline(
                    kind=DeadlineKind.NEWSLETTER,
                    title="Newsletter: soon",
                    due_at=utc_now() + timedelta(days=2),
                    cadence_key="NEWSLETTER_soon",
                ),
                EditorialDeadline(
                    kind=DeadlineKind.MAGAZINE,
                    title="Magazine: far away",
                    due_at=utc_now() + timedelta(days=90),
                    cadence_key="MAGAZINE_far",
                ),
            ]
        )
        await db_session.flush()

        response = await client.get("/api/admin/health", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["db"] is True
        assert data["lastSync"]["status"] == "SUCCESS"
        assert data["cron"]["daily-digest"]["status"] == "success"
        assert [d["title"] for d in data["upcomingDeadlines"]] == ["Newsletter: soon"]


class TestSyncStatus:
    """Tests for GET /api/admin/sync-status."""

    async def test_recent_failure_flag(self, client: AsyncClient, admin_headers, sync_run_factory):
        await sync_run_factory(seconds_ago=7200, status=SyncStatus.FAILED)
        await sync_run_factory(seconds_ago=60)

        response = await client.get("/api/admin/sync-status", headers=admin_headers)

        data = response.json()["data"]
        assert data["recentFailure"] is True
        assert data["lastRun"]["status"] == "SUCCESS"
        assert [r["status"] for r in data["runs"]] == ["SUCCESS", "FAILED"]

    async def test_old_failure_ignored(self, client: AsyncClient, admin_headers, sync_run_factory):
        await sync_run_factory(seconds_ago=2 * 86400, status=SyncStatus.FAILED)

        response = await client.get("/api/admin/sync-status", headers=admin_headers)

        assert response.json()["data"]["recentFailure"] is False


class TestCronRuns:
    """Tests for the cron run-log views."""

    async def test_list_and_filter(self, client: AsyncClient, admin_headers, db_session):
        db_session.add_all(
            [
                CronRunLog(job_name="daily-digest", status=RunStatus.SUCCESS, duration_ms=10),
                CronRunLog(job_name="daily-digest", status=RunStatus.ERROR, error="boom"),
                CronRunLog(job_name="ser-reminders", status=RunStatus.SUCCESS, duration_ms=30),
            ]
        )
        await db_session.flush()

        all_runs = await client.get("/api/admin/cron-runs", headers=admin_headers)
        digest_runs = await client.get(
            "/api/admin/cron-runs", params={"job": "daily-digest"}, headers=admin_headers
        )

        assert len(all_runs.json()["data"]) == 3
        assert {r["jobName"] for r in digest_runs.json()["data"]} == {"daily-digest"}
        assert len(digest_runs.json()["data"]) == 2

    async def test_stats(self, client: AsyncClient, admin_headers, db_session):
        db_session.add_all(
            [
                CronRunLog(job_name="daily-digest", status=RunStatus.SUCCESS, duration_ms=10),
                CronRunLog(job_name="daily-digest", status=RunStatus.SUCCESS, duration_ms=30),
                CronRunLog(job_name="daily-digest", status=RunStatus.ERROR, error="boom"),
            ]
        )
        await db_session.flush()

        response = await client.get("/api/admin/cron-runs/stats", headers=admin_headers)

        stats = response.json()["data"]
        assert len(stats) == 1
        assert stats[0]["jobName"] == "daily-digest"
        assert stats[0]["totalRuns"] == 3
        assert stats[0]["successfulRuns"] == 2
        assert stats[0]["failedRuns"] == 1
        assert stats[0]["avgDurationMs"] == 20.0


class TestManualDigest:
    """Tests for POST /api/admin/digest."""

    @patch("opsdesk.jobs.tasks.send_digest", new_callable=AsyncMock)
    async def test_runs_digest_job(
        self, mock_send: AsyncMock, client: AsyncClient, admin_headers, db_session
    ):
        mock_send.return_value = {"summary": {"total": 0}, "sent": {"email": False}}
        await db_session.commit()

        response = await client.post("/api/admin/digest", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["ok"] is True
        logs = (await db_session.execute(select(CronRunLog))).scalars().all()
        assert [log.job_name for log in logs] == ["daily-digest"]


class TestTexasAuthorsImport:
    """Tests for POST /api/admin/texas-authors/import."""

    async def test_import_ignores_cooldown(
        self, client: AsyncClient, admin_headers, sync_run_factory, db_session, fake_sheets
    ):
        """Should run a full import even right after another sync."""
        await sync_run_factory(seconds_ago=10)
        await db_session.commit()

        response = await client.post("/api/admin/texas-authors/import", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["created"] == 2
        assert len(fake_sheets.calls) == 1

        logs = (await db_session.execute(select(CronRunLog))).scalars().all()
        assert [log.job_name for log in logs] == ["texas-authors-import"]
        assert logs[0].status == RunStatus.SUCCESS


class TestUserAdmin:
    """Tests for role and password management."""

    async def test_promote_user(
        self, client: AsyncClient, user_factory, admin_headers, db_session
    ):
        target = await user_factory(email="staff@example.com")

        response = await client.patch(
            f"/api/admin/users/{target.id}/role", json={"role": "ADMIN"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "ADMIN"
        entry = (
            await db_session.execute(select(AuditLog).where(AuditLog.action == "role_changed"))
        ).scalar_one()
        assert (entry.from_value, entry.to_value) == ("STAFF", "ADMIN")

    async def test_cannot_demote_self(self, client: AsyncClient, user_factory, auth_headers):
        admin = await user_factory(role=UserRole.ADMIN)
        await user_factory(role=UserRole.ADMIN)
        headers = await auth_headers(admin)

        response = await client.patch(
            f"/api/admin/users/{admin.id}/role", json={"role": "STAFF"}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "You cannot remove your own admin role"

    async def test_cannot_demote_last_admin(
        self, client: AsyncClient, user_factory, auth_headers, db_session
    ):
        """Should refuse to leave the desk with no admins."""
        admin = await user_factory(role=UserRole.ADMIN)
        other_admin = await user_factory(role=UserRole.ADMIN)
        headers = await auth_headers(admin)
        # Demote the caller behind the API's back so the target is the only admin left
        admin.role = UserRole.STAFF
        await db_session.flush()
        admin.role = UserRole.ADMIN

        response = await client.patch(
            f"/api/admin/users/{other_admin.id}/role", json={"role": "STAFF"}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot demote the last admin"
        assert other_admin.role == UserRole.ADMIN

    async def test_set_password(
        self, client: AsyncClient, user_factory, admin_headers, db_session
    ):
        target = await user_factory()

        response = await client.patch(
            f"/api/admin/users/{target.id}/password",
            json={"password": "a-much-better-one"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"data": {"ok": True}}
        assert verify_password("a-much-better-one", target.password_hash)

    async def test_short_password_rejected(
        self, client: AsyncClient, user_factory, admin_headers
    ):
        target = await user_factory()

        response = await client.patch(
            f"/api/admin/users/{target.id}/password",
            json={"password": "short"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert "password" in response.json()["errors"]

    async def test_unknown_user(self, client: AsyncClient, admin_headers):
        response = await client.patch(
            "/api/admin/users/00000000-0000-0000-0000-000000000001/role",
            json={"role": "ADMIN"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}


class TestSlaDefinitions:
    """Tests for the SLA settings endpoints."""

    async def test_list(self, client: AsyncClient, admin_headers, sla_definition_factory):
        await sla_definition_factory()

        response = await client.get("/api/admin/sla", headers=admin_headers)

        data = response.json()["data"]
        assert data[0]["workItemType"] == "SOCIAL_ASSET_REQUEST"
        assert data[0]["targetDays"] == 7

    async def test_update_target(
        self, client: AsyncClient, admin_headers, sla_definition_factory, db_session
    ):
        definition = await sla_definition_factory()

        response = await client.patch(
            "/api/admin/sla/SOCIAL_ASSET_REQUEST",
            json={"targetDays": 5, "label": "Graphics"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["targetDays"] == 5
        assert definition.label == "Graphics"

    async def test_target_required_unless_due_date_driven(
        self, client: AsyncClient, admin_headers, sla_definition_factory
    ):
        await sla_definition_factory()

        response = await client.patch(
            "/api/admin/sla/SOCIAL_ASSET_REQUEST",
            json={"targetDays": None},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert "targetDays" in response.json()["errors"]

    async def test_due_date_driven_without_target(
        self, client: AsyncClient, admin_headers, sla_definition_factory
    ):
        await sla_definition_factory()

        response = await client.patch(
            "/api/admin/sla/SOCIAL_ASSET_REQUEST",
            json={"targetDays": None, "dueDateDriven": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["dueDateDriven"] is True
        assert data["targetDays"] is None

    async def test_unknown_type(self, client: AsyncClient, admin_headers):
        response = await client.patch(
            "/api/admin/sla/SOCIAL_ASSET_REQUEST", json={"targetDays": 3}, headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json() == {"error": "SLA definition not found"}
