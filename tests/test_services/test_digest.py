"""Tests for building and delivering the daily digest."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from opsdesk.models.work_item import WorkItemStatus
from opsdesk.services.digest import build_digest, send_digest

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 10, 18, 12, 0)


@pytest_asyncio.fixture
async def digest_items(work_item_factory):
    return {
        "overdue": await work_item_factory(title="overdue", due_at=NOW - timedelta(days=1)),
        "today": await work_item_factory(title="today", due_at=NOW + timedelta(hours=2)),
        "soon": await work_item_factory(title="soon", due_at=NOW + timedelta(days=2)),
        "later": await work_item_factory(title="later", due_at=NOW + timedelta(days=10)),
        "done": await work_item_factory(
            title="done", status=WorkItemStatus.DONE, due_at=NOW - timedelta(days=1)
        ),
        "blocked": await work_item_factory(
            title="blocked",
            status=WorkItemStatus.BLOCKED,
            status_changed_at=NOW - timedelta(days=5),
            blocked_reason="Waiting on author",
        ),
        "recently_blocked": await work_item_factory(
            title="recently blocked",
            status=WorkItemStatus.BLOCKED,
            status_changed_at=NOW - timedelta(days=1),
        ),
    }


class TestBuildDigest:
    async def test_sections(self, db_session, app_config, digest_items):
        digest = await build_digest(db_session, app_config, now=NOW)

        assert [e.title for e in digest.overdue] == ["overdue"]
        assert [e.title for e in digest.due_today] == ["today"]
        assert [e.title for e in digest.due_soon] == ["soon"]
        assert [e.title for e in digest.blocked] == ["blocked"]
        assert digest.summary() == {
            "overdue": 1,
            "dueToday": 1,
            "dueSoon": 1,
            "blockedOver3d": 1,
            "total": 4,
        }

    async def test_entry_labels(self, db_session, app_config, work_item_factory, user_factory):
        owner = await user_factory(name="Sam")
        await work_item_factory(title="owned", owner=owner, due_at=NOW - timedelta(days=1))
        await work_item_factory(title="unowned", due_at=NOW - timedelta(days=2))

        digest = await build_digest(db_session, app_config, now=NOW)

        assert [e.owner_label for e in digest.overdue] == ["Unassigned", "Sam"]
        assert digest.overdue[0].type_label == "General"


class TestSendDigest:
    """Channels are delivered independently."""

    async def test_failing_channel_does_not_stop_others(self, db_session, app_config, digest_items):
        with (
            patch(
                "opsdesk.services.email_service.send_digest_email",
                new_callable=AsyncMock,
                side_effect=RuntimeError("resend down"),
            ),
            patch(
                "opsdesk.services.slack_service.send_digest_to_slack",
                new_callable=AsyncMock,
                return_value=True,
            ) as mock_slack,
            patch(
                "opsdesk.services.slack_service.send_digest_to_ghl",
                new_callable=AsyncMock,
                return_value=False,
            ),
        ):
            result = await send_digest(db_session, app_config, now=NOW)

        assert result["sent"] == {"email": False, "slack": True, "ghl": False}
        assert result["summary"]["total"] == 4
        mock_slack.assert_awaited_once()
        assert mock_slack.await_args.kwargs == {"max_items": 10}
