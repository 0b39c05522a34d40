"""Audit trail for directory sync attempts."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.models.base import Base, TimestampMixin, str_enum


class SyncKind(str, enum.Enum):
    TEXAS_AUTHORS = "TEXAS_AUTHORS"


class SyncStatus(str, enum.Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class SyncRun(Base, TimestampMixin):
    """One record per sync attempt that got past the cooldown check.

    The newest record of a kind (any status) starts the cooldown window.
    """

    __tablename__ = "sync_runs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[SyncKind] = mapped_column(str_enum(SyncKind, "synckind"), index=True)
    status: Mapped[SyncStatus] = mapped_column(
        str_enum(SyncStatus, "syncstatus"), default=SyncStatus.RUNNING
    )
    spreadsheet_id: Mapped[str | None] = mapped_column(String(255))
    range_a1: Mapped[str | None] = mapped_column(String(255))
    content_hash: Mapped[str | None] = mapped_column(String(64))
    row_count: Mapped[int] = mapped_column(Integer, default=0)
    created_count: Mapped[int] = mapped_column(Integer, default=0)
    updated_count: Mapped[int] = mapped_column(Integer, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0)
    changed: Mapped[bool | None] = mapped_column(Boolean)
    error: Mapped[str | None] = mapped_column(Text)
    finished_at: Mapped[datetime | None] = mapped_column()
