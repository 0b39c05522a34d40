"""Cron job execution history."""

import enum
import uuid
from typing import Any

from sqlalchemy import JSON, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.models.base import Base, TimestampMixin, str_enum


class RunStatus(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


class CronRunLog(Base, TimestampMixin):
    """Exactly one row per cron job invocation. Never updated."""

    __tablename__ = "cron_run_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_name: Mapped[str] = mapped_column(String(100), index=True)
    status: Mapped[RunStatus] = mapped_column(str_enum(RunStatus, "runstatus"))
    result: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    error: Mapped[str | None] = mapped_column(Text)
    duration_ms: Mapped[int | None] = mapped_column(Integer)
