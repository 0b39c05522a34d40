import uuid
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from opsdesk.core.security import BCRYPT_MAX_BYTES, MIN_PASSWORD_LENGTH
from opsdesk.models.cron_run_log import RunStatus
from opsdesk.models.deadline import DeadlineKind
from opsdesk.models.user import UserRole
from opsdesk.models.work_item import WorkItemType
from opsdesk.schemas.common import CamelModel
from opsdesk.schemas.texas_author import SyncRunResponse


class UserListItem(CamelModel):
    id: uuid.UUID
    email: str
    name: str | None = None
    role: UserRole
    created_at: datetime


class RoleUpdate(CamelModel):
    role: UserRole


class PasswordUpdate(CamelModel):
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def validate_byte_length(cls, v: str) -> str:
        if len(v.encode()) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
        return v


class CronRunResponse(CamelModel):
    """Response model for a cron run-log record."""

    id: uuid.UUID
    job_name: str
    status: RunStatus
    result: dict[str, Any] | None = None
    error: str | None = None
    duration_ms: int | None = None
    created_at: datetime


class JobStatsResponse(CamelModel):
    """Response model for per-job statistics."""

    job_name: str
    total_runs: int
    successful_runs: int
    failed_runs: int
    success_rate: float
    avg_duration_ms: float | None = None
    last_run: datetime | None = None
    last_status: str | None = None


class DeadlineResponse(CamelModel):
    id: uuid.UUID
    kind: DeadlineKind
    title: str
    due_at: datetime
    cadence_key: str


class HealthResponse(CamelModel):
    db: bool
    last_sync: SyncRunResponse | None = None
    cron: dict[str, CronRunResponse]
    upcoming_deadlines: list[DeadlineResponse]
    revision: str | None = None
    service: str | None = None


class SyncStatusResponse(CamelModel):
    last_run: SyncRunResponse | None = None
    recent_failure: bool
    runs: list[SyncRunResponse]


class SlaDefinitionResponse(CamelModel):
    id: uuid.UUID
    work_item_type: WorkItemType
    label: str
    target_days: int | None = None
    due_date_driven: bool
    updated_at: datetime


class SlaUpdate(CamelModel):
    label: str | None = Field(default=None, min_length=1, max_length=255)
    target_days: int | None = Field(default=None, ge=0, le=365)
    due_date_driven: bool | None = None
