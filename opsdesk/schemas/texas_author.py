import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from opsdesk.models.sync_run import SyncKind, SyncStatus
from opsdesk.schemas.common import CamelModel


class TexasAuthorResponse(CamelModel):
    id: uuid.UUID
    external_key: str
    name: str
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    city: str | None = None
    state: str | None = None
    notes: str | None = None
    source_ref: str | None = None
    contacted: bool
    contacted_at: datetime | None = None
    last_synced_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TexasAuthorDetail(TexasAuthorResponse):
    raw: dict[str, Any] | None = None


class TexasAuthorUpdate(CamelModel):
    """Only contact tracking is editable; everything else comes from the sheet."""

    contacted: bool | None = None
    notes: str | None = Field(default=None, max_length=5000)


class SyncRunResponse(CamelModel):
    id: uuid.UUID
    kind: SyncKind
    status: SyncStatus
    spreadsheet_id: str | None = None
    range_a1: str | None = None
    row_count: int
    created_count: int
    updated_count: int
    skipped_count: int
    changed: bool | None = None
    error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None


class TexasAuthorPage(CamelModel):
    items: list[TexasAuthorResponse]
    total: int
    page: int
    limit: int
    last_run: SyncRunResponse | None = None
