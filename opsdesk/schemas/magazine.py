import uuid
from datetime import datetime

from pydantic import Field

from opsdesk.schemas.common import CamelModel


class MagazineItemResponse(CamelModel):
    id: uuid.UUID
    issue_id: uuid.UUID
    section: str
    sort_order: int
    title: str
    url: str | None = None
    notes: str | None = None
    owner_id: uuid.UUID | None = None
    due_at: datetime | None = None
    proofed: bool
    in_folder: bool
    needs_proofing: bool
    updated_at: datetime


class MagazineIssueSummary(CamelModel):
    id: uuid.UUID
    year: int
    month: int
    title: str | None = None
    item_count: int = 0


class MagazineIssueDetail(CamelModel):
    id: uuid.UUID
    year: int
    month: int
    title: str | None = None
    items: list[MagazineItemResponse] = Field(default_factory=list)
