import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.models.base import Base, TimestampMixin, UpdatedAtMixin


class TexasAuthor(Base, TimestampMixin, UpdatedAtMixin):
    """Directory entry synced from the Texas Authors spreadsheet.

    external_key is derived from the row's name plus email (or website), so
    re-syncing the same person updates in place instead of duplicating.
    """

    __tablename__ = "texas_authors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    external_key: Mapped[str] = mapped_column(String(600), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(100))
    website: Mapped[str | None] = mapped_column(String(1000))
    city: Mapped[str | None] = mapped_column(String(255))
    state: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    raw: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    source_ref: Mapped[str | None] = mapped_column(String(255))
    contacted: Mapped[bool] = mapped_column(Boolean, default=False)
    contacted_at: Mapped[datetime | None] = mapped_column()
    last_synced_at: Mapped[datetime | None] = mapped_column()

    def __repr__(self) -> str:
        return f"<TexasAuthor {self.name}>"
