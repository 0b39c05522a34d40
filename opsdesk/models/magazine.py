from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsdesk.models.base import Base, TimestampMixin, UpdatedAtMixin


class MagazineIssue(Base, TimestampMixin):
    """One monthly magazine issue."""

    __tablename__ = "magazine_issues"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_magazine_issue_year_month"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)
    title: Mapped[str | None] = mapped_column(String(255))

    items: Mapped[list[MagazineItem]] = relationship(
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="[MagazineItem.section, MagazineItem.sort_order]",
        lazy="selectin",
    )


class MagazineItem(Base, TimestampMixin, UpdatedAtMixin):
    """A piece slotted into an issue section."""

    __tablename__ = "magazine_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    issue_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("magazine_issues.id", ondelete="CASCADE"), index=True
    )
    section: Mapped[str] = mapped_column(String(100))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    title: Mapped[str] = mapped_column(String(500))
    url: Mapped[str | None] = mapped_column(String(1000))
    notes: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    due_at: Mapped[datetime | None] = mapped_column()
    proofed: Mapped[bool] = mapped_column(Boolean, default=False)
    in_folder: Mapped[bool] = mapped_column(Boolean, default=False)
    needs_proofing: Mapped[bool] = mapped_column(Boolean, default=False)

    issue: Mapped[MagazineIssue] = relationship(back_populates="items")
