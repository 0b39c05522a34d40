from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsdesk.models.base import Base, TimestampMixin, str_enum


class UserRole(str, enum.Enum):
    """Access tiers. Admin endpoints require ADMIN."""

    ADMIN = "ADMIN"
    STAFF = "STAFF"


class User(Base, TimestampMixin):
    """Staff account that can sign in with email and password."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(str_enum(UserRole, "userrole"), default=UserRole.STAFF)
    password_hash: Mapped[str | None] = mapped_column(String(100))

    # Relationships
    sessions: Mapped[list[Session]] = relationship(
        back_populates="user", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Session(Base, TimestampMixin):
    """User session for cookie-based authentication."""

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    expires_at: Mapped[datetime] = mapped_column()

    # Relationships
    user: Mapped[User] = relationship(back_populates="sessions", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Session {self.id}>"
