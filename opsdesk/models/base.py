import enum
from datetime import datetime
from typing import Any

from sqlalchemy import Enum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from opsdesk.core.datetime_utils import utc_now


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """Mixin that adds created_at timestamp to models."""

    created_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)


class UpdatedAtMixin:
    """Mixin that adds an updated_at timestamp refreshed on every UPDATE."""

    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)


def str_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Enum column stored as its string value (portable across Postgres and SQLite)."""
    return Enum(
        enum_cls,
        values_callable=lambda e: [x.value for x in e],
        name=name,
        native_enum=False,
        length=40,
    )
