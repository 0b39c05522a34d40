import enum
import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.models.base import Base, TimestampMixin, str_enum


class DeadlineKind(str, enum.Enum):
    NEWSLETTER = "NEWSLETTER"
    EVENTS_UPLOAD = "EVENTS_UPLOAD"
    WEEKEND_EVENTS = "WEEKEND_EVENTS"
    MAGAZINE = "MAGAZINE"


class EditorialDeadline(Base, TimestampMixin):
    """A recurring publishing deadline shown on the calendar.

    cadence_key (e.g. NEWSLETTER_2026-10-19) makes generation idempotent.
    """

    __tablename__ = "editorial_deadlines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[DeadlineKind] = mapped_column(str_enum(DeadlineKind, "deadlinekind"))
    title: Mapped[str] = mapped_column(String(255))
    due_at: Mapped[datetime] = mapped_column(index=True)
    cadence_key: Mapped[str] = mapped_column(String(100), unique=True)
