import enum
import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.core.datetime_utils import utc_now
from opsdesk.models.base import Base, str_enum


class ReminderKind(str, enum.Enum):
    DUE_7DAY = "DUE_7DAY"
    DUE_2DAY = "DUE_2DAY"
    OVERDUE = "OVERDUE"


class SerReminder(Base):
    """A reminder email sent for a Sponsored Editorial Review item."""

    __tablename__ = "ser_reminders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    work_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("work_items.id", ondelete="CASCADE"), index=True
    )
    kind: Mapped[ReminderKind] = mapped_column(str_enum(ReminderKind, "reminderkind"))
    sent_to: Mapped[str] = mapped_column(String(1000))
    sent_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)
