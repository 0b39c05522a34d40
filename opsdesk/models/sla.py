import uuid
from datetime import datetime, timedelta

from sqlalchemy import Boolean, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.models.base import Base, UpdatedAtMixin, str_enum
from opsdesk.models.work_item import WorkItemType


class SlaDefinition(Base, UpdatedAtMixin):
    """Service-level target for one work item type.

    Either a fixed number of days from creation, or the item's own due date
    when due_date_driven is set.
    """

    __tablename__ = "sla_definitions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    work_item_type: Mapped[WorkItemType] = mapped_column(
        str_enum(WorkItemType, "workitemtype"), unique=True
    )
    label: Mapped[str] = mapped_column(String(255))
    target_days: Mapped[int | None] = mapped_column(Integer)
    due_date_driven: Mapped[bool] = mapped_column(Boolean, default=False)

    def deadline_for(self, created_at: datetime, due_at: datetime | None) -> datetime | None:
        if self.due_date_driven:
            return due_at
        if self.target_days is None:
            return None
        return created_at + timedelta(days=self.target_days)
