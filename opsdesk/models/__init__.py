from opsdesk.models.base import Base
from opsdesk.models.cron_run_log import CronRunLog, RunStatus
from opsdesk.models.deadline import DeadlineKind, EditorialDeadline
from opsdesk.models.magazine import MagazineIssue, MagazineItem
from opsdesk.models.ser_reminder import ReminderKind, SerReminder
from opsdesk.models.sla import SlaDefinition
from opsdesk.models.sync_run import SyncKind, SyncRun, SyncStatus
from opsdesk.models.texas_author import TexasAuthor
from opsdesk.models.user import Session, User, UserRole
from opsdesk.models.work_item import (
    AuditLog,
    Comment,
    QCCheck,
    QCStatus,
    Subtask,
    TriggerTemplate,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
    WorkItemType,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Session",
    "WorkItem",
    "WorkItemType",
    "WorkItemStatus",
    "WorkItemPriority",
    "Subtask",
    "Comment",
    "QCCheck",
    "QCStatus",
    "TriggerTemplate",
    "AuditLog",
    "MagazineIssue",
    "MagazineItem",
    "TexasAuthor",
    "SyncRun",
    "SyncKind",
    "SyncStatus",
    "CronRunLog",
    "RunStatus",
    "EditorialDeadline",
    "DeadlineKind",
    "SerReminder",
    "ReminderKind",
    "SlaDefinition",
]
