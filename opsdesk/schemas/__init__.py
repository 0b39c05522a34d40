from opsdesk.schemas.admin import (
    CronRunResponse,
    DeadlineResponse,
    JobStatsResponse,
    PasswordUpdate,
    RoleUpdate,
    SlaDefinitionResponse,
    SlaUpdate,
)
from opsdesk.schemas.auth import LoginRequest, MeResponse, UserSummary
from opsdesk.schemas.common import CamelModel, DataResponse
from opsdesk.schemas.magazine import MagazineIssueDetail, MagazineIssueSummary, MagazineItemResponse
from opsdesk.schemas.texas_author import (
    SyncRunResponse,
    TexasAuthorDetail,
    TexasAuthorPage,
    TexasAuthorResponse,
    TexasAuthorUpdate,
)
from opsdesk.schemas.work_item import (
    WorkItemCreate,
    WorkItemDetail,
    WorkItemResponse,
    WorkItemUpdate,
)

__all__ = [
    "CamelModel",
    "DataResponse",
    "LoginRequest",
    "MeResponse",
    "UserSummary",
    "WorkItemCreate",
    "WorkItemUpdate",
    "WorkItemResponse",
    "WorkItemDetail",
    "MagazineIssueSummary",
    "MagazineIssueDetail",
    "MagazineItemResponse",
    "TexasAuthorResponse",
    "TexasAuthorDetail",
    "TexasAuthorUpdate",
    "TexasAuthorPage",
    "SyncRunResponse",
    "CronRunResponse",
    "JobStatsResponse",
    "DeadlineResponse",
    "RoleUpdate",
    "PasswordUpdate",
    "SlaDefinitionResponse",
    "SlaUpdate",
]
