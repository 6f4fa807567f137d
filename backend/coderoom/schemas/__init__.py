from .project import (
    UserSummary,
    ProjectCreate,
    ProjectUpdate,
    LegacyCodeUpdate,
    RoleInfo,
    ProjectDetail,
    ProjectSummary,
    ProjectList,
)
from .sharing import (
    ShareLink,
    ShareInfo,
    JoinRequest,
    JoinPreview,
    JoinResponse,
    CollaboratorResponse,
    CollaboratorUpdate,
)
from .access_request import AccessRequestCreate, AccessRequestResponse
from .file import FileCreate, FileRename, FileMove, FileContentUpdate, FileResponse, FileDeleteResponse
from .execution import ExecuteRequest, ExecuteResponse

__all__ = [
    "UserSummary",
    "ProjectCreate",
    "ProjectUpdate",
    "LegacyCodeUpdate",
    "RoleInfo",
    "ProjectDetail",
    "ProjectSummary",
    "ProjectList",
    "ShareLink",
    "ShareInfo",
    "JoinRequest",
    "JoinPreview",
    "JoinResponse",
    "CollaboratorResponse",
    "CollaboratorUpdate",
    "AccessRequestCreate",
    "AccessRequestResponse",
    "FileCreate",
    "FileRename",
    "FileMove",
    "FileContentUpdate",
    "FileResponse",
    "FileDeleteResponse",
    "ExecuteRequest",
    "ExecuteResponse",
]
