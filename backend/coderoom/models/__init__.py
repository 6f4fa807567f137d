from .user import User
from .collaborator import CollaboratorRole, ProjectCollaborator, ROLE_PRIORITY, ROLE_RANK
from .project import Project
from .access_request import AccessRequest, AccessRequestStatus
from .project_file import ProjectFile

__all__ = [
    "User",
    "Project",
    "ProjectCollaborator",
    "CollaboratorRole",
    "ROLE_PRIORITY",
    "ROLE_RANK",
    "AccessRequest",
    "AccessRequestStatus",
    "ProjectFile",
]
