"""Effective permission level of a user on a project.

Ownership is read from ``projects.owner_id`` and always wins over any grant
row. Everything else comes from the single ``project_collaborators`` row for
(project, user). Nothing is cached here: callers that hold a resolution for a
long time (a websocket session) must resolve again to observe grant changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from coderoom.models import CollaboratorRole, Project, ProjectCollaborator
from coderoom.services.errors import PermissionDeniedError


@dataclass(frozen=True)
class RoleResolution:
    is_owner: bool
    role: Optional[CollaboratorRole]

    @property
    def can_view(self) -> bool:
        return self.is_owner or self.role is not None

    @property
    def can_edit(self) -> bool:
        return self.is_owner or self.role in (CollaboratorRole.EDIT, CollaboratorRole.FULL_ACCESS)

    @property
    def can_manage_files(self) -> bool:
        return self.is_owner or self.role == CollaboratorRole.FULL_ACCESS

    @property
    def rank(self) -> int:
        """Position in the lattice: none=0, view=1, edit=2, full_access=3, owner=4."""
        if self.is_owner:
            return 4
        return self.role.rank if self.role else 0

    @property
    def label(self) -> str:
        if self.is_owner:
            return "owner"
        return self.role.value if self.role else "none"


NO_ACCESS = RoleResolution(is_owner=False, role=None)


def resolve_role_from(owner_id: UUID, user_id: UUID, grant_role: Optional[CollaboratorRole]) -> RoleResolution:
    if owner_id == user_id:
        return RoleResolution(is_owner=True, role=None)
    return RoleResolution(is_owner=False, role=grant_role)


def get_grant(db: Session, project_id: UUID, user_id: UUID) -> Optional[ProjectCollaborator]:
    return (
        db.query(ProjectCollaborator)
        .filter(
            ProjectCollaborator.project_id == project_id,
            ProjectCollaborator.user_id == user_id,
        )
        .first()
    )


def resolve_role(db: Session, project: Project, user_id: UUID) -> RoleResolution:
    if project.owner_id == user_id:
        return RoleResolution(is_owner=True, role=None)
    grant = get_grant(db, project.id, user_id)
    return resolve_role_from(project.owner_id, user_id, grant.role if grant else None)


def can_read_project(project: Project, resolution: RoleResolution) -> bool:
    """Public projects are readable by everyone; private ones need canView."""
    return bool(project.is_public) or resolution.can_view


def require_view(db: Session, project: Project, user_id: UUID) -> RoleResolution:
    resolution = resolve_role(db, project, user_id)
    if not can_read_project(project, resolution):
        raise PermissionDeniedError("Project access denied")
    return resolution


def require_edit(db: Session, project: Project, user_id: UUID) -> RoleResolution:
    resolution = resolve_role(db, project, user_id)
    if not resolution.can_edit:
        raise PermissionDeniedError("Edit access required")
    return resolution


def require_manage_files(db: Session, project: Project, user_id: UUID) -> RoleResolution:
    resolution = resolve_role(db, project, user_id)
    if not resolution.can_manage_files:
        raise PermissionDeniedError("Full access required to manage files")
    return resolution


def require_owner(project: Project, user_id: UUID) -> None:
    if project.owner_id != user_id:
        raise PermissionDeniedError("Only the project owner can do this")
