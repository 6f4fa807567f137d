"""Shared helpers for project access control."""

from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from coderoom.models import Project, User
from coderoom.services.role_resolver import (
    RoleResolution,
    can_read_project,
    require_edit,
    require_manage_files,
    require_owner,
    resolve_role,
)
from coderoom.services.errors import PermissionDeniedError
from coderoom.schemas.project import RoleInfo


def get_project_or_404(db: Session, project_id: UUID) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def get_readable_project(db: Session, project_id: UUID, user: User) -> tuple[Project, RoleResolution]:
    """Load a project the user may read.

    Private projects the user has no role on are reported as missing, so
    their existence is not revealed.
    """
    project = get_project_or_404(db, project_id)
    resolution = resolve_role(db, project, user.id)
    if not can_read_project(project, resolution):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project, resolution


def ensure_can_edit(db: Session, project: Project, user: User) -> RoleResolution:
    try:
        return require_edit(db, project, user.id)
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)


def ensure_can_manage_files(db: Session, project: Project, user: User) -> RoleResolution:
    try:
        return require_manage_files(db, project, user.id)
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)


def ensure_project_owner(project: Project, user: User) -> None:
    try:
        require_owner(project, user.id)
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)


def role_info(resolution: RoleResolution) -> RoleInfo:
    return RoleInfo(
        is_owner=resolution.is_owner,
        role=resolution.role.value if resolution.role else None,
        label=resolution.label,
        can_view=resolution.can_view,
        can_edit=resolution.can_edit,
        can_manage_files=resolution.can_manage_files,
    )
