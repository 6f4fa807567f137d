"""Project lifecycle: creation with room credentials, listing, updates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coderoom.models import Project, ProjectCollaborator, ProjectFile
from coderoom.services.errors import InvalidRequestError
from coderoom.services.role_resolver import RoleResolution, require_edit, require_owner, resolve_role_from
from coderoom.services.room_links import MAX_ROOM_CODE_ATTEMPTS, allocate_room_code, assign_initial_secrets

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "language", "is_public")


def create_project(
    db: Session,
    owner_id: UUID,
    name: str,
    language: str = "javascript",
    is_public: bool = False,
    code: Optional[str] = None,
) -> Project:
    """Create a project with a fresh room code and all three role secrets."""
    for attempt in range(MAX_ROOM_CODE_ATTEMPTS):
        project = Project(
            name=name.strip(),
            owner_id=owner_id,
            language=language,
            is_public=is_public,
            code=code or "",
            room_code=allocate_room_code(db),
        )
        assign_initial_secrets(project)
        db.add(project)
        try:
            db.commit()
        except IntegrityError:
            # Another project grabbed the same room code in between
            db.rollback()
            logger.warning("Room code collision on create (attempt %d)", attempt + 1)
            continue
        db.refresh(project)
        logger.info("Project %s created by %s with room %s", project.id, owner_id, project.room_code)
        return project
    raise RuntimeError("Could not allocate a unique room code")


def list_projects(db: Session, user_id: UUID) -> List[Tuple[Project, RoleResolution]]:
    """Owned projects plus projects the user holds a grant on, newest first."""
    owned = db.query(Project).filter(Project.owner_id == user_id).all()
    granted = (
        db.query(Project, ProjectCollaborator.role)
        .join(ProjectCollaborator, ProjectCollaborator.project_id == Project.id)
        .filter(ProjectCollaborator.user_id == user_id)
        .all()
    )

    results = [(project, resolve_role_from(project.owner_id, user_id, None)) for project in owned]
    seen = {project.id for project in owned}
    for project, role in granted:
        if project.id in seen:
            continue
        results.append((project, resolve_role_from(project.owner_id, user_id, role)))

    results.sort(key=lambda item: item[0].created_at or datetime.min, reverse=True)
    return results


def update_project(db: Session, project: Project, user_id: UUID, **changes) -> Project:
    require_owner(project, user_id)
    for key, value in changes.items():
        if key not in UPDATABLE_FIELDS:
            raise InvalidRequestError(f"Field '{key}' cannot be updated")
        if value is not None:
            setattr(project, key, value.strip() if key == "name" else value)
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project: Project, user_id: UUID) -> None:
    require_owner(project, user_id)
    db.delete(project)
    db.commit()
    logger.info("Project %s deleted by owner", project.id)


def update_legacy_code(db: Session, project: Project, user_id: UUID, code: str) -> Project:
    """Save the single-blob code of a project that has no files yet."""
    require_edit(db, project, user_id)
    has_files = db.query(ProjectFile.id).filter(ProjectFile.project_id == project.id).first() is not None
    if has_files:
        raise InvalidRequestError("This project stores its code in files")
    project.code = code
    db.commit()
    db.refresh(project)
    return project
