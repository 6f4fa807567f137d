"""Collaborator grant store: one role row per (project, user), owner excluded."""

from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from coderoom.models import CollaboratorRole, Project, ProjectCollaborator
from coderoom.services.errors import InvalidRequestError, NotFoundError
from coderoom.services.role_resolver import get_grant, require_owner

logger = logging.getLogger(__name__)


def upsert_grant(db: Session, project_id: UUID, user_id: UUID, role: CollaboratorRole) -> ProjectCollaborator:
    """Create or overwrite the grant for (project, user).

    Overwrites in both directions. Does not commit, so callers can make the
    upsert part of a larger unit of work.
    """
    grant = get_grant(db, project_id, user_id)
    if grant is not None:
        grant.role = role
        db.flush()
        return grant

    grant = ProjectCollaborator(project_id=project_id, user_id=user_id, role=role)
    try:
        with db.begin_nested():
            db.add(grant)
    except IntegrityError:
        # A concurrent insert won the race; overwrite its role instead.
        logger.info("Grant insert raced for project=%s user=%s, updating", project_id, user_id)
        grant = get_grant(db, project_id, user_id)
        if grant is None:
            raise
        grant.role = role
        db.flush()
    return grant


def list_collaborators(db: Session, project: Project, acting_user_id: UUID) -> List[ProjectCollaborator]:
    require_owner(project, acting_user_id)
    return (
        db.query(ProjectCollaborator)
        .options(joinedload(ProjectCollaborator.user))
        .filter(ProjectCollaborator.project_id == project.id)
        .order_by(ProjectCollaborator.joined_at)
        .all()
    )


def update_collaborator_role(
    db: Session,
    project: Project,
    acting_user_id: UUID,
    collaborator_user_id: UUID,
    role: CollaboratorRole,
) -> ProjectCollaborator:
    require_owner(project, acting_user_id)
    grant = get_grant(db, project.id, collaborator_user_id)
    if grant is None:
        raise NotFoundError("Collaborator not found")
    grant.role = role
    db.commit()
    db.refresh(grant)
    return grant


def revoke_collaborator(db: Session, project: Project, acting_user_id: UUID, collaborator_user_id: UUID) -> None:
    require_owner(project, acting_user_id)
    grant = get_grant(db, project.id, collaborator_user_id)
    if grant is None:
        raise NotFoundError("Collaborator not found")
    db.delete(grant)
    db.commit()
    logger.info("Owner revoked collaborator %s from project %s", collaborator_user_id, project.id)


def leave_project(db: Session, project: Project, user_id: UUID) -> None:
    if project.owner_id == user_id:
        raise InvalidRequestError("The owner cannot leave their own project")
    grant = get_grant(db, project.id, user_id)
    if grant is None:
        raise NotFoundError("You are not a collaborator on this project")
    db.delete(grant)
    db.commit()
    logger.info("User %s left project %s", user_id, project.id)
