"""Owner-approved workflow for upgrading a collaborator's role."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from coderoom.models import (
    AccessRequest,
    AccessRequestStatus,
    CollaboratorRole,
    Project,
    ProjectCollaborator,
)
from coderoom.services.errors import (
    AlreadyPendingError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from coderoom.services.grants import upsert_grant
from coderoom.services.role_resolver import require_owner, resolve_role

logger = logging.getLogger(__name__)

REQUESTABLE_ROLES = (CollaboratorRole.EDIT, CollaboratorRole.FULL_ACCESS)


def _pending_for(db: Session, project_id: UUID, user_id: UUID) -> Optional[AccessRequest]:
    return (
        db.query(AccessRequest)
        .filter(
            AccessRequest.project_id == project_id,
            AccessRequest.user_id == user_id,
            AccessRequest.status == AccessRequestStatus.PENDING,
        )
        .first()
    )


def get_request_or_404(db: Session, project: Project, request_id: UUID) -> AccessRequest:
    request = (
        db.query(AccessRequest)
        .filter(AccessRequest.id == request_id, AccessRequest.project_id == project.id)
        .first()
    )
    if request is None:
        raise NotFoundError("Access request not found")
    return request


def request_access(
    db: Session,
    project: Project,
    user_id: UUID,
    requested_role: CollaboratorRole,
    message: Optional[str] = None,
) -> AccessRequest:
    if requested_role not in REQUESTABLE_ROLES:
        raise InvalidRequestError("Only edit or full_access can be requested")

    resolution = resolve_role(db, project, user_id)
    if resolution.is_owner:
        raise InvalidRequestError("The owner already has full control of this project")
    if requested_role.rank <= resolution.rank:
        raise InvalidRequestError("Requested role is not higher than your current role")

    if _pending_for(db, project.id, user_id) is not None:
        raise AlreadyPendingError()

    request = AccessRequest(
        project_id=project.id,
        user_id=user_id,
        requested_role=requested_role,
        existing_role=resolution.role,
        status=AccessRequestStatus.PENDING,
        message=(message or "").strip() or None,
    )
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        # Partial unique index on pending rows caught a concurrent request.
        db.rollback()
        raise AlreadyPendingError()
    db.refresh(request)
    logger.info(
        "Access request %s: user %s asks for %s on project %s",
        request.id,
        user_id,
        requested_role.value,
        project.id,
    )
    return request


def _ensure_pending(request: AccessRequest) -> None:
    if request.status != AccessRequestStatus.PENDING:
        raise InvalidRequestError(f"Access request is already {request.status}")


def approve(db: Session, project: Project, acting_user_id: UUID, request: AccessRequest) -> ProjectCollaborator:
    """Grant the requested role and close the request in a single commit."""
    require_owner(project, acting_user_id)
    _ensure_pending(request)

    try:
        grant = upsert_grant(db, request.project_id, request.user_id, request.requested_role)
        request.status = AccessRequestStatus.APPROVED
        request.responded_at = datetime.now(timezone.utc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(grant)
    logger.info("Access request %s approved (%s)", request.id, request.requested_role.value)
    return grant


def reject(db: Session, project: Project, acting_user_id: UUID, request: AccessRequest) -> AccessRequest:
    require_owner(project, acting_user_id)
    _ensure_pending(request)
    request.status = AccessRequestStatus.REJECTED
    request.responded_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(request)
    logger.info("Access request %s rejected", request.id)
    return request


def withdraw(db: Session, user_id: UUID, request: AccessRequest) -> None:
    if request.user_id != user_id:
        raise PermissionDeniedError("Only the requester can withdraw this request")
    _ensure_pending(request)
    db.delete(request)
    db.commit()
    logger.info("Access request %s withdrawn", request.id)


def list_pending(db: Session, project: Project, acting_user_id: UUID) -> List[AccessRequest]:
    require_owner(project, acting_user_id)
    return (
        db.query(AccessRequest)
        .options(joinedload(AccessRequest.user))
        .filter(
            AccessRequest.project_id == project.id,
            AccessRequest.status == AccessRequestStatus.PENDING,
        )
        .order_by(AccessRequest.created_at.desc())
        .all()
    )


def list_mine(db: Session, user_id: UUID, project_id: Optional[UUID] = None) -> List[AccessRequest]:
    query = db.query(AccessRequest).filter(AccessRequest.user_id == user_id)
    if project_id is not None:
        query = query.filter(AccessRequest.project_id == project_id)
    return query.order_by(AccessRequest.created_at.desc()).all()
