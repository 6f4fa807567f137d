"""Room codes, per-role secrets, share links and link redemption."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from coderoom.core.config import settings
from coderoom.models import ROLE_PRIORITY, CollaboratorRole, Project
from coderoom.services.errors import InvalidSecretError, RoomNotFoundError
from coderoom.services.grants import upsert_grant
from coderoom.services.role_resolver import require_owner
from coderoom.utils.room_codes import generate_room_code, generate_secret, normalize_room_code

logger = logging.getLogger(__name__)

MAX_ROOM_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class RedeemResult:
    project: Project
    is_owner: bool
    role: Optional[CollaboratorRole]


def allocate_room_code(db: Session) -> str:
    """Pick a room code no other project uses."""
    for _ in range(MAX_ROOM_CODE_ATTEMPTS):
        code = generate_room_code(settings.ROOM_CODE_LENGTH)
        taken = db.query(Project.id).filter(Project.room_code == code).first()
        if not taken:
            return code
    raise RuntimeError("Could not allocate a unique room code")


def assign_initial_secrets(project: Project) -> None:
    for role in ROLE_PRIORITY:
        project.set_secret(role, generate_secret(settings.ROOM_SECRET_LENGTH))


def build_join_url(room_code: str, secret: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/join/{room_code}/{secret}"


def issue_link(project: Project, acting_user_id: UUID, role: CollaboratorRole) -> str:
    require_owner(project, acting_user_id)
    secret = project.secret_for(role)
    if not secret:
        raise RuntimeError(f"Project {project.id} has no {role.value} secret")
    return build_join_url(project.room_code, secret)


def share_links(project: Project, acting_user_id: UUID) -> Dict[CollaboratorRole, str]:
    return {role: issue_link(project, acting_user_id, role) for role in ROLE_PRIORITY}


def rotate_secret(db: Session, project: Project, acting_user_id: UUID, role: CollaboratorRole) -> str:
    """Replace one role's secret; links for the other roles keep working."""
    require_owner(project, acting_user_id)
    secret = generate_secret(settings.ROOM_SECRET_LENGTH)
    project.set_secret(role, secret)
    db.commit()
    db.refresh(project)
    logger.info("Rotated %s secret for project %s", role.value, project.id)
    return secret


def rotate_all_secrets(db: Session, project: Project, acting_user_id: UUID) -> Dict[CollaboratorRole, str]:
    require_owner(project, acting_user_id)
    assign_initial_secrets(project)
    db.commit()
    db.refresh(project)
    logger.info("Rotated all secrets for project %s", project.id)
    return {role: project.secret_for(role) for role in ROLE_PRIORITY}


def match_secret(project: Project, secret: str) -> Optional[CollaboratorRole]:
    """Return the highest role whose secret equals ``secret``."""
    supplied = (secret or "").encode("utf-8")
    for role in ROLE_PRIORITY:
        stored = project.secret_for(role)
        if stored and hmac.compare_digest(stored.encode("utf-8"), supplied):
            return role
    return None


def _locate(db: Session, room_code: str, secret: str) -> tuple[Project, CollaboratorRole]:
    code = normalize_room_code(room_code, settings.ROOM_CODE_LENGTH)
    project = db.query(Project).filter(Project.room_code == code).first() if code else None
    if project is None:
        logger.info("Join attempt with unknown room code")
        raise RoomNotFoundError()
    role = match_secret(project, secret)
    if role is None:
        logger.info("Join attempt with invalid secret for project %s", project.id)
        raise InvalidSecretError()
    return project, role


def preview_join(db: Session, room_code: str, secret: str) -> tuple[Project, CollaboratorRole]:
    """Validate a join link without touching any grant."""
    return _locate(db, room_code, secret)


def redeem(db: Session, room_code: str, secret: str, user_id: UUID) -> RedeemResult:
    """Exchange (room code, secret) for a grant at the secret's tier.

    The grant is overwritten, not ratcheted: a lower-tier secret downgrades.
    The owner is recognised without writing a grant row.
    """
    project, role = _locate(db, room_code, secret)

    if project.owner_id == user_id:
        return RedeemResult(project=project, is_owner=True, role=None)

    upsert_grant(db, project.id, user_id, role)
    db.commit()
    logger.info("User %s joined project %s as %s", user_id, project.id, role.value)
    return RedeemResult(project=project, is_owner=False, role=role)
