from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from coderoom.api.deps import get_current_user
from coderoom.api.utils.project_access import get_project_or_404, get_readable_project
from coderoom.core.config import settings
from coderoom.core.rate_limiter import limiter
from coderoom.database import get_db
from coderoom.models import CollaboratorRole, Project, ROLE_PRIORITY, User
from coderoom.schemas.sharing import (
    CollaboratorResponse,
    CollaboratorUpdate,
    JoinPreview,
    JoinRequest,
    JoinResponse,
    ShareInfo,
    ShareLink,
)
from coderoom.services import grants, room_links

router = APIRouter()


def _share_info(project: Project, current_user: User) -> ShareInfo:
    links = room_links.share_links(project, current_user.id)
    return ShareInfo(
        project_id=project.id,
        room_code=project.room_code,
        links=[
            ShareLink(role=role, secret=project.secret_for(role), url=links[role])
            for role in ROLE_PRIORITY
        ],
    )


@router.get("/projects/{project_id}/share", response_model=ShareInfo)
def get_share_info(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Room code and one join link per role (owner only)."""
    project, _ = get_readable_project(db, project_id, current_user)
    return _share_info(project, current_user)


@router.post("/projects/{project_id}/share/rotate", response_model=ShareInfo)
def rotate_all_secrets(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    room_links.rotate_all_secrets(db, project, current_user.id)
    return _share_info(project, current_user)


@router.post("/projects/{project_id}/share/rotate/{role}", response_model=ShareInfo)
def rotate_secret(
    project_id: UUID,
    role: CollaboratorRole,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Invalidate the links of one role; the room code and other links stay valid."""
    project, _ = get_readable_project(db, project_id, current_user)
    room_links.rotate_secret(db, project, current_user.id, role)
    return _share_info(project, current_user)


@router.post("/join/preview", response_model=JoinPreview)
@limiter.limit(settings.RATE_LIMIT_JOIN)
def preview_join(
    request: Request,
    payload: JoinRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, role = room_links.preview_join(db, payload.room_code, payload.secret)
    return JoinPreview(project_id=project.id, project_name=project.name, role=role)


@router.post("/join", response_model=JoinResponse)
@limiter.limit(settings.RATE_LIMIT_JOIN)
def join_project(
    request: Request,
    payload: JoinRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Redeem a room code and role secret."""
    result = room_links.redeem(db, payload.room_code, payload.secret, current_user.id)
    return JoinResponse(
        project_id=result.project.id,
        project_name=result.project.name,
        is_owner=result.is_owner,
        role=result.role,
    )


@router.get("/projects/{project_id}/collaborators", response_model=List[CollaboratorResponse])
def list_collaborators(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    return grants.list_collaborators(db, project, current_user.id)


@router.patch("/projects/{project_id}/collaborators/{user_id}", response_model=CollaboratorResponse)
def update_collaborator(
    project_id: UUID,
    user_id: UUID,
    payload: CollaboratorUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    return grants.update_collaborator_role(db, project, current_user.id, user_id, payload.role)


@router.delete("/projects/{project_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_collaborator(
    project_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    grants.revoke_collaborator(db, project, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/projects/{project_id}/membership", status_code=status.HTTP_204_NO_CONTENT)
def leave_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = get_project_or_404(db, project_id)
    grants.leave_project(db, project, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
