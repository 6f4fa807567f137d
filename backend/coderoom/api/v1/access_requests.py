from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from coderoom.api.deps import get_current_user
from coderoom.api.utils.project_access import get_project_or_404, get_readable_project
from coderoom.database import get_db
from coderoom.models import User
from coderoom.schemas.access_request import AccessRequestCreate, AccessRequestResponse
from coderoom.schemas.sharing import CollaboratorResponse
from coderoom.services import access_requests as workflow

router = APIRouter()


@router.post(
    "/projects/{project_id}/access-requests",
    response_model=AccessRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_access_request(
    project_id: UUID,
    payload: AccessRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    return workflow.request_access(db, project, current_user.id, payload.requested_role, payload.message)


@router.get("/projects/{project_id}/access-requests", response_model=List[AccessRequestResponse])
def list_pending_requests(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending requests, newest first (owner only)."""
    project, _ = get_readable_project(db, project_id, current_user)
    return workflow.list_pending(db, project, current_user.id)


@router.get("/access-requests/mine", response_model=List[AccessRequestResponse])
def list_my_requests(
    project_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return workflow.list_mine(db, current_user.id, project_id)


@router.post(
    "/projects/{project_id}/access-requests/{request_id}/approve",
    response_model=CollaboratorResponse,
)
def approve_request(
    project_id: UUID,
    request_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    access_request = workflow.get_request_or_404(db, project, request_id)
    return workflow.approve(db, project, current_user.id, access_request)


@router.post(
    "/projects/{project_id}/access-requests/{request_id}/reject",
    response_model=AccessRequestResponse,
)
def reject_request(
    project_id: UUID,
    request_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    access_request = workflow.get_request_or_404(db, project, request_id)
    return workflow.reject(db, project, current_user.id, access_request)


@router.delete(
    "/projects/{project_id}/access-requests/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def withdraw_request(
    project_id: UUID,
    request_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = get_project_or_404(db, project_id)
    access_request = workflow.get_request_or_404(db, project, request_id)
    workflow.withdraw(db, current_user.id, access_request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
