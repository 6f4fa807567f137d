from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from coderoom.api.deps import get_current_user
from coderoom.api.utils.project_access import get_readable_project, role_info
from coderoom.database import get_db
from coderoom.models import Project, User
from coderoom.schemas.project import (
    LegacyCodeUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectList,
    ProjectSummary,
    ProjectUpdate,
    RoleInfo,
)
from coderoom.services import projects as project_service
from coderoom.services.role_resolver import RoleResolution, resolve_role

router = APIRouter()


def _detail(project: Project, resolution: RoleResolution) -> ProjectDetail:
    detail = ProjectDetail.model_validate(project)
    detail.my_role = role_info(resolution)
    return detail


@router.post("", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = project_service.create_project(
        db,
        owner_id=current_user.id,
        name=payload.name,
        language=payload.language,
        is_public=payload.is_public,
        code=payload.code,
    )
    return _detail(project, resolve_role(db, project, current_user.id))


@router.get("", response_model=ProjectList)
def list_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Projects the user owns or collaborates on."""
    items: List[ProjectSummary] = []
    for project, resolution in project_service.list_projects(db, current_user.id):
        summary = ProjectSummary(
            id=project.id,
            name=project.name,
            language=project.language,
            is_public=project.is_public,
            owner_id=project.owner_id,
            updated_at=project.updated_at,
            my_role=role_info(resolution),
        )
        items.append(summary)
    return ProjectList(projects=items, total=len(items))


@router.get("/{project_id}", response_model=ProjectDetail)
def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, resolution = get_readable_project(db, project_id, current_user)
    return _detail(project, resolution)


@router.get("/{project_id}/my-role", response_model=RoleInfo)
def get_my_role(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _, resolution = get_readable_project(db, project_id, current_user)
    return role_info(resolution)


@router.patch("/{project_id}", response_model=ProjectDetail)
def update_project(
    project_id: UUID,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, resolution = get_readable_project(db, project_id, current_user)
    project = project_service.update_project(
        db, project, current_user.id, **payload.model_dump(exclude_unset=True)
    )
    return _detail(project, resolution)


@router.put("/{project_id}/code", response_model=ProjectDetail)
def update_legacy_code(
    project_id: UUID,
    payload: LegacyCodeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, resolution = get_readable_project(db, project_id, current_user)
    project = project_service.update_legacy_code(db, project, current_user.id, payload.code)
    return _detail(project, resolution)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    project_service.delete_project(db, project, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
