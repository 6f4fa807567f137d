from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from coderoom.api.deps import get_current_user
from coderoom.api.utils.project_access import ensure_can_edit, ensure_can_manage_files, get_readable_project
from coderoom.database import get_db
from coderoom.models import User
from coderoom.schemas.file import (
    FileContentUpdate,
    FileCreate,
    FileDeleteResponse,
    FileMove,
    FileRename,
    FileResponse,
)
from coderoom.services import file_tree

router = APIRouter()


@router.get("/projects/{project_id}/files", response_model=List[FileResponse])
def list_files(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    return file_tree.list_files(db, project)


@router.get("/projects/{project_id}/files/{file_id}", response_model=FileResponse)
def get_file(
    project_id: UUID,
    file_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    return file_tree.get_file_or_404(db, project, file_id)


@router.post("/projects/{project_id}/files", response_model=FileResponse, status_code=201)
def create_file(
    project_id: UUID,
    payload: FileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    ensure_can_manage_files(db, project, current_user)
    return file_tree.create_node(
        db,
        project,
        payload.name,
        parent_id=payload.parent_id,
        is_folder=payload.is_folder,
        content=payload.content,
    )


@router.post("/projects/{project_id}/files/{file_id}/rename", response_model=FileResponse)
def rename_file(
    project_id: UUID,
    file_id: UUID,
    payload: FileRename,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    ensure_can_manage_files(db, project, current_user)
    node = file_tree.get_file_or_404(db, project, file_id)
    return file_tree.rename_node(db, project, node, payload.name)


@router.post("/projects/{project_id}/files/{file_id}/move", response_model=FileResponse)
def move_file(
    project_id: UUID,
    file_id: UUID,
    payload: FileMove,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    ensure_can_manage_files(db, project, current_user)
    node = file_tree.get_file_or_404(db, project, file_id)
    return file_tree.move_node(db, project, node, payload.parent_id)


@router.post("/projects/{project_id}/files/{file_id}/duplicate", response_model=FileResponse, status_code=201)
def duplicate_file(
    project_id: UUID,
    file_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    ensure_can_manage_files(db, project, current_user)
    node = file_tree.get_file_or_404(db, project, file_id)
    return file_tree.duplicate_file(db, project, node)


@router.put("/projects/{project_id}/files/{file_id}/content", response_model=FileResponse)
def save_file_content(
    project_id: UUID,
    file_id: UUID,
    payload: FileContentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Overwrite file content; the last save wins."""
    project, _ = get_readable_project(db, project_id, current_user)
    ensure_can_edit(db, project, current_user)
    node = file_tree.get_file_or_404(db, project, file_id)
    return file_tree.save_content(db, node, payload.content)


@router.delete("/projects/{project_id}/files/{file_id}", response_model=FileDeleteResponse)
def delete_file(
    project_id: UUID,
    file_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project, _ = get_readable_project(db, project_id, current_user)
    ensure_can_manage_files(db, project, current_user)
    node = file_tree.get_file_or_404(db, project, file_id)
    return FileDeleteResponse(deleted=file_tree.delete_node(db, project, node))
