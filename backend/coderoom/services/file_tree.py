"""Hierarchical file/folder records for a project.

Paths are slash-delimited and unique per project. A node's path is always its
parent's path plus "/" plus its name (or just the name at the root). Renaming
or moving a folder rewrites the prefix of every descendant in the same commit.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coderoom.models import Project, ProjectFile
from coderoom.services.errors import InvalidRequestError, NotFoundError, PathConflictError

logger = logging.getLogger(__name__)

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "h": "c",
    "hpp": "cpp",
    "html": "html",
    "css": "css",
    "json": "json",
    "md": "markdown",
    "txt": "plaintext",
    "sql": "sql",
    "xml": "xml",
    "yaml": "yaml",
    "yml": "yaml",
}


def language_for_filename(name: str) -> str:
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return LANGUAGE_BY_EXTENSION.get(ext, "plaintext")


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned or "/" in cleaned or cleaned in (".", ".."):
        raise InvalidRequestError("Invalid file name")
    return cleaned


def _join(parent: Optional[ProjectFile], name: str) -> str:
    return f"{parent.path}/{name}" if parent is not None else name


def _path_taken(db: Session, project_id: UUID, path: str, exclude_id: Optional[UUID] = None) -> bool:
    query = db.query(ProjectFile.id).filter(ProjectFile.project_id == project_id, ProjectFile.path == path)
    if exclude_id is not None:
        query = query.filter(ProjectFile.id != exclude_id)
    return query.first() is not None


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise PathConflictError()


def list_files(db: Session, project: Project) -> List[ProjectFile]:
    return (
        db.query(ProjectFile)
        .filter(ProjectFile.project_id == project.id)
        .order_by(ProjectFile.path)
        .all()
    )


def get_file_or_404(db: Session, project: Project, file_id: UUID) -> ProjectFile:
    node = (
        db.query(ProjectFile)
        .filter(ProjectFile.id == file_id, ProjectFile.project_id == project.id)
        .first()
    )
    if node is None:
        raise NotFoundError("File not found")
    return node


def _get_folder(db: Session, project: Project, folder_id: Optional[UUID]) -> Optional[ProjectFile]:
    if folder_id is None:
        return None
    folder = get_file_or_404(db, project, folder_id)
    if not folder.is_folder:
        raise InvalidRequestError("Parent must be a folder")
    return folder


def descendants(db: Session, node: ProjectFile) -> List[ProjectFile]:
    """All nodes below ``node``, breadth first."""
    found: List[ProjectFile] = []
    queue = deque([node.id])
    while queue:
        parent_id = queue.popleft()
        children = db.query(ProjectFile).filter(ProjectFile.parent_id == parent_id).all()
        for child in children:
            found.append(child)
            if child.is_folder:
                queue.append(child.id)
    return found


def create_node(
    db: Session,
    project: Project,
    name: str,
    *,
    parent_id: Optional[UUID] = None,
    is_folder: bool = False,
    content: Optional[str] = None,
) -> ProjectFile:
    name = _clean_name(name)
    parent = _get_folder(db, project, parent_id)
    path = _join(parent, name)
    if _path_taken(db, project.id, path):
        raise PathConflictError()

    node = ProjectFile(
        project_id=project.id,
        name=name,
        path=path,
        is_folder=is_folder,
        parent_id=parent.id if parent else None,
        content=None if is_folder else (content or ""),
    )
    db.add(node)
    _commit_or_conflict(db)
    db.refresh(node)
    logger.info("Created %s %s in project %s", "folder" if is_folder else "file", path, project.id)
    return node


def _relocate(db: Session, project: Project, node: ProjectFile, new_path: str) -> None:
    """Set ``node.path`` and rebuild every descendant path from its parent."""
    subtree = descendants(db, node) if node.is_folder else []
    if _path_taken(db, project.id, new_path, exclude_id=node.id):
        raise PathConflictError()
    node.path = new_path
    paths = {node.id: new_path}
    # Breadth-first order: a parent's new path is known before its children
    for child in subtree:
        child.path = f"{paths[child.parent_id]}/{child.name}"
        paths[child.id] = child.path
    db.flush()


def rename_node(db: Session, project: Project, node: ProjectFile, new_name: str) -> ProjectFile:
    new_name = _clean_name(new_name)
    parent = db.get(ProjectFile, node.parent_id) if node.parent_id else None
    node.name = new_name
    try:
        _relocate(db, project, node, _join(parent, new_name))
    except (PathConflictError, IntegrityError):
        db.rollback()
        raise PathConflictError()
    _commit_or_conflict(db)
    db.refresh(node)
    return node


def move_node(db: Session, project: Project, node: ProjectFile, new_parent_id: Optional[UUID]) -> ProjectFile:
    parent = _get_folder(db, project, new_parent_id)
    if parent is not None and node.is_folder:
        if parent.id == node.id or parent.path.startswith(node.path + "/"):
            raise InvalidRequestError("A folder cannot be moved into itself")
    node.parent_id = parent.id if parent else None
    try:
        _relocate(db, project, node, _join(parent, node.name))
    except (PathConflictError, IntegrityError):
        db.rollback()
        raise PathConflictError()
    _commit_or_conflict(db)
    db.refresh(node)
    return node


def duplicate_file(db: Session, project: Project, node: ProjectFile) -> ProjectFile:
    if node.is_folder:
        raise InvalidRequestError("Folders cannot be duplicated")
    base, ext = os.path.splitext(node.name)
    return create_node(
        db,
        project,
        f"{base} (copy){ext}",
        parent_id=node.parent_id,
        content=node.content,
    )


def delete_node(db: Session, project: Project, node: ProjectFile) -> int:
    """Delete a node and, for folders, every descendant. Returns rows removed."""
    subtree = descendants(db, node) if node.is_folder else []
    # Deepest first so no row ever points at a deleted parent
    for child in reversed(subtree):
        db.delete(child)
    db.flush()
    db.delete(node)
    db.commit()
    logger.info("Deleted %s (%d descendants) from project %s", node.path, len(subtree), project.id)
    return len(subtree) + 1


def save_content(db: Session, node: ProjectFile, content: str) -> ProjectFile:
    """Overwrite file content. Last write wins; there is no version check."""
    if node.is_folder:
        raise InvalidRequestError("Folders have no content")
    node.content = content
    db.commit()
    db.refresh(node)
    return node
