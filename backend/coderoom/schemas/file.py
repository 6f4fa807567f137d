from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from coderoom.services.file_tree import language_for_filename


class FileCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[UUID] = None
    is_folder: bool = False
    content: Optional[str] = None


class FileRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class FileMove(BaseModel):
    parent_id: Optional[UUID] = None


class FileContentUpdate(BaseModel):
    content: str


class FileResponse(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    path: str
    content: Optional[str] = None
    is_folder: bool
    parent_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def language(self) -> Optional[str]:
        return None if self.is_folder else language_for_filename(self.name)

    class Config:
        from_attributes = True


class FileDeleteResponse(BaseModel):
    deleted: int
