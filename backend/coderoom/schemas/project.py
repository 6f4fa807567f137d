from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UserSummary(BaseModel):
    id: UUID
    username: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    language: str = Field(default="javascript", max_length=50)
    is_public: bool = False


class ProjectCreate(ProjectBase):
    code: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    language: Optional[str] = Field(default=None, max_length=50)
    is_public: Optional[bool] = None


class LegacyCodeUpdate(BaseModel):
    code: str


class RoleInfo(BaseModel):
    is_owner: bool
    role: Optional[str] = None
    label: str
    can_view: bool
    can_edit: bool
    can_manage_files: bool


class ProjectDetail(ProjectBase):
    id: UUID
    owner_id: UUID
    code: Optional[str] = None
    room_code: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[UserSummary] = None
    my_role: Optional[RoleInfo] = None

    class Config:
        from_attributes = True


class ProjectSummary(BaseModel):
    id: UUID
    name: str
    language: str
    is_public: bool
    owner_id: UUID
    updated_at: Optional[datetime] = None
    my_role: RoleInfo

    class Config:
        from_attributes = True


class ProjectList(BaseModel):
    projects: List[ProjectSummary]
    total: int

