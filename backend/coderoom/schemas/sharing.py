from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from coderoom.models import CollaboratorRole
from coderoom.schemas.project import UserSummary


class ShareLink(BaseModel):
    role: CollaboratorRole
    secret: str
    url: str


class ShareInfo(BaseModel):
    project_id: UUID
    room_code: str
    links: List[ShareLink]


class JoinRequest(BaseModel):
    room_code: str = Field(..., min_length=1, max_length=32)
    secret: str = Field(..., min_length=1, max_length=100)


class JoinPreview(BaseModel):
    project_id: UUID
    project_name: str
    role: CollaboratorRole


class JoinResponse(BaseModel):
    project_id: UUID
    project_name: str
    is_owner: bool
    role: Optional[CollaboratorRole] = None


class CollaboratorResponse(BaseModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    role: CollaboratorRole
    joined_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class CollaboratorUpdate(BaseModel):
    role: CollaboratorRole
