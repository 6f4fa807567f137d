from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from coderoom.models import CollaboratorRole
from coderoom.schemas.project import UserSummary


class AccessRequestCreate(BaseModel):
    requested_role: CollaboratorRole
    message: Optional[str] = Field(default=None, max_length=2000)


class AccessRequestResponse(BaseModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    requested_role: CollaboratorRole
    existing_role: Optional[CollaboratorRole] = None
    status: str
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True
