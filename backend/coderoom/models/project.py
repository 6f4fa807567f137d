from sqlalchemy import UUID, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from coderoom.database import Base
from coderoom.models.collaborator import CollaboratorRole

import uuid


class Project(Base):
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Legacy single-blob code, used only while the project has no files
    language = Column(String(50), nullable=False, default="javascript")
    code = Column(Text, default="")
    is_public = Column(Boolean, nullable=False, default=False)
    room_code = Column(String(8), nullable=False, unique=True, index=True)
    view_secret = Column(String(100))
    edit_secret = Column(String(100))
    full_access_secret = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="owned_projects")
    collaborators = relationship("ProjectCollaborator", back_populates="project", cascade="all, delete-orphan")
    access_requests = relationship("AccessRequest", back_populates="project", cascade="all, delete-orphan")
    files = relationship(
        "ProjectFile",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def secret_for(self, role: CollaboratorRole) -> str | None:
        return getattr(self, f"{role.value}_secret")

    def set_secret(self, role: CollaboratorRole, secret: str) -> None:
        setattr(self, f"{role.value}_secret", secret)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name='{self.name}', room_code='{self.room_code}')>"
