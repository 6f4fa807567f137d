from sqlalchemy import UUID, Column, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from coderoom.database import Base

import enum
import uuid


class CollaboratorRole(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    FULL_ACCESS = "full_access"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]


# Ownership is structural (projects.owner_id) and never stored as a grant.
ROLE_RANK = {
    CollaboratorRole.VIEW: 1,
    CollaboratorRole.EDIT: 2,
    CollaboratorRole.FULL_ACCESS: 3,
}

# Secret matching order on redemption: highest privilege first.
ROLE_PRIORITY = (
    CollaboratorRole.FULL_ACCESS,
    CollaboratorRole.EDIT,
    CollaboratorRole.VIEW,
)


def collaborator_role_column(nullable: bool = False, **kwargs) -> Column:
    return Column(
        Enum(
            CollaboratorRole,
            name="collaborator_role",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=nullable,
        **kwargs,
    )


class ProjectCollaborator(Base):
    __tablename__ = "project_collaborators"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = collaborator_role_column(default=CollaboratorRole.VIEW)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="collaborators")
    user = relationship("User", back_populates="collaborations")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_collaborators_project_user"),
    )

    def __repr__(self) -> str:
        return f"<ProjectCollaborator(project_id={self.project_id}, user_id={self.user_id}, role={self.role})>"
