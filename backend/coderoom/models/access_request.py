"""
Access requests let a collaborator ask the project owner for a higher role.
Only one request per (project, user) may be pending at a time; resolved
requests are kept as history.
"""

from sqlalchemy import UUID, Column, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from coderoom.database import Base
from coderoom.models.collaborator import collaborator_role_column


class AccessRequestStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccessRequest(Base):
    __tablename__ = "access_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Role being asked for (edit or full_access) and the role held when asking
    requested_role = collaborator_role_column()
    existing_role = collaborator_role_column(nullable=True)

    status = Column(String(20), nullable=False, default=AccessRequestStatus.PENDING)
    message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", back_populates="access_requests")
    user = relationship("User")

    __table_args__ = (
        Index(
            "uq_access_requests_pending",
            "project_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self):
        return f"<AccessRequest {self.user_id} -> {self.requested_role} on {self.project_id} ({self.status})>"
