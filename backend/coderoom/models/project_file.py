from sqlalchemy import UUID, Boolean, Column, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from coderoom.database import Base

import uuid


class ProjectFile(Base):
    __tablename__ = "project_files"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    path = Column(Text, nullable=False)
    content = Column(Text, nullable=True)
    is_folder = Column(Boolean, nullable=False, default=False)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("project_files.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="files")
    parent = relationship("ProjectFile", remote_side=[id], back_populates="children")
    children = relationship("ProjectFile", back_populates="parent")

    __table_args__ = (
        UniqueConstraint("project_id", "path", name="unique_file_path"),
    )

    def __repr__(self) -> str:
        kind = "folder" if self.is_folder else "file"
        return f"<ProjectFile({kind} path='{self.path}')>"
