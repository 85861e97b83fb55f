"""projects table."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Index, Text, UniqueConstraint, desc, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from repoflow.core.database import Base, TimestampMixin

project_status_enum = Enum(
    "created", "ingesting", "ready", "failed", name="project_status"
)


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    repo_url: Mapped[str] = mapped_column(Text, nullable=False)
    repo_owner: Mapped[str] = mapped_column(Text, nullable=False)
    repo_name: Mapped[str] = mapped_column(Text, nullable=False)
    default_branch: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'main'")
    )
    status: Mapped[str] = mapped_column(
        project_status_enum, nullable=False, server_default=text("'created'")
    )
    # Business-flow diagram mirrored here so the board can render without blob reads.
    board_mermaid: Mapped[Optional[str]] = mapped_column(Text)
    board_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "repo_url", name="uq_projects_user_id_repo_url"),
        Index("idx_projects_user", "user_id", desc("created_at")),
    )
