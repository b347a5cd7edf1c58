"""
db/models/project.py

Project model, the root entity for one construction job.
Lots (inspectable portions of the work) are scoped to a project.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.lot import Lot


class ProjectStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class Project(Base, TimestampMixin):
    """
    A construction project owned by one organization.

    Project CRUD lives outside this service; the table exists so lots have
    a parent to cascade from.
    """

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    project_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Contract / job number as printed on site documents",
    )

    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Owning organization; managed by the auth provider",
    )

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    lots: Mapped[list["Lot"]] = relationship(
        "Lot",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_projects_organization_id", "organization_id"),
        Index("ix_projects_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r}>"
