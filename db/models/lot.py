"""
db/models/lot.py

Lot model: a discrete, inspectable portion of a project with at most one
ITP template assigned.
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.conformance_record import ConformanceRecord
    from db.models.itp import ItpTemplate
    from db.models.project import Project


class LotStatus:
    """Set by the approval workflow, never by checklist editing."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"


class Lot(Base, TimestampMixin):
    __tablename__ = "lots"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    lot_number: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    location_description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Chainage or grid reference of the lot on site",
    )

    itp_template_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("itp_templates.id", ondelete="SET NULL"),
        nullable=True,
        comment="Assigned ITP; null until a template is assigned",
    )

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=LotStatus.IN_PROGRESS,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    project: Mapped["Project"] = relationship("Project", back_populates="lots")

    itp_template: Mapped[Optional["ItpTemplate"]] = relationship("ItpTemplate")

    conformance_records: Mapped[list["ConformanceRecord"]] = relationship(
        "ConformanceRecord",
        back_populates="lot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("project_id", "lot_number", name="uq_lots_project_lot_number"),
        Index("ix_lots_project_id", "project_id"),
        Index("ix_lots_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Lot id={self.id} lot_number={self.lot_number!r} status={self.status}>"
