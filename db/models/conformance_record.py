"""
db/models/conformance_record.py

Persisted inspection answer for one (lot, checklist item) pair.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.lot import Lot

UPSERT_CONSTRAINT = "uq_conformance_records_lot_item"


class PassFailValue:
    PASS = "PASS"
    FAIL = "FAIL"
    NOT_APPLICABLE = "N/A"

    ALL = (PASS, FAIL, NOT_APPLICABLE)


class ConformanceRecord(Base, TimestampMixin):
    """
    Stores the answer recorded against one ITP item on one lot.

    The unique constraint on ``(lot_id, itp_item_id)`` drives upsert
    semantics: every save for the same pair updates the existing row, so a
    lot never holds more than one record per checklist item.

    ``is_non_conformance`` is derived on write from ``pass_fail_value``.
    """

    __tablename__ = "conformance_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    lot_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("lots.id", ondelete="CASCADE"),
        nullable=False,
    )
    itp_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("itp_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    pass_fail_value: Mapped[str | None] = mapped_column(
        String(8),
        nullable=True,
        comment="PASS, FAIL or N/A",
    )
    text_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    numeric_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    corrective_action: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Remedial work recorded against a FAIL result",
    )
    is_non_conformance: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    completed_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Inspector identifier from the auth provider",
    )

    lot: Mapped[Lot] = relationship("Lot", back_populates="conformance_records")

    __table_args__ = (
        UniqueConstraint("lot_id", "itp_item_id", name=UPSERT_CONSTRAINT),
        Index("ix_conformance_records_lot_id", "lot_id"),
        Index("ix_conformance_records_itp_item_id", "itp_item_id"),
        Index("ix_conformance_records_non_conformance", "is_non_conformance"),
    )

    def __repr__(self) -> str:
        return (
            f"<ConformanceRecord lot_id={self.lot_id} itp_item_id={self.itp_item_id} "
            f"pass_fail={self.pass_fail_value!r}>"
        )
