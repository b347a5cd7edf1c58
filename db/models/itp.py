"""
db/models/itp.py

Inspection & Test Plan templates and their checklist items.

Templates are authored elsewhere; the inspection workflow only reads them.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin


class ItpItemType:
    PASS_FAIL = "PASS_FAIL"
    TEXT_INPUT = "TEXT_INPUT"
    NUMERIC = "NUMERIC"

    ALL = (PASS_FAIL, TEXT_INPUT, NUMERIC)


class ItpTemplate(Base, TimestampMixin):
    __tablename__ = "itp_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Work category, e.g. earthworks, concrete, drainage",
    )
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    items: Mapped[list[ItpItem]] = relationship(
        "ItpItem",
        back_populates="template",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ItpItem.order_index",
    )

    __table_args__ = (
        Index("ix_itp_templates_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<ItpTemplate id={self.id} name={self.name!r} version={self.version!r}>"


class ItpItem(Base, TimestampMixin):
    """
    One checklist line of an ITP template.

    ``item_type`` decides which conformance field answers it:
    PASS_FAIL -> pass_fail_value, TEXT_INPUT -> text_value,
    NUMERIC -> numeric_value.
    """

    __tablename__ = "itp_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    itp_template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("itp_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Clause / line reference printed on the ITP, e.g. 3.2",
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    item_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ItpItemType.PASS_FAIL,
        comment="PASS_FAIL, TEXT_INPUT or NUMERIC",
    )
    acceptance_criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    specification_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    template: Mapped[ItpTemplate] = relationship("ItpTemplate", back_populates="items")

    __table_args__ = (
        Index("ix_itp_items_template_order", "itp_template_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<ItpItem id={self.id} type={self.item_type} order={self.order_index}>"
