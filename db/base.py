"""
db/base.py

Declarative base and shared mixins for the inspection data model.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    Projects, lots, ITP templates and conformance records all inherit from it.
    """

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """
    Adds created_at / updated_at columns.

    updated_at doubles as the "last updated" stamp shown next to each
    conformance answer, so it is refreshed on every UPDATE (including the
    DO UPDATE branch of an upsert, which sets it explicitly).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )
