"""
Typed DTOs used by the conformance repository.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

ANSWER_COLUMNS: tuple[str, ...] = (
    "pass_fail_value",
    "text_value",
    "numeric_value",
    "comment",
    "corrective_action",
)


@dataclass(frozen=True)
class ConformanceRecordWrite:
    """
    One upsert row keyed by ``(lot_id, itp_item_id)``.

    ``None`` means "not part of this write": the column keeps whatever value
    the existing row holds.
    """

    lot_id: uuid.UUID
    itp_item_id: uuid.UUID
    pass_fail_value: str | None = None
    text_value: str | None = None
    numeric_value: float | None = None
    comment: str | None = None
    corrective_action: str | None = None
    completed_by: str | None = None

    def answer_fields(self) -> dict[str, Any]:
        return {
            column: getattr(self, column)
            for column in ANSWER_COLUMNS
            if getattr(self, column) is not None
        }

    @property
    def key(self) -> tuple[uuid.UUID, uuid.UUID]:
        return (self.lot_id, self.itp_item_id)
