"""
inspection/ports.py

The one collaborator the checklist workflow needs: somewhere to read the
lot's checklist from and to upsert answers into. Adapters live in
``app/services/conformance_service.py`` (direct database access) and
``inspection/http_client.py`` (remote API).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from inspection.answers import ChecklistItem, ConformancePatch, ConformanceRecord


@dataclass(frozen=True)
class ChecklistSnapshot:
    """
    Read-path result used once to seed the draft store.
    """

    lot_id: str
    items: list[ChecklistItem]
    answers: list[ConformanceRecord] = field(default_factory=list)
    lot_status: str | None = None


class ConformancePersistence(Protocol):
    def upsert_conformance_records(self, records: Sequence[ConformancePatch]) -> None:
        """
        Insert-or-update by ``(lot_id, itp_item_id)``. Must be idempotent for
        an identical payload. Raises ``PersistenceError`` on failure.
        """
        ...

    def fetch_checklist_with_answers(self, lot_id: str) -> ChecklistSnapshot:
        """Raises ``PersistenceError`` when the lot cannot be read."""
        ...
