"""
tests/fakes.py

Test doubles for the checklist workflow: a manually advanced clock for
debounce timers and an in-memory persistence port.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from inspection.answers import ChecklistItem, ConformancePatch, ConformanceRecord
from inspection.ports import ChecklistSnapshot

LOT_ID = "lot-0001"


class ManualTimers:
    """DebounceTimers whose clock only moves when a test calls ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._pending: dict[str, tuple[float, Callable[[], None]]] = {}

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        self._pending[key] = (self.now + delay_seconds, callback)

    def cancel(self, key: str) -> bool:
        return self._pending.pop(key, None) is not None

    def cancel_all(self) -> None:
        self._pending.clear()

    def pending(self) -> list[str]:
        return sorted(self._pending)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (deadline, key)
            for key, (deadline, _) in self._pending.items()
            if deadline <= self.now
        )
        for _, key in due:
            entry = self._pending.pop(key, None)
            if entry is not None:
                entry[1]()


class InMemoryPersistence:
    """
    Conformance persistence keeping rows in a dict keyed by item id.
    Upserts merge only the fields a patch carries, like the database does.
    """

    def __init__(
        self,
        items: Sequence[ChecklistItem],
        rows: dict[str, dict[str, Any]] | None = None,
        *,
        lot_status: str = "IN_PROGRESS",
    ) -> None:
        self.items = list(items)
        self.rows: dict[str, dict[str, Any]] = {key: dict(value) for key, value in (rows or {}).items()}
        self.lot_status = lot_status
        self.calls: list[list[ConformancePatch]] = []
        self.fetch_calls = 0
        self.fail_with: Exception | None = None

    def upsert_conformance_records(self, records: Sequence[ConformancePatch]) -> None:
        self.calls.append(list(records))
        if self.fail_with is not None:
            raise self.fail_with
        for patch in records:
            row = self.rows.setdefault(patch.itp_item_id, {})
            row.update(patch.answer_fields())
            row["is_non_conformance"] = row.get("pass_fail_value") == "FAIL"
            if patch.completed_by is not None:
                row["completed_by"] = patch.completed_by

    def fetch_checklist_with_answers(self, lot_id: str) -> ChecklistSnapshot:
        self.fetch_calls += 1
        return ChecklistSnapshot(
            lot_id=lot_id,
            items=list(self.items),
            answers=[
                ConformanceRecord.from_mapping({"itp_item_id": item_id, **row})
                for item_id, row in self.rows.items()
            ],
            lot_status=self.lot_status,
        )


