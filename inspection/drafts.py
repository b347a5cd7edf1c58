"""
inspection/drafts.py

In-memory draft store for one lot's checklist.

Holds two layers per item: the last value known to be persisted and the
local draft on top of it. Reads return the draft when one exists, else the
persisted value. Writes merge into whatever the read would return, so a
partial answer never wipes fields it does not mention.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence

from inspection.answers import AnswerValue, ChecklistItem, ConformanceRecord, Draft
from inspection.errors import AnswerTypeError, UnknownChecklistItemError


class DraftStore:
    def __init__(self, items: Sequence[ChecklistItem]) -> None:
        self._items: dict[str, ChecklistItem] = {item.id: item for item in items}
        self._persisted: dict[str, Draft] = {}
        self._drafts: dict[str, Draft] = {}
        self._dirty: set[str] = set()
        self._lock = threading.RLock()

    @property
    def items(self) -> list[ChecklistItem]:
        return sorted(self._items.values(), key=lambda item: item.order_index)

    def item(self, item_id: str) -> ChecklistItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise UnknownChecklistItemError(item_id) from None

    def seed(self, records: Iterable[ConformanceRecord]) -> None:
        """
        Load persisted answers. Records for items outside the checklist are
        ignored rather than adopted.
        """

        with self._lock:
            for record in records:
                if record.itp_item_id in self._items:
                    self._persisted[record.itp_item_id] = Draft.from_record(record)

    def get(self, item_id: str) -> Draft | None:
        with self._lock:
            draft = self._drafts.get(item_id)
            if draft is not None:
                return draft
            return self._persisted.get(item_id)

    def persisted(self, item_id: str) -> Draft | None:
        with self._lock:
            return self._persisted.get(item_id)

    def set(self, item_id: str, *answers: AnswerValue) -> Draft:
        """
        Merge the given answers into the item's current value and mark it
        dirty. Raises if the item is unknown or an answer variant does not
        apply to the item's type.
        """

        item = self.item(item_id)
        for answer in answers:
            if item.item_type not in answer.item_types:
                raise AnswerTypeError(
                    f"{type(answer).__name__} cannot answer {item.item_type.value} item {item_id!r}."
                )

        with self._lock:
            current = self.get(item_id) or Draft()
            merged = current.merged(*answers)
            self._drafts[item_id] = merged
            self._dirty.add(item_id)
            return merged

    def mark_persisted(self, item_id: str, draft: Draft) -> None:
        """Record that ``draft`` is now what the store holds for the item."""
        with self._lock:
            self._persisted[item_id] = draft

    def is_dirty(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._dirty

    def dirty_items(self) -> list[str]:
        with self._lock:
            return sorted(self._dirty)

    def clear_dirty(self, item_id: str) -> None:
        with self._lock:
            self._dirty.discard(item_id)

    def snapshot(self) -> dict[str, Draft]:
        """Merged draft-over-persisted view of every item that has a value."""
        with self._lock:
            merged = dict(self._persisted)
            merged.update(self._drafts)
            return merged

    def discard(self) -> None:
        with self._lock:
            self._drafts.clear()
            self._dirty.clear()
