"""
inspection/persister.py

Debounced per-item auto-save.

Per-item lifecycle::

    CLEAN --edit--> DIRTY --quiet period--> FLUSHING --ok--> CLEAN
                      ^                        |
                      +--------failure---------+

A failed flush is logged and the item stays DIRTY until the next edit
re-arms its timer or a manual save picks it up. There is no automatic
retry. An edit that lands while a flush is in flight leaves the item DIRTY
once that flush returns, and the item's timer is armed again so the newer
value gets its own flush. The timer backend may drop a timer that fires
while the same item is still flushing; re-arming covers that case.

Each edit bumps the item's generation. A save (debounced or manual) only
returns an item to CLEAN when its generation is unchanged since the value
was read.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from inspection.drafts import DraftStore
from inspection.logging_utils import LotEventLogger
from inspection.payloads import build_patch, validate_draft
from inspection.ports import ConformancePersistence
from inspection.timers import DebounceTimers

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.5


class ItemSaveState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    FLUSHING = "flushing"


@dataclass(frozen=True)
class AutosaveStatus:
    is_saving: bool
    pending_items: int
    last_saved_at: datetime | None
    last_error: str | None


class DebouncedPersister:
    def __init__(
        self,
        *,
        lot_id: str,
        store: DraftStore,
        persistence: ConformancePersistence,
        timers: DebounceTimers,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        completed_by: str | None = None,
    ) -> None:
        self._lot_id = lot_id
        self._store = store
        self._persistence = persistence
        self._timers = timers
        self._debounce_seconds = debounce_seconds
        self._completed_by = completed_by
        self._events = LotEventLogger(logger, lot_id, completed_by=completed_by)
        self._states: dict[str, ItemSaveState] = {}
        self._generations: dict[str, int] = {}
        self._last_saved_at: datetime | None = None
        self._last_error: str | None = None
        self._lock = threading.RLock()

    def state(self, item_id: str) -> ItemSaveState:
        with self._lock:
            return self._states.get(item_id, ItemSaveState.CLEAN)

    def generation(self, item_id: str) -> int:
        """Edit counter for the item; read it before reading the draft."""
        with self._lock:
            return self._generations.get(item_id, 0)

    def schedule_flush(self, item_id: str) -> None:
        """Mark the item dirty and (re)start its quiet-period timer."""
        with self._lock:
            self._states[item_id] = ItemSaveState.DIRTY
            self._generations[item_id] = self._generations.get(item_id, 0) + 1
        self._arm(item_id)

    def flush_item(self, item_id: str) -> bool:
        """
        Upsert the item's latest merged value. Returns True when a write
        reached the persistence collaborator and succeeded.
        """

        with self._lock:
            item = self._store.item(item_id)
            draft = self._store.get(item_id)
            generation = self._generations.get(item_id, 0)
            patch = build_patch(self._lot_id, item, draft, completed_by=self._completed_by)

            if patch is None:
                problem = validate_draft(item, draft)
                if problem is None:
                    self._states[item_id] = ItemSaveState.CLEAN
                    self._store.clear_dirty(item_id)
                    self._events.debug("autosave_skipped_empty", item_id=item_id)
                else:
                    self._states[item_id] = ItemSaveState.DIRTY
                    self._events.info("autosave_skipped_invalid", item_id=item_id, reason=problem)
                return False

            self._states[item_id] = ItemSaveState.FLUSHING

        try:
            self._persistence.upsert_conformance_records([patch])
        except Exception as exc:  # noqa: BLE001
            with self._lock:
                self._states[item_id] = ItemSaveState.DIRTY
                self._last_error = f"{type(exc).__name__}: {exc}"
                edited_meanwhile = self._generations.get(item_id, 0) != generation
            self._events.warning("autosave_failed", item_id=item_id, error=self._last_error)
            if edited_meanwhile:
                self._arm(item_id)
            return False

        with self._lock:
            if draft is not None:
                self._store.mark_persisted(item_id, draft)
            edited_meanwhile = self._generations.get(item_id, 0) != generation
            if edited_meanwhile:
                self._states[item_id] = ItemSaveState.DIRTY
            else:
                self._states[item_id] = ItemSaveState.CLEAN
                self._store.clear_dirty(item_id)
            self._last_saved_at = datetime.now(timezone.utc)
            self._last_error = None

        self._events.info("autosave_succeeded", item_id=item_id)
        if edited_meanwhile:
            self._events.debug("autosave_rearmed", item_id=item_id)
            self._arm(item_id)
        return True

    def mark_saved(self, saved: Mapping[str, int]) -> list[str]:
        """
        Called after a manual save persisted these items. ``saved`` maps item
        id to the generation read before the item's value was taken.

        Items not edited since then drop their pending timer and return to
        CLEAN. Items edited while the save was in flight stay DIRTY with
        their timer armed. Returns the ids that stayed DIRTY.
        """

        still_dirty: list[str] = []
        with self._lock:
            for item_id, generation in saved.items():
                if self._generations.get(item_id, 0) != generation:
                    still_dirty.append(item_id)
                    continue
                self._timers.cancel(item_id)
                self._states[item_id] = ItemSaveState.CLEAN
                self._store.clear_dirty(item_id)
            self._last_saved_at = datetime.now(timezone.utc)
            self._last_error = None
        return still_dirty

    def cancel_all(self) -> None:
        """Drop every pending timer without flushing."""
        self._timers.cancel_all()

    def status(self) -> AutosaveStatus:
        with self._lock:
            states = list(self._states.values())
            return AutosaveStatus(
                is_saving=ItemSaveState.FLUSHING in states,
                pending_items=sum(1 for state in states if state is not ItemSaveState.CLEAN),
                last_saved_at=self._last_saved_at,
                last_error=self._last_error,
            )

    def _arm(self, item_id: str) -> None:
        self._timers.schedule(
            item_id,
            self._debounce_seconds,
            lambda: self.flush_item(item_id),
        )
