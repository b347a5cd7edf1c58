"""
inspection/workflow.py

Checklist workflow for one lot: the object a checklist screen (or any other
client) drives while an inspector fills in an ITP.

The persistence collaborator is injected; the workflow never reaches for a
shared client. Typical use::

    workflow = ChecklistWorkflow.load(lot_id, persistence, completed_by=user_id)
    workflow.set_answer(item_id, PassFailAnswer(PassFailValue.PASS))
    ...
    result = workflow.save_progress()
    workflow.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from app.config import InspectionSettings, get_inspection_settings
from inspection.answers import AnswerValue, ChecklistItem, ConformancePatch, ConformanceRecord, Draft
from inspection.completion import ConformanceStats, completion_percentage, conformance_stats, missing_required
from inspection.drafts import DraftStore
from inspection.errors import PersistenceError
from inspection.logging_utils import LotEventLogger
from inspection.payloads import build_patch, validate_draft
from inspection.persister import AutosaveStatus, DebouncedPersister, ItemSaveState
from inspection.ports import ConformancePersistence
from inspection.timers import DebounceTimers, SchedulerDebounceTimers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    """
    Outcome of a manual "Save Progress". ``errors`` maps item id to an
    inline validation message; when it is non-empty nothing was sent.
    """

    success: bool
    saved_count: int = 0
    message: str = ""
    errors: dict[str, str] = field(default_factory=dict)


class ChecklistWorkflow:
    def __init__(
        self,
        *,
        lot_id: str,
        items: Sequence[ChecklistItem],
        persistence: ConformancePersistence,
        answers: Iterable[ConformanceRecord] = (),
        timers: DebounceTimers | None = None,
        settings: InspectionSettings | None = None,
        completed_by: str | None = None,
        lot_status: str | None = None,
    ) -> None:
        self.lot_id = lot_id
        self.lot_status = lot_status
        self._persistence = persistence
        self._completed_by = completed_by
        self._settings = settings or get_inspection_settings()
        self._events = LotEventLogger(logger, lot_id, completed_by=completed_by)

        self._owned_timers: SchedulerDebounceTimers | None = None
        if timers is None:
            self._owned_timers = SchedulerDebounceTimers(job_prefix=f"autosave:{lot_id}")
            timers = self._owned_timers

        self._store = DraftStore(items)
        self._store.seed(answers)
        self._persister = DebouncedPersister(
            lot_id=lot_id,
            store=self._store,
            persistence=persistence,
            timers=timers,
            debounce_seconds=self._settings.autosave_debounce_seconds,
            completed_by=completed_by,
        )

    @classmethod
    def load(
        cls,
        lot_id: str,
        persistence: ConformancePersistence,
        *,
        timers: DebounceTimers | None = None,
        settings: InspectionSettings | None = None,
        completed_by: str | None = None,
    ) -> ChecklistWorkflow:
        """Fetch the lot's checklist and persisted answers, then seed the drafts."""
        snapshot = persistence.fetch_checklist_with_answers(lot_id)
        LotEventLogger(logger, lot_id, completed_by=completed_by).info(
            "checklist_loaded",
            items=len(snapshot.items),
            answers=len(snapshot.answers),
        )
        return cls(
            lot_id=lot_id,
            items=snapshot.items,
            persistence=persistence,
            answers=snapshot.answers,
            timers=timers,
            settings=settings,
            completed_by=completed_by,
            lot_status=snapshot.lot_status,
        )

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[ChecklistItem]:
        return self._store.items

    def get_answer(self, item_id: str) -> Draft | None:
        self._store.item(item_id)
        return self._store.get(item_id)

    def set_answer(self, item_id: str, *answers: AnswerValue) -> Draft:
        """Merge the answers into the item's draft and arm its auto-save timer."""
        draft = self._store.set(item_id, *answers)
        self._persister.schedule_flush(item_id)
        return draft

    def item_state(self, item_id: str) -> ItemSaveState:
        return self._persister.state(item_id)

    def autosave_status(self) -> AutosaveStatus:
        return self._persister.status()

    # ------------------------------------------------------------------
    # Manual save
    # ------------------------------------------------------------------

    def save_progress(self) -> SaveResult:
        """
        Submit every item's latest value as one batch upsert.

        Items with no populated field are left out. Validation problems are
        reported per item without calling persistence. A persistence failure
        is reported in the result; drafts are kept so the save can be retried.
        An item edited while the batch is on the wire stays DIRTY and keeps
        its auto-save timer.
        """

        errors: dict[str, str] = {}
        batch: list[tuple[ConformancePatch, Draft, int]] = []
        for item in self.items:
            generation = self._persister.generation(item.id)
            draft = self._store.get(item.id)
            problem = validate_draft(item, draft)
            if problem is not None:
                errors[item.id] = problem
                continue
            patch = build_patch(self.lot_id, item, draft, completed_by=self._completed_by)
            if patch is not None and draft is not None:
                batch.append((patch, draft, generation))

        if errors:
            self._events.info("manual_save_rejected", invalid_items=sorted(errors))
            return SaveResult(
                success=False,
                message=f"{len(errors)} item(s) need attention before saving.",
                errors=errors,
            )

        if not batch:
            return SaveResult(success=True, saved_count=0, message="Nothing to save yet.")

        try:
            self._persistence.upsert_conformance_records([patch for patch, _, _ in batch])
        except PersistenceError as exc:
            self._events.warning("manual_save_failed", error=str(exc))
            return SaveResult(success=False, message=f"Failed to save inspection data: {exc}")

        for patch, draft, _ in batch:
            self._store.mark_persisted(patch.itp_item_id, draft)
        edited = self._persister.mark_saved({patch.itp_item_id: generation for patch, _, generation in batch})

        self._events.info("manual_save_succeeded", saved=len(batch), edited_during_save=edited or None)
        return SaveResult(
            success=True,
            saved_count=len(batch),
            message=f"Saved {len(batch)} item(s).",
        )

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def completion(self) -> int:
        return completion_percentage(self.items, self._store.get)

    def stats(self) -> ConformanceStats:
        return conformance_stats(self.items, self._store.get)

    def missing_required(self) -> list[ChecklistItem]:
        return missing_required(self.items, self._store.get)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """
        Leave the checklist: pending auto-saves are cancelled, not flushed,
        and unsaved drafts are discarded.
        """

        dirty = self._store.dirty_items()
        self._persister.cancel_all()
        self._store.discard()
        if self._owned_timers is not None:
            self._owned_timers.shutdown()
        if dirty:
            self._events.info("checklist_closed_with_unsaved", items=dirty)

    def __enter__(self) -> ChecklistWorkflow:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
