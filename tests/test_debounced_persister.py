"""
tests/test_debounced_persister.py

Debounced auto-save, driven by a manual clock so every assertion is
deterministic.

Coverage
--------
- Edits inside the quiet period coalesce into one upsert
- Independent items flush independently
- Empty and invalid drafts are not written
- Failures are swallowed, logged and leave the item DIRTY
- An edit during an in-flight flush keeps the item DIRTY and re-arms its timer
- cancel_all drops pending timers without flushing
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

import pytest

from inspection.answers import (
    ChecklistItem,
    CommentAnswer,
    ConformancePatch,
    ConformanceRecord,
    NumericAnswer,
    PassFailAnswer,
    PassFailValue,
    TextAnswer,
)
from inspection.drafts import DraftStore
from inspection.errors import PersistenceError
from inspection.persister import DEFAULT_DEBOUNCE_SECONDS, DebouncedPersister, ItemSaveState
from tests.fakes import LOT_ID, InMemoryPersistence, ManualTimers


@pytest.fixture()
def store(checklist_items: list[ChecklistItem]) -> DraftStore:
    return DraftStore(checklist_items)


@pytest.fixture()
def persister(
    store: DraftStore,
    persistence: InMemoryPersistence,
    timers: ManualTimers,
) -> DebouncedPersister:
    return DebouncedPersister(
        lot_id=LOT_ID,
        store=store,
        persistence=persistence,
        timers=timers,
        completed_by="inspector-7",
    )


def _edit(store: DraftStore, persister: DebouncedPersister, item_id: str, *answers: object) -> None:
    store.set(item_id, *answers)  # type: ignore[arg-type]
    persister.schedule_flush(item_id)


class TestDebounce:
    def test_default_quiet_period(self) -> None:
        assert DEFAULT_DEBOUNCE_SECONDS == 1.5

    def test_two_edits_inside_window_produce_one_upsert_with_latest_value(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        _edit(store, persister, "item-compaction", PassFailAnswer(PassFailValue.PASS))
        timers.advance(1.0)
        _edit(store, persister, "item-compaction", CommentAnswer("Proof roll witnessed"))
        timers.advance(1.0)

        assert persistence.calls == []
        assert persister.state("item-compaction") is ItemSaveState.DIRTY

        timers.advance(0.5)

        assert persistence.calls == [
            [
                ConformancePatch(
                    lot_id=LOT_ID,
                    itp_item_id="item-compaction",
                    pass_fail_value=PassFailValue.PASS,
                    comment="Proof roll witnessed",
                    completed_by="inspector-7",
                )
            ]
        ]
        assert persister.state("item-compaction") is ItemSaveState.CLEAN
        assert not store.is_dirty("item-compaction")

    def test_items_flush_independently(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        _edit(store, persister, "item-material", TextAnswer("Quarry A"))
        timers.advance(1.0)
        _edit(store, persister, "item-thickness", NumericAnswer("150"))
        timers.advance(0.5)

        assert [[patch.itp_item_id for patch in call] for call in persistence.calls] == [["item-material"]]

        timers.advance(1.0)

        assert [[patch.itp_item_id for patch in call] for call in persistence.calls] == [
            ["item-material"],
            ["item-thickness"],
        ]
        assert persistence.rows["item-thickness"]["numeric_value"] == 150.0

    def test_successful_flush_updates_status(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        timers: ManualTimers,
    ) -> None:
        _edit(store, persister, "item-material", TextAnswer("Quarry A"))
        status = persister.status()
        assert status.pending_items == 1
        assert status.last_saved_at is None

        timers.advance(DEFAULT_DEBOUNCE_SECONDS)

        status = persister.status()
        assert status.pending_items == 0
        assert status.is_saving is False
        assert status.last_saved_at is not None
        assert status.last_error is None


class TestSkippedFlushes:
    def test_empty_draft_is_not_written(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        _edit(store, persister, "item-material", TextAnswer("   "))
        timers.advance(DEFAULT_DEBOUNCE_SECONDS)

        assert persistence.calls == []
        assert persister.state("item-material") is ItemSaveState.CLEAN

    def test_empty_numeric_string_is_not_written(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        _edit(store, persister, "item-thickness", NumericAnswer(""))
        timers.advance(DEFAULT_DEBOUNCE_SECONDS)
        assert persistence.calls == []

    def test_invalid_numeric_stays_dirty(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        _edit(store, persister, "item-thickness", NumericAnswer("15O"))
        timers.advance(DEFAULT_DEBOUNCE_SECONDS)

        assert persistence.calls == []
        assert persister.state("item-thickness") is ItemSaveState.DIRTY


class TestFailures:
    def test_failure_is_swallowed_and_item_stays_dirty(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        persistence.fail_with = PersistenceError("connection reset")
        _edit(store, persister, "item-compaction", PassFailAnswer(PassFailValue.FAIL))

        with caplog.at_level(logging.WARNING, logger="inspection.persister"):
            timers.advance(DEFAULT_DEBOUNCE_SECONDS)

        assert len(persistence.calls) == 1
        assert persister.state("item-compaction") is ItemSaveState.DIRTY
        assert store.is_dirty("item-compaction")
        assert persister.status().last_error == "PersistenceError: connection reset"

        events = [json.loads(record.getMessage()) for record in caplog.records]
        assert events[-1]["event"] == "autosave_failed"
        assert events[-1]["item_id"] == "item-compaction"
        assert events[-1]["lot_id"] == LOT_ID
        assert events[-1]["completed_by"] == "inspector-7"

    def test_no_automatic_retry_after_failure(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        persistence.fail_with = PersistenceError("timeout")
        _edit(store, persister, "item-compaction", PassFailAnswer(PassFailValue.PASS))
        timers.advance(DEFAULT_DEBOUNCE_SECONDS)
        timers.advance(60)

        assert len(persistence.calls) == 1
        assert timers.pending() == []

    def test_next_edit_retries_the_merged_value(
        self,
        store: DraftStore,
        persister: DebouncedPersister,
        persistence: InMemoryPersistence,
        timers: ManualTimers,
    ) -> None:
        persistence.fail_with = PersistenceError("timeout")
        _edit(store, persister, "item-compaction", PassFailAnswer(PassFailValue.PASS))
        timers.advance(DEFAULT_DEBOUNCE_SECONDS)

        persistence.fail_with = None
        _edit(store, persister, "item-compaction", CommentAnswer("retry"))
        timers.advance(DEFAULT_DEBOUNCE_SECONDS)

        assert persistence.rows["item-compaction"]["pass_fail_value"] == "PASS"
        assert persistence.rows["item-compaction"]["comment"] == "retry"
        assert persister.state("item-compaction") is ItemSaveState.CLEAN


class _EditDuringFlush(InMemoryPersistence):
    """Simulates an edit landing while the upsert is on the wire."""

    def __init__(self, items: Sequence[ChecklistItem]) -> None:
        super().__init__(items)
        self.on_upsert = None

    def upsert_conformance_records(self, records: Sequence[ConformancePatch]) -> None:
        if self.on_upsert is not None:
            callback, self.on_upsert = self.on_upsert, None
            callback()
        super().upsert_conformance_records(records)


def test_edit_during_flush_keeps_item_dirty(checklist_items: list[ChecklistItem], timers: ManualTimers) -> None:
    persistence = _EditDuringFlush(checklist_items)
    store = DraftStore(checklist_items)
    persister = DebouncedPersister(lot_id=LOT_ID, store=store, persistence=persistence, timers=timers)

    _edit(store, persister, "item-material", TextAnswer("Quarry A"))
    persistence.on_upsert = lambda: _edit(store, persister, "item-material", TextAnswer("Quarry B"))
    timers.advance(DEFAULT_DEBOUNCE_SECONDS)

    assert persistence.rows["item-material"]["text_value"] == "Quarry A"
    assert persister.state("item-material") is ItemSaveState.DIRTY
    assert timers.pending() == ["item-material"]

    timers.advance(DEFAULT_DEBOUNCE_SECONDS)

    assert persistence.rows["item-material"]["text_value"] == "Quarry B"
    assert persister.state("item-material") is ItemSaveState.CLEAN


def test_timer_dropped_during_flush_is_rearmed(checklist_items: list[ChecklistItem], timers: ManualTimers) -> None:
    persistence = _EditDuringFlush(checklist_items)
    store = DraftStore(checklist_items)
    persister = DebouncedPersister(lot_id=LOT_ID, store=store, persistence=persistence, timers=timers)

    def edit_then_lose_timer() -> None:
        _edit(store, persister, "item-material", TextAnswer("Quarry B"))
        timers.cancel("item-material")

    _edit(store, persister, "item-material", TextAnswer("Quarry A"))
    persistence.on_upsert = edit_then_lose_timer
    timers.advance(DEFAULT_DEBOUNCE_SECONDS)

    assert persister.state("item-material") is ItemSaveState.DIRTY
    assert timers.pending() == ["item-material"]

    timers.advance(DEFAULT_DEBOUNCE_SECONDS)

    assert persistence.rows["item-material"]["text_value"] == "Quarry B"
    assert persister.state("item-material") is ItemSaveState.CLEAN


def test_edit_during_failed_flush_is_retried_by_its_own_timer(
    checklist_items: list[ChecklistItem],
    timers: ManualTimers,
) -> None:
    persistence = _EditDuringFlush(checklist_items)
    store = DraftStore(checklist_items)
    persister = DebouncedPersister(lot_id=LOT_ID, store=store, persistence=persistence, timers=timers)

    def edit_then_fail() -> None:
        _edit(store, persister, "item-material", TextAnswer("Quarry B"))
        timers.cancel("item-material")
        persistence.fail_with = PersistenceError("timeout")

    _edit(store, persister, "item-material", TextAnswer("Quarry A"))
    persistence.on_upsert = edit_then_fail
    timers.advance(DEFAULT_DEBOUNCE_SECONDS)

    assert timers.pending() == ["item-material"]

    persistence.fail_with = None
    timers.advance(DEFAULT_DEBOUNCE_SECONDS)

    assert persistence.rows["item-material"]["text_value"] == "Quarry B"




def test_seeded_record_flushes_back_unchanged(
    checklist_items: list[ChecklistItem],
    persistence: InMemoryPersistence,
    timers: ManualTimers,
) -> None:
    store = DraftStore(checklist_items)
    store.seed(
        [
            ConformanceRecord(
                itp_item_id="item-compaction",
                pass_fail_value=PassFailValue.FAIL,
                comment="Soft spot at CH 120",
                corrective_action="Excavate and replace",
            )
        ]
    )
    persister = DebouncedPersister(lot_id=LOT_ID, store=store, persistence=persistence, timers=timers)

    assert persister.flush_item("item-compaction") is True
    assert persistence.calls[0][0].answer_fields() == {
        "pass_fail_value": "FAIL",
        "comment": "Soft spot at CH 120",
        "corrective_action": "Excavate and replace",
    }


def test_cancel_all_drops_pending_flushes(
    store: DraftStore,
    persister: DebouncedPersister,
    persistence: InMemoryPersistence,
    timers: ManualTimers,
) -> None:
    _edit(store, persister, "item-material", TextAnswer("Quarry A"))
    _edit(store, persister, "item-thickness", NumericAnswer("150"))
    persister.cancel_all()
    timers.advance(10)

    assert persistence.calls == []
