"""
tests/test_draft_store.py

Unit tests for answer variants and the in-memory draft store.

Coverage
--------
- Field-wise merge of sequential partial answers
- Draft-over-persisted reads after seeding
- Rejection of unknown items and of variants illegal for the item type
- Pass/fail parsing of the wire spellings
- Dirty tracking and discard
"""

from __future__ import annotations

import pytest

from inspection.answers import (
    ChecklistItem,
    CommentAnswer,
    ConformanceRecord,
    CorrectiveActionAnswer,
    Draft,
    NumericAnswer,
    PassFailAnswer,
    PassFailValue,
    TextAnswer,
)
from inspection.drafts import DraftStore
from inspection.errors import AnswerTypeError, UnknownChecklistItemError


@pytest.fixture()
def store(checklist_items: list[ChecklistItem]) -> DraftStore:
    return DraftStore(checklist_items)


class TestMerge:
    def test_sequential_sets_merge_field_wise(self, store: DraftStore) -> None:
        store.set("item-compaction", PassFailAnswer(PassFailValue.PASS))
        store.set("item-compaction", CommentAnswer("Proof roll witnessed"))

        draft = store.get("item-compaction")
        assert draft == Draft(pass_fail_value=PassFailValue.PASS, comment="Proof roll witnessed")

    def test_last_value_per_field_wins(self, store: DraftStore) -> None:
        store.set("item-compaction", PassFailAnswer(PassFailValue.PASS), CommentAnswer("first"))
        store.set("item-compaction", PassFailAnswer(PassFailValue.FAIL))
        store.set("item-compaction", CommentAnswer("second"))

        draft = store.get("item-compaction")
        assert draft is not None
        assert draft.pass_fail_value is PassFailValue.FAIL
        assert draft.comment == "second"

    def test_set_returns_merged_draft(self, store: DraftStore) -> None:
        store.set("item-thickness", NumericAnswer("150"))
        merged = store.set("item-thickness", CommentAnswer("avg of 3 cores"))
        assert merged == Draft(numeric_value="150", comment="avg of 3 cores")

    def test_partial_answer_merges_over_persisted_value(self, store: DraftStore) -> None:
        store.seed(
            [
                ConformanceRecord(
                    itp_item_id="item-compaction",
                    pass_fail_value=PassFailValue.PASS,
                    comment="old",
                )
            ]
        )
        store.set("item-compaction", CommentAnswer("new"))

        assert store.get("item-compaction") == Draft(pass_fail_value=PassFailValue.PASS, comment="new")
        assert store.persisted("item-compaction") == Draft(pass_fail_value=PassFailValue.PASS, comment="old")


class TestReads:
    def test_untouched_item_reads_none(self, store: DraftStore) -> None:
        assert store.get("item-material") is None

    def test_seeded_value_is_returned_until_edited(self, store: DraftStore) -> None:
        store.seed([ConformanceRecord(itp_item_id="item-thickness", numeric_value=150.0)])
        assert store.get("item-thickness") == Draft(numeric_value="150")

    def test_seed_ignores_items_outside_the_checklist(self, store: DraftStore) -> None:
        store.seed([ConformanceRecord(itp_item_id="item-from-another-itp", text_value="x")])
        assert store.snapshot() == {}

    def test_items_are_returned_in_display_order(self, checklist_items: list[ChecklistItem]) -> None:
        store = DraftStore(list(reversed(checklist_items)))
        assert [item.id for item in store.items] == [
            "item-compaction",
            "item-material",
            "item-thickness",
            "item-survey",
        ]


class TestRejections:
    def test_unknown_item_raises(self, store: DraftStore) -> None:
        with pytest.raises(UnknownChecklistItemError) as excinfo:
            store.set("item-orphan", CommentAnswer("x"))
        assert excinfo.value.item_id == "item-orphan"
        assert store.snapshot() == {}

    def test_unknown_item_is_also_a_key_error(self, store: DraftStore) -> None:
        with pytest.raises(KeyError):
            store.item("item-orphan")

    @pytest.mark.parametrize(
        ("item_id", "answer"),
        [
            ("item-compaction", TextAnswer("looks fine")),
            ("item-material", PassFailAnswer(PassFailValue.PASS)),
            ("item-thickness", CorrectiveActionAnswer("re-compact")),
        ],
    )
    def test_variant_illegal_for_item_type_raises(self, store: DraftStore, item_id: str, answer: object) -> None:
        with pytest.raises(AnswerTypeError):
            store.set(item_id, answer)  # type: ignore[arg-type]
        assert store.get(item_id) is None
        assert not store.is_dirty(item_id)

    def test_comment_is_legal_for_every_type(self, store: DraftStore) -> None:
        for item in store.items:
            store.set(item.id, CommentAnswer("noted"))
        assert len(store.snapshot()) == 4


class TestPassFailParsing:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("PASS", PassFailValue.PASS),
            ("fail", PassFailValue.FAIL),
            ("N/A", PassFailValue.NOT_APPLICABLE),
            ("NA", PassFailValue.NOT_APPLICABLE),
            (" na ", PassFailValue.NOT_APPLICABLE),
        ],
    )
    def test_wire_spellings(self, raw: str, expected: PassFailValue) -> None:
        assert PassFailValue.parse(raw) is expected
        assert PassFailAnswer(raw).value is expected  # type: ignore[arg-type]

    def test_unsupported_value_raises(self) -> None:
        with pytest.raises(ValueError):
            PassFailValue.parse("MAYBE")


class TestDirtyTracking:
    def test_set_marks_dirty(self, store: DraftStore) -> None:
        store.set("item-material", TextAnswer("Quarry A"))
        assert store.is_dirty("item-material")
        assert store.dirty_items() == ["item-material"]

    def test_clear_dirty_keeps_draft(self, store: DraftStore) -> None:
        store.set("item-material", TextAnswer("Quarry A"))
        store.clear_dirty("item-material")
        assert not store.is_dirty("item-material")
        assert store.get("item-material") == Draft(text_value="Quarry A")

    def test_discard_drops_drafts_but_keeps_persisted(self, store: DraftStore) -> None:
        store.seed([ConformanceRecord(itp_item_id="item-material", text_value="Quarry A")])
        store.set("item-material", TextAnswer("Quarry B"))
        store.discard()

        assert store.get("item-material") == Draft(text_value="Quarry A")
        assert store.dirty_items() == []


class TestNumericAnswer:
    @pytest.mark.parametrize(("number", "expected"), [(150, "150"), (150.0, "150"), (148.5, "148.5"), (-0.25, "-0.25")])
    def test_of_renders_the_typed_form(self, number: float, expected: str) -> None:
        assert NumericAnswer.of(number).value == expected
