"""
tests/test_payloads.py

Unit tests for turning drafts into upsert patches.
"""

from __future__ import annotations

import pytest

from inspection.answers import ChecklistItem, ConformancePatch, Draft, ItemType, PassFailValue
from inspection.payloads import build_patch, is_answered, parse_numeric, validate_draft

LOT = "lot-0001"

PASS_FAIL = ChecklistItem(id="pf", description="Compaction", item_type=ItemType.PASS_FAIL)
TEXT = ChecklistItem(id="tx", description="Material", item_type=ItemType.TEXT_INPUT)
NUMERIC = ChecklistItem(id="nm", description="Thickness", item_type=ItemType.NUMERIC)


class TestParseNumeric:
    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "1,5", "nan", "inf", "-inf"])
    def test_unusable_input_yields_none(self, raw: str | None) -> None:
        assert parse_numeric(raw) is None

    @pytest.mark.parametrize(("raw", "expected"), [("150", 150.0), (" 2.5 ", 2.5), ("-0.75", -0.75), ("1e3", 1000.0)])
    def test_parses_finite_numbers(self, raw: str, expected: float) -> None:
        assert parse_numeric(raw) == expected


class TestBuildPatch:
    def test_pass_fail_item_carries_result_and_corrective_action(self) -> None:
        draft = Draft(pass_fail_value=PassFailValue.FAIL, corrective_action=" Re-compact layer ")
        patch = build_patch(LOT, PASS_FAIL, draft, completed_by="inspector-7")

        assert patch == ConformancePatch(
            lot_id=LOT,
            itp_item_id="pf",
            pass_fail_value=PassFailValue.FAIL,
            corrective_action="Re-compact layer",
            completed_by="inspector-7",
        )
        assert patch.to_payload() == {
            "lot_id": LOT,
            "itp_item_id": "pf",
            "pass_fail_value": "FAIL",
            "corrective_action": "Re-compact layer",
            "completed_by": "inspector-7",
        }

    def test_text_item_is_trimmed(self) -> None:
        patch = build_patch(LOT, TEXT, Draft(text_value="  Quarry A  "))
        assert patch is not None
        assert patch.answer_fields() == {"text_value": "Quarry A"}

    def test_numeric_item_is_parsed(self) -> None:
        patch = build_patch(LOT, NUMERIC, Draft(numeric_value="148.5"))
        assert patch is not None
        assert patch.answer_fields() == {"numeric_value": 148.5}

    def test_empty_numeric_string_never_produces_numeric_value(self) -> None:
        patch = build_patch(LOT, NUMERIC, Draft(numeric_value="", comment="not measured yet"))
        assert patch is not None
        assert "numeric_value" not in patch.answer_fields()
        assert patch.answer_fields() == {"comment": "not measured yet"}

    def test_unparsable_numeric_is_omitted(self) -> None:
        assert build_patch(LOT, NUMERIC, Draft(numeric_value="12mm")) is None

    def test_fields_of_other_types_are_ignored(self) -> None:
        draft = Draft(pass_fail_value=PassFailValue.PASS, numeric_value="5")
        assert build_patch(LOT, TEXT, draft) is None

    @pytest.mark.parametrize("draft", [None, Draft(), Draft(text_value="   ", comment=" ")])
    def test_nothing_populated_yields_no_patch(self, draft: Draft | None) -> None:
        assert build_patch(LOT, TEXT, draft) is None

    def test_comment_alone_is_enough(self) -> None:
        patch = build_patch(LOT, PASS_FAIL, Draft(comment="Awaiting test results"))
        assert patch is not None
        assert patch.answer_fields() == {"comment": "Awaiting test results"}


class TestValidation:
    def test_unparsable_numeric_is_reported(self) -> None:
        assert validate_draft(NUMERIC, Draft(numeric_value=" 12mm ")) == "'12mm' is not a valid number."

    @pytest.mark.parametrize("draft", [None, Draft(), Draft(numeric_value=""), Draft(numeric_value="12")])
    def test_acceptable_numeric_drafts(self, draft: Draft | None) -> None:
        assert validate_draft(NUMERIC, draft) is None

    def test_non_numeric_items_are_never_invalid(self) -> None:
        assert validate_draft(TEXT, Draft(numeric_value="garbage")) is None


class TestIsAnswered:
    def test_type_appropriate_field_decides(self) -> None:
        assert is_answered(PASS_FAIL, Draft(pass_fail_value=PassFailValue.NOT_APPLICABLE))
        assert not is_answered(PASS_FAIL, Draft(comment="only a comment"))
        assert is_answered(TEXT, Draft(text_value="x"))
        assert not is_answered(TEXT, Draft(text_value="  "))
        assert is_answered(NUMERIC, Draft(numeric_value="0"))
        assert not is_answered(NUMERIC, Draft(numeric_value="zero"))
        assert not is_answered(NUMERIC, None)
