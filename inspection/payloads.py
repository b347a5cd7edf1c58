"""
inspection/payloads.py

Turns a draft into the upsert patch for its item.

Only the field matching the item's type is considered, plus the comment
(and corrective action on PASS_FAIL items). Blank text, blank or
unparsable numbers and unset pass/fail results are left out; a draft with
nothing left produces no patch at all, so empty rows are never written.
"""

from __future__ import annotations

import math

from inspection.answers import ChecklistItem, ConformancePatch, Draft, ItemType


def parse_numeric(raw: str | None) -> float | None:
    """
    Parse a numeric draft. Blank, unparsable and non-finite input yield None.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def validate_draft(item: ChecklistItem, draft: Draft | None) -> str | None:
    """
    Return an inline validation message for the draft, or None if it is
    acceptable. A NUMERIC item with text that does not parse as a finite
    number is the only invalid state a draft can reach.
    """

    if draft is None or item.item_type is not ItemType.NUMERIC:
        return None
    raw = draft.numeric_value
    if raw is None or not raw.strip():
        return None
    if parse_numeric(raw) is None:
        return f"'{raw.strip()}' is not a valid number."
    return None


def is_answered(item: ChecklistItem, draft: Draft | None) -> bool:
    """True when the item's type-appropriate field is populated."""

    if draft is None:
        return False
    if item.item_type is ItemType.PASS_FAIL:
        return draft.pass_fail_value is not None
    if item.item_type is ItemType.TEXT_INPUT:
        return _clean_text(draft.text_value) is not None
    return parse_numeric(draft.numeric_value) is not None


def build_patch(
    lot_id: str,
    item: ChecklistItem,
    draft: Draft | None,
    *,
    completed_by: str | None = None,
) -> ConformancePatch | None:
    if draft is None:
        return None

    pass_fail_value = None
    text_value = None
    numeric_value = None
    corrective_action = None

    if item.item_type is ItemType.PASS_FAIL:
        pass_fail_value = draft.pass_fail_value
        corrective_action = _clean_text(draft.corrective_action)
    elif item.item_type is ItemType.TEXT_INPUT:
        text_value = _clean_text(draft.text_value)
    elif item.item_type is ItemType.NUMERIC:
        numeric_value = parse_numeric(draft.numeric_value)

    patch = ConformancePatch(
        lot_id=lot_id,
        itp_item_id=item.id,
        pass_fail_value=pass_fail_value,
        text_value=text_value,
        numeric_value=numeric_value,
        comment=_clean_text(draft.comment),
        corrective_action=corrective_action,
        completed_by=completed_by,
    )
    if not patch.answer_fields():
        return None
    return patch
