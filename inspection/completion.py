"""
inspection/completion.py

Progress figures for a lot's checklist, computed from the merged
draft-over-persisted view on every call. Nothing is cached.

Formulas
--------
percentage = round_half_up(100 * completed / total), 0 when total == 0
pass_rate  = round_half_up(100 * passed / (passed + failed)), 0 when no
             item has a PASS or FAIL result
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from inspection.answers import ChecklistItem, Draft, ItemType, PassFailValue
from inspection.payloads import is_answered

DraftLookup = Callable[[str], Draft | None]


@dataclass(frozen=True)
class ConformanceStats:
    total: int
    completed: int
    passed: int
    failed: int
    not_applicable: int
    pending: int
    pass_rate: int
    percentage: int


def _percent(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    return math.floor(100 * numerator / denominator + 0.5)


def count_completed(items: Sequence[ChecklistItem], lookup: DraftLookup) -> int:
    return sum(1 for item in items if is_answered(item, lookup(item.id)))


def completion_percentage(items: Sequence[ChecklistItem], lookup: DraftLookup) -> int:
    """Whole-number percent of items whose type-appropriate field is populated."""
    return _percent(count_completed(items, lookup), len(items))


def conformance_stats(items: Sequence[ChecklistItem], lookup: DraftLookup) -> ConformanceStats:
    completed = passed = failed = not_applicable = 0
    for item in items:
        draft = lookup(item.id)
        if not is_answered(item, draft):
            continue
        completed += 1
        if item.item_type is not ItemType.PASS_FAIL or draft is None:
            continue
        if draft.pass_fail_value is PassFailValue.PASS:
            passed += 1
        elif draft.pass_fail_value is PassFailValue.FAIL:
            failed += 1
        elif draft.pass_fail_value is PassFailValue.NOT_APPLICABLE:
            not_applicable += 1

    total = len(items)
    return ConformanceStats(
        total=total,
        completed=completed,
        passed=passed,
        failed=failed,
        not_applicable=not_applicable,
        pending=total - completed,
        pass_rate=_percent(passed, passed + failed),
        percentage=_percent(completed, total),
    )


def missing_required(items: Sequence[ChecklistItem], lookup: DraftLookup) -> list[ChecklistItem]:
    """Mandatory items that still have no type-appropriate value, in checklist order."""
    return [
        item
        for item in sorted(items, key=lambda candidate: candidate.order_index)
        if item.is_mandatory and not is_answered(item, lookup(item.id))
    ]
