"""
tests/conftest.py

Shared fixtures: a four-item earthworks checklist, a manual timer clock and
an in-memory persistence port.
"""

from __future__ import annotations

import pytest

from inspection.answers import ChecklistItem, ItemType
from tests.fakes import InMemoryPersistence, ManualTimers


@pytest.fixture()
def checklist_items() -> list[ChecklistItem]:
    return [
        ChecklistItem(
            id="item-compaction",
            description="Subgrade compaction tested and accepted",
            item_type=ItemType.PASS_FAIL,
            order_index=1,
            item_number="1.1",
        ),
        ChecklistItem(
            id="item-material",
            description="Fill material source recorded",
            item_type=ItemType.TEXT_INPUT,
            order_index=2,
            item_number="1.2",
        ),
        ChecklistItem(
            id="item-thickness",
            description="Layer thickness (mm)",
            item_type=ItemType.NUMERIC,
            order_index=3,
            item_number="1.3",
            acceptance_criteria="150 mm +/- 10 mm",
        ),
        ChecklistItem(
            id="item-survey",
            description="Survey conformance checked",
            item_type=ItemType.PASS_FAIL,
            order_index=4,
            item_number="1.4",
            is_mandatory=False,
        ),
    ]


@pytest.fixture()
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture()
def persistence(checklist_items: list[ChecklistItem]) -> InMemoryPersistence:
    return InMemoryPersistence(checklist_items)
