"""
inspection/errors.py

Exceptions raised by the checklist workflow.
"""

from __future__ import annotations


class InspectionError(Exception):
    """Base exception for checklist workflow failures."""


class UnknownChecklistItemError(InspectionError, KeyError):
    """Raised when an answer targets an item that is not on the lot's checklist."""

    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Checklist item {self.item_id!r} is not part of this lot's ITP."


class AnswerTypeError(InspectionError, ValueError):
    """Raised when an answer variant is not legal for the item's type."""


class PersistenceError(InspectionError):
    """
    Raised by persistence adapters when the backing store rejects or cannot
    be reached for a read or an upsert.
    """
