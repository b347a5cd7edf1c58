"""
inspection/answers.py

Checklist item definitions, answer variants and the record shapes that
cross the persistence boundary.

Answer values are a tagged union: each variant writes exactly one draft
field and declares which item types it is legal for, so a TEXT_INPUT item
can never pick up a pass/fail result and vice versa.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Mapping, Union


class ItemType(str, Enum):
    PASS_FAIL = "PASS_FAIL"
    TEXT_INPUT = "TEXT_INPUT"
    NUMERIC = "NUMERIC"


class PassFailValue(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    NOT_APPLICABLE = "N/A"

    @classmethod
    def parse(cls, raw: str | PassFailValue) -> PassFailValue:
        """Accept the stored spellings plus the lowercase/`NA` forms older clients send."""
        if isinstance(raw, PassFailValue):
            return raw
        normalized = raw.strip().upper()
        if normalized in {"NA", "N.A.", "NOT_APPLICABLE"}:
            return cls.NOT_APPLICABLE
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unsupported pass/fail value: {raw!r}") from exc


# ---------------------------------------------------------------------------
# Checklist definition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChecklistItem:
    """
    One line of the lot's ITP. Read-only for the inspection workflow.
    """

    id: str
    description: str
    item_type: ItemType
    order_index: int = 0
    acceptance_criteria: str | None = None
    item_number: str | None = None
    specification_reference: str | None = None
    is_mandatory: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ChecklistItem:
        return cls(
            id=str(data["id"]),
            description=data.get("description") or "",
            item_type=ItemType(str(data["item_type"]).upper()),
            order_index=int(data.get("order_index") or 0),
            acceptance_criteria=data.get("acceptance_criteria"),
            item_number=data.get("item_number"),
            specification_reference=data.get("specification_reference"),
            is_mandatory=bool(data.get("is_mandatory", True)),
        )


# ---------------------------------------------------------------------------
# Answer variants
# ---------------------------------------------------------------------------


_ALL_TYPES = frozenset(ItemType)


@dataclass(frozen=True)
class PassFailAnswer:
    value: PassFailValue | None

    field: ClassVar[str] = "pass_fail_value"
    item_types: ClassVar[frozenset[ItemType]] = frozenset({ItemType.PASS_FAIL})

    def __post_init__(self) -> None:
        if self.value is not None:
            object.__setattr__(self, "value", PassFailValue.parse(self.value))


@dataclass(frozen=True)
class TextAnswer:
    value: str

    field: ClassVar[str] = "text_value"
    item_types: ClassVar[frozenset[ItemType]] = frozenset({ItemType.TEXT_INPUT})


@dataclass(frozen=True)
class NumericAnswer:
    """Raw numeric input exactly as typed; parsed only when a patch is built."""

    value: str

    field: ClassVar[str] = "numeric_value"
    item_types: ClassVar[frozenset[ItemType]] = frozenset({ItemType.NUMERIC})

    @classmethod
    def of(cls, number: float | int) -> NumericAnswer:
        return cls(value=format_number(number))


@dataclass(frozen=True)
class CommentAnswer:
    value: str

    field: ClassVar[str] = "comment"
    item_types: ClassVar[frozenset[ItemType]] = _ALL_TYPES


@dataclass(frozen=True)
class CorrectiveActionAnswer:
    value: str

    field: ClassVar[str] = "corrective_action"
    item_types: ClassVar[frozenset[ItemType]] = frozenset({ItemType.PASS_FAIL})


AnswerValue = Union[
    PassFailAnswer,
    TextAnswer,
    NumericAnswer,
    CommentAnswer,
    CorrectiveActionAnswer,
]


# ---------------------------------------------------------------------------
# Draft
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Draft:
    """
    Process-local, possibly unsaved answer for one item. Any subset of the
    fields may be populated.
    """

    pass_fail_value: PassFailValue | None = None
    text_value: str | None = None
    numeric_value: str | None = None
    comment: str | None = None
    corrective_action: str | None = None

    def merged(self, *answers: AnswerValue) -> Draft:
        """Apply answers in order; fields not named by any answer are kept."""
        changes: dict[str, Any] = {}
        for answer in answers:
            changes[answer.field] = answer.value
        return dataclasses.replace(self, **changes) if changes else self

    @classmethod
    def from_record(cls, record: ConformanceRecord) -> Draft:
        return cls(
            pass_fail_value=record.pass_fail_value,
            text_value=record.text_value,
            numeric_value=None if record.numeric_value is None else format_number(record.numeric_value),
            comment=record.comment,
            corrective_action=record.corrective_action,
        )


# ---------------------------------------------------------------------------
# Persistence shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConformanceRecord:
    """
    Last persisted answer for one checklist item on the lot being inspected.
    """

    itp_item_id: str
    pass_fail_value: PassFailValue | None = None
    text_value: str | None = None
    numeric_value: float | None = None
    comment: str | None = None
    corrective_action: str | None = None
    is_non_conformance: bool = False
    completed_by: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConformanceRecord:
        pass_fail = data.get("pass_fail_value")
        numeric = data.get("numeric_value")
        updated_at = data.get("updated_at")
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at.replace("Z", "+00:00"))
        return cls(
            itp_item_id=str(data["itp_item_id"]),
            pass_fail_value=PassFailValue.parse(pass_fail) if pass_fail else None,
            text_value=data.get("text_value"),
            numeric_value=None if numeric is None else float(numeric),
            comment=data.get("comment"),
            corrective_action=data.get("corrective_action"),
            is_non_conformance=bool(data.get("is_non_conformance", False)),
            completed_by=data.get("completed_by"),
            updated_at=updated_at,
        )


@dataclass(frozen=True)
class ConformancePatch:
    """
    Upsert payload for one ``(lot_id, itp_item_id)`` pair carrying only the
    fields that are populated.
    """

    lot_id: str
    itp_item_id: str
    pass_fail_value: PassFailValue | None = None
    text_value: str | None = None
    numeric_value: float | None = None
    comment: str | None = None
    corrective_action: str | None = None
    completed_by: str | None = None

    ANSWER_FIELDS: ClassVar[tuple[str, ...]] = (
        "pass_fail_value",
        "text_value",
        "numeric_value",
        "comment",
        "corrective_action",
    )

    def answer_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for name in self.ANSWER_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            fields[name] = value.value if isinstance(value, PassFailValue) else value
        return fields

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"lot_id": self.lot_id, "itp_item_id": self.itp_item_id}
        payload.update(self.answer_fields())
        if self.completed_by is not None:
            payload["completed_by"] = self.completed_by
        return payload


def format_number(number: float | int) -> str:
    """Render a stored number the way an inspector would have typed it."""
    as_float = float(number)
    if as_float.is_integer():
        return str(int(as_float))
    return repr(as_float)
