"""
Schemas for the lot checklist and conformance record endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

PassFailLiteral = Literal["PASS", "FAIL", "N/A"]


class ChecklistItemResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    item_number: str | None = None
    description: str
    item_type: str
    acceptance_criteria: str | None = None
    specification_reference: str | None = None
    is_mandatory: bool = True
    order_index: int = 0


class ConformanceRecordResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    lot_id: UUID
    itp_item_id: UUID
    pass_fail_value: str | None = None
    text_value: str | None = None
    numeric_value: float | None = None
    comment: str | None = None
    corrective_action: str | None = None
    is_non_conformance: bool = False
    completed_by: str | None = None
    created_at: datetime
    updated_at: datetime


class ConformanceStatsResponse(BaseModel):
    total: int
    completed: int
    passed: int
    failed: int
    not_applicable: int
    pending: int
    pass_rate: int
    percentage: int


class LotChecklistResponse(BaseModel):
    lot_id: UUID
    lot_number: str
    lot_status: str
    itp_template_id: UUID | None = None
    items: list[ChecklistItemResponse] = Field(default_factory=list)
    answers: list[ConformanceRecordResponse] = Field(default_factory=list)
    completion_percentage: int = 0
    stats: ConformanceStatsResponse


class LotItpAssignmentRequest(BaseModel):
    itp_template_id: UUID


class ConformanceAnswerFields(BaseModel):
    """
    Populated answer fields for one item. Omitted or null fields are left
    untouched on an existing record.
    """

    pass_fail_value: PassFailLiteral | None = None
    text_value: str | None = Field(default=None, max_length=10000)
    numeric_value: float | None = Field(default=None, allow_inf_nan=False)
    comment: str | None = Field(default=None, max_length=10000)
    corrective_action: str | None = Field(default=None, max_length=10000)
    completed_by: str | None = Field(default=None, max_length=255)

    @field_validator("pass_fail_value", mode="before")
    @classmethod
    def _normalize_pass_fail(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().upper()
            return "N/A" if normalized in {"NA", "N.A.", "NOT_APPLICABLE"} else normalized
        return value


class ConformanceUpsertRequest(ConformanceAnswerFields):
    pass


class ConformanceBatchItem(ConformanceAnswerFields):
    itp_item_id: UUID


class ConformanceBatchRequest(BaseModel):
    records: list[ConformanceBatchItem] = Field(min_length=1, max_length=1000)


class ConformanceBatchResponse(BaseModel):
    lot_id: UUID
    saved_count: int
