"""
app/schemas package marker.
"""

from app.schemas.conformance import (
    ChecklistItemResponse,
    ConformanceBatchItem,
    ConformanceBatchRequest,
    ConformanceBatchResponse,
    ConformanceRecordResponse,
    ConformanceStatsResponse,
    ConformanceUpsertRequest,
    LotChecklistResponse,
    LotItpAssignmentRequest,
)

__all__ = [
    "ChecklistItemResponse",
    "ConformanceBatchItem",
    "ConformanceBatchRequest",
    "ConformanceBatchResponse",
    "ConformanceRecordResponse",
    "ConformanceStatsResponse",
    "ConformanceUpsertRequest",
    "LotChecklistResponse",
    "LotItpAssignmentRequest",
]
