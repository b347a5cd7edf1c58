"""
Repository layer exports.
"""

from db.repositories.conformance_repository import ConformanceRepository
from db.repositories.errors import (
    ChecklistItemNotFoundError,
    ConformancePersistenceError,
    ConformanceRepositoryError,
    EmptyConformancePatchError,
    InactiveItpTemplateError,
    ItpTemplateNotFoundError,
    LotNotFoundError,
)
from db.repositories.lot_repository import LotRepository
from db.repositories.types import ANSWER_COLUMNS, ConformanceRecordWrite

__all__ = [
    "ANSWER_COLUMNS",
    "ChecklistItemNotFoundError",
    "ConformancePersistenceError",
    "ConformanceRecordWrite",
    "ConformanceRepository",
    "ConformanceRepositoryError",
    "EmptyConformancePatchError",
    "InactiveItpTemplateError",
    "ItpTemplateNotFoundError",
    "LotNotFoundError",
    "LotRepository",
]
