"""
app/services package marker.
"""

from app.services.conformance_service import (
    ConformanceService,
    DatabaseConformancePersistence,
    LotChecklist,
    get_conformance_service,
)

__all__ = [
    "ConformanceService",
    "DatabaseConformancePersistence",
    "LotChecklist",
    "get_conformance_service",
]
