"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.conformance_record import ConformanceRecord, PassFailValue
from db.models.itp import ItpItem, ItpItemType, ItpTemplate
from db.models.lot import Lot, LotStatus
from db.models.project import Project, ProjectStatus

__all__ = [
    "ConformanceRecord",
    "ItpItem",
    "ItpItemType",
    "ItpTemplate",
    "Lot",
    "LotStatus",
    "PassFailValue",
    "Project",
    "ProjectStatus",
]
