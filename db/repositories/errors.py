"""
Repository-layer exceptions for lot checklist and conformance flows.
"""

from __future__ import annotations


class ConformanceRepositoryError(Exception):
    """Base exception for conformance persistence failures."""


class LotNotFoundError(ConformanceRepositoryError):
    """Raised when a referenced lot does not exist."""


class ChecklistItemNotFoundError(ConformanceRepositoryError):
    """Raised when a record references an item outside the lot's assigned ITP."""


class EmptyConformancePatchError(ConformanceRepositoryError):
    """Raised when a write carries no answer field at all."""


class ConformancePersistenceError(ConformanceRepositoryError):
    """Raised when the database rejects a conformance upsert."""


class ItpTemplateNotFoundError(ConformanceRepositoryError):
    """Raised when a referenced ITP template does not exist."""


class InactiveItpTemplateError(ConformanceRepositoryError):
    """Raised when assigning an ITP template that has been retired."""
