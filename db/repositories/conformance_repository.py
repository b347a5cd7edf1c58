"""
db/repositories/conformance_repository.py

Persistence layer for ConformanceRecord rows.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.conformance_record import UPSERT_CONSTRAINT, ConformanceRecord, PassFailValue
from db.repositories.errors import ConformancePersistenceError, EmptyConformancePatchError
from db.repositories.types import ConformanceRecordWrite

_DEFAULT_BATCH_SIZE = 500


class ConformanceRepository:
    """
    Repository for writing and querying ConformanceRecord rows.

    Upsert semantics: writing a record whose ``(lot_id, itp_item_id)``
    already exists updates only the answer columns carried by the write,
    leaving the others untouched, rather than raising a duplicate-key error.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert_records(
        self,
        rows: Sequence[ConformanceRecordWrite],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Upsert conformance rows keyed on ``(lot_id, itp_item_id)``.

        Rows repeating the same key within one call are deduplicated in
        Python first; the last occurrence wins. Rows are grouped by the set
        of columns they carry so each INSERT statement has a uniform column
        list and each DO UPDATE only touches those columns.

        Parameters
        ----------
        rows:
            Writes to apply. Every row must carry at least one answer field.
        batch_size:
            Maximum rows per INSERT statement.

        Returns
        -------
        int
            Total number of rows written (inserted + updated).

        Raises
        ------
        EmptyConformancePatchError
            A row carries no answer field.
        ConformancePersistenceError
            The database rejected a statement.
        """
        if not rows:
            return 0

        deduped = _deduplicate(rows)
        for row in deduped:
            if not row.answer_fields():
                raise EmptyConformancePatchError(
                    f"No answer fields for lot_id={row.lot_id} itp_item_id={row.itp_item_id}"
                )

        size = max(1, batch_size)
        written = 0
        try:
            for columns, group in _group_by_columns(deduped).items():
                for start in range(0, len(group), size):
                    written += self._upsert_group(columns, group[start : start + size])
        except SQLAlchemyError as exc:
            raise ConformancePersistenceError(f"Conformance upsert failed: {exc}") from exc
        return written

    def upsert_records_atomic(
        self,
        rows: Sequence[ConformanceRecordWrite],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Transaction-safe wrapper around :meth:`upsert_records`.

        Wraps in a savepoint when already inside a transaction so the outer
        transaction is never implicitly committed.
        """
        if not rows:
            return 0

        with self._transaction_context():
            return self.upsert_records(rows, batch_size=batch_size)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_record(self, *, lot_id: uuid.UUID, itp_item_id: uuid.UUID) -> ConformanceRecord | None:
        stmt = select(ConformanceRecord).where(
            ConformanceRecord.lot_id == lot_id,
            ConformanceRecord.itp_item_id == itp_item_id,
        )
        return self._session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _upsert_group(
        self,
        columns: tuple[str, ...],
        chunk: Sequence[ConformanceRecordWrite],
    ) -> int:
        payloads = [_to_payload(row, columns) for row in chunk]
        stmt = insert(ConformanceRecord).values(payloads)

        set_: dict[str, Any] = {column: stmt.excluded[column] for column in columns}
        if "pass_fail_value" in columns:
            set_["is_non_conformance"] = stmt.excluded.is_non_conformance
        set_["completed_by"] = func.coalesce(stmt.excluded.completed_by, ConformanceRecord.completed_by)
        set_["updated_at"] = _now_utc()

        stmt = stmt.on_conflict_do_update(
            constraint=UPSERT_CONSTRAINT,
            set_=set_,
        ).returning(ConformanceRecord.id)
        return len(self._session.scalars(stmt).all())

    def _transaction_context(self) -> Any:
        if self._session.in_transaction():
            return self._session.begin_nested()
        return self._session.begin()


# ---------------------------------------------------------------------------
# Module-level helpers (no business logic)
# ---------------------------------------------------------------------------


def _deduplicate(rows: Sequence[ConformanceRecordWrite]) -> list[ConformanceRecordWrite]:
    """Last-write-wins deduplication keyed on (lot_id, itp_item_id)."""
    seen: dict[tuple[uuid.UUID, uuid.UUID], ConformanceRecordWrite] = {}
    for row in rows:
        seen[row.key] = row
    return list(seen.values())


def _group_by_columns(
    rows: Sequence[ConformanceRecordWrite],
) -> dict[tuple[str, ...], list[ConformanceRecordWrite]]:
    groups: dict[tuple[str, ...], list[ConformanceRecordWrite]] = {}
    for row in rows:
        columns = tuple(sorted(row.answer_fields()))
        groups.setdefault(columns, []).append(row)
    return groups


def _to_payload(row: ConformanceRecordWrite, columns: tuple[str, ...]) -> dict[str, Any]:
    answers = row.answer_fields()
    payload: dict[str, Any] = {
        "id": uuid.uuid4(),
        "lot_id": row.lot_id,
        "itp_item_id": row.itp_item_id,
        "completed_by": row.completed_by,
        "is_non_conformance": answers.get("pass_fail_value") == PassFailValue.FAIL,
    }
    for column in columns:
        payload[column] = answers[column]
    return payload


def _now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)
