"""
app/services/conformance_service.py

Lot checklist reads and conformance record upserts against the database.

``ConformanceService`` is what the API routers call with a request-scoped
session. ``DatabaseConformancePersistence`` wraps the same service behind
the persistence port so an in-process checklist workflow can save straight
to the database without going through HTTP.

Failure semantics
-----------------
- Unknown lot                      → LotNotFoundError
- Unknown / retired ITP template   → ItpTemplateNotFoundError / InactiveItpTemplateError
- Item not on the lot's ITP        → ChecklistItemNotFoundError
- Write carrying no answer field   → EmptyConformancePatchError
- Database rejected the statement  → ConformancePersistenceError after rollback

A batch is one transaction: either every row is written or none is.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_inspection_settings
from db.models.conformance_record import ConformanceRecord
from db.models.itp import ItpItem
from db.models.lot import Lot
from db.repositories.conformance_repository import ConformanceRepository
from db.repositories.errors import (
    ChecklistItemNotFoundError,
    ConformanceRepositoryError,
    EmptyConformancePatchError,
    InactiveItpTemplateError,
    ItpTemplateNotFoundError,
    LotNotFoundError,
)
from db.repositories.lot_repository import LotRepository
from db.repositories.types import ConformanceRecordWrite
from inspection import answers
from inspection.completion import ConformanceStats, completion_percentage, conformance_stats
from inspection.errors import PersistenceError
from inspection.logging_utils import log_event
from inspection.ports import ChecklistSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotChecklist:
    """
    A lot, its ordered checklist and the records saved against it, with
    progress figures computed from those records.
    """

    lot: Lot
    items: list[ItpItem]
    records: list[ConformanceRecord]
    completion_percentage: int
    stats: ConformanceStats


class ConformanceService:
    def __init__(self, *, batch_size: int = 500) -> None:
        self._batch_size = max(1, batch_size)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_checklist(self, *, db: Session, lot_id: uuid.UUID) -> LotChecklist:
        lot_repository = LotRepository(db)
        lot = lot_repository.get_lot(lot_id)
        if lot is None:
            raise LotNotFoundError(f"Lot not found: {lot_id}")

        items = lot_repository.list_checklist_items(lot)
        item_ids = {item.id for item in items}
        records = [
            record
            for record in lot_repository.list_conformance_records(lot_id)
            if record.itp_item_id in item_ids
        ]

        checklist_items = [to_checklist_item(item) for item in items]
        drafts = {
            str(record.itp_item_id): answers.Draft.from_record(to_answer_record(record))
            for record in records
        }
        return LotChecklist(
            lot=lot,
            items=items,
            records=records,
            completion_percentage=completion_percentage(checklist_items, drafts.get),
            stats=conformance_stats(checklist_items, drafts.get),
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def assign_itp_template(
        self,
        *,
        db: Session,
        lot_id: uuid.UUID,
        itp_template_id: uuid.UUID,
    ) -> Lot:
        """Assign an active ITP template to the lot and commit."""
        lot_repository = LotRepository(db)
        lot = lot_repository.get_lot(lot_id)
        if lot is None:
            raise LotNotFoundError(f"Lot not found: {lot_id}")

        template = lot_repository.get_itp_template(itp_template_id)
        if template is None:
            raise ItpTemplateNotFoundError(f"ITP template not found: {itp_template_id}")
        if not template.is_active:
            raise InactiveItpTemplateError(f"ITP template {itp_template_id} is no longer active")

        previous_template_id = lot.itp_template_id
        try:
            lot_repository.assign_itp_template(lot, template)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        log_event(
            logger,
            logging.INFO,
            "itp_template_assigned",
            lot_id=str(lot_id),
            itp_template_id=str(itp_template_id),
            previous_itp_template_id=previous_template_id,
        )
        return lot

    def save_records(
        self,
        *,
        db: Session,
        lot_id: uuid.UUID,
        writes: Sequence[ConformanceRecordWrite],
    ) -> int:
        """
        Validate and upsert ``writes`` for one lot, then commit.

        Returns the number of rows written.
        """

        written = self.apply_records(db=db, lot_id=lot_id, writes=writes)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        return written

    def apply_records(
        self,
        *,
        db: Session,
        lot_id: uuid.UUID,
        writes: Sequence[ConformanceRecordWrite],
    ) -> int:
        """
        Validate and upsert without committing. On failure the session is
        rolled back before the error propagates.
        """

        if not writes:
            return 0

        lot_repository = LotRepository(db)
        lot = lot_repository.get_lot(lot_id)
        if lot is None:
            db.rollback()
            raise LotNotFoundError(f"Lot not found: {lot_id}")

        allowed_item_ids = {item.id for item in lot_repository.list_checklist_items(lot)}
        for write in writes:
            if write.lot_id != lot_id:
                db.rollback()
                raise LotNotFoundError(f"Write for lot {write.lot_id} submitted against lot {lot_id}")
            if write.itp_item_id not in allowed_item_ids:
                db.rollback()
                raise ChecklistItemNotFoundError(
                    f"Checklist item {write.itp_item_id} is not part of the ITP assigned to lot {lot_id}"
                )
            if not write.answer_fields():
                db.rollback()
                raise EmptyConformancePatchError(
                    f"No answer fields provided for checklist item {write.itp_item_id}"
                )

        repository = ConformanceRepository(db)
        try:
            written = repository.upsert_records_atomic(writes, batch_size=self._batch_size)
        except ConformanceRepositoryError as exc:
            db.rollback()
            log_event(logger, logging.ERROR, "conformance_upsert_failed", lot_id=str(lot_id), error=str(exc))
            raise

        log_event(logger, logging.INFO, "conformance_upserted", lot_id=str(lot_id), rows=written)
        return written

    def get_record(
        self,
        *,
        db: Session,
        lot_id: uuid.UUID,
        itp_item_id: uuid.UUID,
    ) -> ConformanceRecord | None:
        return ConformanceRepository(db).get_record(lot_id=lot_id, itp_item_id=itp_item_id)


# ---------------------------------------------------------------------------
# Row <-> workflow conversions
# ---------------------------------------------------------------------------


def to_checklist_item(item: ItpItem) -> answers.ChecklistItem:
    return answers.ChecklistItem(
        id=str(item.id),
        description=item.description,
        item_type=answers.ItemType(item.item_type),
        order_index=item.order_index,
        acceptance_criteria=item.acceptance_criteria,
        item_number=item.item_number,
        specification_reference=item.specification_reference,
        is_mandatory=item.is_mandatory,
    )


def to_answer_record(record: ConformanceRecord) -> answers.ConformanceRecord:
    return answers.ConformanceRecord(
        itp_item_id=str(record.itp_item_id),
        pass_fail_value=(
            answers.PassFailValue.parse(record.pass_fail_value) if record.pass_fail_value else None
        ),
        text_value=record.text_value,
        numeric_value=record.numeric_value,
        comment=record.comment,
        corrective_action=record.corrective_action,
        is_non_conformance=record.is_non_conformance,
        completed_by=record.completed_by,
        updated_at=record.updated_at,
    )


def to_record_write(patch: answers.ConformancePatch) -> ConformanceRecordWrite:
    """Raises ValueError when either id is not a UUID."""
    fields = patch.answer_fields()
    return ConformanceRecordWrite(
        lot_id=uuid.UUID(patch.lot_id),
        itp_item_id=uuid.UUID(patch.itp_item_id),
        pass_fail_value=fields.get("pass_fail_value"),
        text_value=fields.get("text_value"),
        numeric_value=fields.get("numeric_value"),
        comment=fields.get("comment"),
        corrective_action=fields.get("corrective_action"),
        completed_by=patch.completed_by,
    )


# ---------------------------------------------------------------------------
# Persistence port adapter
# ---------------------------------------------------------------------------


class DatabaseConformancePersistence:
    """
    Persistence port backed directly by the database. Each call opens its
    own session; an upsert batch commits once for all of its lots.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        service: ConformanceService | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import get_session_factory

            self._session_factory = get_session_factory()
        else:
            self._session_factory = session_factory
        self._service = service or get_conformance_service()

    def upsert_conformance_records(self, records: Sequence[answers.ConformancePatch]) -> None:
        if not records:
            return

        try:
            writes = [to_record_write(patch) for patch in records]
        except ValueError as exc:
            raise PersistenceError(f"Invalid identifier in conformance batch: {exc}") from exc

        by_lot: dict[uuid.UUID, list[ConformanceRecordWrite]] = {}
        for write in writes:
            by_lot.setdefault(write.lot_id, []).append(write)

        with self._session_factory() as db:
            try:
                for lot_id, lot_writes in by_lot.items():
                    self._service.apply_records(db=db, lot_id=lot_id, writes=lot_writes)
                db.commit()
            except (ConformanceRepositoryError, SQLAlchemyError) as exc:
                db.rollback()
                raise PersistenceError(f"Failed to save conformance records: {exc}") from exc

    def fetch_checklist_with_answers(self, lot_id: str) -> ChecklistSnapshot:
        try:
            lot_uuid = uuid.UUID(lot_id)
        except ValueError as exc:
            raise PersistenceError(f"Invalid lot id: {lot_id!r}") from exc

        with self._session_factory() as db:
            try:
                checklist = self._service.get_checklist(db=db, lot_id=lot_uuid)
            except (ConformanceRepositoryError, SQLAlchemyError) as exc:
                raise PersistenceError(f"Failed to load checklist for lot {lot_id}: {exc}") from exc

            return ChecklistSnapshot(
                lot_id=lot_id,
                items=[to_checklist_item(item) for item in checklist.items],
                answers=[to_answer_record(record) for record in checklist.records],
                lot_status=checklist.lot.status,
            )


@lru_cache(maxsize=1)
def get_conformance_service() -> ConformanceService:
    return ConformanceService(batch_size=get_inspection_settings().upsert_batch_size)
