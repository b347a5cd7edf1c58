"""
Persistence for lots and their assigned checklist.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.conformance_record import ConformanceRecord
from db.models.itp import ItpItem, ItpTemplate
from db.models.lot import Lot


class LotRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_lot(self, lot_id: uuid.UUID) -> Lot | None:
        return self._session.get(Lot, lot_id)

    def get_itp_template(self, template_id: uuid.UUID) -> ItpTemplate | None:
        return self._session.get(ItpTemplate, template_id)

    def assign_itp_template(self, lot: Lot, template: ItpTemplate) -> Lot:
        """
        Point the lot at ``template``. Records saved against a previous ITP
        stay in place but drop out of the checklist.
        """

        lot.itp_template_id = template.id
        self._session.flush()
        return lot

    def list_checklist_items(self, lot: Lot) -> list[ItpItem]:
        """
        Items of the lot's assigned ITP, ordered for display.
        A lot without an ITP has an empty checklist.
        """

        if lot.itp_template_id is None:
            return []
        stmt = (
            select(ItpItem)
            .where(ItpItem.itp_template_id == lot.itp_template_id)
            .order_by(ItpItem.order_index, ItpItem.created_at)
        )
        return list(self._session.scalars(stmt).all())

    def list_conformance_records(self, lot_id: uuid.UUID) -> list[ConformanceRecord]:
        stmt = (
            select(ConformanceRecord)
            .where(ConformanceRecord.lot_id == lot_id)
            .order_by(ConformanceRecord.updated_at.desc())
        )
        return list(self._session.scalars(stmt).all())
