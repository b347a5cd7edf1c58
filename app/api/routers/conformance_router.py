"""
app/api/routers/conformance_router.py

Lot checklist, ITP assignment and conformance record endpoints.

Writes are upserts keyed on ``(lot_id, itp_item_id)``: only the answer
fields present in the body are written, the rest of an existing record is
left as it was.
"""

from __future__ import annotations

import logging
import uuid
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.schemas.conformance import (
    ChecklistItemResponse,
    ConformanceAnswerFields,
    ConformanceBatchRequest,
    ConformanceBatchResponse,
    ConformanceRecordResponse,
    ConformanceStatsResponse,
    ConformanceUpsertRequest,
    LotChecklistResponse,
    LotItpAssignmentRequest,
)
from app.services.conformance_service import ConformanceService, LotChecklist, get_conformance_service
from db.repositories.errors import (
    ChecklistItemNotFoundError,
    ConformanceRepositoryError,
    EmptyConformancePatchError,
    InactiveItpTemplateError,
    ItpTemplateNotFoundError,
    LotNotFoundError,
)
from db.repositories.types import ConformanceRecordWrite
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lots", tags=["conformance"])


def _to_write(lot_id: uuid.UUID, itp_item_id: uuid.UUID, body: ConformanceAnswerFields) -> ConformanceRecordWrite:
    return ConformanceRecordWrite(
        lot_id=lot_id,
        itp_item_id=itp_item_id,
        pass_fail_value=body.pass_fail_value,
        text_value=body.text_value.strip() if body.text_value and body.text_value.strip() else None,
        numeric_value=body.numeric_value,
        comment=body.comment.strip() if body.comment and body.comment.strip() else None,
        corrective_action=(
            body.corrective_action.strip() if body.corrective_action and body.corrective_action.strip() else None
        ),
        completed_by=body.completed_by,
    )


def _raise_for_repository_error(exc: ConformanceRepositoryError) -> NoReturn:
    if isinstance(exc, (LotNotFoundError, ChecklistItemNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, EmptyConformancePatchError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to save inspection data.",
    ) from exc


def _checklist_response(checklist: LotChecklist) -> LotChecklistResponse:
    stats = checklist.stats
    return LotChecklistResponse(
        lot_id=checklist.lot.id,
        lot_number=checklist.lot.lot_number,
        lot_status=checklist.lot.status,
        itp_template_id=checklist.lot.itp_template_id,
        items=[ChecklistItemResponse.model_validate(item) for item in checklist.items],
        answers=[ConformanceRecordResponse.model_validate(record) for record in checklist.records],
        completion_percentage=checklist.completion_percentage,
        stats=ConformanceStatsResponse(
            total=stats.total,
            completed=stats.completed,
            passed=stats.passed,
            failed=stats.failed,
            not_applicable=stats.not_applicable,
            pending=stats.pending,
            pass_rate=stats.pass_rate,
            percentage=stats.percentage,
        ),
    )


@router.get(
    "/{lot_id}/checklist",
    response_model=LotChecklistResponse,
    status_code=status.HTTP_200_OK,
)
def get_lot_checklist(
    lot_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: ConformanceService = Depends(get_conformance_service),
) -> LotChecklistResponse:
    """
    Return the lot's ITP items in display order with every saved answer.

    Raises HTTP 404 when the lot does not exist.
    """
    try:
        checklist = service.get_checklist(db=db, lot_id=lot_id)
    except LotNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return _checklist_response(checklist)


@router.put(
    "/{lot_id}/itp",
    response_model=LotChecklistResponse,
    status_code=status.HTTP_200_OK,
)
def assign_lot_itp(
    lot_id: uuid.UUID,
    body: LotItpAssignmentRequest,
    db: Session = Depends(get_db),
    service: ConformanceService = Depends(get_conformance_service),
) -> LotChecklistResponse:
    """
    Assign an ITP template to the lot and return the resulting checklist.

    Raises HTTP 404 for an unknown lot or template and HTTP 409 when the
    template is no longer active.
    """
    try:
        service.assign_itp_template(db=db, lot_id=lot_id, itp_template_id=body.itp_template_id)
    except (LotNotFoundError, ItpTemplateNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InactiveItpTemplateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("ITP assignment failed lot_id=%s", lot_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign ITP template.",
        ) from exc

    return _checklist_response(service.get_checklist(db=db, lot_id=lot_id))


@router.put(
    "/{lot_id}/items/{item_id}/conformance",
    response_model=ConformanceRecordResponse,
    status_code=status.HTTP_200_OK,
)
def upsert_item_conformance(
    lot_id: uuid.UUID,
    item_id: uuid.UUID,
    body: ConformanceUpsertRequest,
    db: Session = Depends(get_db),
    service: ConformanceService = Depends(get_conformance_service),
) -> ConformanceRecordResponse:
    """
    Insert or update the record for one checklist item.

    Raises HTTP 404 for an unknown lot or an item outside the lot's ITP.
    Raises HTTP 400 when the body carries no answer field.
    """
    write = _to_write(lot_id, item_id, body)
    try:
        service.save_records(db=db, lot_id=lot_id, writes=[write])
    except ConformanceRepositoryError as exc:
        _raise_for_repository_error(exc)
    except SQLAlchemyError as exc:
        logger.exception("Conformance upsert failed lot_id=%s item_id=%s", lot_id, item_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save inspection data.",
        ) from exc

    record = service.get_record(db=db, lot_id=lot_id, itp_item_id=item_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Saved record could not be read back.",
        )
    return ConformanceRecordResponse.model_validate(record)


@router.post(
    "/{lot_id}/conformance",
    response_model=ConformanceBatchResponse,
    status_code=status.HTTP_200_OK,
)
def upsert_lot_conformance(
    lot_id: uuid.UUID,
    body: ConformanceBatchRequest,
    db: Session = Depends(get_db),
    service: ConformanceService = Depends(get_conformance_service),
) -> ConformanceBatchResponse:
    """
    Save several items in one transaction ("Save Progress").

    Either every record is written or none is. Error mapping matches the
    single-item endpoint.
    """
    writes = [_to_write(lot_id, record.itp_item_id, record) for record in body.records]
    try:
        saved_count = service.save_records(db=db, lot_id=lot_id, writes=writes)
    except ConformanceRepositoryError as exc:
        _raise_for_repository_error(exc)
    except SQLAlchemyError as exc:
        logger.exception("Conformance batch upsert failed lot_id=%s", lot_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save inspection data.",
        ) from exc

    return ConformanceBatchResponse(lot_id=lot_id, saved_count=saved_count)
