from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.platform.counters.schemas import EntryCountIncrementRequest
from app.platform.counters.service import entry_counter_service
from app.platform.results import LedgerValidationError, OperationResult


router = APIRouter(prefix="/api/entry", tags=["entry-counters"])


def _respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(content=result.envelope(), status_code=result.code)


@router.get("/counts")
def get_entry_counts(db: Session = Depends(get_db)) -> JSONResponse:
    return _respond(entry_counter_service.get_entry_counts(db))


@router.post("/increment")
def increment_entry_counts(payload: EntryCountIncrementRequest, db: Session = Depends(get_db)) -> JSONResponse:
    if not payload.form_type or payload.actual_entry_number is None:
        return _respond(OperationResult.failure(LedgerValidationError("formType and actualEntryNumber are required")))
    return _respond(entry_counter_service.increment(db, payload.form_type, payload.actual_entry_number))
