from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.platform.archive.service import archive_service
from app.platform.ledger.service import ledger_service
from app.platform.results import OperationResult


router = APIRouter(prefix="/archive", tags=["archive"])


def _respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(content=result.envelope(), status_code=result.code)


@router.get("/{module_name}")
def list_archived(module_name: str, db: Session = Depends(get_db)) -> JSONResponse:
    return _respond(archive_service.list_archived(db, module_name))


@router.post("/{archive_id}/restore")
def restore_archived(archive_id: int, db: Session = Depends(get_db)) -> JSONResponse:
    return _respond(ledger_service.restore_entry(db, archive_id))


@router.delete("/{archive_id}")
def delete_archived(archive_id: int, db: Session = Depends(get_db)) -> JSONResponse:
    return _respond(archive_service.delete_archived(db, archive_id))
