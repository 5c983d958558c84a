from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.auth import get_actor_name
from app.core.database import get_db
from app.platform.ledger.models import AGENT_LEDGER, OFFICE_LEDGER, VENDOR_LEDGER, LedgerKind
from app.platform.ledger.schemas import LedgerEntryCreate, LedgerEntryUpdate
from app.platform.ledger.service import ledger_service
from app.platform.results import OperationResult


def _respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(content=result.envelope(), status_code=result.code)


def build_ledger_router(kind: LedgerKind, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[f"ledger:{kind.name}"])

    @router.post("")
    def create_entry(
        payload: LedgerEntryCreate,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor_name),
    ) -> JSONResponse:
        return _respond(ledger_service.create_entry(db, kind, payload, actor))

    @router.get("")
    def list_entries(
        account_key: str | None = Query(default=None, min_length=1),
        db: Session = Depends(get_db),
    ) -> JSONResponse:
        return _respond(ledger_service.list_entries(db, kind, account_key=account_key))

    @router.get("/names")
    def list_account_keys(db: Session = Depends(get_db)) -> JSONResponse:
        return _respond(ledger_service.list_account_keys(db, kind))

    @router.get("/entries/{entry_id}")
    def get_entry(entry_id: int, db: Session = Depends(get_db)) -> JSONResponse:
        return _respond(ledger_service.get_entry(db, kind, entry_id))

    @router.put("/entries/{entry_id}")
    def update_entry(entry_id: int, payload: LedgerEntryUpdate, db: Session = Depends(get_db)) -> JSONResponse:
        return _respond(ledger_service.update_entry(db, kind, entry_id, payload))

    @router.delete("/entries/{entry_id}")
    def delete_entry(
        entry_id: int,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor_name),
    ) -> JSONResponse:
        return _respond(ledger_service.delete_entry(db, kind, entry_id, actor))

    @router.get("/by-account/{account_key}")
    def list_account_entries(account_key: str, db: Session = Depends(get_db)) -> JSONResponse:
        return _respond(ledger_service.list_entries(db, kind, account_key=account_key))

    @router.get("/by-account/{account_key}/summary")
    def account_summary(account_key: str, db: Session = Depends(get_db)) -> JSONResponse:
        return _respond(ledger_service.account_summary(db, kind, account_key))

    @router.post("/by-account/{account_key}/recompute")
    def recompute_account(account_key: str, db: Session = Depends(get_db)) -> JSONResponse:
        return _respond(ledger_service.recompute_account(db, kind, account_key))

    return router


agent_router = build_ledger_router(AGENT_LEDGER, "/agent")
vendor_router = build_ledger_router(VENDOR_LEDGER, "/vendor")
office_router = build_ledger_router(OFFICE_LEDGER, "/accounts")

router = APIRouter()
router.include_router(agent_router)
router.include_router(vendor_router)
router.include_router(office_router)
