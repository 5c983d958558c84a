from app.platform.ledger.api import router
from app.platform.ledger.models import (
    AGENT_LEDGER,
    LEDGER_KINDS,
    OFFICE_LEDGER,
    VENDOR_LEDGER,
    AgentLedgerEntry,
    LedgerKind,
    OfficeAccountEntry,
    VendorLedgerEntry,
)
from app.platform.ledger.recompute import BalanceRecomputationEngine, RecomputeSummary, replay_balances
from app.platform.ledger.schemas import LedgerAccountSummary, LedgerEntryCreate, LedgerEntryRead, LedgerEntryUpdate
from app.platform.ledger.service import LedgerService, ledger_service

__all__ = [
    "router",
    "AGENT_LEDGER",
    "VENDOR_LEDGER",
    "OFFICE_LEDGER",
    "LEDGER_KINDS",
    "LedgerKind",
    "AgentLedgerEntry",
    "VendorLedgerEntry",
    "OfficeAccountEntry",
    "BalanceRecomputationEngine",
    "RecomputeSummary",
    "replay_balances",
    "LedgerEntryCreate",
    "LedgerEntryUpdate",
    "LedgerEntryRead",
    "LedgerAccountSummary",
    "LedgerService",
    "ledger_service",
]
