from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.metrics import observe_ledger_mutation, observe_ledger_mutation_failure
from app.platform.archive.service import ArchiveService, archive_service
from app.platform.counters.labels import parse_entry_number
from app.platform.counters.service import EntryCounterService, entry_counter_service
from app.platform.ledger.models import LedgerEntryMixin, LedgerKind, kind_for_archive_module
from app.platform.ledger.recompute import (
    ZERO,
    BalanceRecomputationEngine,
    as_amount,
    balance_recomputation_engine,
)
from app.platform.ledger.schemas import LedgerAccountSummary, LedgerEntryCreate, LedgerEntryRead, LedgerEntryUpdate
from app.platform.results import (
    LedgerError,
    LedgerValidationError,
    OperationResult,
    RecordConflictError,
    RecordNotFoundError,
    StorageError,
)


logger = logging.getLogger("app.ledger")


def _validate_single_sided(credit: Decimal, debit: Decimal) -> None:
    if credit > 0 and debit > 0:
        raise LedgerValidationError("Cannot have both credit and debit in the same transaction")
    if credit == 0 and debit == 0:
        raise LedgerValidationError("Either credit or debit must be a positive amount")


def _parse_label(label: str | None) -> int | None:
    if label is None or not label.strip():
        return None
    number = parse_entry_number(label)
    if number is None:
        raise LedgerValidationError(f"Entry label '{label}' must look like '<number>/<total>'")
    return number


def _positive_or_none(value: Decimal) -> Decimal | None:
    return value if value > 0 else None


@dataclass(slots=True)
class LedgerService:
    engine: BalanceRecomputationEngine = field(default_factory=lambda: balance_recomputation_engine)
    counters: EntryCounterService = field(default_factory=lambda: entry_counter_service)
    archive: ArchiveService = field(default_factory=lambda: archive_service)

    def create_entry(
        self,
        session: Session,
        kind: LedgerKind,
        request: LedgerEntryCreate,
        actor: str | None = None,
    ) -> OperationResult:
        try:
            credit = as_amount(request.credit)
            debit = as_amount(request.debit)
            opening = request.opening_balance
            if opening is not None:
                if credit > 0 or debit > 0:
                    raise LedgerValidationError("Opening balance entries cannot carry credit or debit")
            else:
                _validate_single_sided(credit, debit)
            entry_number = _parse_label(request.entry)

            try:
                previous_balance = self._latest_balance(session, kind, request.account_key)
                row = kind.model(
                    account_key=request.account_key,
                    entry_date=request.entry_date,
                    employee=request.employee,
                    entry=request.entry,
                    detail=request.detail,
                    credit=_positive_or_none(credit),
                    debit=_positive_or_none(debit),
                    balance=opening if opening is not None else previous_balance + credit - debit,
                    is_opening_balance=opening is not None,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError.from_exc(f"Failed to create {kind.label.lower()} entry", exc) from exc
        except LedgerError as exc:
            return self._fail(kind, "create", exc)

        created = self._to_read(row)
        observe_ledger_mutation(kind.name, "create")
        logger.info(
            "ledger.entry.created",
            extra={"ledger": kind.name, "account_key": created.account_key, "entry_id": created.id},
        )

        try:
            self.engine.recompute(session, kind, created.account_key)
        except StorageError as exc:
            # Insert is already committed and stays; the chain may be stale.
            return self._fail(kind, "recompute", exc, data=created.model_dump(mode="json"))

        warnings: list[str] = []
        if entry_number is not None:
            counter_result = self.counters.increment(session, kind.form_type, entry_number)
            if not counter_result.ok:
                warnings.append(f"entry counter not updated: {counter_result.message}")

        return OperationResult.success(
            f"{kind.label} transaction created successfully",
            self._reload(session, kind, created).model_dump(mode="json"),
            code=201,
            warnings=warnings,
        )

    def update_entry(
        self,
        session: Session,
        kind: LedgerKind,
        entry_id: int,
        request: LedgerEntryUpdate,
    ) -> OperationResult:
        provided = request.model_fields_set
        try:
            existing = self._get_row(session, kind, entry_id)

            old_credit = as_amount(existing.credit)
            old_debit = as_amount(existing.debit)
            credit = as_amount(request.credit) if "credit" in provided else old_credit
            debit = as_amount(request.debit) if "debit" in provided else old_debit

            opening: Decimal | None = None
            if existing.is_opening_balance:
                if credit > 0 or debit > 0:
                    raise LedgerValidationError("Opening balance entries cannot carry credit or debit")
                if "opening_balance" in provided and request.opening_balance is not None:
                    opening = request.opening_balance
            else:
                if "opening_balance" in provided and request.opening_balance is not None:
                    raise LedgerValidationError("Only opening balance entries accept an explicit balance")
                _validate_single_sided(credit, debit)
            if "entry" in provided:
                _parse_label(request.entry)

            old_account = existing.account_key
            new_account = request.account_key if "account_key" in provided and request.account_key else old_account
            delta = (credit - debit) - (old_credit - old_debit)

            try:
                existing.account_key = new_account
                existing.credit = _positive_or_none(credit)
                existing.debit = _positive_or_none(debit)
                if opening is not None:
                    existing.balance = opening
                if "entry_date" in provided:
                    existing.entry_date = request.entry_date
                for name in ("employee", "entry", "detail"):
                    if name in provided:
                        setattr(existing, name, getattr(request, name))
                session.flush()

                # Fast path; the replay below rewrites every balance it disagrees with.
                if delta != 0 and new_account == old_account and not existing.is_opening_balance:
                    self._shift_segment(session, kind, old_account, entry_id, delta)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError.from_exc(f"Failed to update {kind.label.lower()} entry", exc) from exc
        except LedgerError as exc:
            return self._fail(kind, "update", exc)

        session.refresh(existing)
        updated = self._to_read(existing)
        observe_ledger_mutation(kind.name, "update")
        logger.info(
            "ledger.entry.updated",
            extra={"ledger": kind.name, "account_key": new_account, "entry_id": entry_id},
        )

        try:
            self.engine.recompute(session, kind, new_account)
            if new_account != old_account:
                self.engine.recompute(session, kind, old_account)
        except StorageError as exc:
            return self._fail(kind, "recompute", exc, data=updated.model_dump(mode="json"))

        return OperationResult.success(
            f"{kind.label} record updated successfully",
            self._reload(session, kind, updated).model_dump(mode="json"),
        )

    def delete_entry(
        self,
        session: Session,
        kind: LedgerKind,
        entry_id: int,
        actor: str | None = None,
    ) -> OperationResult:
        try:
            existing = self._get_row(session, kind, entry_id)
            snapshot = existing.snapshot()
            account_key = existing.account_key
            impact = as_amount(existing.credit) - as_amount(existing.debit)
            was_opening = existing.is_opening_balance

            # Snapshot and delete commit together; a failed archive leaves the row in place.
            self.archive.archive_record(session, kind.archive_module, entry_id, snapshot, actor, commit=False)
            try:
                session.delete(existing)
                session.flush()
                if impact != 0 and not was_opening:
                    self._shift_segment(session, kind, account_key, entry_id + 1, -impact)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError.from_exc(f"Failed to delete {kind.label.lower()} entry", exc) from exc
        except LedgerError as exc:
            return self._fail(kind, "delete", exc)

        observe_ledger_mutation(kind.name, "delete")
        logger.info(
            "ledger.entry.deleted",
            extra={"ledger": kind.name, "account_key": account_key, "entry_id": entry_id},
        )

        try:
            summary = self.engine.recompute(session, kind, account_key)
        except StorageError as exc:
            return self._fail(kind, "recompute", exc, data={"entry": snapshot, "recomputed": False})

        return OperationResult.success(
            f"{kind.label} record archived and deleted successfully",
            {"entry": snapshot, "recomputed": True, "recompute": summary.as_dict()},
        )

    def restore_entry(self, session: Session, archive_id: int) -> OperationResult:
        """Put an archived ledger row back at its original id and replay its account."""
        try:
            record = self.archive.get_archived(session, archive_id)
            kind = kind_for_archive_module(record.module_name)
            if kind is None:
                raise LedgerValidationError(f"Restore is not supported for module '{record.module_name}'")
            if session.get(kind.model, record.original_record_id) is not None:
                raise RecordConflictError("A record with the archived id already exists")

            data: dict[str, Any] = record.record_data
            try:
                row = kind.model(
                    id=record.original_record_id,
                    account_key=data["account_key"],
                    entry_date=date.fromisoformat(data["date"]) if data.get("date") else None,
                    employee=data.get("employee"),
                    entry=data.get("entry"),
                    detail=data.get("detail"),
                    credit=Decimal(data["credit"]) if data.get("credit") is not None else None,
                    debit=Decimal(data["debit"]) if data.get("debit") is not None else None,
                    balance=Decimal(data.get("balance") or "0"),
                    is_opening_balance=bool(data.get("is_opening_balance")),
                )
            except (KeyError, ValueError, ArithmeticError) as exc:
                raise LedgerValidationError(f"Archived snapshot is not restorable: {exc}") from exc

            try:
                session.add(row)
                session.delete(record)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise RecordConflictError("A record with the archived id already exists") from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError.from_exc("Failed to restore archived record", exc) from exc
        except LedgerError as exc:
            return self._fail(None, "restore", exc)

        session.refresh(row)
        restored = self._to_read(row)
        logger.info(
            "archive.restored",
            extra={"ledger": kind.name, "account_key": restored.account_key, "archive_id": archive_id},
        )

        try:
            self.engine.recompute(session, kind, restored.account_key)
        except StorageError as exc:
            return self._fail(kind, "recompute", exc, data=restored.model_dump(mode="json"))

        return OperationResult.success("Record restored", self._reload(session, kind, restored).model_dump(mode="json"))

    def recompute_account(self, session: Session, kind: LedgerKind, account_key: str) -> OperationResult:
        try:
            summary = self.engine.recompute(session, kind, account_key)
        except LedgerError as exc:
            return self._fail(kind, "recompute", exc)
        return OperationResult.success("Balances recomputed", summary.as_dict())

    def list_entries(self, session: Session, kind: LedgerKind, account_key: str | None = None) -> OperationResult:
        model = kind.model
        stmt: Select[tuple[Any]] = select(model)
        if account_key is not None:
            stmt = stmt.where(model.account_key == account_key)
        try:
            rows = session.scalars(stmt.order_by(model.id.asc())).all()
        except SQLAlchemyError as exc:
            session.rollback()
            return self._fail(kind, "read", StorageError.from_exc(f"Failed to fetch {kind.label.lower()} records", exc))
        return OperationResult.success(
            f"{kind.label} records fetched successfully",
            [self._to_read(row).model_dump(mode="json") for row in rows],
        )

    def get_entry(self, session: Session, kind: LedgerKind, entry_id: int) -> OperationResult:
        try:
            row = self._get_row(session, kind, entry_id)
        except LedgerError as exc:
            return OperationResult.failure(exc)
        return OperationResult.success(f"{kind.label} record fetched successfully", self._to_read(row).model_dump(mode="json"))

    def list_account_keys(self, session: Session, kind: LedgerKind) -> OperationResult:
        model = kind.model
        stmt = (
            select(model.account_key)
            .where(model.account_key.is_not(None), model.account_key != "")
            .distinct()
            .order_by(model.account_key.asc())
        )
        try:
            names = list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            session.rollback()
            return self._fail(kind, "read", StorageError.from_exc("Failed to fetch account names", exc))
        return OperationResult.success(f"{kind.label} names fetched successfully", names)

    def account_summary(self, session: Session, kind: LedgerKind, account_key: str) -> OperationResult:
        model = kind.model
        try:
            totals = session.execute(
                select(
                    func.count(model.id),
                    func.coalesce(func.sum(model.credit), 0),
                    func.coalesce(func.sum(model.debit), 0),
                ).where(model.account_key == account_key)
            ).one()
            latest = self._latest_balance(session, kind, account_key)
        except SQLAlchemyError as exc:
            session.rollback()
            return self._fail(kind, "read", StorageError.from_exc("Failed to calculate account totals", exc))

        entry_count, total_credit, total_debit = totals
        if not entry_count:
            return OperationResult.failure(RecordNotFoundError(f"No entries found for '{account_key}'"))
        summary = LedgerAccountSummary(
            account_key=account_key,
            entry_count=entry_count,
            total_credit=as_amount(total_credit),
            total_debit=as_amount(total_debit),
            balance=latest,
        )
        return OperationResult.success("Account totals calculated successfully", summary.model_dump(mode="json"))

    def _shift_segment(
        self,
        session: Session,
        kind: LedgerKind,
        account_key: str,
        start_id: int,
        delta: Decimal,
    ) -> None:
        """Add ``delta`` to rows from ``start_id`` up to the next opening-balance row.

        An opening row resets the chain, so neither it nor anything after it moves.
        """
        model = kind.model
        stop_id = session.scalar(
            select(func.min(model.id)).where(
                model.account_key == account_key,
                model.id >= start_id,
                model.is_opening_balance.is_(True),
            )
        )
        conditions = [
            model.account_key == account_key,
            model.id >= start_id,
            model.is_opening_balance.is_(False),
        ]
        if stop_id is not None:
            conditions.append(model.id < stop_id)
        session.execute(
            update(model)
            .where(*conditions)
            .values(balance=model.balance + delta)
            .execution_options(synchronize_session=False)
        )

    def _latest_balance(self, session: Session, kind: LedgerKind, account_key: str) -> Decimal:
        model = kind.model
        balance = session.scalar(
            select(model.balance).where(model.account_key == account_key).order_by(model.id.desc()).limit(1)
        )
        return as_amount(balance) if balance is not None else ZERO

    def _get_row(self, session: Session, kind: LedgerKind, entry_id: int) -> LedgerEntryMixin:
        try:
            row = session.get(kind.model, entry_id)
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError.from_exc(f"Failed to fetch {kind.label.lower()} record", exc) from exc
        if row is None:
            raise RecordNotFoundError(f"{kind.label} record not found")
        return row

    def _reload(self, session: Session, kind: LedgerKind, fallback: LedgerEntryRead) -> LedgerEntryRead:
        try:
            row = session.get(kind.model, fallback.id, populate_existing=True)
        except SQLAlchemyError:
            session.rollback()
            return fallback
        return self._to_read(row) if row is not None else fallback

    def _to_read(self, row: LedgerEntryMixin) -> LedgerEntryRead:
        return LedgerEntryRead.model_validate(row)

    def _fail(
        self,
        kind: LedgerKind | None,
        operation: str,
        exc: LedgerError,
        *,
        data: Any = None,
    ) -> OperationResult:
        ledger = kind.name if kind is not None else "archive"
        observe_ledger_mutation_failure(ledger, exc.reason)
        log = logger.error if isinstance(exc, StorageError) else logger.warning
        log(
            f"ledger.{operation}.failed",
            extra={"ledger": ledger, "status": exc.code, "error": exc.message},
        )
        return OperationResult.failure(exc, data=data)


ledger_service = LedgerService()
