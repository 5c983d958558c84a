from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.metrics import observe_entry_counter_failure, observe_entry_counter_increment
from app.otel import ledger_span
from app.platform.counters.models import GLOBAL_COUNTER_ID, EntryCounter, GlobalEntryCounter
from app.platform.results import LedgerError, LedgerValidationError, OperationResult, StorageError


logger = logging.getLogger("app.entry_counter")


@dataclass(slots=True)
class EntryCounterService:
    """Per form-type sequence tracking plus the shared global counter.

    ``current_count`` is overwritten with every incoming number, so a smaller
    number rewinds it. The global counter only moves when a main form type
    receives a number strictly greater than the one it held before.
    """

    settings: Settings | None = None

    def _settings(self) -> Settings:
        return self.settings if self.settings is not None else get_settings()

    def main_form_types(self) -> set[str]:
        return set(self._settings().entry_counter_main_form_types)

    def known_form_types(self) -> set[str]:
        settings = self._settings()
        return set(settings.entry_counter_main_form_types) | set(settings.entry_counter_utility_form_types)

    def ensure_initialized(self, session: Session, form_types: Iterable[str] | None = None) -> OperationResult:
        required = set(form_types) if form_types is not None else self.known_form_types()
        try:
            existing = set(session.scalars(select(EntryCounter.form_type)).all())
            created = sorted(required - existing)
            for form_type in created:
                session.add(EntryCounter(form_type=form_type, current_count=0))
            if session.get(GlobalEntryCounter, GLOBAL_COUNTER_ID) is None:
                session.add(GlobalEntryCounter(id=GLOBAL_COUNTER_ID, global_count=0))
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            observe_entry_counter_failure("init_storage")
            logger.error("entry_counter.init_failed", extra={"error": str(exc)})
            return OperationResult.failure(StorageError.from_exc("Failed to initialize entry counters", exc))

        return OperationResult.success("Entry counters initialized", {"created": created})

    def increment(self, session: Session, form_type: str, actual_entry_number: int) -> OperationResult:
        try:
            if not form_type:
                raise LedgerValidationError("formType is required")
            if actual_entry_number < 0:
                raise LedgerValidationError("actualEntryNumber must be a non-negative integer")
            with ledger_span("entry_counter.increment", form_type=form_type, entry_number=actual_entry_number):
                state = self._increment_in_transaction(session, form_type, actual_entry_number)
        except LedgerError as exc:
            observe_entry_counter_failure(exc.reason)
            logger.warning(
                "entry_counter.increment_failed",
                extra={"form_type": form_type, "entry_number": actual_entry_number, "error": exc.message},
            )
            return OperationResult.failure(exc)

        observe_entry_counter_increment(form_type, bool(state["global_incremented"]))
        logger.info(
            "entry_counter.incremented",
            extra={
                "form_type": form_type,
                "entry_number": actual_entry_number,
                "current_count": state["current_count"],
                "global_count": state["global_count"],
            },
        )
        return OperationResult.success("Entry counts updated successfully", state)

    def _increment_in_transaction(self, session: Session, form_type: str, actual_entry_number: int) -> dict[str, Any]:
        try:
            # Global row first; every increment serializes on it.
            global_row = session.scalar(
                select(GlobalEntryCounter).where(GlobalEntryCounter.id == GLOBAL_COUNTER_ID).with_for_update()
            )
            if global_row is None:
                global_row = GlobalEntryCounter(id=GLOBAL_COUNTER_ID, global_count=0)
                session.add(global_row)
                session.flush()

            counter = session.scalar(
                select(EntryCounter).where(EntryCounter.form_type == form_type).with_for_update()
            )
            if counter is None:
                counter = EntryCounter(form_type=form_type, current_count=0)
                session.add(counter)
                session.flush()

            previous_count = counter.current_count or 0
            counter.current_count = actual_entry_number

            global_incremented = actual_entry_number > previous_count and form_type in self.main_form_types()
            if global_incremented:
                global_row.global_count = (global_row.global_count or 0) + 1

            state = {
                "form_type": form_type,
                "previous_count": previous_count,
                "current_count": actual_entry_number,
                "global_count": global_row.global_count,
                "global_incremented": global_incremented,
            }
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError.from_exc("Failed to update entry counts", exc) from exc
        return state

    def get_entry_counts(self, session: Session) -> OperationResult:
        try:
            counters = session.scalars(select(EntryCounter).order_by(EntryCounter.form_type.asc())).all()
            global_row = session.get(GlobalEntryCounter, GLOBAL_COUNTER_ID)
        except SQLAlchemyError as exc:
            session.rollback()
            observe_entry_counter_failure("read_storage")
            logger.error("entry_counter.read_failed", extra={"error": str(exc)})
            return OperationResult.failure(StorageError.from_exc("Failed to retrieve entry counts", exc))

        global_count = global_row.global_count if global_row is not None else 0
        main = self.main_form_types()
        data = [
            {
                "form_type": counter.form_type,
                "current_count": counter.current_count,
                "global_count": global_count,
                "is_main": counter.form_type in main,
            }
            for counter in counters
        ]
        return OperationResult.success("Entry counts retrieved successfully", data)


entry_counter_service = EntryCounterService()
