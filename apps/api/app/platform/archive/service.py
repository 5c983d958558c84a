from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.metrics import observe_archive
from app.platform.archive.models import ArchivedRecord
from app.platform.archive.schemas import ArchivedRecordRead
from app.platform.results import LedgerError, OperationResult, RecordNotFoundError, StorageError


logger = logging.getLogger("app.archive")


@dataclass(slots=True)
class ArchiveService:
    """Keeps JSON snapshots of deleted records keyed by module name and original id."""

    def archive_record(
        self,
        session: Session,
        module_name: str,
        record_id: int,
        snapshot: dict[str, Any],
        actor: str | None = None,
        *,
        commit: bool = True,
    ) -> ArchivedRecord:
        """Persist a snapshot. With ``commit=False`` the row is only flushed so
        the caller can commit it together with its own delete."""
        record = ArchivedRecord(
            module_name=module_name,
            original_record_id=record_id,
            record_data=snapshot,
            deleted_by=actor or "system",
        )
        try:
            session.add(record)
            if commit:
                session.commit()
                session.refresh(record)
            else:
                session.flush()
        except SQLAlchemyError as exc:
            session.rollback()
            observe_archive(module_name, "failed")
            logger.error(
                "archive.failed",
                extra={"module_name": module_name, "record_id": record_id, "error": str(exc)},
            )
            raise StorageError.from_exc("Failed to archive record", exc) from exc

        observe_archive(module_name, "archived")
        logger.info("archive.recorded", extra={"module_name": module_name, "record_id": record_id})
        return record

    def get_archived(self, session: Session, archive_id: int) -> ArchivedRecord:
        try:
            record = session.get(ArchivedRecord, archive_id)
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError.from_exc("Failed to fetch archived record", exc) from exc
        if record is None:
            raise RecordNotFoundError("Archived record not found")
        return record

    def list_archived(self, session: Session, module_name: str | None = None) -> OperationResult:
        stmt: Select[tuple[ArchivedRecord]] = select(ArchivedRecord)
        if module_name and module_name != "all":
            stmt = stmt.where(ArchivedRecord.module_name == module_name)
        try:
            rows = session.scalars(stmt.order_by(ArchivedRecord.deleted_at.desc(), ArchivedRecord.id.desc())).all()
        except SQLAlchemyError as exc:
            session.rollback()
            return OperationResult.failure(StorageError.from_exc("Failed to fetch archived records", exc))
        records = [ArchivedRecordRead.model_validate(row).model_dump(mode="json") for row in rows]
        return OperationResult.success("Archived records retrieved successfully", records)

    def delete_archived(self, session: Session, archive_id: int) -> OperationResult:
        try:
            record = self.get_archived(session, archive_id)
            module_name = record.module_name
            session.delete(record)
            session.commit()
        except LedgerError as exc:
            return OperationResult.failure(exc)
        except SQLAlchemyError as exc:
            session.rollback()
            return OperationResult.failure(StorageError.from_exc("Failed to delete archived record", exc))

        observe_archive(module_name, "purged")
        logger.info("archive.purged", extra={"module_name": module_name, "archive_id": archive_id})
        return OperationResult.success("Archived record deleted", {"id": archive_id})


archive_service = ArchiveService()
