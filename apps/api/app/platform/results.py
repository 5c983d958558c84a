from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError


class LedgerError(Exception):
    """Base error for ledger, counter and archive operations."""

    code: int = 500
    reason: str = "error"

    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        self.message = message
        self.errors = errors or [message]
        super().__init__(message)


class LedgerValidationError(LedgerError):
    code = 400
    reason = "validation"


class RecordNotFoundError(LedgerError):
    code = 404
    reason = "not_found"


class RecordConflictError(LedgerError):
    code = 409
    reason = "conflict"


class StorageError(LedgerError):
    """Raised when the underlying database read or write fails."""

    code = 500
    reason = "storage"

    @classmethod
    def from_exc(cls, message: str, exc: SQLAlchemyError) -> StorageError:
        detail = str(getattr(exc, "orig", None) or exc)
        return cls(message, errors=[detail[:500]])


class OperationResult(BaseModel):
    status: Literal["success", "error"]
    code: int
    message: str
    data: Any = None
    errors: list[str] | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls, message: str, data: Any = None, *, code: int = 200, warnings: list[str] | None = None) -> OperationResult:
        return cls(status="success", code=code, message=message, data=data, warnings=warnings or [])

    @classmethod
    def failure(cls, exc: LedgerError, *, data: Any = None) -> OperationResult:
        return cls(status="error", code=exc.code, message=exc.message, data=data, errors=exc.errors)

    def envelope(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
