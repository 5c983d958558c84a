from app.platform.results import (
    LedgerError,
    LedgerValidationError,
    OperationResult,
    RecordConflictError,
    RecordNotFoundError,
    StorageError,
)

__all__ = [
    "LedgerError",
    "LedgerValidationError",
    "OperationResult",
    "RecordConflictError",
    "RecordNotFoundError",
    "StorageError",
]
