from app.platform.archive.models import ArchivedRecord
from app.platform.archive.schemas import ArchivedRecordRead
from app.platform.archive.service import ArchiveService, archive_service

__all__ = [
    "ArchivedRecord",
    "ArchivedRecordRead",
    "ArchiveService",
    "archive_service",
]
