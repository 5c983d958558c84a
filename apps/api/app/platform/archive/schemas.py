from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class ArchivedRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    module_name: str
    original_record_id: int
    record_data: dict[str, Any]
    deleted_by: str
    deleted_at: datetime
