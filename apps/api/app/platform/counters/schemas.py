from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EntryCountIncrementRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_type: str | None = Field(default=None, alias="formType")
    actual_entry_number: int | None = Field(default=None, alias="actualEntryNumber")


class EntryCounterRead(BaseModel):
    form_type: str
    current_count: int
    global_count: int
    is_main: bool
