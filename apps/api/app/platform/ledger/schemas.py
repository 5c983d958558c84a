from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


_ACCOUNT_KEY_ALIASES = AliasChoices("account_key", "agent_name", "vendor_name", "bank_name")
_EMPLOYEE_ALIASES = AliasChoices("employee", "employee_name")
_DATE_ALIASES = AliasChoices("entry_date", "date")
_OPENING_ALIASES = AliasChoices("opening_balance", "balance")


class LedgerEntryCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_key: str = Field(min_length=1, max_length=255, validation_alias=_ACCOUNT_KEY_ALIASES)
    entry_date: date | None = Field(default=None, validation_alias=_DATE_ALIASES)
    employee: str | None = Field(default=None, validation_alias=_EMPLOYEE_ALIASES)
    entry: str | None = None
    detail: str | None = None
    credit: Decimal | None = Field(default=None, ge=Decimal("0"))
    debit: Decimal | None = Field(default=None, ge=Decimal("0"))
    opening_balance: Decimal | None = Field(default=None, validation_alias=_OPENING_ALIASES)

    @field_validator("entry_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LedgerEntryUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    model_config = ConfigDict(populate_by_name=True)

    account_key: str | None = Field(default=None, min_length=1, max_length=255, validation_alias=_ACCOUNT_KEY_ALIASES)
    entry_date: date | None = Field(default=None, validation_alias=_DATE_ALIASES)
    employee: str | None = Field(default=None, validation_alias=_EMPLOYEE_ALIASES)
    entry: str | None = None
    detail: str | None = None
    credit: Decimal | None = Field(default=None, ge=Decimal("0"))
    debit: Decimal | None = Field(default=None, ge=Decimal("0"))
    opening_balance: Decimal | None = Field(default=None, validation_alias=_OPENING_ALIASES)

    @field_validator("entry_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LedgerEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_key: str
    entry_date: date | None
    employee: str | None
    entry: str | None
    detail: str | None
    credit: Decimal
    debit: Decimal
    balance: Decimal
    is_opening_balance: bool
    created_at: datetime | None = None

    @field_validator("credit", "debit", mode="before")
    @classmethod
    def _missing_amount_is_zero(cls, value: Any) -> Any:
        return Decimal("0") if value is None else value


class LedgerAccountSummary(BaseModel):
    account_key: str
    entry_count: int
    total_credit: Decimal
    total_debit: Decimal
    balance: Decimal
