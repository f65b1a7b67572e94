"""
Pydantic schemas for ledger scopes, transactions and reports.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from chat_ledger.models.enums import Period, TransactionSource, TransactionType


class Scope(BaseModel):
    """
    The ledger partition a call works on.

    Exactly one of account_id / group_id is set. A personal
    scope covers the account's transactions without a group; a
    group scope covers every transaction tagged with the group,
    whoever created it.
    """
    model_config = {"frozen": True}

    account_id: int | None = None
    group_id: int | None = None

    @model_validator(mode="after")
    def check_exactly_one(self):
        if (self.account_id is None) == (self.group_id is None):
            raise ValueError("Scope needs exactly one of account_id or group_id")
        return self

    @classmethod
    def personal(cls, account_id: int) -> "Scope":
        return cls(account_id=account_id)

    @classmethod
    def group(cls, group_id: int) -> "Scope":
        return cls(group_id=group_id)

    @property
    def is_group(self) -> bool:
        return self.group_id is not None


class CategoryBrief(BaseModel):
    id: int
    name: str
    emoji: str
    type: TransactionType

    model_config = {"from_attributes": True}


class TransactionRead(BaseModel):
    id: int
    account_id: int
    group_id: int | None
    category_id: int
    type: TransactionType
    amount: Decimal
    note: str | None
    source: TransactionSource
    effective_date: date
    created_at: datetime
    category: CategoryBrief

    model_config = {"from_attributes": True}

class RecordResult(BaseModel):
    transaction: TransactionRead
    # Net of the scope for the transaction's effective date.
    day_balance: Decimal


class PeriodSummary(BaseModel):
    period: Period
    start_date: date | None
    end_date: date | None
    income_total: Decimal
    expense_total: Decimal
    balance: Decimal
    transaction_count: int


class CategoryTotal(BaseModel):
    category_id: int
    name: str
    emoji: str
    total: Decimal
    count: int


class CategoryStats(BaseModel):
    period: Period
    income: list[CategoryTotal]
    expense: list[CategoryTotal]


class TransactionCreate(BaseModel):
    category_id: int
    type: TransactionType
    amount: Decimal = Field(gt=0, decimal_places=2)
    note: str | None = Field(default=None, max_length=255)
    effective_date: date | None = None


class TransactionUpdate(BaseModel):
    """Partial edit. Only the fields sent are changed."""
    category_id: int | None = None
    type: TransactionType | None = None
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    note: str | None = Field(default=None, max_length=255)
    effective_date: date | None = None


class TransactionPage(BaseModel):
    items: list[TransactionRead]
    total: int
    page: int
    per_page: int
