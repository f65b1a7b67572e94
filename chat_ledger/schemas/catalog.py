"""
Pydantic schemas for categories and shortcuts.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from chat_ledger.models.enums import TransactionType
from chat_ledger.schemas.ledger import CategoryBrief


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    emoji: str = Field(min_length=1, max_length=10)
    type: TransactionType


class CategoryResponse(BaseModel):
    id: int
    account_id: int | None
    name: str
    emoji: str
    type: TransactionType
    is_default: bool
    sort_order: int

    model_config = {"from_attributes": True}


class CategoryListing(BaseModel):
    income: list[CategoryResponse]
    expense: list[CategoryResponse]


class ShortcutCreate(BaseModel):
    keyword: str = Field(min_length=1, max_length=50)
    emoji: str | None = Field(default=None, max_length=10)
    category_id: int
    type: TransactionType


class ShortcutResponse(BaseModel):
    id: int
    keyword: str
    emoji: str | None
    category_id: int
    type: TransactionType
    created_at: datetime
    category: CategoryBrief

    model_config = {"from_attributes": True}
