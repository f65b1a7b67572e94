"""
Category model.

A category is either a global default (no owner) or owned by
exactly one account. Owners see their own categories plus all
defaults. Defaults are never changed by user actions.
"""

from datetime import datetime

from sqlalchemy import (
    String, Boolean, Integer, DateTime, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_ledger.clock import utc_now
from chat_ledger.models.base import Base
from chat_ledger.models.enums import TransactionType


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji: Mapped[str] = mapped_column(String(16), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type_enum", create_constraint=True),
        nullable=False,
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    # Deleting a category removes the shortcuts that point at it.
    shortcuts: Mapped[list["Shortcut"]] = relationship(
        back_populates="category", cascade="all, delete-orphan"
    )

    def is_visible_to(self, account_id: int) -> bool:
        return self.is_default or self.account_id == account_id

    @property
    def display_name(self) -> str:
        return f"{self.emoji} {self.name}"

    def __repr__(self) -> str:
        return f"<Category {self.name!r} ({self.type.value})>"
