"""
Shortcut model.

A shortcut maps an account's keyword (and optional emoji) to a
category and a transaction type, so "coffee 60" is enough to
record an expense.
"""

from datetime import datetime

from sqlalchemy import (
    String, DateTime, ForeignKey,
    Enum as SAEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_ledger.clock import utc_now
from chat_ledger.models.base import Base
from chat_ledger.models.enums import TransactionType


class Shortcut(Base):
    __tablename__ = "shortcuts"
    __table_args__ = (
        UniqueConstraint("account_id", "keyword", name="uq_shortcut_account_keyword"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    keyword: Mapped[str] = mapped_column(String(50), nullable=False)
    emoji: Mapped[str | None] = mapped_column(String(16), nullable=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type_enum", create_constraint=True),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    account: Mapped["Account"] = relationship(back_populates="shortcuts")
    category: Mapped["Category"] = relationship(back_populates="shortcuts")

    @property
    def display_keyword(self) -> str:
        return f"{self.emoji} {self.keyword}" if self.emoji else self.keyword

    def __repr__(self) -> str:
        return f"<Shortcut {self.keyword!r} -> {self.category_id} ({self.type.value})>"
