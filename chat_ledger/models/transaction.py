"""
Transaction model.

One row per income or expense. The amount is always positive;
the sign comes from `type`. A transaction belongs to exactly one
ledger: personal (group_id is NULL) or one group. The scope is
fixed once written.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey,
    Enum as SAEnum, CheckConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_ledger.clock import utc_now
from chat_ledger.models.base import Base
from chat_ledger.models.enums import TransactionType, TransactionSource


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_account_date", "account_id", "effective_date"),
        Index("ix_transactions_group_date", "group_id", "effective_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False
    )
    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id"), nullable=True
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type_enum", create_constraint=True),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[TransactionSource] = mapped_column(
        SAEnum(TransactionSource, name="transaction_source_enum", create_constraint=True),
        nullable=False,
        default=TransactionSource.CHAT,
    )
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    category: Mapped["Category"] = relationship()
    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.type.value} "
            f"{self.amount} on {self.effective_date}>"
        )
