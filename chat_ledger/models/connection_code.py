"""
Connection code model.

A one-time code links a messaging-platform identity to a
registered account. Lifecycle:

    ISSUED --consume--> CONSUMED   (terminal, row becomes immutable)
    ISSUED --time-----> EXPIRED    (derived: now > expires_at)

Expiry is never stored as a state; it is checked on read.
"""

import secrets
from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_ledger.clock import utc_now
from chat_ledger.models.base import Base


CODE_PREFIX = "CONNECT-"
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 6


def generate_code() -> str:
    """Return a fresh candidate code, e.g. CONNECT-7K2QX9."""
    body = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{CODE_PREFIX}{body}"


class ConnectionCode(Base):
    __tablename__ = "connection_codes"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_consumed: Mapped[bool] = mapped_column(
        nullable=False, default=False
    )
    platform_user_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    account: Mapped["Account"] = relationship()

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def __repr__(self) -> str:
        state = "consumed" if self.is_consumed else "issued"
        return f"<ConnectionCode {self.code} ({state})>"
