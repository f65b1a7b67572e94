"""
Account model.

An account is a durable identity. It is created either by
explicit registration (email + password) or as a shadow
account the first time an unlinked platform user speaks in a
group. Accounts are never hard-deleted; linking and unlinking
only change platform_user_id.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_ledger.clock import utc_now
from chat_ledger.models.base import Base


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    # At most one account per messaging-platform identity.
    platform_user_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True, index=True
    )
    avatar_url: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )
    is_shadow: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="account"
    )
    shortcuts: Mapped[list["Shortcut"]] = relationship(
        back_populates="account"
    )

    @property
    def is_linked(self) -> bool:
        return self.platform_user_id is not None

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.display_name!r}>"
