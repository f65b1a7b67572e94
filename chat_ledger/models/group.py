"""
Group ledger and membership models.

A group is a shared ledger keyed by the platform's group id.
It is deactivated (never deleted) when the bot leaves, and
reactivated only when the bot joins again.
"""

from datetime import datetime

from sqlalchemy import (
    String, Boolean, DateTime, ForeignKey,
    Enum as SAEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_ledger.clock import utc_now
from chat_ledger.models.base import Base
from chat_ledger.models.enums import MemberRole


DEFAULT_GROUP_NAME = "Group ledger"


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    platform_group_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="group", order_by="Membership.id"
    )

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<Group {self.platform_group_id} {self.name!r} ({state})>"


class Membership(Base):
    """
    An account observed speaking in a group.

    The role is informational. No authorization decision in
    the core depends on it.
    """

    __tablename__ = "group_memberships"
    __table_args__ = (
        UniqueConstraint("group_id", "account_id", name="uq_membership_group_account"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    role: Mapped[MemberRole] = mapped_column(
        SAEnum(MemberRole, name="member_role_enum", create_constraint=True),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    group: Mapped["Group"] = relationship(back_populates="memberships")
    account: Mapped["Account"] = relationship(back_populates="memberships")

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN

    def __repr__(self) -> str:
        return f"<Membership group={self.group_id} account={self.account_id} ({self.role.value})>"
