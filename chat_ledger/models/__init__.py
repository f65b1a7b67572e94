"""
Database models package.

All models must be imported here so that Base.metadata knows
about every table before create_all() runs.
"""

from chat_ledger.models.base import Base
from chat_ledger.models.enums import (
    TransactionType,
    TransactionSource,
    MemberRole,
    Period,
)
from chat_ledger.models.account import Account
from chat_ledger.models.group import Group, Membership
from chat_ledger.models.category import Category
from chat_ledger.models.shortcut import Shortcut
from chat_ledger.models.transaction import Transaction
from chat_ledger.models.connection_code import ConnectionCode

__all__ = [
    "Base",
    "TransactionType",
    "TransactionSource",
    "MemberRole",
    "Period",
    "Account",
    "Group",
    "Membership",
    "Category",
    "Shortcut",
    "Transaction",
    "ConnectionCode",
]
