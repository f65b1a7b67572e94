"""
Shared enumerations for database models.

Python enums mapped to database enums ensure that only valid
values can be stored.
"""

import enum


class TransactionType(str, enum.Enum):
    """Direction of money. Amounts are stored positive."""
    INCOME = "income"
    EXPENSE = "expense"


class MemberRole(str, enum.Enum):
    """Informational role inside a group ledger."""
    ADMIN = "admin"
    MEMBER = "member"


class TransactionSource(str, enum.Enum):
    """Where a transaction was entered."""
    CHAT = "chat"
    WEB = "web"


class Period(str, enum.Enum):
    """Reporting windows, relative to the ledger's current date."""
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    ALL_TIME = "all_time"
