"""
Schemas for classified and interpreted chat messages.
"""

import enum
from decimal import Decimal

from pydantic import BaseModel

from chat_ledger.models.enums import TransactionType


class MessageKind(str, enum.Enum):
    CONNECTION_CODE = "connection_code"
    COMMAND = "command"
    TRANSACTION = "transaction"
    UNKNOWN = "unknown"


class CommandName(str, enum.Enum):
    """Canonical command identifiers. Surface aliases map onto these."""
    HELP = "help"
    STATUS = "status"
    SHORTCUTS = "shortcuts"
    CATEGORIES = "categories"
    SUMMARY_TODAY = "summary_today"
    SUMMARY_WEEK = "summary_week"
    SUMMARY_MONTH = "summary_month"
    SUMMARY_ALL = "summary_all"
    STATS = "stats"
    CANCEL = "cancel"
    RECENT = "recent"
    RECORD = "record"
    CLEAR = "clear"
    RENAME_GROUP = "rename_group"
    DELETE_GROUP = "delete_group"
    UNKNOWN = "unknown"


class Candidate(BaseModel):
    """The keyword / amount / note split of a transaction-like message."""
    model_config = {"frozen": True}

    keyword: str
    amount: Decimal
    note: str | None = None


class Classification(BaseModel):
    """Result of the pure lexical pass. No database involved."""
    model_config = {"frozen": True}

    kind: MessageKind
    raw_text: str
    command: CommandName | None = None
    command_argument: str | None = None
    connection_code: str | None = None
    candidate: Candidate | None = None
    looks_like_amount: bool = False


class ParsedMessage(BaseModel):
    """
    Classification plus keyword resolution against an account.

    For a TRANSACTION, category and type are set. For an UNKNOWN
    message that still had a keyword and amount, those fields are
    kept so the caller can say which keyword did not match.
    """

    kind: MessageKind
    raw_text: str
    command: CommandName | None = None
    command_argument: str | None = None
    connection_code: str | None = None
    keyword: str | None = None
    amount: Decimal | None = None
    note: str | None = None
    transaction_type: TransactionType | None = None
    category_id: int | None = None
    category_name: str | None = None
    category_emoji: str | None = None
    shortcut_id: int | None = None
    looks_like_amount: bool = False

    @property
    def is_command(self) -> bool:
        return self.kind == MessageKind.COMMAND

    @property
    def is_connection_code(self) -> bool:
        return self.kind == MessageKind.CONNECTION_CODE

    @property
    def is_transaction(self) -> bool:
        return self.kind == MessageKind.TRANSACTION

    @property
    def is_income(self) -> bool:
        return self.is_transaction and self.transaction_type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.is_transaction and self.transaction_type == TransactionType.EXPENSE
