"""
Reply intents.

The core never renders messages. It returns one of these and a
formatter outside the core turns each `kind` into whatever the
platform displays.
"""

from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from chat_ledger.schemas.catalog import CategoryListing, ShortcutResponse
from chat_ledger.schemas.ledger import CategoryStats, PeriodSummary, TransactionRead


class TransactionRecordedReply(BaseModel):
    kind: Literal["transaction-recorded"] = "transaction-recorded"
    transaction: TransactionRead
    day_balance: Decimal
    account_label: str


class SummaryReply(BaseModel):
    kind: Literal["summary"] = "summary"
    summary: PeriodSummary
    account_label: str


class StatsReply(BaseModel):
    kind: Literal["stats"] = "stats"
    stats: CategoryStats
    income_total: Decimal
    expense_total: Decimal
    account_label: str


class TransactionCancelledReply(BaseModel):
    kind: Literal["transaction-cancelled"] = "transaction-cancelled"
    transaction: TransactionRead


class TransactionsReply(BaseModel):
    kind: Literal["transactions"] = "transactions"
    transactions: list[TransactionRead]
    account_label: str


class ShortcutsReply(BaseModel):
    kind: Literal["shortcuts"] = "shortcuts"
    shortcuts: list[ShortcutResponse]


class CategoriesReply(BaseModel):
    kind: Literal["categories"] = "categories"
    categories: CategoryListing


class StatusReply(BaseModel):
    kind: Literal["status"] = "status"
    is_linked: bool
    is_registered: bool
    display_name: str | None = None
    email: str | None = None
    group_name: str | None = None


class ConnectedReply(BaseModel):
    kind: Literal["connected"] = "connected"
    account_id: int
    display_name: str


class NoticeReply(BaseModel):
    """Plain informational reply; `topic` tells the formatter which one."""
    kind: Literal["notice"] = "notice"
    topic: str
    message: str
    count: int | None = None


class ErrorReply(BaseModel):
    kind: Literal["error"] = "error"
    code: str
    message: str
    hint: str | None = None


ReplyIntent = Annotated[
    Union[
        TransactionRecordedReply,
        SummaryReply,
        StatsReply,
        TransactionCancelledReply,
        TransactionsReply,
        ShortcutsReply,
        CategoriesReply,
        StatusReply,
        ConnectedReply,
        NoticeReply,
        ErrorReply,
    ],
    Field(discriminator="kind"),
]


class OutboundReply(BaseModel):
    reply_handle: str | None
    intent: ReplyIntent
