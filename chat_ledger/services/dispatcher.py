"""
Event dispatcher — routes one inbound platform event to the
services and returns a reply intent (or None for no reply).

    message   resolve group -> resolve sender -> interpret -> route
    follow    welcome / welcome back
    unfollow  logged only
    join      activate the group ledger
    leave     deactivate the group ledger

Domain errors come back as ErrorReply. StorageError is raised
so the caller can retry the whole event.

Group commands only need a resolved, active group. Membership is
implied by sender resolution and roles are not checked.
"""

import logging

from sqlalchemy.orm import Session

from chat_ledger.clock import local_now, utc_now
from chat_ledger.errors import AppError, StorageError, ValidationError
from chat_ledger.models.account import Account
from chat_ledger.models.enums import Period
from chat_ledger.models.group import Group
from chat_ledger.schemas.catalog import ShortcutResponse
from chat_ledger.schemas.event import EventType, InboundEvent
from chat_ledger.schemas.ledger import Scope
from chat_ledger.schemas.message import CommandName, ParsedMessage
from chat_ledger.schemas.reply import (
    CategoriesReply,
    ConnectedReply,
    ErrorReply,
    NoticeReply,
    ReplyIntent,
    ShortcutsReply,
    StatsReply,
    StatusReply,
    SummaryReply,
    TransactionCancelledReply,
    TransactionRecordedReply,
    TransactionsReply,
)
from chat_ledger.services.catalog_service import CatalogService
from chat_ledger.services.connection_service import ConnectionService
from chat_ledger.services.identity_service import IdentityService
from chat_ledger.services.interpreter import MessageInterpreter
from chat_ledger.services.ledger_service import DEFAULT_RECENT_LIMIT, LedgerService

logger = logging.getLogger(__name__)

PERSONAL_LABEL = "Personal"
LINK_HINT = "Send the CONNECT-XXXXXX code from the web app"

HELP_TEXT = (
    "Record: <keyword> <amount> [note], e.g. food 120 lunch\n"
    "/today /week /month /all  totals\n"
    "/stats  this month by category\n"
    "/recent  latest entries\n"
    "/cancel  undo the last entry\n"
    "/shortcuts /categories  your keywords\n"
    "/status  link status"
)
RECORD_TEXT = (
    "Format: <keyword> <amount> [note]\n"
    "Income: salary 5000\n"
    "Expense: food 150 chicken rice"
)

SUMMARY_PERIODS = {
    CommandName.SUMMARY_TODAY: Period.TODAY,
    CommandName.SUMMARY_WEEK: Period.THIS_WEEK,
    CommandName.SUMMARY_MONTH: Period.THIS_MONTH,
    CommandName.SUMMARY_ALL: Period.ALL_TIME,
}


class EventDispatcher:

    def __init__(self, db: Session, ledger_clock=local_now, utc_clock=utc_now):
        self.db = db
        self.identity = IdentityService(db)
        self.connections = ConnectionService(db, clock=utc_clock)
        self.ledger = LedgerService(db, clock=ledger_clock)
        self.catalog = CatalogService(db)
        self.interpreter = MessageInterpreter(db)

    def dispatch(self, event: InboundEvent) -> ReplyIntent | None:
        handlers = {
            EventType.MESSAGE: self._on_message,
            EventType.FOLLOW: self._on_follow,
            EventType.UNFOLLOW: self._on_unfollow,
            EventType.JOIN: self._on_join,
            EventType.LEAVE: self._on_leave,
        }
        try:
            return handlers[event.type](event)
        except StorageError:
            raise
        except AppError as e:
            logger.info("%s event rejected: %s", event.type.value, e.code)
            return ErrorReply(code=e.code, message=e.message, hint=e.hint)

    # --- Helpers ---

    @staticmethod
    def _scope(account: Account | None, group: Group | None) -> Scope:
        if group is not None:
            return Scope.group(group.id)
        if account is not None:
            return Scope.personal(account.id)
        raise ValidationError("Link your account first", hint=LINK_HINT)

    @staticmethod
    def _label(group: Group | None) -> str:
        return group.name if group is not None else PERSONAL_LABEL

    @staticmethod
    def _require_group(group: Group | None) -> Group:
        if group is None:
            raise ValidationError("This command only works in a group")
        return group

    # --- Events ---

    def _on_message(self, event: InboundEvent) -> ReplyIntent | None:
        if not event.platform_user_id:
            logger.warning("Message event without a sender id")
            return None

        group = None
        if event.platform_group_id:
            group = self.identity.resolve_group(event.platform_group_id, event.group_name)
            if group is None:
                # Inactive group: the bot is not there.
                return None

        account = self.identity.resolve_sender(
            event.platform_user_id, group, event.profile
        )
        parsed = self.interpreter.interpret(event.raw_text or "", account)

        if parsed.is_connection_code:
            return self._connect(parsed, event.platform_user_id)
        if parsed.is_command:
            return self._command(parsed, account, group)
        if parsed.is_transaction:
            return self._record(parsed, account, group)
        return self._unknown(parsed, account)

    def _on_follow(self, event: InboundEvent) -> ReplyIntent | None:
        if not event.platform_user_id or event.in_group:
            return None
        account = self.identity.find_account_by_platform_id(event.platform_user_id)
        if account is not None:
            return NoticeReply(
                topic="welcome-back", message=f"Welcome back, {account.display_name}"
            )
        return NoticeReply(topic="welcome", message=HELP_TEXT)

    def _on_unfollow(self, event: InboundEvent) -> None:
        if event.platform_user_id:
            logger.info("A user unfollowed")
        return None

    def _on_join(self, event: InboundEvent) -> ReplyIntent | None:
        if not event.platform_group_id:
            return None
        group = self.identity.activate_group(event.platform_group_id, event.group_name)
        return NoticeReply(
            topic="group-welcome", message=f"Ready to keep the ledger for {group.name}"
        )

    def _on_leave(self, event: InboundEvent) -> None:
        if event.platform_group_id:
            self.identity.deactivate_group(event.platform_group_id)
        return None

    # --- Message kinds ---

    def _connect(self, parsed: ParsedMessage, platform_user_id: str) -> ReplyIntent:
        account = self.connections.consume(parsed.connection_code, platform_user_id)
        return ConnectedReply(account_id=account.id, display_name=account.display_name)

    def _record(
        self, parsed: ParsedMessage, account: Account | None, group: Group | None
    ) -> ReplyIntent:
        scope = self._scope(account, group)
        result = self.ledger.record(
            scope,
            parsed.category_id,
            parsed.transaction_type,
            parsed.amount,
            parsed.note,
            created_by=account.id if scope.is_group else None,
        )
        return TransactionRecordedReply(
            transaction=result.transaction,
            day_balance=result.day_balance,
            account_label=self._label(group),
        )

    def _unknown(self, parsed: ParsedMessage, account: Account | None) -> ReplyIntent:
        if not parsed.looks_like_amount:
            return ErrorReply(
                code="not_understood",
                message="Message not understood",
                hint="Send /help to see what I can do",
            )
        if account is None:
            return ErrorReply(code="not_linked", message="Link your account first", hint=LINK_HINT)
        keyword = parsed.keyword or parsed.raw_text
        return ErrorReply(
            code="no_match",
            message=f'No shortcut matches "{keyword}"',
            hint="Send /shortcuts to list yours",
        )

    # --- Commands ---

    def _command(
        self, parsed: ParsedMessage, account: Account | None, group: Group | None
    ) -> ReplyIntent:
        command = parsed.command

        if command == CommandName.HELP:
            return NoticeReply(topic="help", message=HELP_TEXT)
        if command == CommandName.RECORD:
            return NoticeReply(topic="record-help", message=RECORD_TEXT)
        if command == CommandName.STATUS:
            return self._status(account, group)
        if command == CommandName.CATEGORIES:
            return CategoriesReply(categories=self.catalog.categories_by_type(account))
        if command == CommandName.SHORTCUTS:
            if account is None:
                raise ValidationError("Link your account first", hint=LINK_HINT)
            shortcuts = self.catalog.list_shortcuts(account)
            return ShortcutsReply(
                shortcuts=[ShortcutResponse.model_validate(s) for s in shortcuts]
            )
        if command in SUMMARY_PERIODS:
            summary = self.ledger.summary(
                self._scope(account, group), SUMMARY_PERIODS[command]
            )
            return SummaryReply(summary=summary, account_label=self._label(group))
        if command == CommandName.STATS:
            scope = self._scope(account, group)
            summary = self.ledger.summary(scope, Period.THIS_MONTH)
            return StatsReply(
                stats=self.ledger.stats_by_category(scope, Period.THIS_MONTH),
                income_total=summary.income_total,
                expense_total=summary.expense_total,
                account_label=self._label(group),
            )
        if command == CommandName.CANCEL:
            cancelled = self.ledger.cancel_last(self._scope(account, group))
            if cancelled is None:
                return NoticeReply(topic="nothing-to-cancel", message="Nothing to cancel")
            return TransactionCancelledReply(transaction=cancelled)
        if command == CommandName.RECENT:
            return TransactionsReply(
                transactions=self.ledger.recent(
                    self._scope(account, group), self._recent_limit(parsed)
                ),
                account_label=self._label(group),
            )
        if command == CommandName.CLEAR:
            count = self.ledger.clear_period(self._scope(account, group), Period.THIS_MONTH)
            if not count:
                return NoticeReply(
                    topic="nothing-to-clear", message="No entries this month", count=0
                )
            return NoticeReply(
                topic="cleared", message=f"Cleared {count} entries this month", count=count
            )
        if command == CommandName.RENAME_GROUP:
            renamed = self.identity.rename_group(
                self._require_group(group), parsed.command_argument
            )
            return NoticeReply(topic="group-renamed", message=f"Group renamed to {renamed.name}")
        if command == CommandName.DELETE_GROUP:
            target = self._require_group(group)
            self.identity.deactivate_group(target.platform_group_id)
            return NoticeReply(
                topic="group-unlinked",
                message="Group unlinked. Its entries are kept.",
            )

        return ErrorReply(
            code="unknown_command",
            message=f"Unknown command: {parsed.raw_text}",
            hint="Send /help to see all commands",
        )

    def _status(self, account: Account | None, group: Group | None) -> StatusReply:
        if account is None:
            return StatusReply(is_linked=False, is_registered=False)
        return StatusReply(
            is_linked=account.is_linked,
            is_registered=not account.is_shadow,
            display_name=account.display_name,
            email=account.email,
            group_name=group.name if group is not None else None,
        )

    @staticmethod
    def _recent_limit(parsed: ParsedMessage) -> int:
        argument = parsed.command_argument
        if argument is None:
            return DEFAULT_RECENT_LIMIT
        if not argument.isdigit():
            raise ValidationError(
                f"Not a number: {argument}", hint="Send /recent or /recent 20"
            )
        return int(argument)
