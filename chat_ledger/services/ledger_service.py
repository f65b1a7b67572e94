"""
Ledger service: record, edit, cancel and report on scoped
transactions.

Every operation takes a Scope:

    Scope.personal(account_id)  transactions of that account with no group
    Scope.group(group_id)       every transaction tagged with that group

Scopes never leak into each other. Amounts are Decimal end to
end; SQL aggregates are quantized back to 2 places on read.

Period windows are closed date intervals in the ledger timezone:

    TODAY       [today, today]
    THIS_WEEK   [Monday, Sunday] of the current week
    THIS_MONTH  [1st, last day] of the current month
    ALL_TIME    unbounded

The caller controls the commit. Services only flush.
"""

import calendar
import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from chat_ledger.clock import local_now
from chat_ledger.config import get_settings
from chat_ledger.errors import NotFoundError, ValidationError, surfaces_storage_errors
from chat_ledger.models.category import Category
from chat_ledger.models.enums import Period, TransactionSource, TransactionType
from chat_ledger.models.transaction import Transaction
from chat_ledger.money import MAX_AMOUNT, ZERO, format_money, to_money
from chat_ledger.schemas.ledger import (
    CategoryStats,
    CategoryTotal,
    PeriodSummary,
    RecordResult,
    Scope,
    TransactionPage,
    TransactionRead,
)

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 255
DEFAULT_RECENT_LIMIT = 10
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Fields an edit may touch. The scope and creator never change.
EDITABLE_FIELDS = frozenset(
    {"category_id", "type", "amount", "note", "effective_date"}
)


def period_bounds(period: Period, today: date) -> tuple[date | None, date | None]:
    """Return the inclusive (start, end) dates of a period."""
    if period == Period.TODAY:
        return today, today
    if period == Period.THIS_WEEK:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if period == Period.THIS_MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)
    return None, None


class LedgerService:

    def __init__(self, db: Session, clock=local_now):
        self.db = db
        self.clock = clock

    def today(self) -> date:
        return self.clock().date()

    # --- Filters ---

    @staticmethod
    def _scope_filter(scope: Scope) -> list:
        if scope.is_group:
            return [Transaction.group_id == scope.group_id]
        return [
            Transaction.account_id == scope.account_id,
            Transaction.group_id.is_(None),
        ]

    def _period_filter(self, period: Period) -> list:
        start, end = period_bounds(period, self.today())
        if start is None:
            return []
        return [Transaction.effective_date.between(start, end)]

    def _totals(self, conditions: list) -> tuple[Decimal, Decimal, int]:
        """Sum income and expense separately under `conditions`."""
        rows = self.db.execute(
            select(
                Transaction.type,
                func.sum(Transaction.amount),
                func.count(Transaction.id),
            )
            .where(*conditions)
            .group_by(Transaction.type)
        ).all()

        income, expense, count = ZERO, ZERO, 0
        for txn_type, total, n in rows:
            if txn_type == TransactionType.INCOME:
                income = to_money(total)
            else:
                expense = to_money(total)
            count += n
        return income, expense, count

    # --- Validation ---

    @staticmethod
    def _validate_amount(amount) -> Decimal:
        try:
            amount = to_money(amount)
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(
                f"Amount {amount!r} is not a number",
                hint="Send something like: food 120",
            )
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if amount > MAX_AMOUNT:
            raise ValidationError(
                f"Amount cannot exceed {format_money(MAX_AMOUNT)}"
            )
        return amount

    def _validate_category(
        self, category_id: int, txn_type: TransactionType, owner_id: int
    ) -> Category:
        category = self.db.get(Category, category_id)
        if not category or not category.is_visible_to(owner_id):
            raise NotFoundError(f"Category {category_id} not found")
        if category.type != txn_type:
            raise ValidationError(
                f"Category {category.name} is for {category.type.value}, "
                f"not {txn_type.value}"
            )
        return category

    @staticmethod
    def _clean_note(note: str | None) -> str | None:
        if note is not None:
            note = note.strip() or None
        if note and len(note) > NOTE_MAX_LENGTH:
            raise ValidationError(
                f"Note is too long ({len(note)} > {NOTE_MAX_LENGTH} characters)"
            )
        return note

    def _check_date(self, effective_date: date) -> date:
        if effective_date > self.today():
            raise ValidationError(
                f"Date {effective_date.isoformat()} is in the future"
            )
        return effective_date

    def _find(self, scope: Scope, transaction_id: int) -> Transaction:
        txn = self.db.execute(
            select(Transaction).where(
                Transaction.id == transaction_id, *self._scope_filter(scope)
            )
        ).scalar_one_or_none()
        if txn is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return txn

    # --- Operations ---

    @surfaces_storage_errors
    def record(
        self,
        scope: Scope,
        category_id: int,
        txn_type: TransactionType,
        amount,
        note: str | None = None,
        effective_date: date | None = None,
        *,
        created_by: int | None = None,
        source: TransactionSource = TransactionSource.CHAT,
    ) -> RecordResult:
        """
        Write one transaction into `scope`.

        Personal scope: the creator is the scope's account.
        Group scope: `created_by` names the member who sent it.

        Returns the transaction plus the scope's net for its
        effective date.
        """
        if scope.is_group:
            if created_by is None:
                raise ValidationError("A group transaction needs its creator")
            owner_id = created_by
        else:
            if created_by is not None and created_by != scope.account_id:
                raise ValidationError(
                    "A personal transaction can only be created by its owner"
                )
            owner_id = scope.account_id

        txn_type = TransactionType(txn_type)
        amount = self._validate_amount(amount)
        category = self._validate_category(category_id, txn_type, owner_id)

        note = self._clean_note(note)
        effective_date = self._check_date(effective_date or self.today())

        txn = Transaction(
            account_id=owner_id,
            group_id=scope.group_id,
            category_id=category.id,
            type=txn_type,
            amount=amount,
            note=note,
            source=source,
            effective_date=effective_date,
        )
        txn.category = category
        self.db.add(txn)
        self.db.flush()

        income, expense, _ = self._totals(
            self._scope_filter(scope)
            + [Transaction.effective_date == effective_date]
        )

        logger.info(
            "Recorded %s %s (category=%s) in %s",
            txn_type.value, amount, category.id, scope,
        )
        return RecordResult(
            transaction=TransactionRead.model_validate(txn),
            day_balance=income - expense,
        )

    @surfaces_storage_errors
    def cancel_last(self, scope: Scope) -> TransactionRead | None:
        """
        Delete the most recently created transaction in scope.

        Ordered by creation time, not effective date. The row is
        locked before it is deleted, so two concurrent cancels
        cannot remove the same transaction twice. Returns a
        snapshot of the deleted row, or None for an empty scope.
        """
        txn = self.db.execute(
            select(Transaction)
            .where(*self._scope_filter(scope))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(1)
            .with_for_update()
        ).scalar_one_or_none()

        if txn is None:
            return None

        snapshot = TransactionRead.model_validate(txn)
        self.db.delete(txn)
        self.db.flush()

        logger.info("Cancelled transaction %s in %s", snapshot.id, scope)
        return snapshot

    @surfaces_storage_errors
    def summary(self, scope: Scope, period: Period) -> PeriodSummary:
        start, end = period_bounds(period, self.today())
        income, expense, count = self._totals(
            self._scope_filter(scope) + self._period_filter(period)
        )
        return PeriodSummary(
            period=period,
            start_date=start,
            end_date=end,
            income_total=income,
            expense_total=expense,
            balance=income - expense,
            transaction_count=count,
        )

    @surfaces_storage_errors
    def today_balance(self, scope: Scope) -> Decimal:
        return self.summary(scope, Period.TODAY).balance

    @surfaces_storage_errors
    def stats_by_category(self, scope: Scope, period: Period) -> CategoryStats:
        """Totals per category, each side sorted by amount descending."""
        rows = self.db.execute(
            select(
                Category.id,
                Category.name,
                Category.emoji,
                Transaction.type,
                func.sum(Transaction.amount),
                func.count(Transaction.id),
            )
            .select_from(Transaction)
            .join(Category, Transaction.category_id == Category.id)
            .where(*self._scope_filter(scope), *self._period_filter(period))
            .group_by(Category.id, Category.name, Category.emoji, Transaction.type)
        ).all()

        income, expense = [], []
        for category_id, name, emoji, txn_type, total, count in rows:
            entry = CategoryTotal(
                category_id=category_id,
                name=name,
                emoji=emoji,
                total=to_money(total),
                count=count,
            )
            if txn_type == TransactionType.INCOME:
                income.append(entry)
            else:
                expense.append(entry)

        def order(entry):
            return (-entry.total, entry.name)

        return CategoryStats(
            period=period,
            income=sorted(income, key=order),
            expense=sorted(expense, key=order),
        )

    @surfaces_storage_errors
    def recent(
        self, scope: Scope, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[TransactionRead]:
        """Newest by effective date, then creation time. Capped."""
        if limit < 1:
            raise ValidationError("Limit must be at least 1")
        limit = min(limit, get_settings().RECENT_LIMIT_MAX)

        txns = self.db.execute(
            select(Transaction)
            .where(*self._scope_filter(scope))
            .order_by(
                Transaction.effective_date.desc(),
                Transaction.created_at.desc(),
                Transaction.id.desc(),
            )
            .limit(limit)
        ).scalars().all()
        return [TransactionRead.model_validate(t) for t in txns]

    @surfaces_storage_errors
    def clear_period(self, scope: Scope, period: Period) -> int:
        """Bulk-delete every transaction in scope and period. Irreversible."""
        result = self.db.execute(
            delete(Transaction)
            .where(*self._scope_filter(scope), *self._period_filter(period))
        )
        self.db.flush()
        count = result.rowcount or 0
        logger.info("Cleared %d transactions (%s) in %s", count, period.value, scope)
        return count

    # --- Single entries ---

    @surfaces_storage_errors
    def get(self, scope: Scope, transaction_id: int) -> TransactionRead:
        """A transaction outside `scope` is reported as not found."""
        return TransactionRead.model_validate(self._find(scope, transaction_id))

    @surfaces_storage_errors
    def update(
        self, scope: Scope, transaction_id: int, changes: dict
    ) -> TransactionRead:
        """
        Apply a partial edit to one transaction in `scope`.

        Only keys present in `changes` are touched; a None note
        clears the note. Type and category are checked together
        after the merge, so switching the type needs a category of
        the new type. The category must still be visible to the
        transaction's creator.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot edit {', '.join(sorted(unknown))}"
            )
        for field in EDITABLE_FIELDS - {"note"}:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty")

        txn = self._find(scope, transaction_id)
        txn_type = TransactionType(changes.get("type", txn.type))
        category = self._validate_category(
            changes.get("category_id", txn.category_id), txn_type, txn.account_id
        )
        if "amount" in changes:
            txn.amount = self._validate_amount(changes["amount"])
        if "note" in changes:
            txn.note = self._clean_note(changes["note"])
        if "effective_date" in changes:
            txn.effective_date = self._check_date(changes["effective_date"])
        txn.type = txn_type
        txn.category_id = category.id
        txn.category = category
        self.db.flush()

        logger.info(
            "Edited transaction %s (%s) in %s",
            txn.id, ", ".join(sorted(changes)) or "no fields", scope,
        )
        return TransactionRead.model_validate(txn)

    @surfaces_storage_errors
    def delete(self, scope: Scope, transaction_id: int) -> TransactionRead:
        txn = self._find(scope, transaction_id)
        snapshot = TransactionRead.model_validate(txn)
        self.db.delete(txn)
        self.db.flush()
        logger.info("Deleted transaction %s in %s", snapshot.id, scope)
        return snapshot

    @surfaces_storage_errors
    def search(
        self,
        scope: Scope,
        *,
        period: Period | None = None,
        txn_type: TransactionType | None = None,
        category_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> TransactionPage:
        """
        Filtered, paginated history of `scope`.

        Every filter given narrows the result; `period` and the
        explicit dates combine. Ordered like recent().
        """
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if not 1 <= per_page <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}"
            )
        if start_date and end_date and start_date > end_date:
            raise ValidationError("Start date is after end date")

        conditions = self._scope_filter(scope)
        if period is not None:
            conditions += self._period_filter(period)
        if txn_type is not None:
            conditions.append(Transaction.type == TransactionType(txn_type))
        if category_id is not None:
            conditions.append(Transaction.category_id == category_id)
        if start_date is not None:
            conditions.append(Transaction.effective_date >= start_date)
        if end_date is not None:
            conditions.append(Transaction.effective_date <= end_date)

        total = self.db.execute(
            select(func.count(Transaction.id)).where(*conditions)
        ).scalar_one()
        txns = self.db.execute(
            select(Transaction)
            .where(*conditions)
            .order_by(
                Transaction.effective_date.desc(),
                Transaction.created_at.desc(),
                Transaction.id.desc(),
            )
            .offset((page - 1) * per_page)
            .limit(per_page)
        ).scalars().all()
        return TransactionPage(
            items=[TransactionRead.model_validate(t) for t in txns],
            total=total,
            page=page,
            per_page=per_page,
        )
