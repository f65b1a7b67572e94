"""
Ledger endpoints for the web side.

Personal ledgers are addressed by account, group ledgers by
group id. Entries written here are tagged with the web source.
A transaction id that belongs to another ledger is a 404.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chat_ledger.api.errors import http_error
from chat_ledger.errors import AppError
from chat_ledger.models.base import commit, get_db
from chat_ledger.models.enums import Period, TransactionSource, TransactionType
from chat_ledger.models.group import Group
from chat_ledger.schemas.account import MembershipResponse
from chat_ledger.schemas.ledger import (
    CategoryStats,
    PeriodSummary,
    RecordResult,
    Scope,
    TransactionCreate,
    TransactionPage,
    TransactionRead,
    TransactionUpdate,
)
from chat_ledger.services.identity_service import IdentityService
from chat_ledger.services.ledger_service import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_RECENT_LIMIT,
    MAX_PAGE_SIZE,
    LedgerService,
)

router = APIRouter(tags=["Ledger"])


@router.post(
    "/accounts/{account_id}/transactions",
    response_model=RecordResult,
    status_code=201,
)
def record_transaction(
    account_id: int, request: TransactionCreate, db: Session = Depends(get_db)
):
    try:
        account = IdentityService(db).get_account(account_id)
        result = LedgerService(db).record(
            Scope.personal(account.id),
            request.category_id,
            request.type,
            request.amount,
            request.note,
            request.effective_date,
            source=TransactionSource.WEB,
        )
        commit(db)
        return result
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.get(
    "/accounts/{account_id}/transactions", response_model=list[TransactionRead]
)
def recent_transactions(
    account_id: int,
    limit: int = Query(default=DEFAULT_RECENT_LIMIT, ge=1),
    db: Session = Depends(get_db),
):
    try:
        account = IdentityService(db).get_account(account_id)
        return LedgerService(db).recent(Scope.personal(account.id), limit)
    except AppError as e:
        raise http_error(e)


@router.get(
    "/accounts/{account_id}/transactions/search", response_model=TransactionPage
)
def search_transactions(
    account_id: int,
    period: Period | None = None,
    txn_type: TransactionType | None = Query(default=None, alias="type"),
    category_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    """Filtered history of the personal ledger, newest first."""
    try:
        account = IdentityService(db).get_account(account_id)
        return LedgerService(db).search(
            Scope.personal(account.id),
            period=period,
            txn_type=txn_type,
            category_id=category_id,
            start_date=start_date,
            end_date=end_date,
            page=page,
            per_page=per_page,
        )
    except AppError as e:
        raise http_error(e)


@router.delete(
    "/accounts/{account_id}/transactions/last", response_model=TransactionRead
)
def cancel_last_transaction(account_id: int, db: Session = Depends(get_db)):
    """Delete the most recently created personal entry."""
    try:
        account = IdentityService(db).get_account(account_id)
        cancelled = LedgerService(db).cancel_last(Scope.personal(account.id))
        commit(db)
    except AppError as e:
        db.rollback()
        raise http_error(e)
    if cancelled is None:
        raise HTTPException(status_code=404, detail="No transactions to cancel")
    return cancelled


@router.get(
    "/accounts/{account_id}/transactions/{transaction_id}",
    response_model=TransactionRead,
)
def get_transaction(
    account_id: int, transaction_id: int, db: Session = Depends(get_db)
):
    try:
        account = IdentityService(db).get_account(account_id)
        return LedgerService(db).get(Scope.personal(account.id), transaction_id)
    except AppError as e:
        raise http_error(e)


@router.put(
    "/accounts/{account_id}/transactions/{transaction_id}",
    response_model=TransactionRead,
)
def update_transaction(
    account_id: int,
    transaction_id: int,
    request: TransactionUpdate,
    db: Session = Depends(get_db),
):
    """Partial edit: fields left out of the body keep their value."""
    try:
        account = IdentityService(db).get_account(account_id)
        updated = LedgerService(db).update(
            Scope.personal(account.id),
            transaction_id,
            request.model_dump(exclude_unset=True),
        )
        commit(db)
        return updated
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.delete(
    "/accounts/{account_id}/transactions/{transaction_id}",
    response_model=TransactionRead,
)
def delete_transaction(
    account_id: int, transaction_id: int, db: Session = Depends(get_db)
):
    try:
        account = IdentityService(db).get_account(account_id)
        deleted = LedgerService(db).delete(Scope.personal(account.id), transaction_id)
        commit(db)
        return deleted
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.get("/accounts/{account_id}/summary", response_model=PeriodSummary)
def account_summary(
    account_id: int,
    period: Period = Period.THIS_MONTH,
    db: Session = Depends(get_db),
):
    try:
        account = IdentityService(db).get_account(account_id)
        return LedgerService(db).summary(Scope.personal(account.id), period)
    except AppError as e:
        raise http_error(e)


@router.get("/accounts/{account_id}/stats", response_model=CategoryStats)
def account_stats(
    account_id: int,
    period: Period = Period.THIS_MONTH,
    db: Session = Depends(get_db),
):
    try:
        account = IdentityService(db).get_account(account_id)
        return LedgerService(db).stats_by_category(Scope.personal(account.id), period)
    except AppError as e:
        raise http_error(e)


@router.get("/groups/{group_id}/summary", response_model=PeriodSummary)
def group_summary(
    group_id: int,
    period: Period = Period.THIS_MONTH,
    db: Session = Depends(get_db),
):
    group = db.get(Group, group_id)
    if not group:
        raise HTTPException(status_code=404, detail=f"Group {group_id} not found")
    try:
        return LedgerService(db).summary(Scope.group(group.id), period)
    except AppError as e:
        raise http_error(e)


@router.get("/groups/{group_id}/members", response_model=list[MembershipResponse])
def group_members(group_id: int, db: Session = Depends(get_db)):
    """Members in join order; the first one is the admin."""
    group = db.get(Group, group_id)
    if not group:
        raise HTTPException(status_code=404, detail=f"Group {group_id} not found")
    try:
        return IdentityService(db).list_members(group)
    except AppError as e:
        raise http_error(e)
