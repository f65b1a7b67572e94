"""
Account registration and connection-code endpoints.

This is the web side of linking: a registered account asks for
a one-time code here, then types it into the chat. The API layer
is thin. It handles HTTP concerns and delegates to the
IdentityService and ConnectionService.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chat_ledger.api.errors import http_error
from chat_ledger.errors import AppError
from chat_ledger.models.base import commit, get_db
from chat_ledger.schemas.account import AccountCreate, AccountLogin, AccountResponse
from chat_ledger.schemas.connection import (
    ConnectionCodeConsume,
    ConnectionCodeIssue,
    ConnectionCodeResponse,
    ConnectionStatus,
    SweepResult,
)
from chat_ledger.services.connection_service import ConnectionService
from chat_ledger.services.identity_service import IdentityService

router = APIRouter(tags=["Connections"])


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def register_account(request: AccountCreate, db: Session = Depends(get_db)):
    service = IdentityService(db)
    try:
        account = service.register_account(request)
        commit(db)
        return account
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.post("/accounts/login", response_model=AccountResponse)
def login(request: AccountLogin, db: Session = Depends(get_db)):
    """
    Check web credentials. Shadow accounts never pass. Session
    tokens are issued by the web front end, not here.
    """
    try:
        account = IdentityService(db).authenticate(request.email, request.password)
    except AppError as e:
        raise http_error(e)
    if account is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return account


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(account_id: int, db: Session = Depends(get_db)):
    try:
        return IdentityService(db).get_account(account_id)
    except AppError as e:
        raise http_error(e)


@router.post(
    "/accounts/{account_id}/connection-code",
    response_model=ConnectionCodeResponse,
    status_code=201,
)
def issue_connection_code(
    account_id: int,
    request: ConnectionCodeIssue | None = None,
    db: Session = Depends(get_db),
):
    """
    Issue a fresh one-time code. Any older unused code for the
    account stops working.
    """
    ttl = None
    if request is not None and request.ttl_minutes is not None:
        ttl = timedelta(minutes=request.ttl_minutes)
    try:
        account = IdentityService(db).get_account(account_id)
        code = ConnectionService(db).issue(account, ttl)
        commit(db)
        return code
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.get("/accounts/{account_id}/connection", response_model=ConnectionStatus)
def connection_status(account_id: int, db: Session = Depends(get_db)):
    """Link state plus the code still waiting to be used, if any."""
    try:
        account = IdentityService(db).get_account(account_id)
        return ConnectionService(db).status(account)
    except AppError as e:
        raise http_error(e)


@router.delete("/accounts/{account_id}/connection", response_model=ConnectionStatus)
def revoke_connection(account_id: int, db: Session = Depends(get_db)):
    try:
        account = IdentityService(db).get_account(account_id)
        service = ConnectionService(db)
        service.revoke(account)
        commit(db)
        return service.status(account)
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.post("/connection-codes/consume", response_model=AccountResponse)
def consume_connection_code(
    request: ConnectionCodeConsume, db: Session = Depends(get_db)
):
    try:
        account = ConnectionService(db).consume(request.code, request.platform_user_id)
        commit(db)
        return account
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.post("/connection-codes/sweep", response_model=SweepResult)
def sweep_expired_codes(db: Session = Depends(get_db)):
    """Delete expired, unused codes. Meant for a periodic external job."""
    try:
        deleted = ConnectionService(db).sweep_expired()
        commit(db)
        return SweepResult(deleted=deleted)
    except AppError as e:
        db.rollback()
        raise http_error(e)
