"""
Category and shortcut endpoints for an account.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from chat_ledger.api.errors import http_error
from chat_ledger.errors import AppError
from chat_ledger.models.base import commit, get_db
from chat_ledger.schemas.catalog import (
    CategoryCreate,
    CategoryListing,
    CategoryResponse,
    ShortcutCreate,
    ShortcutResponse,
)
from chat_ledger.services.catalog_service import CatalogService
from chat_ledger.services.identity_service import IdentityService

router = APIRouter(prefix="/accounts/{account_id}", tags=["Catalog"])


@router.get("/categories", response_model=CategoryListing)
def list_categories(account_id: int, db: Session = Depends(get_db)):
    """Defaults plus the account's own, split by income and expense."""
    try:
        account = IdentityService(db).get_account(account_id)
        return CatalogService(db).categories_by_type(account)
    except AppError as e:
        raise http_error(e)


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(
    account_id: int, request: CategoryCreate, db: Session = Depends(get_db)
):
    try:
        account = IdentityService(db).get_account(account_id)
        category = CatalogService(db).create_category(account, request)
        commit(db)
        return category
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    account_id: int,
    category_id: int,
    request: CategoryCreate,
    db: Session = Depends(get_db),
):
    try:
        account = IdentityService(db).get_account(account_id)
        category = CatalogService(db).update_category(account, category_id, request)
        commit(db)
        return category
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(account_id: int, category_id: int, db: Session = Depends(get_db)):
    try:
        account = IdentityService(db).get_account(account_id)
        CatalogService(db).delete_category(account, category_id)
        commit(db)
        return Response(status_code=204)
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.get("/shortcuts", response_model=list[ShortcutResponse])
def list_shortcuts(account_id: int, db: Session = Depends(get_db)):
    try:
        account = IdentityService(db).get_account(account_id)
        return CatalogService(db).list_shortcuts(account)
    except AppError as e:
        raise http_error(e)


@router.post("/shortcuts", response_model=ShortcutResponse, status_code=201)
def create_shortcut(
    account_id: int, request: ShortcutCreate, db: Session = Depends(get_db)
):
    try:
        account = IdentityService(db).get_account(account_id)
        shortcut = CatalogService(db).create_shortcut(account, request)
        commit(db)
        return shortcut
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.put("/shortcuts/{shortcut_id}", response_model=ShortcutResponse)
def update_shortcut(
    account_id: int,
    shortcut_id: int,
    request: ShortcutCreate,
    db: Session = Depends(get_db),
):
    try:
        account = IdentityService(db).get_account(account_id)
        shortcut = CatalogService(db).update_shortcut(account, shortcut_id, request)
        commit(db)
        return shortcut
    except AppError as e:
        db.rollback()
        raise http_error(e)


@router.delete("/shortcuts/{shortcut_id}", status_code=204)
def delete_shortcut(account_id: int, shortcut_id: int, db: Session = Depends(get_db)):
    try:
        account = IdentityService(db).get_account(account_id)
        CatalogService(db).delete_shortcut(account, shortcut_id)
        commit(db)
        return Response(status_code=204)
    except AppError as e:
        db.rollback()
        raise http_error(e)
