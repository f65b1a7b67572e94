"""
Catalog service — categories and shortcuts.

Default categories have no owner, are visible to everyone and
are never edited or deleted through this service. Owned
categories and shortcuts are managed by their account only.

Deleting a category removes its shortcuts. A category that
transactions still point at cannot be deleted.

The caller controls the commit. Services only flush.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from chat_ledger.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    surfaces_storage_errors,
)
from chat_ledger.models.account import Account
from chat_ledger.models.category import Category
from chat_ledger.models.enums import TransactionType
from chat_ledger.models.shortcut import Shortcut
from chat_ledger.models.transaction import Transaction
from chat_ledger.schemas.catalog import (
    CategoryCreate,
    CategoryListing,
    CategoryResponse,
    ShortcutCreate,
)
from chat_ledger.services.classifier import COMMAND_SENTINEL

logger = logging.getLogger(__name__)


# (name, emoji) in display order.
DEFAULT_CATEGORIES: dict[TransactionType, list[tuple[str, str]]] = {
    TransactionType.INCOME: [
        ("เงินเดือน", "💰"),
        ("โบนัส", "🎁"),
        ("ลงทุน", "📈"),
        ("ขายของ", "🏪"),
        ("รายรับอื่นๆ", "✨"),
    ],
    TransactionType.EXPENSE: [
        ("อาหาร", "🍔"),
        ("เดินทาง", "🚗"),
        ("ช้อปปิ้ง", "🛒"),
        ("บันเทิง", "🎬"),
        ("สุขภาพ", "💊"),
        ("ค่าบ้าน", "🏠"),
        ("ค่าน้ำ/ค่าไฟ", "💡"),
        ("โทรศัพท์/อินเทอร์เน็ต", "📱"),
        ("การศึกษา", "📚"),
        ("รายจ่ายอื่นๆ", "💸"),
    ],
}


class CatalogService:

    def __init__(self, db: Session):
        self.db = db

    # --- Defaults ---

    @surfaces_storage_errors
    def seed_default_categories(self) -> int:
        """Insert missing default categories. Returns how many were added."""
        existing = {
            (c.type, c.name)
            for c in self.db.execute(
                select(Category).where(Category.is_default.is_(True))
            ).scalars()
        }
        added = 0
        for txn_type, entries in DEFAULT_CATEGORIES.items():
            for order, (name, emoji) in enumerate(entries, start=1):
                if (txn_type, name) in existing:
                    continue
                self.db.add(Category(
                    account_id=None,
                    name=name,
                    emoji=emoji,
                    type=txn_type,
                    is_default=True,
                    sort_order=order,
                ))
                added += 1
        self.db.flush()
        if added:
            logger.info("Seeded %d default categories", added)
        return added

    # --- Categories ---

    def _visible_categories(self, account: Account | None):
        if account is None:
            return select(Category).where(Category.is_default.is_(True))
        return select(Category).where(
            or_(Category.is_default.is_(True), Category.account_id == account.id)
        )

    @surfaces_storage_errors
    def list_categories(
        self, account: Account | None, txn_type: TransactionType | None = None
    ) -> list[Category]:
        stmt = self._visible_categories(account)
        if txn_type is not None:
            stmt = stmt.where(Category.type == txn_type)
        return list(self.db.execute(
            stmt.order_by(Category.type, Category.sort_order, Category.name, Category.id)
        ).scalars().all())

    def categories_by_type(self, account: Account | None) -> CategoryListing:
        categories = self.list_categories(account)
        return CategoryListing(
            income=[
                CategoryResponse.model_validate(c)
                for c in categories if c.type == TransactionType.INCOME
            ],
            expense=[
                CategoryResponse.model_validate(c)
                for c in categories if c.type == TransactionType.EXPENSE
            ],
        )

    @surfaces_storage_errors
    def get_category(self, account: Account, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if not category or not category.is_visible_to(account.id):
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def _owned_category(self, account: Account, category_id: int) -> Category:
        category = self.get_category(account, category_id)
        if category.is_default:
            raise ValidationError("Default categories cannot be changed")
        return category

    @surfaces_storage_errors
    def create_category(self, account: Account, request: CategoryCreate) -> Category:
        max_order = self.db.execute(
            select(func.max(Category.sort_order)).where(
                Category.account_id == account.id
            )
        ).scalar_one()

        category = Category(
            account_id=account.id,
            name=request.name.strip(),
            emoji=request.emoji.strip(),
            type=request.type,
            is_default=False,
            sort_order=(max_order or 0) + 1,
        )
        self.db.add(category)
        self.db.flush()
        logger.info("Account %s created category %s", account.id, category.id)
        return category

    @surfaces_storage_errors
    def update_category(
        self, account: Account, category_id: int, request: CategoryCreate
    ) -> Category:
        """
        Rename or retype an owned category.

        Existing transactions keep the type they were written with.
        """
        category = self._owned_category(account, category_id)
        category.name = request.name.strip()
        category.emoji = request.emoji.strip()
        category.type = request.type
        self.db.flush()
        return category

    @surfaces_storage_errors
    def delete_category(self, account: Account, category_id: int) -> None:
        category = self._owned_category(account, category_id)

        in_use = self.db.execute(
            select(func.count(Transaction.id)).where(
                Transaction.category_id == category.id
            )
        ).scalar_one()
        if in_use:
            raise ConflictError(
                f"Category {category.name} still has {in_use} transactions"
            )

        # Shortcuts go with it (relationship cascade).
        self.db.delete(category)
        self.db.flush()
        logger.info("Account %s deleted category %s", account.id, category_id)

    # --- Shortcuts ---

    @surfaces_storage_errors
    def list_shortcuts(self, account: Account) -> list[Shortcut]:
        """Newest first."""
        return list(self.db.execute(
            select(Shortcut)
            .where(Shortcut.account_id == account.id)
            .order_by(Shortcut.created_at.desc(), Shortcut.id.desc())
        ).scalars().all())

    def _get_shortcut(self, account: Account, shortcut_id: int) -> Shortcut:
        shortcut = self.db.get(Shortcut, shortcut_id)
        if not shortcut or shortcut.account_id != account.id:
            raise NotFoundError(f"Shortcut {shortcut_id} not found")
        return shortcut

    def _check_shortcut(
        self, account: Account, request: ShortcutCreate, exclude_id: int | None = None
    ) -> tuple[str, Category]:
        keyword = request.keyword.strip()
        if not keyword:
            raise ValidationError("Keyword cannot be empty")
        if keyword.startswith(COMMAND_SENTINEL):
            raise ValidationError(
                f"Keyword cannot start with {COMMAND_SENTINEL}"
            )

        stmt = select(Shortcut.id).where(
            Shortcut.account_id == account.id,
            func.lower(Shortcut.keyword) == keyword.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Shortcut.id != exclude_id)
        if self.db.execute(stmt).first() is not None:
            raise ConflictError(f'Shortcut "{keyword}" already exists')

        category = self.get_category(account, request.category_id)
        if category.type != request.type:
            raise ValidationError(
                f"Category {category.name} is for {category.type.value}, "
                f"not {request.type.value}"
            )
        return keyword, category

    @surfaces_storage_errors
    def create_shortcut(self, account: Account, request: ShortcutCreate) -> Shortcut:
        keyword, category = self._check_shortcut(account, request)
        shortcut = Shortcut(
            account_id=account.id,
            keyword=keyword,
            emoji=(request.emoji or "").strip() or None,
            category=category,
            type=request.type,
        )
        self.db.add(shortcut)
        self.db.flush()
        logger.info("Account %s created shortcut %s", account.id, shortcut.id)
        return shortcut

    @surfaces_storage_errors
    def update_shortcut(
        self, account: Account, shortcut_id: int, request: ShortcutCreate
    ) -> Shortcut:
        shortcut = self._get_shortcut(account, shortcut_id)
        keyword, category = self._check_shortcut(account, request, exclude_id=shortcut.id)
        shortcut.keyword = keyword
        shortcut.emoji = (request.emoji or "").strip() or None
        shortcut.category = category
        shortcut.type = request.type
        self.db.flush()
        return shortcut

    @surfaces_storage_errors
    def delete_shortcut(self, account: Account, shortcut_id: int) -> None:
        shortcut = self._get_shortcut(account, shortcut_id)
        self.db.delete(shortcut)
        self.db.flush()
