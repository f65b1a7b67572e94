"""
Keyword resolution: which shortcut or default category does a
free-text keyword mean?

Resolution is an ordered list of matcher strategies applied to
two tiers of entries, first hit wins:

    tier 1: the account's shortcuts      exact, then prefix
    tier 2: default (ownerless) categories exact, then prefix

Tie-break inside one matcher: longest matching prefix (prefix
matcher only), then most recently created, then highest id.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from chat_ledger.errors import surfaces_storage_errors
from chat_ledger.models.category import Category
from chat_ledger.models.enums import TransactionType
from chat_ledger.models.shortcut import Shortcut


class KeywordEntry(BaseModel):
    """A shortcut or default category flattened for matching."""
    model_config = {"frozen": True}

    entry_id: int
    keyword: str | None
    emoji: str | None
    category_id: int
    category_name: str
    category_emoji: str
    type: TransactionType
    created_at: datetime
    shortcut_id: int | None = None

    @property
    def recency(self) -> tuple[datetime, int]:
        return self.created_at, self.entry_id


class KeywordMatcher(ABC):
    """One matching strategy."""

    name = "matcher"

    @abstractmethod
    def try_match(
        self, keyword: str, candidates: list[KeywordEntry]
    ) -> KeywordEntry | None:
        """Return the best entry for `keyword`, or None."""


class ExactMatcher(KeywordMatcher):
    """Case-insensitive keyword equality, or exact emoji equality."""

    name = "exact"

    def try_match(
        self, keyword: str, candidates: list[KeywordEntry]
    ) -> KeywordEntry | None:
        folded = keyword.casefold()
        hits = [
            entry for entry in candidates
            if (entry.keyword and entry.keyword.casefold() == folded)
            or (entry.emoji and entry.emoji == keyword)
        ]
        if not hits:
            return None
        return max(hits, key=lambda entry: entry.recency)


class PrefixMatcher(KeywordMatcher):
    """
    The message keyword starts with an entry's emoji or keyword,
    e.g. "☕latte" against emoji "☕".
    """

    name = "prefix"

    def try_match(
        self, keyword: str, candidates: list[KeywordEntry]
    ) -> KeywordEntry | None:
        folded = keyword.casefold()
        best = None
        best_rank = None
        for entry in candidates:
            length = self._prefix_length(keyword, folded, entry)
            if not length:
                continue
            rank = (length, entry.created_at, entry.entry_id)
            if best_rank is None or rank > best_rank:
                best, best_rank = entry, rank
        return best

    @staticmethod
    def _prefix_length(keyword: str, folded: str, entry: KeywordEntry) -> int:
        length = 0
        if entry.emoji and keyword.startswith(entry.emoji):
            length = len(entry.emoji)
        if entry.keyword and folded.startswith(entry.keyword.casefold()):
            length = max(length, len(entry.keyword))
        return length


DEFAULT_MATCHERS: tuple[KeywordMatcher, ...] = (ExactMatcher(), PrefixMatcher())


class KeywordResolver:
    """Runs the matchers over each tier in a fixed order."""

    def __init__(self, matchers: tuple[KeywordMatcher, ...] = DEFAULT_MATCHERS):
        self.matchers = matchers

    def resolve(
        self,
        keyword: str,
        shortcut_entries: list[KeywordEntry],
        category_entries: list[KeywordEntry],
    ) -> KeywordEntry | None:
        keyword = keyword.strip()
        if not keyword:
            return None
        for entries in (shortcut_entries, category_entries):
            for matcher in self.matchers:
                hit = matcher.try_match(keyword, entries)
                if hit is not None:
                    return hit
        return None


class KeywordLookup:
    """Read-only loader that turns rows into KeywordEntry lists."""

    def __init__(self, db: Session):
        self.db = db

    @surfaces_storage_errors
    def shortcut_entries(self, account_id: int) -> list[KeywordEntry]:
        shortcuts = self.db.execute(
            select(Shortcut)
            .options(joinedload(Shortcut.category))
            .where(Shortcut.account_id == account_id)
        ).scalars().all()
        return [
            KeywordEntry(
                entry_id=s.id,
                keyword=s.keyword,
                emoji=s.emoji,
                category_id=s.category_id,
                category_name=s.category.name,
                category_emoji=s.category.emoji,
                type=s.type,
                created_at=s.created_at,
                shortcut_id=s.id,
            )
            for s in shortcuts
        ]

    @surfaces_storage_errors
    def default_category_entries(self) -> list[KeywordEntry]:
        categories = self.db.execute(
            select(Category).where(Category.is_default.is_(True))
        ).scalars().all()
        return [
            KeywordEntry(
                entry_id=c.id,
                keyword=c.name,
                emoji=c.emoji,
                category_id=c.id,
                category_name=c.name,
                category_emoji=c.emoji,
                type=c.type,
                created_at=c.created_at,
            )
            for c in categories
        ]
