"""
Tests for keyword resolution: the matcher strategies in
isolation, then the tier order in KeywordResolver.
"""

from datetime import datetime

import pytest

from chat_ledger.models.enums import TransactionType
from chat_ledger.services.resolver import (
    ExactMatcher,
    KeywordEntry,
    KeywordMatcher,
    KeywordResolver,
    PrefixMatcher,
)


# --- Helper to reduce repetition ---

def entry(
    entry_id,
    keyword,
    emoji=None,
    txn_type=TransactionType.EXPENSE,
    created_at=datetime(2026, 1, 1),
    shortcut=True,
):
    return KeywordEntry(
        entry_id=entry_id,
        keyword=keyword,
        emoji=emoji,
        category_id=100 + entry_id,
        category_name=f"category-{entry_id}",
        category_emoji="🍔",
        type=txn_type,
        created_at=created_at,
        shortcut_id=entry_id if shortcut else None,
    )


class TestExactMatcher:

    def test_matches_keyword_case_insensitively(self):
        hit = ExactMatcher().try_match("COFFEE", [entry(1, "coffee"), entry(2, "tea")])
        assert hit.entry_id == 1

    def test_matches_emoji_exactly(self):
        hit = ExactMatcher().try_match("☕", [entry(1, "coffee", emoji="☕")])
        assert hit.entry_id == 1

    def test_no_partial_matches(self):
        assert ExactMatcher().try_match("coffees", [entry(1, "coffee")]) is None

    def test_most_recent_wins_on_tie(self):
        older = entry(1, "ข้าว", created_at=datetime(2026, 1, 1))
        newer = entry(2, "ข้าว", emoji="ข้าว", created_at=datetime(2026, 2, 1))
        assert ExactMatcher().try_match("ข้าว", [older, newer]).entry_id == 2


class TestPrefixMatcher:

    def test_emoji_glued_to_text(self):
        hit = PrefixMatcher().try_match("☕latte", [entry(1, "coffee", emoji="☕")])
        assert hit.entry_id == 1

    def test_keyword_prefix(self):
        hit = PrefixMatcher().try_match("coffee-shop", [entry(1, "coffee")])
        assert hit.entry_id == 1

    def test_longest_prefix_wins(self):
        short = entry(1, "ค่า", created_at=datetime(2026, 3, 1))
        long = entry(2, "ค่าไฟ", created_at=datetime(2026, 1, 1))
        hit = PrefixMatcher().try_match("ค่าไฟบ้าน", [short, long])
        assert hit.entry_id == 2

    def test_most_recent_wins_when_prefix_lengths_tie(self):
        older = entry(1, "tea", created_at=datetime(2026, 1, 1))
        newer = entry(2, "TEA", created_at=datetime(2026, 2, 1))
        hit = PrefixMatcher().try_match("teatime", [older, newer])
        assert hit.entry_id == 2

    def test_highest_id_breaks_equal_timestamps(self):
        first = entry(1, "bus")
        second = entry(2, "bus")
        assert PrefixMatcher().try_match("bus2", [first, second]).entry_id == 2

    def test_no_match(self):
        assert PrefixMatcher().try_match("taxi", [entry(1, "bus")]) is None


class TestKeywordResolver:

    def test_exact_beats_prefix_within_shortcuts(self):
        prefix = entry(1, "ข้", created_at=datetime(2026, 3, 1))
        exact = entry(2, "ข้าว", created_at=datetime(2026, 1, 1))
        hit = KeywordResolver().resolve("ข้าว", [prefix, exact], [])
        assert hit.entry_id == 2

    def test_shortcuts_beat_default_categories(self):
        shortcut = entry(1, "food", emoji="🍜")
        default = entry(50, "food", shortcut=False)
        hit = KeywordResolver().resolve("food", [shortcut], [default])
        assert hit.shortcut_id == 1

    def test_shortcut_prefix_beats_default_exact(self):
        shortcut = entry(1, "foo")
        default = entry(50, "food", shortcut=False)
        hit = KeywordResolver().resolve("food", [shortcut], [default])
        assert hit.entry_id == 1

    def test_falls_back_to_default_category_by_emoji(self):
        default = entry(50, "อาหาร", emoji="🍔", shortcut=False)
        hit = KeywordResolver().resolve("🍔", [], [default])
        assert hit.entry_id == 50
        assert hit.shortcut_id is None

    def test_type_comes_from_matched_entry(self):
        salary = entry(1, "salary", txn_type=TransactionType.INCOME)
        hit = KeywordResolver().resolve("salary", [salary], [])
        assert hit.type == TransactionType.INCOME

    def test_nothing_matches(self):
        assert KeywordResolver().resolve("taxi", [entry(1, "bus")], []) is None

    def test_blank_keyword_never_matches(self):
        assert KeywordResolver().resolve("  ", [entry(1, "bus")], []) is None

    def test_custom_matcher_order(self):
        resolver = KeywordResolver(matchers=(PrefixMatcher(),))
        hit = resolver.resolve("coffee", [entry(1, "co"), entry(2, "coffee")], [])
        assert hit.entry_id == 2

    def test_matcher_base_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            KeywordMatcher()

    def test_pluggable_matcher(self):
        class EmojiOnlyMatcher(KeywordMatcher):
            name = "emoji"

            def try_match(self, keyword, candidates):
                return next((e for e in candidates if e.emoji == keyword), None)

        resolver = KeywordResolver(matchers=(EmojiOnlyMatcher(),))
        assert resolver.resolve("🚕", [entry(1, "taxi", emoji="🚕")], []).entry_id == 1
        assert resolver.resolve("taxi", [entry(1, "taxi", emoji="🚕")], []) is None
