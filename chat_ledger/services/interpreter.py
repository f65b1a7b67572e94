"""
Message interpreter: classifier + keyword resolver.
"""

from sqlalchemy.orm import Session

from chat_ledger.models.account import Account
from chat_ledger.schemas.message import MessageKind, ParsedMessage
from chat_ledger.services.classifier import classify
from chat_ledger.services.resolver import KeywordLookup, KeywordResolver


class MessageInterpreter:

    def __init__(self, db: Session, resolver: KeywordResolver | None = None):
        self.lookup = KeywordLookup(db)
        self.resolver = resolver or KeywordResolver()

    def interpret(self, text: str, account: Account | None = None) -> ParsedMessage:
        """
        Turn raw text into a ParsedMessage for `account`.

        Without an account a transaction-like message cannot be
        resolved; it comes back UNKNOWN with keyword and amount kept.
        """
        result = classify(text)

        if result.kind != MessageKind.TRANSACTION:
            return ParsedMessage(
                kind=result.kind,
                raw_text=result.raw_text,
                command=result.command,
                command_argument=result.command_argument,
                connection_code=result.connection_code,
                looks_like_amount=result.looks_like_amount,
            )

        candidate = result.candidate
        unresolved = ParsedMessage(
            kind=MessageKind.UNKNOWN,
            raw_text=result.raw_text,
            keyword=candidate.keyword,
            amount=candidate.amount,
            note=candidate.note,
            looks_like_amount=True,
        )
        if account is None:
            return unresolved

        entry = self.resolver.resolve(
            candidate.keyword,
            self.lookup.shortcut_entries(account.id),
            self.lookup.default_category_entries(),
        )
        if entry is None:
            return unresolved

        return ParsedMessage(
            kind=MessageKind.TRANSACTION,
            raw_text=result.raw_text,
            keyword=candidate.keyword,
            amount=candidate.amount,
            note=candidate.note,
            transaction_type=entry.type,
            category_id=entry.category_id,
            category_name=entry.category_name,
            category_emoji=entry.category_emoji,
            shortcut_id=entry.shortcut_id,
            looks_like_amount=True,
        )
