"""
Connection service — one-time codes that link a chat identity
to a registered account.

    issue    drop the account's unconsumed codes, mint a fresh one
    consume  check, then mark consumed and link, as one atomic unit
    revoke   unlink the account; history stays
    sweep    delete unconsumed codes that have expired

Expiry is derived (now > expires_at), never stored. A consumed
code is indistinguishable from an unknown one: both are NotFound.

The caller controls the commit. Services only flush.
"""

import logging
from datetime import timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_ledger.clock import utc_now
from chat_ledger.config import get_settings
from chat_ledger.errors import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    surfaces_storage_errors,
)
from chat_ledger.models.account import Account
from chat_ledger.models.connection_code import ConnectionCode, generate_code
from chat_ledger.schemas.connection import ConnectionCodeResponse, ConnectionStatus

logger = logging.getLogger(__name__)

# 36^6 codes; a handful of retries is plenty.
MAX_GENERATION_ATTEMPTS = 10


class ConnectionService:

    def __init__(self, db: Session, clock=utc_now, code_factory=generate_code):
        self.db = db
        self.clock = clock
        self.code_factory = code_factory

    @surfaces_storage_errors
    def issue(self, account: Account, ttl: timedelta | None = None) -> ConnectionCode:
        """
        Mint a new code for `account`, invalidating its older ones.

        An account that is already linked cannot get a code; it
        has to be revoked first.
        """
        if account.is_linked:
            raise ConflictError(
                f"Account {account.id} is already linked",
                hint="Unlink it before requesting a new code",
            )
        if ttl is None:
            ttl = timedelta(minutes=get_settings().CONNECTION_CODE_TTL_MINUTES)

        self.db.execute(
            delete(ConnectionCode).where(
                ConnectionCode.account_id == account.id,
                ConnectionCode.is_consumed.is_(False),
            )
        )

        code = self._unused_code()
        now = self.clock()
        row = ConnectionCode(
            account_id=account.id,
            code=code,
            expires_at=now + ttl,
            is_consumed=False,
            created_at=now,
        )
        self.db.add(row)
        self.db.flush()

        logger.info("Issued connection code for account %s", account.id)
        return row

    def _unused_code(self) -> str:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            candidate = self.code_factory()
            taken = self.db.execute(
                select(ConnectionCode.id).where(ConnectionCode.code == candidate)
            ).first()
            if taken is None:
                return candidate
        raise ConflictError(
            "Could not generate a unique connection code",
            hint="Try again",
        )

    def _linked_account(self, platform_user_id: str) -> Account | None:
        return self.db.execute(
            select(Account).where(Account.platform_user_id == platform_user_id)
        ).scalar_one_or_none()

    @surfaces_storage_errors
    def consume(self, code: str, platform_user_id: str) -> Account:
        """
        Link `platform_user_id` to the account that owns `code`.

        The code is flipped with a compare-and-swap UPDATE
        (WHERE is_consumed = false) inside a savepoint together with
        the account update, so two concurrent consumers cannot both
        win and no half-linked state is ever written.
        """
        normalized = (code or "").strip().upper()
        row = self.db.execute(
            select(ConnectionCode).where(
                ConnectionCode.code == normalized,
                ConnectionCode.is_consumed.is_(False),
            )
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Connection code {normalized} not found")

        now = self.clock()
        if row.is_expired(now):
            raise ExpiredError(
                f"Connection code {normalized} has expired",
                hint="Request a new code",
            )

        linked = self._linked_account(platform_user_id)
        if linked is not None and linked.id != row.account_id:
            raise ConflictError(
                "This chat identity is already linked to another account",
                hint="Unlink the other account first",
            )

        account = self.db.get(Account, row.account_id)
        if account.is_linked and account.platform_user_id != platform_user_id:
            raise ConflictError(
                f"Account {account.id} is already linked to another chat identity"
            )

        try:
            with self.db.begin_nested():
                result = self.db.execute(
                    update(ConnectionCode)
                    .where(
                        ConnectionCode.id == row.id,
                        ConnectionCode.is_consumed.is_(False),
                    )
                    .values(
                        is_consumed=True,
                        platform_user_id=platform_user_id,
                        consumed_at=now,
                    )
                )
                if result.rowcount != 1:
                    raise NotFoundError(f"Connection code {normalized} not found")
                account.platform_user_id = platform_user_id
                self.db.flush()
        except IntegrityError as e:
            raise ConflictError(
                "This chat identity is already linked to another account"
            ) from e

        logger.info("Linked account %s via connection code", account.id)
        return account

    @surfaces_storage_errors
    def revoke(self, account: Account) -> bool:
        """Clear the account's link. Returns False if it was not linked."""
        if not account.is_linked:
            return False
        account.platform_user_id = None
        self.db.flush()
        logger.info("Unlinked account %s", account.id)
        return True

    @surfaces_storage_errors
    def sweep_expired(self) -> int:
        """Delete unconsumed, expired codes. Returns how many went."""
        result = self.db.execute(
            delete(ConnectionCode).where(
                ConnectionCode.is_consumed.is_(False),
                ConnectionCode.expires_at < self.clock(),
            )
        )
        self.db.flush()
        count = result.rowcount or 0
        if count:
            logger.info("Swept %d expired connection codes", count)
        return count

    @surfaces_storage_errors
    def active_code(self, account: Account) -> ConnectionCode | None:
        return self.db.execute(
            select(ConnectionCode)
            .where(
                ConnectionCode.account_id == account.id,
                ConnectionCode.is_consumed.is_(False),
                ConnectionCode.expires_at >= self.clock(),
            )
            .order_by(ConnectionCode.created_at.desc(), ConnectionCode.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    @surfaces_storage_errors
    def status(self, account: Account) -> ConnectionStatus:
        code = self.active_code(account)
        return ConnectionStatus(
            account_id=account.id,
            is_linked=account.is_linked,
            platform_user_id=account.platform_user_id,
            active_code=(
                ConnectionCodeResponse.model_validate(code) if code else None
            ),
        )
