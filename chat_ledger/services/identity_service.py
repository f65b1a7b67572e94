"""
Identity service — who sent this, and which group ledger is it for?

Sender resolution:

    personal chat  look up by platform id; never creates an account
    group chat     look up, or create a shadow account, then make
                   sure a membership row exists for (group, account)

A shadow account carries the bcrypt hash of a random token as
its credential and no email, so it can never log in. It only
anchors group ledger entries until the person registers.

The first membership of a group is `admin`, every later one is
`member`. The role is informational.

Two messages from a new sender or group can race to create the
same row. Creates run in a savepoint; the loser of the race
rolls back to it and re-reads the winner's row.

The caller controls the commit. Services only flush.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_ledger.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    surfaces_storage_errors,
)
from chat_ledger.models.account import Account
from chat_ledger.models.enums import MemberRole
from chat_ledger.models.group import DEFAULT_GROUP_NAME, Group, Membership
from chat_ledger.schemas.account import AccountCreate, SenderProfile
from chat_ledger.security import hash_password, unusable_password_hash, verify_password

logger = logging.getLogger(__name__)

FALLBACK_DISPLAY_NAME = "Chat user"
GROUP_NAME_MAX_LENGTH = 100


class IdentityService:

    def __init__(self, db: Session):
        self.db = db

    def _insert_or_reread(self, row, reread):
        """
        Insert `row` under a savepoint. On a unique-key collision
        return the row that got there first, via `reread()`.

        Returns (row, created).
        """
        try:
            with self.db.begin_nested():
                self.db.add(row)
                self.db.flush()
        except IntegrityError as e:
            existing = reread()
            if existing is None:
                raise ConflictError(
                    f"Could not create {type(row).__name__.lower()}"
                ) from e
            logger.info(
                "Concurrent insert of %s %s; reusing it",
                type(row).__name__.lower(), existing.id,
            )
            return existing, False
        return row, True

    # --- Accounts ---

    @surfaces_storage_errors
    def get_account(self, account_id: int) -> Account:
        account = self.db.get(Account, account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    @surfaces_storage_errors
    def find_account_by_platform_id(self, platform_user_id: str) -> Account | None:
        return self.db.execute(
            select(Account).where(Account.platform_user_id == platform_user_id)
        ).scalar_one_or_none()

    @surfaces_storage_errors
    def register_account(self, request: AccountCreate) -> Account:
        """Create a web-registered account with a bcrypt-hashed password."""
        email = request.email.strip().lower()
        existing = self.db.execute(
            select(Account).where(Account.email == email)
        ).scalar_one_or_none()
        if existing:
            raise ConflictError(f"Email {email} is already registered")

        account = Account(
            display_name=request.display_name.strip(),
            email=email,
            password_hash=hash_password(request.password),
            is_shadow=False,
        )
        self.db.add(account)
        self.db.flush()
        logger.info("Registered account %s", account.id)
        return account

    @surfaces_storage_errors
    def authenticate(self, email: str, password: str) -> Account | None:
        account = self.db.execute(
            select(Account).where(Account.email == email.strip().lower())
        ).scalar_one_or_none()
        if account and verify_password(password, account.password_hash):
            return account
        return None

    @surfaces_storage_errors
    def resolve_sender(
        self,
        platform_user_id: str,
        group: Group | None = None,
        profile: SenderProfile | None = None,
    ) -> Account | None:
        """
        Return the account behind a platform id.

        Without a group this is a plain lookup and may return None.
        With a group it always returns an account, creating a shadow
        account and the membership as needed.
        """
        if not platform_user_id:
            raise ValidationError("Sender has no platform id")

        account = self.find_account_by_platform_id(platform_user_id)
        if group is None:
            return account

        if account is None:
            account = self._create_shadow_account(platform_user_id, profile)
        self.ensure_membership(group, account)
        return account

    def _create_shadow_account(
        self, platform_user_id: str, profile: SenderProfile | None
    ) -> Account:
        display_name = FALLBACK_DISPLAY_NAME
        avatar_url = None
        if profile is not None:
            display_name = (profile.display_name or "").strip() or FALLBACK_DISPLAY_NAME
            avatar_url = profile.avatar_url

        account = Account(
            display_name=display_name[:100],
            platform_user_id=platform_user_id,
            avatar_url=avatar_url,
            password_hash=unusable_password_hash(),
            is_shadow=True,
        )
        account, created = self._insert_or_reread(
            account, lambda: self.find_account_by_platform_id(platform_user_id)
        )
        if created:
            logger.info("Created shadow account %s for a group sender", account.id)
        return account

    # --- Memberships ---

    @surfaces_storage_errors
    def get_membership(self, group: Group, account: Account) -> Membership | None:
        return self.db.execute(
            select(Membership).where(
                Membership.group_id == group.id,
                Membership.account_id == account.id,
            )
        ).scalar_one_or_none()

    @surfaces_storage_errors
    def ensure_membership(self, group: Group, account: Account) -> Membership:
        """
        Return the membership for (group, account), creating it once.

        The role is decided by counting the group's memberships in
        the same unit of work: none yet means admin.
        """
        membership = self.get_membership(group, account)
        if membership:
            return membership

        existing_count = self.db.execute(
            select(func.count(Membership.id)).where(Membership.group_id == group.id)
        ).scalar_one()
        role = MemberRole.ADMIN if existing_count == 0 else MemberRole.MEMBER

        membership, created = self._insert_or_reread(
            Membership(group_id=group.id, account_id=account.id, role=role),
            lambda: self.get_membership(group, account),
        )
        if not created:
            return membership
        logger.info(
            "Account %s joined group %s as %s", account.id, group.id, role.value
        )
        return membership

    @surfaces_storage_errors
    def list_members(self, group: Group) -> list[Membership]:
        return list(self.db.execute(
            select(Membership)
            .where(Membership.group_id == group.id)
            .order_by(Membership.id)
        ).scalars().all())

    # --- Groups ---

    def _find_group(self, platform_group_id: str) -> Group | None:
        return self.db.execute(
            select(Group).where(Group.platform_group_id == platform_group_id)
        ).scalar_one_or_none()

    def _create_group(self, platform_group_id: str, name: str | None) -> Group:
        group, created = self._insert_or_reread(
            Group(
                platform_group_id=platform_group_id,
                name=name or DEFAULT_GROUP_NAME,
                is_active=True,
            ),
            lambda: self._find_group(platform_group_id),
        )
        if created:
            logger.info("Created group %s", group.id)
        return group

    @staticmethod
    def _clean_name(name: str | None) -> str | None:
        name = (name or "").strip()
        return name[:GROUP_NAME_MAX_LENGTH] or None

    @surfaces_storage_errors
    def resolve_group(
        self, platform_group_id: str, observed_name: str | None = None
    ) -> Group | None:
        """
        Find or create the group for an ordinary message.

        An inactive group returns None. Only activate_group() brings
        it back.
        """
        if not platform_group_id:
            raise ValidationError("Group has no platform id")

        name = self._clean_name(observed_name)
        group = self._find_group(platform_group_id)
        if group is None:
            return self._create_group(platform_group_id, name)

        if not group.is_active:
            return None

        if name and name != group.name:
            group.name = name
            self.db.flush()
        return group

    @surfaces_storage_errors
    def activate_group(
        self, platform_group_id: str, observed_name: str | None = None
    ) -> Group:
        """The bot joined (or rejoined) a group."""
        name = self._clean_name(observed_name)
        group = self._find_group(platform_group_id)
        if group is None:
            group = self._create_group(platform_group_id, name)
        group.is_active = True
        if name:
            group.name = name
        self.db.flush()
        logger.info("Activated group %s", group.id)
        return group

    @surfaces_storage_errors
    def deactivate_group(self, platform_group_id: str) -> Group | None:
        """The bot left, or the group asked to be unlinked. Data is kept."""
        group = self._find_group(platform_group_id)
        if group is None:
            return None
        if group.is_active:
            group.is_active = False
            self.db.flush()
            logger.info("Deactivated group %s", group.id)
        return group

    @surfaces_storage_errors
    def rename_group(self, group: Group, name: str | None) -> Group:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError(
                "Group name cannot be empty", hint="Send: /rename New name"
            )
        if len(cleaned) > GROUP_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Group name is too long (max {GROUP_NAME_MAX_LENGTH} characters)"
            )
        group.name = cleaned
        self.db.flush()
        logger.info("Renamed group %s", group.id)
        return group
