"""
Tests for the ConnectionService.

Codes are minted with a fixed factory and time is moved with
the MutableClock fixture, so expiry is exact.
"""

from datetime import timedelta
from itertools import cycle

import pytest
from sqlalchemy import func, select

from chat_ledger.errors import ConflictError, ExpiredError, NotFoundError
from chat_ledger.models import Account, ConnectionCode
from chat_ledger.services.connection_service import ConnectionService


# --- Helpers to reduce repetition ---

def make_account(db, name="Alice", platform_user_id=None):
    account = Account(
        display_name=name,
        email=f"{name.lower()}@example.com",
        platform_user_id=platform_user_id,
    )
    db.add(account)
    db.flush()
    return account


def fixed_codes(*codes):
    return cycle(codes).__next__


def service_for(db, clock, *codes):
    return ConnectionService(
        db, clock=clock, code_factory=fixed_codes(*(codes or ("CONNECT-AB12CD",)))
    )


class TestIssue:

    def test_issue_sets_expiry_from_ttl(self, db_session, clock):
        account = make_account(db_session)

        row = service_for(db_session, clock).issue(account, timedelta(minutes=10))

        assert row.code == "CONNECT-AB12CD"
        assert row.expires_at == clock.now + timedelta(minutes=10)
        assert row.is_consumed is False

    def test_default_ttl_comes_from_settings(self, db_session, clock):
        account = make_account(db_session)
        row = service_for(db_session, clock).issue(account)
        assert row.expires_at - row.created_at == timedelta(minutes=10)

    def test_new_code_invalidates_previous(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock, "CONNECT-AAAAAA", "CONNECT-BBBBBB")

        service.issue(account)
        service.issue(account)
        db_session.commit()

        with pytest.raises(NotFoundError):
            service.consume("CONNECT-AAAAAA", "U1")
        assert service.consume("CONNECT-BBBBBB", "U1").id == account.id

    def test_linked_account_cannot_get_a_code(self, db_session, clock):
        account = make_account(db_session, platform_user_id="U1")

        with pytest.raises(ConflictError):
            service_for(db_session, clock).issue(account)

    def test_collision_retries_then_gives_up(self, db_session, clock):
        alice = make_account(db_session, "Alice")
        bob = make_account(db_session, "Bob")
        service = service_for(db_session, clock)
        service.issue(alice)

        with pytest.raises(ConflictError):
            service.issue(bob)

    def test_collision_retry_finds_a_free_code(self, db_session, clock):
        alice = make_account(db_session, "Alice")
        bob = make_account(db_session, "Bob")
        service_for(db_session, clock, "CONNECT-AAAAAA").issue(alice)

        row = service_for(
            db_session, clock, "CONNECT-AAAAAA", "CONNECT-CCCCCC"
        ).issue(bob)

        assert row.code == "CONNECT-CCCCCC"


class TestConsume:

    def test_consume_links_account(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account, timedelta(minutes=10))
        db_session.commit()

        linked = service.consume("CONNECT-AB12CD", "U1")
        db_session.commit()

        assert linked.id == account.id
        assert linked.platform_user_id == "U1"
        row = db_session.execute(select(ConnectionCode)).scalar_one()
        assert row.is_consumed is True
        assert row.platform_user_id == "U1"
        assert row.consumed_at == clock.now

    def test_consume_is_case_insensitive(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account)

        assert service.consume("  connect-ab12cd ", "U1").id == account.id

    def test_expired_code(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account, timedelta(minutes=10))
        db_session.commit()

        clock.advance(minutes=11)

        with pytest.raises(ExpiredError) as exc:
            service.consume("connect-ab12cd", "U1")
        assert exc.value.hint == "Request a new code"
        assert account.platform_user_id is None

    def test_code_is_still_valid_at_its_expiry_instant(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account, timedelta(minutes=10))

        clock.advance(minutes=10)

        assert service.consume("CONNECT-AB12CD", "U1").is_linked

    def test_code_is_single_use(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account)
        service.consume("CONNECT-AB12CD", "U1")
        db_session.commit()

        with pytest.raises(NotFoundError):
            service.consume("CONNECT-AB12CD", "U2")

    def test_unknown_code(self, db_session, clock):
        with pytest.raises(NotFoundError):
            service_for(db_session, clock).consume("CONNECT-ZZZZZZ", "U1")

    def test_identity_linked_elsewhere_is_conflict(self, db_session, clock):
        make_account(db_session, "Bob", platform_user_id="U1")
        alice = make_account(db_session, "Alice")
        service = service_for(db_session, clock)
        service.issue(alice)
        db_session.commit()

        with pytest.raises(ConflictError):
            service.consume("CONNECT-AB12CD", "U1")

        db_session.rollback()
        row = db_session.execute(select(ConnectionCode)).scalar_one()
        assert row.is_consumed is False
        assert alice.platform_user_id is None


class TestRevokeAndStatus:

    def test_revoke(self, db_session, clock):
        account = make_account(db_session, platform_user_id="U1")
        service = service_for(db_session, clock)

        assert service.revoke(account) is True
        assert account.platform_user_id is None
        assert service.revoke(account) is False

    def test_relink_after_revoke(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock, "CONNECT-AAAAAA", "CONNECT-BBBBBB")
        service.issue(account)
        service.consume("CONNECT-AAAAAA", "U1")
        service.revoke(account)

        service.issue(account)
        service.consume("CONNECT-BBBBBB", "U2")

        assert account.platform_user_id == "U2"

    def test_status_reports_active_code(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account, timedelta(minutes=10))

        status = service.status(account)

        assert status.is_linked is False
        assert status.active_code.code == "CONNECT-AB12CD"

    def test_status_hides_expired_code(self, db_session, clock):
        account = make_account(db_session)
        service = service_for(db_session, clock)
        service.issue(account, timedelta(minutes=10))
        clock.advance(minutes=11)

        assert service.status(account).active_code is None


class TestSweep:

    def test_sweep_deletes_only_expired_unconsumed(self, db_session, clock):
        alice = make_account(db_session, "Alice")
        bob = make_account(db_session, "Bob")
        carol = make_account(db_session, "Carol")
        service = service_for(
            db_session, clock, "CONNECT-AAAAAA", "CONNECT-BBBBBB", "CONNECT-CCCCCC"
        )
        service.issue(alice, timedelta(minutes=5))
        service.issue(bob, timedelta(minutes=5))
        service.issue(carol, timedelta(minutes=30))
        service.consume("CONNECT-BBBBBB", "U-bob")

        clock.advance(minutes=6)
        swept = service.sweep_expired()
        db_session.commit()

        assert swept == 1
        remaining = db_session.execute(
            select(ConnectionCode.code).order_by(ConnectionCode.code)
        ).scalars().all()
        assert remaining == ["CONNECT-BBBBBB", "CONNECT-CCCCCC"]

    def test_sweep_with_nothing_expired(self, db_session, clock):
        service_for(db_session, clock).issue(make_account(db_session))

        assert service_for(db_session, clock).sweep_expired() == 0
        assert db_session.execute(
            select(func.count(ConnectionCode.id))
        ).scalar_one() == 1
