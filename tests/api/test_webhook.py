"""
Tests for the messaging-platform webhook.

Bodies are signed with the test channel secret set in
conftest.py, the same way the platform signs them.
"""

import json

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from chat_ledger.errors import StorageError
from chat_ledger.models import Account, Group, Transaction
from chat_ledger.security import sign_body
from chat_ledger.services.ledger_service import LedgerService

CHANNEL_SECRET = "test-channel-secret"


def post_events(client, events, secret=CHANNEL_SECRET, signature=None):
    body = json.dumps({"destination": "bot", "events": events}).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Line-Signature": signature or sign_body(body, secret),
    }
    return client.post("/webhook", content=body, headers=headers)


def text_event(text, user="U1", group=None, token="reply-1"):
    source = {"type": "group", "userId": user, "groupId": group} if group else {
        "type": "user", "userId": user,
    }
    return {
        "type": "message",
        "replyToken": token,
        "source": source,
        "message": {"type": "text", "id": "1", "text": text},
    }


class TestSignature:

    def test_missing_signature_returns_401(self, client):
        response = client.post("/webhook", json={"events": []})
        assert response.status_code == 401

    def test_wrong_secret_returns_401(self, client):
        response = post_events(client, [], secret="someone-else")
        assert response.status_code == 401

    def test_tampered_body_returns_401(self, client):
        body = json.dumps({"events": []}).encode("utf-8")
        signature = sign_body(body, CHANNEL_SECRET)

        response = post_events(client, [text_event("/help")], signature=signature)

        assert response.status_code == 401

    def test_signed_empty_batch(self, client):
        response = post_events(client, [])
        assert response.status_code == 200
        assert response.json() == {"replies": []}


class TestPayload:

    def test_malformed_json_returns_400(self, client):
        body = b"{not json"
        response = client.post("/webhook", content=body, headers={
            "Content-Type": "application/json",
            "X-Line-Signature": sign_body(body, CHANNEL_SECRET),
        })
        assert response.status_code == 400

    def test_non_text_messages_are_skipped(self, client):
        sticker = {
            "type": "message",
            "replyToken": "reply-1",
            "source": {"type": "user", "userId": "U1"},
            "message": {"type": "sticker", "id": "2"},
        }
        response = post_events(client, [sticker, {"type": "beacon"}])

        assert response.json() == {"replies": []}

    def test_relay_profile_and_group_name_are_used(self, client, db_session, default_categories):
        event = text_event("อาหาร 50", user="UA", group="G1")
        event["source"]["groupName"] = "Trip"
        event["profile"] = {"displayName": "Nok", "pictureUrl": "https://img.example/nok.png"}

        response = post_events(client, [event])

        assert response.json()["replies"][0]["intent"]["account_label"] == "Trip"
        account = db_session.execute(
            select(Account).where(Account.platform_user_id == "UA")
        ).scalar_one()
        assert account.display_name == "Nok"
        assert account.avatar_url == "https://img.example/nok.png"

    def test_plain_payload_falls_back_to_default_names(self, client, db_session, default_categories):
        post_events(client, [text_event("อาหาร 50", user="UA", group="G1")])

        group = db_session.execute(select(Group)).scalar_one()
        account = db_session.execute(select(Account)).scalar_one()
        assert group.name == "Group ledger"
        assert account.display_name == "Chat user"

class TestDispatch:

    def test_help_command(self, client):
        response = post_events(client, [text_event("/help", token="tok-9")])

        assert response.status_code == 200
        replies = response.json()["replies"]
        assert len(replies) == 1
        assert replies[0]["reply_handle"] == "tok-9"
        assert replies[0]["intent"]["kind"] == "notice"
        assert replies[0]["intent"]["topic"] == "help"

    def test_unlinked_sender_gets_error_intent(self, client, default_categories):
        response = post_events(client, [text_event("อาหาร 50")])

        intent = response.json()["replies"][0]["intent"]
        assert intent["kind"] == "error"
        assert intent["code"] == "not_linked"

    def test_group_batch(self, client, default_categories):
        response = post_events(client, [
            {"type": "join", "replyToken": "r0", "source": {"type": "group", "groupId": "G1"}},
            text_event("อาหาร 50", user="UA", group="G1", token="r1"),
            text_event("อาหาร 75", user="UB", group="G1", token="r2"),
            text_event("/all", user="UA", group="G1", token="r3"),
        ])

        replies = response.json()["replies"]
        assert [r["intent"]["kind"] for r in replies] == [
            "notice", "transaction-recorded", "transaction-recorded", "summary",
        ]
        assert replies[3]["intent"]["summary"]["expense_total"] == "125.00"

    def test_leave_event_has_no_reply(self, client):
        response = post_events(client, [
            {"type": "leave", "source": {"type": "group", "groupId": "G1"}},
        ])
        assert response.json() == {"replies": []}


def count_transactions(db):
    return db.execute(select(func.count(Transaction.id))).scalar_one()


class TestBatchIsOneUnitOfWork:

    def test_storage_failure_discards_whole_batch(
        self, client, db_session, default_categories, monkeypatch
    ):
        original_summary = LedgerService.summary
        failures = [StorageError("connection reset")]

        def flaky_summary(self, *args, **kwargs):
            if failures:
                raise failures.pop()
            return original_summary(self, *args, **kwargs)

        monkeypatch.setattr(LedgerService, "summary", flaky_summary)
        batch = [
            text_event("อาหาร 50", user="UA", group="G1", token="r1"),
            text_event("/today", user="UA", group="G1", token="r2"),
        ]

        first = post_events(client, batch)
        assert first.status_code == 503
        assert first.json()["detail"]["code"] == "storage_error"
        assert count_transactions(db_session) == 0

        redelivered = post_events(client, batch)
        assert redelivered.status_code == 200
        assert [r["intent"]["kind"] for r in redelivered.json()["replies"]] == [
            "transaction-recorded", "summary",
        ]
        assert count_transactions(db_session) == 1

    def test_commit_failure_returns_503(
        self, client, db_session, default_categories, monkeypatch
    ):
        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        response = post_events(client, [text_event("อาหาร 50", user="UA", group="G1")])
        monkeypatch.undo()

        assert response.status_code == 503
        assert count_transactions(db_session) == 0
