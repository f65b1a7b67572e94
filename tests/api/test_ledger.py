"""
Tests for ledger API endpoints.

These test the HTTP layer: status codes, response format
and error handling. Business logic is tested in
test_ledger_service.py.
"""

from datetime import date, timedelta

from sqlalchemy.exc import OperationalError

from chat_ledger.services.identity_service import IdentityService


def create_account(client, email="alice@example.com"):
    response = client.post("/accounts", json={
        "display_name": "Alice",
        "email": email,
        "password": "correct-horse",
    })
    return response.json()["id"]


def record(client, account_id, category, amount, note=None, txn_type="expense"):
    return client.post(f"/accounts/{account_id}/transactions", json={
        "category_id": category.id,
        "type": txn_type,
        "amount": amount,
        "note": note,
    })


class TestRecordTransaction:

    def test_record_returns_201(self, client, default_categories):
        account_id = create_account(client)

        response = record(client, account_id, default_categories["อาหาร"], "150", "lunch")

        assert response.status_code == 201
        data = response.json()
        assert data["transaction"]["amount"] == "150.00"
        assert data["transaction"]["source"] == "web"
        assert data["transaction"]["category"]["name"] == "อาหาร"
        assert data["day_balance"] == "-150.00"

    def test_zero_amount_returns_422(self, client, default_categories):
        account_id = create_account(client)
        response = record(client, account_id, default_categories["อาหาร"], "0")
        assert response.status_code == 422

    def test_type_mismatch_returns_422(self, client, default_categories):
        account_id = create_account(client)

        response = record(
            client, account_id, default_categories["เงินเดือน"], "100", txn_type="expense"
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "validation_error"

    def test_future_date_returns_422(self, client, default_categories):
        account_id = create_account(client)
        response = client.post(f"/accounts/{account_id}/transactions", json={
            "category_id": default_categories["อาหาร"].id,
            "type": "expense",
            "amount": "10",
            "effective_date": (date.today() + timedelta(days=3)).isoformat(),
        })
        assert response.status_code == 422

    def test_unknown_account_returns_404(self, client, default_categories):
        response = record(client, 999, default_categories["อาหาร"], "10")
        assert response.status_code == 404


class TestReports:

    def test_summary(self, client, default_categories):
        account_id = create_account(client)
        record(client, account_id, default_categories["เงินเดือน"], "1000", txn_type="income")
        record(client, account_id, default_categories["อาหาร"], "250.50")

        response = client.get(f"/accounts/{account_id}/summary", params={"period": "all_time"})

        assert response.status_code == 200
        data = response.json()
        assert data["income_total"] == "1000.00"
        assert data["expense_total"] == "250.50"
        assert data["balance"] == "749.50"
        assert data["transaction_count"] == 2

    def test_unknown_period_returns_422(self, client):
        account_id = create_account(client)
        response = client.get(f"/accounts/{account_id}/summary", params={"period": "decade"})
        assert response.status_code == 422

    def test_stats(self, client, default_categories):
        account_id = create_account(client)
        record(client, account_id, default_categories["อาหาร"], "100")
        record(client, account_id, default_categories["เดินทาง"], "40")

        data = client.get(f"/accounts/{account_id}/stats").json()

        assert [c["name"] for c in data["expense"]] == ["อาหาร", "เดินทาง"]
        assert data["income"] == []

    def test_recent_and_cancel_last(self, client, default_categories):
        account_id = create_account(client)
        record(client, account_id, default_categories["อาหาร"], "10")
        record(client, account_id, default_categories["อาหาร"], "20")

        cancelled = client.delete(f"/accounts/{account_id}/transactions/last")
        assert cancelled.status_code == 200
        assert cancelled.json()["amount"] == "20.00"

        recent = client.get(f"/accounts/{account_id}/transactions").json()
        assert [t["amount"] for t in recent] == ["10.00"]

    def test_cancel_on_empty_ledger_returns_404(self, client):
        account_id = create_account(client)
        response = client.delete(f"/accounts/{account_id}/transactions/last")
        assert response.status_code == 404

    def test_recent_limit_must_be_positive(self, client):
        account_id = create_account(client)
        response = client.get(f"/accounts/{account_id}/transactions", params={"limit": 0})
        assert response.status_code == 422

    def test_unknown_group_returns_404(self, client):
        assert client.get("/groups/999/summary").status_code == 404


class TestSingleTransaction:

    def test_get_update_delete(self, client, default_categories):
        account_id = create_account(client)
        txn_id = record(client, account_id, default_categories["อาหาร"], "10", "lunch").json()[
            "transaction"]["id"]
        url = f"/accounts/{account_id}/transactions/{txn_id}"

        assert client.get(url).json()["note"] == "lunch"

        updated = client.put(url, json={"amount": "15.50"})
        assert updated.status_code == 200
        assert updated.json()["amount"] == "15.50"
        assert updated.json()["note"] == "lunch"

        assert client.delete(url).status_code == 200
        assert client.get(url).status_code == 404

    def test_other_accounts_transaction_returns_404(self, client, default_categories):
        alice = create_account(client)
        bob = create_account(client, email="bob@example.com")
        txn_id = record(client, alice, default_categories["อาหาร"], "10").json()[
            "transaction"]["id"]

        assert client.get(f"/accounts/{bob}/transactions/{txn_id}").status_code == 404
        assert client.put(
            f"/accounts/{bob}/transactions/{txn_id}", json={"amount": "1"}
        ).status_code == 404
        assert client.delete(f"/accounts/{bob}/transactions/{txn_id}").status_code == 404

    def test_type_switch_without_category_returns_422(self, client, default_categories):
        account_id = create_account(client)
        txn_id = record(client, account_id, default_categories["อาหาร"], "10").json()[
            "transaction"]["id"]

        response = client.put(
            f"/accounts/{account_id}/transactions/{txn_id}", json={"type": "income"}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "validation_error"


class TestSearch:

    def test_filters_and_paging(self, client, default_categories):
        account_id = create_account(client)
        record(client, account_id, default_categories["อาหาร"], "10")
        record(client, account_id, default_categories["อาหาร"], "20")
        record(client, account_id, default_categories["เดินทาง"], "30")
        record(client, account_id, default_categories["เงินเดือน"], "900", txn_type="income")

        response = client.get(f"/accounts/{account_id}/transactions/search", params={
            "type": "expense",
            "category_id": default_categories["อาหาร"].id,
            "per_page": 1,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["page"] == 1
        assert [t["amount"] for t in data["items"]] == ["20.00"]

    def test_inverted_date_range_returns_422(self, client):
        account_id = create_account(client)
        response = client.get(f"/accounts/{account_id}/transactions/search", params={
            "start_date": "2026-03-10", "end_date": "2026-03-01",
        })
        assert response.status_code == 422

    def test_page_size_is_bounded(self, client):
        account_id = create_account(client)
        response = client.get(
            f"/accounts/{account_id}/transactions/search", params={"per_page": 500}
        )
        assert response.status_code == 422


class TestGroupMembers:

    def test_members_in_join_order(self, client, db_session):
        identity = IdentityService(db_session)
        group = identity.resolve_group("G1", "Trip")
        first = identity.resolve_sender("UA", group)
        second = identity.resolve_sender("UB", group)
        db_session.commit()

        data = client.get(f"/groups/{group.id}/members").json()

        assert [(m["account_id"], m["role"]) for m in data] == [
            (first.id, "admin"), (second.id, "member"),
        ]

    def test_unknown_group_returns_404(self, client):
        assert client.get("/groups/999/members").status_code == 404


class TestCommitFailure:

    def test_commit_failure_returns_503(self, client, db_session, default_categories, monkeypatch):
        account_id = create_account(client)

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        response = record(client, account_id, default_categories["อาหาร"], "10")
        monkeypatch.undo()

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "storage_error"
        assert client.get(f"/accounts/{account_id}/transactions").json() == []
