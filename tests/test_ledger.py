from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pocketbook.exceptions import NotFoundError, NotOwnerError, ValidationError
from pocketbook.services.database.models.base import as_utc, utcnow
from pocketbook.services.database.models.finance import Transaction, TransactionKind
from pocketbook.services.finance import categories, goals, ledger
from tests.utils import API, auth_headers


@pytest.mark.anyio
class TestRecord:
    async def test_amount_is_stored_as_positive_magnitude(self, session, make_user):
        user = await make_user("a@test.com")
        income = await ledger.record_transaction(session, user.id, "income", "10.5", "Salary")
        expense = await ledger.record_transaction(session, user.id, TransactionKind.EXPENSE, 3, "Coffee")

        stored = await session.get(Transaction, expense.id)
        assert income.amount == Decimal("10.50")
        assert stored.amount == Decimal("3.00")
        assert stored.kind == TransactionKind.EXPENSE

    @pytest.mark.parametrize(
        "kind, amount, description",
        [
            ("transfer", 10, "bad kind"),
            ("income", 0, "zero"),
            ("expense", -5, "negative"),
            ("income", "abc", "not a number"),
            ("income", 10, "   "),
            ("income", None, "missing"),
        ],
    )
    async def test_validation(self, session, make_user, kind, amount, description):
        user = await make_user("a@test.com")
        with pytest.raises(ValidationError):
            await ledger.record_transaction(session, user.id, kind, amount, description)
        assert await ledger.list_transactions(session, user.id) == []

    async def test_references_must_belong_to_owner(self, session, make_user):
        owner = await make_user("owner@test.com")
        other = await make_user("other@test.com")
        goal = await goals.create_goal(session, owner.id, "Car", 1000)
        category = await categories.create_category(session, owner.id, "Food", "expense")

        with pytest.raises(ValidationError):
            await ledger.record_transaction(session, other.id, "income", 5, "x", goal_id=goal.id)
        with pytest.raises(ValidationError):
            await ledger.record_transaction(session, other.id, "expense", 5, "x", category_id=category.id)
        with pytest.raises(ValidationError):
            await ledger.record_transaction(session, owner.id, "expense", 5, "x", installment_id=999)

        tx = await ledger.record_transaction(
            session, owner.id, "expense", 5, "Lunch", category_id=category.id
        )
        assert tx.category_id == category.id


class TestTimestamps:
    def test_now_is_aware_utc(self):
        assert utcnow().tzinfo == timezone.utc
        assert Transaction(user_id=1, kind="income", amount=1, description="x").created_at.tzinfo == timezone.utc

    def test_as_utc(self):
        assert as_utc(datetime(2024, 1, 1, 12)) == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        shifted = as_utc(datetime(2024, 1, 1, 12, tzinfo=timezone(timedelta(hours=-3))))
        assert shifted == datetime(2024, 1, 1, 15, tzinfo=timezone.utc)
        assert shifted.tzinfo == timezone.utc


@pytest.mark.anyio
class TestQueries:
    async def test_list_is_most_recent_first(self, session, make_user):
        user = await make_user("a@test.com")
        await ledger.record_transaction(session, user.id, "income", 1, "old", occurred_at=datetime(2024, 1, 1))
        await ledger.record_transaction(session, user.id, "income", 2, "new", occurred_at=datetime(2024, 3, 1))
        await ledger.record_transaction(session, user.id, "expense", 3, "mid", occurred_at=datetime(2024, 2, 1))

        listed = await ledger.list_transactions(session, user.id)
        assert [tx.description for tx in listed] == ["new", "mid", "old"]

        expenses = await ledger.list_transactions(session, user.id, kind=TransactionKind.EXPENSE)
        assert [tx.description for tx in expenses] == ["mid"]

    async def test_delete_checks_owner(self, session, make_user):
        owner = await make_user("owner@test.com")
        other = await make_user("other@test.com")
        tx = await ledger.record_transaction(session, owner.id, "income", 1, "mine")

        with pytest.raises(NotOwnerError):
            await ledger.delete_transaction(session, tx.id, other.id)
        assert await ledger.get_transaction(session, tx.id, owner.id)

        await ledger.delete_transaction(session, tx.id, owner.id)
        with pytest.raises(NotFoundError):
            await ledger.get_transaction(session, tx.id, owner.id)

    async def test_adjustment(self, session, make_user):
        user = await make_user("a@test.com")
        tx = await ledger.record_adjustment(session, user.id, "expense", "-25", "cash count")
        assert tx.amount == Decimal("25.00")
        assert tx.description == "[ADJUSTMENT] cash count"
        assert tx.category_id is None

        with pytest.raises(ValidationError):
            await ledger.record_adjustment(session, user.id, "expense", 0, "nothing")

    async def test_monthly_summary(self, session, make_user):
        user = await make_user("a@test.com")
        food = await categories.create_category(session, user.id, "Food", "expense")
        await ledger.record_transaction(session, user.id, "income", 1000, "Salary", occurred_at=datetime(2024, 5, 5))
        await ledger.record_transaction(
            session, user.id, "expense", 120, "Market", occurred_at=datetime(2024, 5, 10), category_id=food.id
        )
        await ledger.record_transaction(session, user.id, "expense", 30, "Misc", occurred_at=datetime(2024, 5, 31, 23))
        await ledger.record_transaction(session, user.id, "expense", 999, "June", occurred_at=datetime(2024, 6, 1))

        summary = await ledger.monthly_summary(session, user.id, 2024, 5)
        assert summary.year_month == "2024-05"
        assert summary.income == Decimal("1000")
        assert summary.expense == Decimal("150")
        assert summary.balance == Decimal("850")
        assert summary.by_category == {"Food": Decimal("120"), ledger.UNCATEGORIZED: Decimal("30")}

    async def test_offsets_are_normalized_to_utc(self, session, make_user):
        user = await make_user("a@test.com")
        early_june_local = datetime(2024, 6, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        await ledger.record_transaction(session, user.id, "expense", 10, "Late dinner", occurred_at=early_june_local)

        assert (await ledger.monthly_summary(session, user.id, 2024, 5)).expense == Decimal("10")
        assert (await ledger.monthly_summary(session, user.id, 2024, 6)).expense == Decimal("0")


@pytest.mark.anyio
class TestUpdate:
    async def test_partial_edit(self, session, make_user):
        user = await make_user("a@test.com")
        food = await categories.create_category(session, user.id, "Food", "expense")
        tx = await ledger.record_transaction(
            session, user.id, "expense", 10, "Lunch", occurred_at=datetime(2024, 1, 1), category_id=food.id
        )

        updated = await ledger.update_transaction(session, tx.id, user.id, {"amount": "12.5", "description": " Brunch "})
        assert updated.amount == Decimal("12.50")
        assert updated.description == "Brunch"
        assert updated.kind == TransactionKind.EXPENSE
        assert updated.category_id == food.id

        moved = await ledger.update_transaction(
            session, tx.id, user.id, {"occurred_at": datetime(2024, 2, 3), "category_id": None}
        )
        assert moved.category_id is None
        assert [t.description for t in await ledger.list_transactions(session, user.id)] == ["Brunch"]
        assert (await ledger.monthly_summary(session, user.id, 2024, 2)).expense == Decimal("12.50")

    async def test_owner_only(self, session, make_user):
        owner = await make_user("owner@test.com")
        other = await make_user("other@test.com")
        tx = await ledger.record_transaction(session, owner.id, "income", 5, "Gift")

        with pytest.raises(NotOwnerError):
            await ledger.update_transaction(session, tx.id, other.id, {"amount": 1})
        with pytest.raises(NotFoundError):
            await ledger.update_transaction(session, 4242, owner.id, {"amount": 1})
        assert (await ledger.get_transaction(session, tx.id, owner.id)).amount == Decimal("5.00")

    @pytest.mark.parametrize(
        "changes",
        [
            {"amount": 0},
            {"kind": "gift"},
            {"description": "  "},
            {"occurred_at": None},
            {"user_id": 99},
            {"goal_id": 999},
        ],
    )
    async def test_invalid_edits(self, session, make_user, changes):
        user = await make_user("a@test.com")
        tx = await ledger.record_transaction(session, user.id, "income", 5, "Gift")
        with pytest.raises(ValidationError):
            await ledger.update_transaction(session, tx.id, user.id, changes)

    async def test_cannot_link_someone_elses_category(self, session, make_user):
        owner = await make_user("owner@test.com")
        other = await make_user("other@test.com")
        foreign = await categories.create_category(session, other.id, "Food", "expense")
        tx = await ledger.record_transaction(session, owner.id, "expense", 5, "Snack")

        with pytest.raises(ValidationError):
            await ledger.update_transaction(session, tx.id, owner.id, {"category_id": foreign.id})


class TestLedgerApi:
    def test_adjustment_requires_session(self, client):
        response = client.post(
            f"{API}/transactions/adjustment", json={"kind": "income", "amount": 10, "description": "fix"}
        )
        assert response.status_code == 401

    def test_adjustment(self, client):
        headers = auth_headers(client, "a@test.com")
        response = client.post(
            f"{API}/transactions/adjustment",
            json={"kind": "income", "amount": -10, "description": "found cash"},
            headers=headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["amount"] == 10
        assert body["description"] == "[ADJUSTMENT] found cash"

    @pytest.mark.parametrize(
        "payload",
        [
            {"kind": "income", "amount": 10},
            {"kind": "gift", "amount": 10, "description": "x"},
            {"kind": "income", "amount": "ten", "description": "x"},
        ],
    )
    def test_adjustment_bad_request(self, client, payload):
        headers = auth_headers(client, "a@test.com")
        response = client.post(f"{API}/transactions/adjustment", json=payload, headers=headers)
        assert response.status_code == 400

    def test_crud_and_isolation(self, client):
        alice = auth_headers(client, "alice@test.com")
        bob = auth_headers(client, "bob@test.com")

        created = client.post(
            f"{API}/transactions",
            json={"kind": "expense", "amount": "12.30", "description": "Bus", "occurred_at": "2024-04-01T08:00:00"},
            headers=alice,
        )
        assert created.status_code == 201
        tx_id = created.json()["id"]

        assert client.get(f"{API}/transactions/{tx_id}", headers=bob).status_code == 404
        assert client.delete(f"{API}/transactions/{tx_id}", headers=bob).status_code == 404
        assert client.get(f"{API}/transactions", headers=bob).json() == []

        listed = client.get(f"{API}/transactions", params={"kind": "expense"}, headers=alice).json()
        assert [tx["id"] for tx in listed] == [tx_id]

        assert client.put(f"{API}/transactions/{tx_id}", json={"amount": 1}, headers=bob).status_code == 404
        edited = client.put(f"{API}/transactions/{tx_id}", json={"amount": "15", "kind": "income"}, headers=alice)
        assert edited.status_code == 200
        assert edited.json()["amount"] == 15
        assert edited.json()["kind"] == "income"
        assert edited.json()["description"] == "Bus"
        assert client.put(f"{API}/transactions/{tx_id}", json={"amount": -1}, headers=alice).status_code == 400

        assert client.delete(f"{API}/transactions/{tx_id}", headers=alice).status_code == 204
        assert client.get(f"{API}/transactions/{tx_id}", headers=alice).status_code == 404

    def test_dashboard(self, client):
        headers = auth_headers(client, "a@test.com")
        client.post(
            f"{API}/transactions",
            json={"kind": "income", "amount": 200, "description": "Pay", "occurred_at": "2024-02-10T09:00:00"},
            headers=headers,
        )
        client.post(
            f"{API}/transactions",
            json={"kind": "expense", "amount": 50, "description": "Food", "occurred_at": "2024-02-11T09:00:00"},
            headers=headers,
        )
        client.post(
            f"{API}/debts",
            json={"name": "Phone", "total_amount": 300, "installment_count": 3, "first_due_date": "2024-03-01"},
            headers=headers,
        )

        response = client.get(f"{API}/dashboard", params={"year": 2024, "month": 2}, headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["year_month"] == "2024-02"
        assert body["income"] == 200
        assert body["expense"] == 50
        assert body["balance"] == 150
        assert body["by_category"] == {"uncategorized": 50}
        assert body["outstanding_debt"] == 300
