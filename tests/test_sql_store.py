from datetime import date
from decimal import Decimal

import pytest

from spendwise.db.base import DEFAULT_CATEGORIES, StorageError
from spendwise.models.budget import Budget
from spendwise.models.category import Category
from spendwise.models.expense import ExpenseInDB
from spendwise.models.insight import Insight, InsightDraft
from spendwise.models.user import UserInDB


def add_expense(store, user_id, amount="10.00", day="2024-01-15", category_id=None):
    return store.create_expense(
        ExpenseInDB(
            user_id=user_id,
            category_id=category_id,
            amount=Decimal(amount),
            description="Lunch",
            payment_method="upi",
            date=date.fromisoformat(day),
        )
    )


def add_insight(store, user_id, title="Food up", period="2024-01"):
    draft = InsightDraft(type="warning", title=title, description="Spend less.", priority="high")
    return store.create_insight(Insight.from_draft(draft, user_id, period))


def test_users_by_id_and_username(store, user):
    assert store.get_user(user.id).username == "alice"
    assert store.get_user_by_username("alice").id == user.id
    assert store.get_user_by_username("bob") is None


def test_amounts_round_trip_exactly(store, user):
    expense = add_expense(store, user.id, amount="12.50")
    [stored] = store.list_expenses(user.id)
    assert stored.id == expense.id
    assert stored.amount == Decimal("12.50")
    assert str(stored.amount) == "12.50"


def test_expenses_are_newest_first_and_limited(store, user):
    for day in ("2024-01-01", "2024-01-03", "2024-01-02"):
        add_expense(store, user.id, day=day)

    assert [e.date.day for e in store.list_expenses(user.id)] == [3, 2, 1]
    assert len(store.list_expenses(user.id, limit=2)) == 2


def test_range_is_inclusive_and_scoped_to_user(store, user):
    other = store.create_user(UserInDB(username="bob", password_hash="x"))
    add_expense(store, user.id, day="2024-01-01")
    add_expense(store, user.id, day="2024-01-31")
    add_expense(store, user.id, day="2024-02-01")
    add_expense(store, other.id, day="2024-01-10")

    expenses = store.list_expenses_in_range(user.id, date(2024, 1, 1), date(2024, 1, 31))
    assert sorted(e.date.day for e in expenses) == [1, 31]


def test_expense_embeds_category(store, user):
    food = store.create_category(Category(name="Food", color="#ef4444"))
    add_expense(store, user.id, category_id=food.id)
    [expense] = store.list_expenses(user.id)
    assert expense.category.name == "Food"


def test_update_and_delete_respect_ownership(store, user):
    other = store.create_user(UserInDB(username="bob", password_hash="x"))
    expense = add_expense(store, user.id)

    assert store.update_expense(other.id, expense.id, {"description": "stolen"}) is None
    assert store.delete_expense(other.id, expense.id) is False

    updated = store.update_expense(user.id, expense.id, {"amount": Decimal("99.99")})
    assert updated.amount == Decimal("99.99")
    assert store.delete_expense(user.id, expense.id) is True
    assert store.get_expense(user.id, expense.id) is None


def test_delete_category_clears_references(store, user):
    food = store.create_category(Category(name="Food", color="#ef4444"))
    expense = add_expense(store, user.id, category_id=food.id)
    budget = store.create_budget(
        Budget(
            user_id=user.id,
            category_id=food.id,
            amount=Decimal("500"),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
        )
    )

    assert store.delete_category(food.id) is True
    assert store.delete_category(food.id) is False

    stored = store.get_expense(user.id, expense.id)
    assert stored.category_id is None
    assert stored.category is None
    assert store.get_budget(user.id, budget.id).category_id is None


def test_duplicate_insight_is_stored_once(store, user):
    first = add_insight(store, user.id)
    second = add_insight(store, user.id)

    assert first.id == second.id
    assert len(store.list_insights(user.id)) == 1
    add_insight(store, user.id, period="2024-02")
    assert len(store.list_insights(user.id)) == 2


def test_insight_for_unknown_user_is_a_storage_error(store):
    with pytest.raises(StorageError):
        add_insight(store, "no-such-user")


def test_mark_insight_read_is_idempotent(store, user):
    insight = add_insight(store, user.id)

    assert store.mark_insight_read(user.id, insight.id).is_read == "true"
    assert store.mark_insight_read(user.id, insight.id).is_read == "true"
    assert store.mark_insight_read(user.id, "missing") is None


def test_delete_user_removes_owned_rows(store, user):
    add_expense(store, user.id)
    add_insight(store, user.id)

    assert store.delete_user(user.id) is True
    assert store.get_user(user.id) is None
    assert store.list_expenses(user.id) == []
    assert store.list_insights(user.id) == []


def test_seed_default_categories_only_when_empty(store):
    assert store.seed_default_categories() == len(DEFAULT_CATEGORIES)
    assert store.seed_default_categories() == 0
    assert len(store.list_categories()) == len(DEFAULT_CATEGORIES)


def test_ping(store):
    assert store.ping() is True
