from datetime import date
from decimal import Decimal

import pytest

from fakes import FakeDynamoResource
from spendwise.core.config import settings
from spendwise.db.base import StorageError
from spendwise.db.dynamo import DynamoStore
from spendwise.models.budget import Budget
from spendwise.models.category import Category
from spendwise.models.expense import ExpenseInDB
from spendwise.models.insight import Insight, InsightDraft
from spendwise.models.user import UserInDB


@pytest.fixture
def resource():
    return FakeDynamoResource()


@pytest.fixture
def dynamo(resource):
    return DynamoStore(resource)


def add_expense(store, user_id="user-1", amount="10.00", day="2024-01-15", category_id=None):
    return store.create_expense(
        ExpenseInDB(
            user_id=user_id,
            category_id=category_id,
            amount=Decimal(amount),
            description="Groceries",
            payment_method="debit_card",
            date=date.fromisoformat(day),
        )
    )


def test_items_are_stored_with_string_amounts_and_dates(dynamo, resource):
    expense = add_expense(dynamo, amount="12.5")
    item = resource.tables[settings.DYNAMO_EXPENSES_TABLE].items[("user-1", expense.id)]

    assert item["amount"] == "12.50"
    assert item["date"] == "2024-01-15"
    assert "category_id" not in item
    assert dynamo.get_expense("user-1", expense.id).amount == Decimal("12.50")


def test_user_lookup_by_username(dynamo):
    user = dynamo.create_user(UserInDB(username="alice", password_hash="hash"))
    assert dynamo.get_user_by_username("alice").id == user.id
    assert dynamo.get_user(user.id).username == "alice"
    assert dynamo.get_user_by_username("bob") is None


def test_range_query_embeds_categories(dynamo):
    food = dynamo.create_category(Category(name="Food", color="#ef4444"))
    add_expense(dynamo, day="2024-01-01", category_id=food.id)
    add_expense(dynamo, day="2024-01-20", category_id="deleted-category")
    add_expense(dynamo, day="2024-02-01")

    expenses = dynamo.list_expenses_in_range("user-1", date(2024, 1, 1), date(2024, 1, 31))

    assert [e.date.day for e in expenses] == [20, 1]
    assert expenses[0].category is None
    assert expenses[1].category.name == "Food"


def test_update_clears_attribute_set_to_none(dynamo, resource):
    food = dynamo.create_category(Category(name="Food", color="#ef4444"))
    expense = add_expense(dynamo, category_id=food.id)

    updated = dynamo.update_expense("user-1", expense.id, {"category_id": None, "amount": Decimal("8")})

    assert updated.category_id is None
    assert updated.amount == Decimal("8.00")
    item = resource.tables[settings.DYNAMO_EXPENSES_TABLE].items[("user-1", expense.id)]
    assert "category_id" not in item


def test_update_of_missing_item_returns_none(dynamo):
    assert dynamo.update_expense("user-1", "missing", {"description": "x"}) is None
    assert dynamo.update_category("missing", {"name": "x"}) is None
    assert dynamo.delete_expense("user-1", "missing") is False


def test_delete_category_clears_references(dynamo):
    food = dynamo.create_category(Category(name="Food", color="#ef4444"))
    expense = add_expense(dynamo, category_id=food.id)
    budget = dynamo.create_budget(
        Budget(
            user_id="user-1",
            category_id=food.id,
            amount=Decimal("300"),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
        )
    )

    assert dynamo.delete_category(food.id) is True
    assert dynamo.get_expense("user-1", expense.id).category_id is None
    assert dynamo.get_budget("user-1", budget.id).category_id is None
    assert dynamo.get_category(food.id) is None


def test_create_insight_is_insert_if_absent(dynamo):
    draft = InsightDraft(type="goal", title="On track", description="Keep going.", priority="low")
    first = dynamo.create_insight(Insight.from_draft(draft, "user-1", "2024-01"))
    dynamo.mark_insight_read("user-1", first.id)

    again = dynamo.create_insight(Insight.from_draft(draft, "user-1", "2024-01"))

    assert again.id == first.id
    assert again.is_read == "true"
    assert len(dynamo.list_insights("user-1")) == 1


def test_mark_missing_insight_read(dynamo):
    assert dynamo.mark_insight_read("user-1", "missing") is None


def test_list_categories_degrades_to_empty(dynamo, resource):
    dynamo.create_category(Category(name="Food", color="#ef4444"))
    resource.tables[settings.DYNAMO_CATEGORIES_TABLE].fail = True
    assert dynamo.list_categories() == []


def test_backend_errors_become_storage_errors(dynamo, resource):
    resource.tables[settings.DYNAMO_EXPENSES_TABLE].fail = True
    with pytest.raises(StorageError):
        dynamo.list_expenses("user-1")
    with pytest.raises(StorageError):
        add_expense(dynamo)


def test_delete_user_removes_owned_items(dynamo):
    user = dynamo.create_user(UserInDB(username="alice", password_hash="hash"))
    add_expense(dynamo, user_id=user.id)
    add_expense(dynamo, user_id="someone-else")

    assert dynamo.delete_user(user.id) is True
    assert dynamo.list_expenses(user.id) == []
    assert len(dynamo.list_expenses("someone-else")) == 1
    assert dynamo.get_user(user.id) is None


def test_ping(dynamo):
    assert dynamo.ping() is True
