from datetime import date, datetime
from decimal import Decimal
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional
import logging

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from spendwise.core.config import settings
from spendwise.db.base import ExpenseStore, StorageError
from spendwise.models.budget import Budget
from spendwise.models.category import Category
from spendwise.models.common import to_money
from spendwise.models.expense import Expense, ExpenseInDB
from spendwise.models.insight import Insight
from spendwise.models.user import UserInDB

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


@lru_cache
def get_dynamo_resource():
    """Process-wide DynamoDB resource; tables are bound per store instance."""
    return boto3.resource(
        "dynamodb",
        region_name=settings.DYNAMO_REGION,
        endpoint_url=settings.DYNAMO_ENDPOINT_URL or None,
    )


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert values for DynamoDB: amounts become 2-decimal strings,
    dates become ISO strings, floats become Decimal and None attributes are dropped.
    """
    if isinstance(obj, Decimal):
        return str(to_money(obj))
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(item: Dict[str, Any], id_attr: str) -> Dict[str, Any]:
    """Map a stored item back to model fields (the table key becomes ``id``)."""
    data = dict(item)
    data["id"] = data.pop(id_attr)
    return data


def _error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message", str(e))


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


class DynamoStore(ExpenseStore):
    """
    Document adapter over five DynamoDB tables.

    Expected keys (create them manually):
      users       PK user_id, GSI "username-index" on username
      categories  PK category_id
      expenses    PK user_id, SK expense_id, LSI "date-index" on date
      budgets     PK user_id, SK budget_id
      insights    PK user_id, SK insight_id
    """

    def __init__(self, resource=None) -> None:
        resource = resource or get_dynamo_resource()
        self.users_table = resource.Table(settings.DYNAMO_USERS_TABLE)
        self.categories_table = resource.Table(settings.DYNAMO_CATEGORIES_TABLE)
        self.expenses_table = resource.Table(settings.DYNAMO_EXPENSES_TABLE)
        self.budgets_table = resource.Table(settings.DYNAMO_BUDGETS_TABLE)
        self.insights_table = resource.Table(settings.DYNAMO_INSIGHTS_TABLE)

    def _fail(self, action: str, e: ClientError):
        logger.error(f"{action} failed: {_error_message(e)}")
        return StorageError(action)

    @staticmethod
    def _collect(operation: Callable[..., Dict[str, Any]], **kwargs) -> List[Dict[str, Any]]:
        """Follow LastEvaluatedKey until a query or scan is exhausted."""
        items: List[Dict[str, Any]] = []
        while True:
            response = operation(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    @staticmethod
    def _update_args(key: Dict[str, Any], id_attr: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        set_parts = []
        remove_parts = []
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}

        for idx, (field, value) in enumerate(updates.items()):
            placeholder = f"#f{idx}"
            names[placeholder] = field
            if value is None:
                remove_parts.append(placeholder)
            else:
                value_placeholder = f":v{idx}"
                set_parts.append(f"{placeholder} = {value_placeholder}")
                values[value_placeholder] = value

        expression = ""
        if set_parts:
            expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            expression = (expression + " REMOVE " + ", ".join(remove_parts)).strip()

        args = {
            "Key": key,
            "UpdateExpression": expression,
            "ExpressionAttributeNames": names,
            "ConditionExpression": f"attribute_exists({id_attr})",
            "ReturnValues": "ALL_NEW",
        }
        if values:
            args["ExpressionAttributeValues"] = _convert_for_dynamo(values)
        return args

    def _update(self, table, action: str, key: Dict[str, Any], id_attr: str, updates: Dict[str, Any]):
        """Apply partial updates to an existing item. Returns the new item or None."""
        try:
            response = table.update_item(**self._update_args(key, id_attr, updates))
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                return None
            raise self._fail(action, e)
        return response.get("Attributes")

    def _delete(self, table, action: str, key: Dict[str, Any]) -> bool:
        try:
            response = table.delete_item(Key=key, ReturnValues="ALL_OLD")
        except ClientError as e:
            raise self._fail(action, e)
        return "Attributes" in response

    # Users

    def get_user(self, user_id: str) -> Optional[UserInDB]:
        try:
            item = self.users_table.get_item(Key={"user_id": user_id}).get("Item")
        except ClientError as e:
            raise self._fail("get_user", e)
        return UserInDB(**_from_dynamo(item, "user_id")) if item else None

    def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        try:
            response = self.users_table.query(
                IndexName="username-index",
                KeyConditionExpression=Key("username").eq(username),
            )
        except ClientError as e:
            raise self._fail("get_user_by_username", e)
        items = response.get("Items", [])
        return UserInDB(**_from_dynamo(items[0], "user_id")) if items else None

    def create_user(self, user: UserInDB) -> UserInDB:
        item = user.model_dump()
        item["user_id"] = item.pop("id")
        try:
            self.users_table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise self._fail("create_user", e)
        return user

    def delete_user(self, user_id: str) -> bool:
        try:
            for table, sort_key in (
                (self.expenses_table, "expense_id"),
                (self.budgets_table, "budget_id"),
                (self.insights_table, "insight_id"),
            ):
                items = self._collect(
                    table.query,
                    KeyConditionExpression=Key("user_id").eq(user_id),
                )
                with table.batch_writer() as batch:
                    for item in items:
                        batch.delete_item(Key={"user_id": user_id, sort_key: item[sort_key]})
        except ClientError as e:
            raise self._fail("delete_user", e)
        return self._delete(self.users_table, "delete_user", {"user_id": user_id})

    # Categories

    def list_categories(self) -> List[Category]:
        try:
            items = self._collect(self.categories_table.scan)
        except ClientError as e:
            logger.warning(f"Categories not available, returning empty list: {_error_message(e)}")
            return []
        categories = [Category(**_from_dynamo(item, "category_id")) for item in items]
        return sorted(categories, key=lambda c: c.name)

    def get_category(self, category_id: str) -> Optional[Category]:
        try:
            item = self.categories_table.get_item(Key={"category_id": category_id}).get("Item")
        except ClientError as e:
            raise self._fail("get_category", e)
        return Category(**_from_dynamo(item, "category_id")) if item else None

    def create_category(self, category: Category) -> Category:
        item = category.model_dump()
        item["category_id"] = item.pop("id")
        try:
            self.categories_table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise self._fail("create_category", e)
        return category

    def update_category(self, category_id: str, updates: Dict[str, Any]) -> Optional[Category]:
        item = self._update(
            self.categories_table, "update_category", {"category_id": category_id}, "category_id", updates
        )
        return Category(**_from_dynamo(item, "category_id")) if item else None

    def delete_category(self, category_id: str) -> bool:
        try:
            for table, sort_key in (
                (self.expenses_table, "expense_id"),
                (self.budgets_table, "budget_id"),
            ):
                referencing = self._collect(
                    table.scan,
                    FilterExpression=Attr("category_id").eq(category_id),
                )
                for item in referencing:
                    self._update(
                        table,
                        "delete_category",
                        {"user_id": item["user_id"], sort_key: item[sort_key]},
                        sort_key,
                        {"category_id": None},
                    )
        except ClientError as e:
            raise self._fail("delete_category", e)
        return self._delete(self.categories_table, "delete_category", {"category_id": category_id})

    # Expenses

    def _with_categories(self, items: List[Dict[str, Any]]) -> List[Expense]:
        categories = {c.id: c for c in self.list_categories()} if items else {}
        expenses = []
        for item in items:
            data = _from_dynamo(item, "expense_id")
            data["category"] = categories.get(data.get("category_id"))
            expenses.append(Expense(**data))
        return sorted(expenses, key=lambda e: (e.date, e.created_at), reverse=True)

    def list_expenses(self, user_id: str, limit: int = 50) -> List[Expense]:
        try:
            items = self._collect(
                self.expenses_table.query,
                KeyConditionExpression=Key("user_id").eq(user_id),
            )
        except ClientError as e:
            raise self._fail("list_expenses", e)
        return self._with_categories(items)[:limit]

    def list_expenses_in_range(self, user_id: str, start: date, end: date) -> List[Expense]:
        try:
            items = self._collect(
                self.expenses_table.query,
                IndexName="date-index",
                KeyConditionExpression=Key("user_id").eq(user_id)
                & Key("date").between(start.isoformat(), end.isoformat()),
            )
        except ClientError as e:
            raise self._fail("list_expenses_in_range", e)
        return self._with_categories(items)

    def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]:
        try:
            item = self.expenses_table.get_item(
                Key={"user_id": user_id, "expense_id": expense_id}
            ).get("Item")
        except ClientError as e:
            raise self._fail("get_expense", e)
        return self._with_categories([item])[0] if item else None

    def create_expense(self, expense: ExpenseInDB) -> Expense:
        item = expense.model_dump()
        item["expense_id"] = item.pop("id")
        try:
            self.expenses_table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise self._fail("create_expense", e)
        category = self.get_category(expense.category_id) if expense.category_id else None
        return Expense(**expense.model_dump(), category=category)

    def update_expense(self, user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Expense]:
        updates = dict(updates, updated_at=datetime.utcnow())
        item = self._update(
            self.expenses_table,
            "update_expense",
            {"user_id": user_id, "expense_id": expense_id},
            "expense_id",
            updates,
        )
        return self._with_categories([item])[0] if item else None

    def delete_expense(self, user_id: str, expense_id: str) -> bool:
        return self._delete(
            self.expenses_table, "delete_expense", {"user_id": user_id, "expense_id": expense_id}
        )

    # Budgets

    def list_budgets(self, user_id: str) -> List[Budget]:
        try:
            items = self._collect(
                self.budgets_table.query,
                KeyConditionExpression=Key("user_id").eq(user_id),
            )
        except ClientError as e:
            raise self._fail("list_budgets", e)
        budgets = [Budget(**_from_dynamo(item, "budget_id")) for item in items]
        return sorted(budgets, key=lambda b: b.created_at, reverse=True)

    def get_budget(self, user_id: str, budget_id: str) -> Optional[Budget]:
        try:
            item = self.budgets_table.get_item(
                Key={"user_id": user_id, "budget_id": budget_id}
            ).get("Item")
        except ClientError as e:
            raise self._fail("get_budget", e)
        return Budget(**_from_dynamo(item, "budget_id")) if item else None

    def create_budget(self, budget: Budget) -> Budget:
        item = budget.model_dump()
        item["budget_id"] = item.pop("id")
        try:
            self.budgets_table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise self._fail("create_budget", e)
        return budget

    def update_budget(self, user_id: str, budget_id: str, updates: Dict[str, Any]) -> Optional[Budget]:
        updates = dict(updates, updated_at=datetime.utcnow())
        item = self._update(
            self.budgets_table,
            "update_budget",
            {"user_id": user_id, "budget_id": budget_id},
            "budget_id",
            updates,
        )
        return Budget(**_from_dynamo(item, "budget_id")) if item else None

    def delete_budget(self, user_id: str, budget_id: str) -> bool:
        return self._delete(
            self.budgets_table, "delete_budget", {"user_id": user_id, "budget_id": budget_id}
        )

    # Insights

    def list_insights(self, user_id: str) -> List[Insight]:
        try:
            items = self._collect(
                self.insights_table.query,
                KeyConditionExpression=Key("user_id").eq(user_id),
            )
        except ClientError as e:
            raise self._fail("list_insights", e)
        insights = [Insight(**_from_dynamo(item, "insight_id")) for item in items]
        return sorted(insights, key=lambda i: i.created_at, reverse=True)

    def create_insight(self, insight: Insight) -> Insight:
        item = insight.model_dump()
        item["insight_id"] = item.pop("id")
        try:
            self.insights_table.put_item(
                Item=_convert_for_dynamo(item),
                ConditionExpression="attribute_not_exists(insight_id)",
            )
        except ClientError as e:
            if _error_code(e) != CONDITIONAL_CHECK_FAILED:
                raise self._fail("create_insight", e)
            # Already stored by an earlier or concurrent generation run.
            try:
                existing = self.insights_table.get_item(
                    Key={"user_id": insight.user_id, "insight_id": insight.id}
                ).get("Item")
            except ClientError as err:
                raise self._fail("create_insight", err)
            if existing:
                return Insight(**_from_dynamo(existing, "insight_id"))
        return insight

    def mark_insight_read(self, user_id: str, insight_id: str) -> Optional[Insight]:
        item = self._update(
            self.insights_table,
            "mark_insight_read",
            {"user_id": user_id, "insight_id": insight_id},
            "insight_id",
            {"is_read": "true"},
        )
        return Insight(**_from_dynamo(item, "insight_id")) if item else None

    def ping(self) -> bool:
        try:
            self.users_table.scan(Limit=1)
        except ClientError as e:
            raise self._fail("ping", e)
        return True
