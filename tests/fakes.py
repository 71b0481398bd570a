"""In-memory stand-ins for the OpenAI client and the DynamoDB resource."""
import copy
from types import SimpleNamespace

from botocore.exceptions import ClientError

from spendwise.core.config import settings


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeAIClient:
    def __init__(self, reply=None, error=None):
        self.completions = FakeCompletions(reply, error)
        self.chat = SimpleNamespace(completions=self.completions)


def _client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


def _matches(condition, item):
    """Evaluate the subset of boto3 conditions the store uses."""
    expression = condition.get_expression()
    operator = expression["operator"]
    values = expression["values"]
    if operator == "AND":
        return all(_matches(value, item) for value in values)
    name = values[0].name
    if operator == "=":
        return item.get(name) == values[1]
    if operator == "BETWEEN":
        return name in item and values[1] <= item[name] <= values[2]
    raise NotImplementedError(operator)


class FakeBatchWriter:
    def __init__(self, table):
        self.table = table

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def delete_item(self, Key):
        self.table.delete_item(Key=Key)


class FakeTable:
    def __init__(self, key_names):
        self.key_names = key_names
        self.items = {}
        self.fail = False

    def _guard(self, operation):
        if self.fail:
            raise _client_error("InternalServerError", operation)

    def _key(self, data):
        return tuple(data[name] for name in self.key_names)

    def _check(self, condition, existing, operation):
        if not condition:
            return
        if condition.startswith("attribute_exists") and existing is None:
            raise _client_error("ConditionalCheckFailedException", operation)
        if condition.startswith("attribute_not_exists") and existing is not None:
            raise _client_error("ConditionalCheckFailedException", operation)

    def put_item(self, Item, ConditionExpression=None):
        self._guard("PutItem")
        key = self._key(Item)
        self._check(ConditionExpression, self.items.get(key), "PutItem")
        self.items[key] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        self._guard("GetItem")
        item = self.items.get(self._key(Key))
        return {"Item": copy.deepcopy(item)} if item else {}

    def query(self, KeyConditionExpression, IndexName=None, **kwargs):
        self._guard("Query")
        return {"Items": [copy.deepcopy(i) for i in self.items.values() if _matches(KeyConditionExpression, i)]}

    def scan(self, FilterExpression=None, Limit=None, **kwargs):
        self._guard("Scan")
        items = [i for i in self.items.values() if FilterExpression is None or _matches(FilterExpression, i)]
        if Limit is not None:
            items = items[:Limit]
        return {"Items": copy.deepcopy(items)}

    def update_item(
        self,
        Key,
        UpdateExpression,
        ExpressionAttributeNames,
        ConditionExpression=None,
        ReturnValues=None,
        ExpressionAttributeValues=None,
    ):
        self._guard("UpdateItem")
        existing = self.items.get(self._key(Key))
        self._check(ConditionExpression, existing, "UpdateItem")
        item = existing if existing is not None else dict(Key)
        values = ExpressionAttributeValues or {}

        set_part, _, remove_part = UpdateExpression.partition("REMOVE")
        set_part = set_part.replace("SET", "", 1)
        for assignment in filter(None, (a.strip() for a in set_part.split(","))):
            name, value = (side.strip() for side in assignment.split("="))
            item[ExpressionAttributeNames[name]] = values[value]
        for name in filter(None, (r.strip() for r in remove_part.split(","))):
            item.pop(ExpressionAttributeNames[name], None)

        self.items[self._key(Key)] = item
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, Key, ReturnValues=None):
        self._guard("DeleteItem")
        item = self.items.pop(self._key(Key), None)
        return {"Attributes": item} if item else {}

    def batch_writer(self):
        return FakeBatchWriter(self)


class FakeDynamoResource:
    def __init__(self):
        self.tables = {
            settings.DYNAMO_USERS_TABLE: FakeTable(("user_id",)),
            settings.DYNAMO_CATEGORIES_TABLE: FakeTable(("category_id",)),
            settings.DYNAMO_EXPENSES_TABLE: FakeTable(("user_id", "expense_id")),
            settings.DYNAMO_BUDGETS_TABLE: FakeTable(("user_id", "budget_id")),
            settings.DYNAMO_INSIGHTS_TABLE: FakeTable(("user_id", "insight_id")),
        }

    def Table(self, name):
        return self.tables[name]
