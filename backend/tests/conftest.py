# backend/tests/conftest.py
#
# Shared fixtures: an in-memory stand-in for DynamoDB tables, a fake token
# verifier, and a TestClient wired to both through create_app().

import copy
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from backend.app.database import DocumentStore
from backend.app.errors import InvalidTokenError, TokenExpiredError
from backend.app.main import create_app


def condition_matches(condition, item: Dict[str, Any]) -> bool:
    """Evaluates the boto3 condition objects the store builds."""
    expression = condition.get_expression()
    operator = expression["operator"]
    values = expression["values"]
    if operator == "AND":
        return all(condition_matches(v, item) for v in values)
    if operator == "attribute_exists":
        return values[0].name in item
    if operator == "attribute_not_exists":
        return values[0].name not in item
    if operator == "=":
        return item.get(values[0].name) == values[1]
    raise NotImplementedError(operator)


class FakeTable:
    """Minimal in-memory DynamoDB Table keyed by `id`."""

    def __init__(self, name: str):
        self.name = name
        self.items: Dict[str, Dict[str, Any]] = {}

    def _check(self, key: str, condition, operation: str):
        if condition is not None and not condition_matches(condition, self.items.get(key, {})):
            raise ClientError(
                {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
                operation,
            )

    def get_item(self, Key):
        item = self.items.get(Key["id"])
        return {"Item": copy.deepcopy(item)} if item else {}

    def put_item(self, Item, ConditionExpression=None):
        self._check(Item["id"], ConditionExpression, "PutItem")
        self.items[Item["id"]] = copy.deepcopy(Item)

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames,
                    ExpressionAttributeValues, ConditionExpression=None, ReturnValues=None):
        self._check(Key["id"], ConditionExpression, "UpdateItem")
        item = self.items.setdefault(Key["id"], dict(Key))
        assert UpdateExpression.startswith("SET ")
        for assignment in UpdateExpression[len("SET "):].split(", "):
            name, value = assignment.split(" = ")
            item[ExpressionAttributeNames[name]] = copy.deepcopy(ExpressionAttributeValues[value])
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, Key, ConditionExpression=None):
        self._check(Key["id"], ConditionExpression, "DeleteItem")
        self.items.pop(Key["id"], None)

    def scan(self, FilterExpression=None, ExclusiveStartKey=None):
        items = [
            copy.deepcopy(item) for item in self.items.values()
            if FilterExpression is None or condition_matches(FilterExpression, item)
        ]
        return {"Items": items}


class FakeDynamoResource:
    def __init__(self):
        self.tables: Dict[str, FakeTable] = {}

    def Table(self, name: str) -> FakeTable:
        return self.tables.setdefault(name, FakeTable(name))


class FakeVerifier:
    """Maps bearer tokens straight to claims instead of checking signatures."""

    def __init__(self, tokens: Dict[str, Dict[str, Any]]):
        self.tokens = tokens

    async def verify(self, token: str) -> Dict[str, Any]:
        if token == "expired-token":
            raise TokenExpiredError("Token has expired")
        if token == "broken-token":
            raise RuntimeError("JWKS endpoint unreachable")
        if token not in self.tokens:
            raise InvalidTokenError("Unknown token")
        return self.tokens[token]


TOKENS = {
    "doctor-token": {"sub": "doctor-1", "email": "doctor@clinic.com", "token_use": "id"},
    "other-doctor-token": {"sub": "doctor-2", "email": "house@clinic.com", "token_use": "id"},
    "receptionist-token": {"sub": "receptionist-1", "email": "receptionist@clinic.com", "token_use": "id"},
    "newcomer-token": {"sub": "newcomer-1", "email": "new@clinic.com", "token_use": "id"},
}

PROFILES = {
    "doctor-1": {"name": "Dr. John Smith", "role": "doctor", "email": "doctor@clinic.com"},
    "doctor-2": {"name": "Dr. Gregory House", "role": "doctor", "email": "house@clinic.com"},
    "receptionist-1": {"name": "Sarah Johnson", "role": "receptionist", "email": "receptionist@clinic.com"},
}


def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store():
    return DocumentStore(FakeDynamoResource())


@pytest.fixture
def seeded_store(store):
    for user_id, profile in PROFILES.items():
        store.users.set(user_id, {**profile, "createdAt": "2024-01-01T00:00:00+00:00"})
    return store


@pytest.fixture
def user_pool():
    return MagicMock()


@pytest.fixture
def client(seeded_store, user_pool):
    app = create_app(store=seeded_store, verifier=FakeVerifier(TOKENS), user_pool=user_pool)
    return TestClient(app)


@pytest.fixture
def doctor():
    return auth("doctor-token")


@pytest.fixture
def other_doctor():
    return auth("other-doctor-token")


@pytest.fixture
def receptionist():
    return auth("receptionist-token")


@pytest.fixture
def patient(client, receptionist):
    """A registered patient, created through the API."""
    r = client.post("/api/patients", headers=receptionist, json={
        "name": "Jane Doe",
        "email": "JANE@X.COM",
        "phone": "555-0100",
        "address": "1 Main St",
        "dateOfBirth": "1990-04-12",
    })
    assert r.status_code == 201, r.text
    return r.json()["data"]
