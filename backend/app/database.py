# app/database.py
#
# This module wraps the DynamoDB tables behind a small document-store
# interface: collections of documents addressed by generated id, with
# get/set/update/delete, equality filters and ordering by a field.
# The store is built explicitly (see `DocumentStore.from_env`) and injected
# into the routers, so tests can pass in a fake resource.

import os
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError
from fastapi import Request

# --- DynamoDB Configuration ---
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
DYNAMODB_ENDPOINT_URL = os.getenv("DYNAMODB_ENDPOINT_URL")

USERS_TABLE_NAME = os.getenv("USERS_TABLE_NAME", "Users")
PATIENTS_TABLE_NAME = os.getenv("PATIENTS_TABLE_NAME", "Patients")
PRESCRIPTIONS_TABLE_NAME = os.getenv("PRESCRIPTIONS_TABLE_NAME", "Prescriptions")
BILLS_TABLE_NAME = os.getenv("BILLS_TABLE_NAME", "Bills")

TABLE_NAMES = {
    "users": USERS_TABLE_NAME,
    "patients": PATIENTS_TABLE_NAME,
    "prescriptions": PRESCRIPTIONS_TABLE_NAME,
    "bills": BILLS_TABLE_NAME,
}


class ConditionFailed(Exception):
    """A conditional write found the document missing or in an unexpected state."""


def to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; numbers are written as Decimal."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _is_condition_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _condition(doc_exists: bool, expected: Optional[Dict[str, Any]]):
    condition = Attr("id").exists() if doc_exists else Attr("id").not_exists()
    for field, value in (expected or {}).items():
        condition = condition & Attr(field).eq(to_dynamo(value))
    return condition


class Collection:
    """One DynamoDB table, keyed by a string `id`."""

    def __init__(self, name: str, table):
        self.name = name
        self.table = table

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        print(f"DB Read: Fetching {self.name}/{doc_id}")
        item = self.table.get_item(Key={"id": doc_id}).get("Item")
        if not item:
            print(f"DB Read: {self.name}/{doc_id} not found")
            return None
        return from_dynamo(item)

    def add(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Inserts a new document under a generated id and returns it."""
        document = {**data, "id": str(uuid.uuid4())}
        self.table.put_item(Item=to_dynamo(document))
        print(f"DB Write: Created {self.name}/{document['id']}")
        return document

    def set(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Writes a document under a caller-chosen id, replacing any existing one."""
        document = {**data, "id": doc_id}
        self.table.put_item(Item=to_dynamo(document))
        print(f"DB Write: Stored {self.name}/{doc_id}")
        return document

    def create(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Writes a document under a caller-chosen id, failing if it already exists."""
        document = {**data, "id": doc_id}
        try:
            self.table.put_item(
                Item=to_dynamo(document),
                ConditionExpression=_condition(False, None),
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise ConditionFailed(f"{self.name}/{doc_id} already exists")
            raise
        print(f"DB Write: Created {self.name}/{doc_id}")
        return document

    def update(
        self,
        doc_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Sets the given fields on an existing document and returns the full
        updated document. `expected` adds equality preconditions that must
        still hold at write time.
        """
        names = {}
        values = {}
        assignments = []
        for index, (field, value) in enumerate(fields.items()):
            names[f"#f{index}"] = field
            values[f":v{index}"] = to_dynamo(value)
            assignments.append(f"#f{index} = :v{index}")

        try:
            response = self.table.update_item(
                Key={"id": doc_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression=_condition(True, expected),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise ConditionFailed(f"{self.name}/{doc_id} is missing or changed")
            raise
        print(f"DB Write: Updated {self.name}/{doc_id} fields {sorted(fields)}")
        return from_dynamo(response.get("Attributes", {}))

    def delete(self, doc_id: str, expected: Optional[Dict[str, Any]] = None) -> None:
        try:
            self.table.delete_item(
                Key={"id": doc_id},
                ConditionExpression=_condition(True, expected),
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise ConditionFailed(f"{self.name}/{doc_id} is missing or changed")
            raise
        print(f"DB Write: Deleted {self.name}/{doc_id}")

    def where(
        self,
        order_by: Optional[str] = None,
        descending: bool = False,
        **equals: Any,
    ) -> List[Dict[str, Any]]:
        """
        Returns every document whose fields equal the given values, optionally
        ordered by one field.
        NOTE: This uses a scan, which reads the whole table. Fine for a
              single clinic; a larger deployment needs GSIs per filter.
        """
        scan_args: Dict[str, Any] = {}
        if equals:
            condition = None
            for field, value in equals.items():
                clause = Attr(field).eq(to_dynamo(value))
                condition = clause if condition is None else condition & clause
            scan_args["FilterExpression"] = condition

        items = []
        while True:
            response = self.table.scan(**scan_args)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            scan_args["ExclusiveStartKey"] = last_key

        documents = [from_dynamo(item) for item in items]
        if order_by:
            documents.sort(key=lambda d: d.get(order_by) or "", reverse=descending)
        print(f"DB Read: Scanned {self.name} filter={equals or {}} -> {len(documents)} items")
        return documents

    def all(self, order_by: Optional[str] = None, descending: bool = False) -> List[Dict[str, Any]]:
        return self.where(order_by=order_by, descending=descending)


class DocumentStore:
    """Gives access to the application's collections on one DynamoDB resource."""

    def __init__(self, dynamodb, table_names: Optional[Dict[str, str]] = None):
        names = {**TABLE_NAMES, **(table_names or {})}
        self.users = Collection("users", dynamodb.Table(names["users"]))
        self.patients = Collection("patients", dynamodb.Table(names["patients"]))
        self.prescriptions = Collection("prescriptions", dynamodb.Table(names["prescriptions"]))
        self.bills = Collection("bills", dynamodb.Table(names["bills"]))

    @classmethod
    def from_env(cls) -> "DocumentStore":
        dynamodb = boto3.resource(
            "dynamodb",
            region_name=AWS_REGION,
            endpoint_url=DYNAMODB_ENDPOINT_URL,
        )
        return cls(dynamodb)


def get_store(request: Request) -> DocumentStore:
    """Dependency returning the app's store, built from the environment on first use."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = DocumentStore.from_env()
        request.app.state.store = store
    return store
