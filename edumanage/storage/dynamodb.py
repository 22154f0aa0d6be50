"""
DynamoDB-backed document storage module.

All collections live in one table whose partition key is the collection
name (`_collection`) and whose sort key is the document `id`. Floats are
stored as Decimal and converted back on read.
"""
from __future__ import annotations

import logging
import os
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from edumanage.storage.records import (Collection, Document, collection_name,
                                       matches, merge_changes, stamp_new)

logger = logging.getLogger(__name__)

# DynamoDB setup
AWS_REGION = os.getenv("AWS_REGION", "us-east-2")
TABLE_NAME = os.getenv("DDB_TABLE_NAME", "edumanage_documents")
PARTITION_KEY = "_collection"
SORT_KEY = "id"
# Partition holding the named sequence counters
COUNTERS_PARTITION = "_counters"

BACKEND_NAME = "dynamodb"

dynamodb = boto3.resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

logger.info(f"[DynamoDB] Initialized - Table: {TABLE_NAME}, Region: {AWS_REGION}")


def generate_id() -> str:
    """Generate a new unique document ID."""
    return str(uuid.uuid4())


def _convert_floats_to_decimal(obj: Any) -> Any:
    """Recursively convert all float values to Decimal for DynamoDB compatibility."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_floats_to_decimal(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_floats_to_decimal(v) for v in obj]
    return obj


def _convert_decimals(obj: Any) -> Any:
    """Recursively turn Decimal values back into int or float."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    if isinstance(obj, dict):
        return {k: _convert_decimals(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_decimals(v) for v in obj]
    return obj


def _to_item(collection: Collection | str, document: Mapping) -> Dict[str, Any]:
    """Convert a document into a DynamoDB item."""
    item = _convert_floats_to_decimal(dict(document))
    item[PARTITION_KEY] = collection_name(collection)
    return item


def _from_item(item: Mapping) -> Document:
    """Convert a DynamoDB item back into a document."""
    document = _convert_decimals(dict(item))
    document.pop(PARTITION_KEY, None)
    return document


def _key(collection: Collection | str, document_id: str) -> Dict[str, str]:
    return {PARTITION_KEY: collection_name(collection), SORT_KEY: document_id}


def _query_collection(collection: Collection | str) -> List[Document]:
    """Read every item of a collection, following pagination."""
    kwargs: Dict[str, Any] = {
        "KeyConditionExpression": Key(PARTITION_KEY).eq(collection_name(collection)),
    }
    documents: List[Document] = []
    while True:
        response = table.query(**kwargs)
        documents.extend(_from_item(item) for item in response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            break
        kwargs["ExclusiveStartKey"] = last_key
    documents.sort(key=lambda doc: doc.get("created_at") or "")
    return documents


def insert(collection: Collection | str, document: Mapping) -> Document:
    """Insert a document and return the stored copy."""
    document_id = document.get("id") or generate_id()
    stored = stamp_new(document, document_id)
    table.put_item(Item=_to_item(collection, stored))
    return stored


def get(collection: Collection | str, document_id: str) -> Optional[Document]:
    """Retrieve a document by ID."""
    try:
        response = table.get_item(Key=_key(collection, document_id))
    except ClientError as e:
        logger.error(f"[DynamoDB] Error reading {collection_name(collection)}/{document_id}: {e}")
        raise
    item = response.get("Item")
    return _from_item(item) if item else None


def find(collection: Collection | str, filters: Optional[Mapping] = None) -> List[Document]:
    """Return every document matching the equality filters."""
    return [doc for doc in _query_collection(collection) if matches(doc, filters)]


def find_one(collection: Collection | str, filters: Mapping) -> Optional[Document]:
    """Return the first matching document, or None."""
    results = find(collection, filters)
    return results[0] if results else None


def count(collection: Collection | str, filters: Optional[Mapping] = None) -> int:
    """Count documents matching the equality filters."""
    return len(find(collection, filters))


def update(collection: Collection | str, document_id: str, changes: Mapping) -> Optional[Document]:
    """Merge changes into a document. Returns None if the ID is unknown."""
    existing = get(collection, document_id)
    if existing is None:
        return None
    merged = merge_changes(existing, changes)
    table.put_item(Item=_to_item(collection, merged))
    return merged


def delete(collection: Collection | str, document_id: str) -> bool:
    """Delete a document by ID. Returns True if deleted, False if not found."""
    response = table.delete_item(Key=_key(collection, document_id), ReturnValues="ALL_OLD")
    return "Attributes" in response


def next_counter(name: str) -> int:
    """Atomically increment a named counter and return its new value (first value is 1)."""
    response = table.update_item(
        Key=_key(COUNTERS_PARTITION, name),
        UpdateExpression="ADD #value :one",
        ExpressionAttributeNames={"#value": "value"},
        ExpressionAttributeValues={":one": 1},
        ReturnValues="UPDATED_NEW",
    )
    return int(response["Attributes"]["value"])


def reset() -> None:
    """Delete every document of every collection, counters included."""
    with table.batch_writer() as batch:
        for collection in [*Collection, COUNTERS_PARTITION]:
            for document in _query_collection(collection):
                batch.delete_item(Key=_key(collection, document["id"]))


def ping() -> bool:
    """Check that the table is reachable."""
    try:
        table.load()
        return True
    except ClientError as e:
        logger.warning(f"[DynamoDB] Table {TABLE_NAME} unavailable: {e}")
        return False


def create_table() -> None:
    """Create the documents table (on-demand billing)."""
    dynamodb.create_table(
        TableName=TABLE_NAME,
        KeySchema=[
            {"AttributeName": PARTITION_KEY, "KeyType": "HASH"},
            {"AttributeName": SORT_KEY, "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": PARTITION_KEY, "AttributeType": "S"},
            {"AttributeName": SORT_KEY, "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    table.wait_until_exists()
