"""
MongoDB-backed document storage module.

Each collection maps to a MongoDB collection of the same name. The
document `id` is stored as `_id` and stripped again on read.
"""
from __future__ import annotations

import logging
import os
import uuid
from typing import List, Mapping, Optional

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from edumanage.storage.records import (Collection, Document, clone,
                                       collection_name, merge_changes,
                                       stamp_new)

logger = logging.getLogger(__name__)

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "edumanage")

BACKEND_NAME = "mongodb"
COUNTERS_COLLECTION = "counters"

_client: Optional[MongoClient] = None


def _get_database():
    """Lazily connect and return the configured database."""
    global _client
    if _client is None:
        _client = MongoClient(MONGODB_URI, serverSelectionTimeoutMS=5000)
        logger.info(f"[MongoDB] Connected client for database {MONGODB_DB}")
    return _client[MONGODB_DB]


def _collection(collection: Collection | str):
    return _get_database()[collection_name(collection)]


def _to_mongo(document: Mapping) -> Document:
    stored = clone(document)
    stored["_id"] = stored["id"]
    return stored


def _from_mongo(document: Optional[Mapping]) -> Optional[Document]:
    if document is None:
        return None
    result = dict(document)
    result.pop("_id", None)
    return result


def generate_id() -> str:
    """Generate a new unique document ID."""
    return str(uuid.uuid4())


def insert(collection: Collection | str, document: Mapping) -> Document:
    """Insert a document and return the stored copy."""
    document_id = document.get("id") or generate_id()
    stored = stamp_new(document, document_id)
    _collection(collection).insert_one(_to_mongo(stored))
    return stored


def get(collection: Collection | str, document_id: str) -> Optional[Document]:
    """Retrieve a document by ID."""
    return _from_mongo(_collection(collection).find_one({"_id": document_id}))


def find(collection: Collection | str, filters: Optional[Mapping] = None) -> List[Document]:
    """Return every document matching the equality filters, oldest first."""
    cursor = _collection(collection).find(dict(filters or {})).sort("created_at", ASCENDING)
    return [_from_mongo(doc) for doc in cursor]


def find_one(collection: Collection | str, filters: Mapping) -> Optional[Document]:
    """Return the first matching document, or None."""
    return _from_mongo(_collection(collection).find_one(dict(filters), sort=[("created_at", ASCENDING)]))


def count(collection: Collection | str, filters: Optional[Mapping] = None) -> int:
    """Count documents matching the equality filters."""
    return _collection(collection).count_documents(dict(filters or {}))


def update(collection: Collection | str, document_id: str, changes: Mapping) -> Optional[Document]:
    """Merge changes into a document. Returns None if the ID is unknown."""
    merged = merge_changes({}, changes)
    updated = _collection(collection).find_one_and_update(
        {"_id": document_id},
        {"$set": merged},
        return_document=ReturnDocument.AFTER,
    )
    return _from_mongo(updated)


def delete(collection: Collection | str, document_id: str) -> bool:
    """Delete a document by ID. Returns True if deleted, False if not found."""
    return _collection(collection).delete_one({"_id": document_id}).deleted_count > 0


def next_counter(name: str) -> int:
    """Atomically increment a named counter and return its new value (first value is 1)."""
    counter = _collection(COUNTERS_COLLECTION).find_one_and_update(
        {"_id": name},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(counter["value"])


def reset() -> None:
    """Remove every document of every collection, counters included."""
    for collection in Collection:
        _collection(collection).delete_many({})
    _collection(COUNTERS_COLLECTION).delete_many({})


def ping() -> bool:
    """Check that the server answers."""
    try:
        _get_database().client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"[MongoDB] Ping failed: {e}")
        return False


def ensure_indexes() -> None:
    """Create the lookup indexes the services rely on."""
    _collection(Collection.USERS).create_index("email", unique=True)
    _collection(Collection.STUDENTS).create_index("is_admitted")
    _collection(Collection.STUDENTS).create_index("student_id")
    _collection(Collection.ENROLLMENTS).create_index([("student_id", ASCENDING), ("batch_id", ASCENDING)])
    _collection(Collection.PAYMENTS).create_index("student_id")
    _collection(Collection.ATTENDANCE).create_index(
        [("batch_id", ASCENDING), ("student_id", ASCENDING), ("date", ASCENDING)]
    )
    _collection(Collection.REFRESH_TOKENS).create_index("user_id")
