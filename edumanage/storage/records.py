"""
Collection names and document helpers shared by every storage backend.

Documents are plain JSON-compatible dictionaries. Each backend stores a
copy of what it receives and hands out copies, so callers never share
mutable state with the store.
"""
from __future__ import annotations

import copy
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

Document = Dict[str, Any]


class Collection(str, Enum):
    """Named document collections."""
    USERS = "users"
    STUDENTS = "students"  # leads and admitted students share one collection
    COURSES = "courses"
    BATCHES = "batches"
    ENROLLMENTS = "enrollments"
    PAYMENTS = "payments"
    CONTENT = "content"
    ATTENDANCE = "attendance"
    REFRESH_TOKENS = "refresh_tokens"
    PASSWORD_RESETS = "password_resets"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def collection_name(collection: Collection | str) -> str:
    """Return the raw collection name for an enum member or a string."""
    return collection.value if isinstance(collection, Collection) else str(collection)


def matches(document: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    """True when every filter key equals the document's top-level field."""
    if not filters:
        return True
    return all(document.get(key) == value for key, value in filters.items())


def clone(document: Mapping[str, Any]) -> Document:
    """Deep copy a document so the store and its callers stay independent."""
    return copy.deepcopy(dict(document))


def stamp_new(document: Mapping[str, Any], document_id: str) -> Document:
    """Copy a document and fill in its id and timestamps."""
    stored = clone(document)
    now = utc_now_iso()
    stored["id"] = document_id
    stored.setdefault("created_at", now)
    stored["updated_at"] = now
    return stored


def merge_changes(document: Mapping[str, Any], changes: Mapping[str, Any]) -> Document:
    """Apply top-level changes and refresh updated_at. The id never changes."""
    merged = clone(document)
    for key, value in changes.items():
        if key in ("id", "created_at"):
            continue
        merged[key] = copy.deepcopy(value)
    merged["updated_at"] = utc_now_iso()
    return merged
