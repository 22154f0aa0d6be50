"""
In-memory document storage module.

Provides CRUD operations and equality queries over named collections
using in-memory dictionaries.

This module is intended for testing, development, or ephemeral storage
where persistence is not required.
"""
from __future__ import annotations

import threading
import uuid
from typing import Dict, List, Mapping, Optional

from edumanage.storage.records import (Collection, Document, clone,
                                       collection_name, matches,
                                       merge_changes, stamp_new)

# ---------------------------------------------------------------------------
# In-memory stores separated by collection
# ---------------------------------------------------------------------------

_COLLECTIONS: Dict[str, Dict[str, Document]] = {
    collection.value: {} for collection in Collection
}

# Named sequences (receipt numbers, student codes, ...)
_COUNTERS: Dict[str, int] = {}
_counter_lock = threading.Lock()

BACKEND_NAME = "memory"


# ---------------------------------------------------------------------------
# Internal utilities
# ---------------------------------------------------------------------------

def generate_id() -> str:
    """Generate a new unique document ID."""
    return str(uuid.uuid4())


def _get_store(collection: Collection | str) -> Dict[str, Document]:
    """Get the dictionary backing a collection, creating it on first use."""
    return _COLLECTIONS.setdefault(collection_name(collection), {})


# ---------------------------------------------------------------------------
# CRUD helpers
# ---------------------------------------------------------------------------

def insert(collection: Collection | str, document: Mapping) -> Document:
    """Insert a document and return the stored copy."""
    document_id = document.get("id") or generate_id()
    stored = stamp_new(document, document_id)
    _get_store(collection)[document_id] = stored
    return clone(stored)


def get(collection: Collection | str, document_id: str) -> Optional[Document]:
    """Retrieve a document by ID."""
    stored = _get_store(collection).get(document_id)
    return clone(stored) if stored is not None else None


def find(collection: Collection | str, filters: Optional[Mapping] = None) -> List[Document]:
    """Return every document matching the equality filters, in insertion order."""
    return [clone(doc) for doc in _get_store(collection).values() if matches(doc, filters)]


def find_one(collection: Collection | str, filters: Mapping) -> Optional[Document]:
    """Return the first matching document, or None."""
    for doc in _get_store(collection).values():
        if matches(doc, filters):
            return clone(doc)
    return None


def count(collection: Collection | str, filters: Optional[Mapping] = None) -> int:
    """Count documents matching the equality filters."""
    return sum(1 for doc in _get_store(collection).values() if matches(doc, filters))


def update(collection: Collection | str, document_id: str, changes: Mapping) -> Optional[Document]:
    """Merge changes into a document. Returns None if the ID is unknown."""
    store = _get_store(collection)
    existing = store.get(document_id)
    if existing is None:
        return None
    store[document_id] = merge_changes(existing, changes)
    return clone(store[document_id])


def delete(collection: Collection | str, document_id: str) -> bool:
    """Delete a document by ID. Returns True if deleted, False if not found."""
    store = _get_store(collection)
    if document_id not in store:
        return False
    del store[document_id]
    return True


def next_counter(name: str) -> int:
    """Atomically increment a named counter and return its new value (first value is 1)."""
    with _counter_lock:
        value = _COUNTERS.get(name, 0) + 1
        _COUNTERS[name] = value
        return value


def reset() -> None:
    """Clear all in-memory collections and counters."""
    for store in _COLLECTIONS.values():
        store.clear()
    with _counter_lock:
        _COUNTERS.clear()


def ping() -> bool:
    """The in-memory store is always reachable."""
    return True
