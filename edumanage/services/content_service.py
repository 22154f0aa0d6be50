"""
Service layer for course content (videos, documents, assignments, links).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from edumanage.models import (Content, ContentCreate, ContentType,
                              ContentUpdate, ShareRequest)
from edumanage.services.common import (drop_nulls, matches_search,
                                       newest_first, to_document)
from edumanage.services.errors import NotFoundError
from edumanage.storage import Collection, store
from edumanage.storage.s3 import generate_presigned_download_url

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "type", "tags", "visibility")


def _check_links(course_id: Optional[str], batch_id: Optional[str]) -> None:
    if course_id and not store.get(Collection.COURSES, course_id):
        raise NotFoundError(f"Course {course_id} not found")
    if batch_id and not store.get(Collection.BATCHES, batch_id):
        raise NotFoundError(f"Batch {batch_id} not found")


def list_content(
    content_type: Optional[ContentType] = None,
    course_id: Optional[str] = None,
    batch_id: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Content]:
    filters: Dict[str, Any] = {}
    if content_type:
        filters["type"] = content_type.value
    if course_id:
        filters["course_id"] = course_id
    if batch_id:
        filters["batch_id"] = batch_id
    items = newest_first(store.find(Collection.CONTENT, filters))
    if tag:
        wanted = tag.strip().lower()
        items = [doc for doc in items if wanted in (t.lower() for t in doc.get("tags", []))]
    items = [doc for doc in items if matches_search(doc, search, ("title", "description"))]
    return [Content.model_validate(doc) for doc in items]


def get_content(content_id: str) -> Optional[Content]:
    content = store.get(Collection.CONTENT, content_id)
    return Content.model_validate(content) if content else None


def create_content(request: ContentCreate, uploaded_by: Optional[str] = None) -> Content:
    _check_links(request.course_id, request.batch_id)
    document = to_document(request)
    document.update({
        "uploaded_by": uploaded_by,
        "access_count": 0,
        "shared_with_users": [],
        "shared_with_batches": [],
    })
    content = store.insert(Collection.CONTENT, document)
    logger.info(f"Created {content['type']} content {content['id']}: {content['title']}")
    return Content.model_validate(content)


def update_content(content_id: str, changes: ContentUpdate) -> Optional[Content]:
    if not store.get(Collection.CONTENT, content_id):
        return None
    updates = drop_nulls(to_document(changes, exclude_unset=True), REQUIRED_FIELDS)
    _check_links(updates.get("course_id"), updates.get("batch_id"))
    return Content.model_validate(store.update(Collection.CONTENT, content_id, updates))


def delete_content(content_id: str) -> bool:
    logger.info(f"Deleting content {content_id}")
    return store.delete(Collection.CONTENT, content_id)


def share_content(content_id: str, request: ShareRequest) -> Content:
    """Share with users and/or batches. Every id must exist."""
    content = store.get(Collection.CONTENT, content_id)
    if not content:
        raise NotFoundError(f"Content {content_id} not found")
    for user_id in request.user_ids:
        if not store.get(Collection.USERS, user_id):
            raise NotFoundError(f"User {user_id} not found")
    for batch_id in request.batch_ids:
        if not store.get(Collection.BATCHES, batch_id):
            raise NotFoundError(f"Batch {batch_id} not found")

    users = list(dict.fromkeys(content.get("shared_with_users", []) + request.user_ids))
    batches = list(dict.fromkeys(content.get("shared_with_batches", []) + request.batch_ids))
    updated = store.update(Collection.CONTENT, content_id, {
        "shared_with_users": users,
        "shared_with_batches": batches,
    })
    logger.info(f"Shared content {content_id} with {len(request.user_ids)} user(s), {len(request.batch_ids)} batch(es)")
    return Content.model_validate(updated)


def resolve_download_url(content_id: str) -> str:
    """
    Count an access and return where the file can be fetched: a pre-signed
    bucket URL when the content has a storage key, else its file URL.
    """
    content = store.get(Collection.CONTENT, content_id)
    if not content:
        raise NotFoundError(f"Content {content_id} not found")

    url = None
    if content.get("storage_key"):
        url = generate_presigned_download_url(content["storage_key"])
    url = url or content.get("file_url")
    if not url:
        raise NotFoundError("No file is attached to this content")

    store.update(Collection.CONTENT, content_id, {"access_count": int(content.get("access_count") or 0) + 1})
    return url
