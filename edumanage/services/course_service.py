"""
Service layer for courses and their batches.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from edumanage.models import (Batch, BatchCreate, BatchStatus, BatchUpdate,
                              Course, CourseCreate, CourseLevel,
                              CourseUpdate, EnrollmentStatus)
from edumanage.services.common import (drop_nulls, matches_search,
                                       newest_first, next_sequence,
                                       to_document)
from edumanage.services.errors import (ConflictError, InvalidOperationError,
                                       NotFoundError)
from edumanage.storage import Collection, store

logger = logging.getLogger(__name__)

LIVE_BATCH_STATUSES = (BatchStatus.UPCOMING.value, BatchStatus.ONGOING.value)
REQUIRED_COURSE_FIELDS = ("name", "code", "level", "duration_weeks", "fee", "is_active", "syllabus")
REQUIRED_BATCH_FIELDS = (
    "name", "batch_code", "start_date", "end_date", "schedule", "max_students",
    "status", "total_sessions", "completed_sessions",
)


def _active_enrollments(**filters: str) -> int:
    return store.count(Collection.ENROLLMENTS, {**filters, "status": EnrollmentStatus.ACTIVE.value})


def _course_view(course: Dict[str, Any]) -> Course:
    batches = store.find(Collection.BATCHES, {"course_id": course["id"]})
    return Course.model_validate({
        **course,
        "enrolled_count": _active_enrollments(course_id=course["id"]),
        "active_batches": sum(1 for b in batches if b.get("status") in LIVE_BATCH_STATUSES),
    })


def _batch_view(batch: Dict[str, Any]) -> Batch:
    return Batch.model_validate({**batch, "current_students": _active_enrollments(batch_id=batch["id"])})


def _ensure_unique_code(code: str, exclude_id: Optional[str] = None) -> None:
    existing = store.find_one(Collection.COURSES, {"code": code})
    if existing and existing["id"] != exclude_id:
        raise ConflictError(f"Course code {code} is already in use")


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------

def list_courses(
    category: Optional[str] = None,
    level: Optional[CourseLevel] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> List[Course]:
    filters: Dict[str, Any] = {}
    if category:
        filters["category"] = category
    if level:
        filters["level"] = level.value
    if is_active is not None:
        filters["is_active"] = is_active
    courses = [
        doc for doc in newest_first(store.find(Collection.COURSES, filters))
        if matches_search(doc, search, ("name", "code", "description", "instructor"))
    ]
    return [_course_view(doc) for doc in courses]


def get_course_document(course_id: str) -> Optional[Dict[str, Any]]:
    return store.get(Collection.COURSES, course_id)


def get_course(course_id: str) -> Optional[Course]:
    course = get_course_document(course_id)
    return _course_view(course) if course else None


def create_course(request: CourseCreate) -> Course:
    document = to_document(request)
    document["code"] = document["code"].upper()
    _ensure_unique_code(document["code"])
    course = store.insert(Collection.COURSES, document)
    logger.info(f"Created course {course['code']} ({course['id']})")
    return _course_view(course)


def update_course(course_id: str, changes: CourseUpdate) -> Optional[Course]:
    if not get_course_document(course_id):
        return None
    updates = to_document(changes, exclude_unset=True)
    drop_nulls(updates, REQUIRED_COURSE_FIELDS)
    if "code" in updates:
        updates["code"] = updates["code"].upper()
        _ensure_unique_code(updates["code"], exclude_id=course_id)
    return _course_view(store.update(Collection.COURSES, course_id, updates))


def delete_course(course_id: str) -> bool:
    """Delete a course and its batches; refused while students are actively enrolled."""
    if not get_course_document(course_id):
        return False
    if _active_enrollments(course_id=course_id):
        raise ConflictError("Cannot delete a course with active enrollments")
    for batch in store.find(Collection.BATCHES, {"course_id": course_id}):
        store.delete(Collection.BATCHES, batch["id"])
    logger.info(f"Deleting course {course_id}")
    return store.delete(Collection.COURSES, course_id)


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------

def list_batches(course_id: str, status: Optional[BatchStatus] = None) -> List[Batch]:
    if not get_course_document(course_id):
        raise NotFoundError(f"Course {course_id} not found")
    filters: Dict[str, Any] = {"course_id": course_id}
    if status:
        filters["status"] = status.value
    batches = sorted(store.find(Collection.BATCHES, filters), key=lambda b: b["start_date"])
    return [_batch_view(doc) for doc in batches]


def create_batch(course_id: str, request: BatchCreate) -> Batch:
    course = get_course_document(course_id)
    if not course:
        raise NotFoundError(f"Course {course_id} not found")
    document = to_document(request)
    if not document.get("batch_code"):
        document["batch_code"] = next_sequence(f"batch_code:{course_id}", f"{course['code']}-B", width=2)
    document["course_id"] = course_id
    batch = store.insert(Collection.BATCHES, document)
    logger.info(f"Created batch {batch['batch_code']} for course {course['code']}")
    return _batch_view(batch)


def get_batch_document(batch_id: str) -> Optional[Dict[str, Any]]:
    return store.get(Collection.BATCHES, batch_id)


def get_batch(batch_id: str) -> Optional[Batch]:
    batch = get_batch_document(batch_id)
    return _batch_view(batch) if batch else None


def update_batch(batch_id: str, changes: BatchUpdate) -> Optional[Batch]:
    batch = get_batch_document(batch_id)
    if not batch:
        return None
    updates = to_document(changes, exclude_unset=True)
    drop_nulls(updates, REQUIRED_BATCH_FIELDS)
    merged = {**batch, **updates}
    if date.fromisoformat(merged["end_date"]) < date.fromisoformat(merged["start_date"]):
        raise InvalidOperationError("End date must be on or after the start date")
    if merged.get("start_time") and merged.get("end_time") and merged["end_time"] <= merged["start_time"]:
        raise InvalidOperationError("End time must be after the start time")
    if updates.get("max_students") is not None and updates["max_students"] < _active_enrollments(batch_id=batch_id):
        raise InvalidOperationError("Maximum students cannot be lower than the current enrollment")
    return _batch_view(store.update(Collection.BATCHES, batch_id, updates))


def delete_batch(batch_id: str) -> bool:
    if not get_batch_document(batch_id):
        return False
    if _active_enrollments(batch_id=batch_id):
        raise ConflictError("Cannot delete a batch with active enrollments")
    logger.info(f"Deleting batch {batch_id}")
    return store.delete(Collection.BATCHES, batch_id)
