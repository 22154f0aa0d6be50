"""
Service layer for attendance marks.

Present and late marks count as attended sessions on the student's
enrollment in the batch.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from edumanage.models import (Attendance, AttendanceCreate, AttendanceStats,
                              AttendanceStatus, AttendanceUpdate,
                              BulkAttendanceRequest, BulkAttendanceResult,
                              EnrollmentStatus)
from edumanage.services import enrollment_service
from edumanage.services.common import drop_nulls, percentage, to_document
from edumanage.services.errors import (ConflictError, InvalidOperationError,
                                       NotFoundError)
from edumanage.storage import Collection, store

logger = logging.getLogger(__name__)

ATTENDED = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


def _counts(status: Optional[str]) -> int:
    return 1 if status in ATTENDED else 0


def _check_markable(batch_id: str, student_id: str) -> None:
    if not store.get(Collection.BATCHES, batch_id):
        raise NotFoundError(f"Batch {batch_id} not found")
    student = store.get(Collection.STUDENTS, student_id)
    if not student or not student.get("is_admitted"):
        raise NotFoundError(f"Student {student_id} not found")
    enrollment = store.find_one(Collection.ENROLLMENTS, {
        "student_id": student_id,
        "batch_id": batch_id,
        "status": EnrollmentStatus.ACTIVE.value,
    })
    if not enrollment:
        raise InvalidOperationError("Student is not actively enrolled in this batch")


def _existing(batch_id: str, student_id: str, day: str) -> Optional[Dict[str, Any]]:
    return store.find_one(Collection.ATTENDANCE, {"batch_id": batch_id, "student_id": student_id, "date": day})


def mark_attendance(request: AttendanceCreate, marked_by: Optional[str] = None) -> Attendance:
    _check_markable(request.batch_id, request.student_id)
    document = to_document(request)
    if _existing(request.batch_id, request.student_id, document["date"]):
        raise ConflictError("Attendance already marked for this student on this date")
    document["marked_by"] = marked_by
    record = store.insert(Collection.ATTENDANCE, document)
    if _counts(record["status"]):
        enrollment_service.adjust_attended_sessions(record["student_id"], record["batch_id"], 1)
    return Attendance.model_validate(record)


def mark_bulk(request: BulkAttendanceRequest, marked_by: Optional[str] = None) -> BulkAttendanceResult:
    """
    Mark a whole batch for one date.

    Students already marked for the date (or listed twice) are skipped.
    Every remaining entry is checked before anything is written, so one
    unmarkable student rejects the request without partial marks.
    """
    if not store.get(Collection.BATCHES, request.batch_id):
        raise NotFoundError(f"Batch {request.batch_id} not found")
    result = BulkAttendanceResult()
    pending = []
    seen = set()
    for entry in request.entries:
        if entry.student_id in seen or _existing(request.batch_id, entry.student_id, request.date.isoformat()):
            result.skipped.append(entry.student_id)
            continue
        seen.add(entry.student_id)
        _check_markable(request.batch_id, entry.student_id)
        pending.append(entry)

    for entry in pending:
        result.created.append(mark_attendance(
            AttendanceCreate(
                batch_id=request.batch_id,
                student_id=entry.student_id,
                date=request.date,
                status=entry.status,
                remarks=entry.remarks,
            ),
            marked_by,
        ))
    logger.info(f"Marked {len(result.created)} attendance record(s) for batch {request.batch_id} on {request.date}")
    return result


def list_attendance(
    batch_id: Optional[str] = None,
    student_id: Optional[str] = None,
    day: Optional[date] = None,
    status: Optional[AttendanceStatus] = None,
) -> List[Attendance]:
    filters: Dict[str, Any] = {}
    if batch_id:
        filters["batch_id"] = batch_id
    if student_id:
        filters["student_id"] = student_id
    if day:
        filters["date"] = day.isoformat()
    if status:
        filters["status"] = status.value
    records = sorted(store.find(Collection.ATTENDANCE, filters), key=lambda doc: doc["date"], reverse=True)
    return [Attendance.model_validate(doc) for doc in records]


def get_attendance(record_id: str) -> Optional[Attendance]:
    record = store.get(Collection.ATTENDANCE, record_id)
    return Attendance.model_validate(record) if record else None


def update_attendance(record_id: str, changes: AttendanceUpdate) -> Optional[Attendance]:
    record = store.get(Collection.ATTENDANCE, record_id)
    if not record:
        return None
    updates = drop_nulls(to_document(changes, exclude_unset=True), ("status",))
    updated = store.update(Collection.ATTENDANCE, record_id, updates)
    delta = _counts(updated["status"]) - _counts(record["status"])
    if delta:
        enrollment_service.adjust_attended_sessions(record["student_id"], record["batch_id"], delta)
    return Attendance.model_validate(updated)


def delete_attendance(record_id: str) -> bool:
    record = store.get(Collection.ATTENDANCE, record_id)
    if not record:
        return False
    if _counts(record["status"]):
        enrollment_service.adjust_attended_sessions(record["student_id"], record["batch_id"], -1)
    return store.delete(Collection.ATTENDANCE, record_id)


def get_stats(batch_id: Optional[str] = None, student_id: Optional[str] = None) -> AttendanceStats:
    filters: Dict[str, Any] = {}
    if batch_id:
        filters["batch_id"] = batch_id
    if student_id:
        filters["student_id"] = student_id
    records = store.find(Collection.ATTENDANCE, filters)
    counts = {status.value: 0 for status in AttendanceStatus}
    for record in records:
        counts[record["status"]] = counts.get(record["status"], 0) + 1
    attended = counts[AttendanceStatus.PRESENT.value] + counts[AttendanceStatus.LATE.value]
    return AttendanceStats(
        total=len(records),
        present=counts[AttendanceStatus.PRESENT.value],
        absent=counts[AttendanceStatus.ABSENT.value],
        late=counts[AttendanceStatus.LATE.value],
        excused=counts[AttendanceStatus.EXCUSED.value],
        attendance_rate=percentage(attended, len(records)),
    )
