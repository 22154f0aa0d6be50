"""
Service layer for admitted students: admission numbering, profile updates,
bulk changes, fee summaries and notifications.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from edumanage.models import (Attendance, BulkUpdateRequest, BulkUpdateResult,
                              DueDateStatus, Enrollment, EnrollmentStatus,
                              FeeStatus, FeeSummary, LeadStatus,
                              NotificationResult, Page, Payment,
                              PaymentStatus, Student, StudentCreate,
                              StudentStats, StudentStatus, StudentUpdate)
from edumanage.services.common import (DEFAULT_LIMIT, DEFAULT_PAGE,
                                       drop_nulls, matches_search,
                                       newest_first, next_sequence, paginate,
                                       parse_date, to_csv, to_document, today)
from edumanage.services.errors import ConflictError, NotFoundError
from edumanage.services.mailer import send_mail
from edumanage.storage import Collection, store
from edumanage.storage.records import utc_now_iso

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "email", "phone", "student_id")
REQUIRED_FIELDS = ("name", "email", "phone", "payment_plan")
EXPORT_COLUMNS = (
    "student_id", "name", "email", "phone", "enrollment_status", "gender", "date_of_birth",
    "city", "state", "parent_name", "parent_phone", "admitted_at",
)
DUE_SOON_DAYS = 7


def next_student_code(year: Optional[int] = None) -> str:
    """Next admission number for the year, STU-<year>-<NNNN>."""
    year = year or today().year
    prefix = f"STU-{year}-"
    return next_sequence(f"student_code:{year}", prefix)


def _require_student(student_id: str) -> Dict[str, Any]:
    student = store.get(Collection.STUDENTS, student_id)
    if not student or not student.get("is_admitted"):
        raise NotFoundError(f"Student {student_id} not found")
    return student


def _get_student_document(student_id: str) -> Optional[Dict[str, Any]]:
    student = store.get(Collection.STUDENTS, student_id)
    return student if student and student.get("is_admitted") else None


def admit(document: Dict[str, Any], details: Optional[Dict[str, Any]] = None) -> Student:
    """Turn a lead document into a student record in place."""
    changes = dict(details or {})
    changes.update({
        "is_admitted": True,
        "status": LeadStatus.CONVERTED.value,
        "student_id": next_student_code(),
        "enrollment_status": StudentStatus.ACTIVE.value,
        "admitted_at": utc_now_iso(),
        "remind": False,
    })
    student = store.update(Collection.STUDENTS, document["id"], changes)
    logger.info(f"Admitted {student['id']} as {student['student_id']}")
    return Student.model_validate(student)


def _enrolled_student_ids(course_id: Optional[str], batch_id: Optional[str]) -> set:
    filters = {}
    if course_id:
        filters["course_id"] = course_id
    if batch_id:
        filters["batch_id"] = batch_id
    return {e["student_id"] for e in store.find(Collection.ENROLLMENTS, filters)}


def list_students(
    status: Optional[StudentStatus] = None,
    search: Optional[str] = None,
    course_id: Optional[str] = None,
    batch_id: Optional[str] = None,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
) -> Page[Student]:
    filters: Dict[str, Any] = {"is_admitted": True}
    if status:
        filters["enrollment_status"] = status.value
    students = [
        doc for doc in newest_first(store.find(Collection.STUDENTS, filters))
        if matches_search(doc, search, SEARCH_FIELDS)
    ]
    if course_id or batch_id:
        enrolled = _enrolled_student_ids(course_id, batch_id)
        students = [doc for doc in students if doc["id"] in enrolled]
    items, total, page, limit = paginate(students, page, limit)
    return Page[Student](items=[Student.model_validate(doc) for doc in items], total=total, page=page, limit=limit)


def search_students(query: str, limit: int = 20) -> List[Student]:
    if not query or not query.strip():
        return []
    found = [
        doc for doc in newest_first(store.find(Collection.STUDENTS, {"is_admitted": True}))
        if matches_search(doc, query, SEARCH_FIELDS)
    ]
    return [Student.model_validate(doc) for doc in found[:limit]]


def get_student(student_id: str) -> Optional[Student]:
    student = _get_student_document(student_id)
    return Student.model_validate(student) if student else None


def create_student(request: StudentCreate, created_by: Optional[str] = None) -> Student:
    """Direct admission without a prior lead."""
    if store.find_one(Collection.STUDENTS, {"email": request.email}):
        raise ConflictError("A lead or student with this email already exists")
    document = to_document(request)
    document.update({
        "is_admitted": False,
        "status": LeadStatus.NEW.value,
        "reply": None,
        "remind": False,
        "assigned_to": None,
        "follow_up_date": None,
        "notes": [],
        "communications": [],
        "follow_ups": [],
        "created_by": created_by,
    })
    lead = store.insert(Collection.STUDENTS, document)
    return admit(lead)


def update_student(student_id: str, changes: StudentUpdate) -> Optional[Student]:
    student = _get_student_document(student_id)
    if not student:
        return None
    updates = to_document(changes, exclude_unset=True)
    if updates.get("payment_plan"):
        # paid amount is maintained by recorded payments
        updates["payment_plan"]["paid_amount"] = (student.get("payment_plan") or {}).get("paid_amount", 0)
    drop_nulls(updates, REQUIRED_FIELDS)
    if updates.get("email"):
        other = store.find_one(Collection.STUDENTS, {"email": updates["email"]})
        if other and other["id"] != student_id:
            raise ConflictError("A lead or student with this email already exists")
    return Student.model_validate(store.update(Collection.STUDENTS, student_id, updates))


def delete_student(student_id: str) -> bool:
    """Delete a student with its enrollments and attendance; refused once payments exist."""
    if not _get_student_document(student_id):
        return False
    if store.count(Collection.PAYMENTS, {"student_id": student_id}):
        raise ConflictError("Cannot delete a student with recorded payments")
    for enrollment in store.find(Collection.ENROLLMENTS, {"student_id": student_id}):
        store.delete(Collection.ENROLLMENTS, enrollment["id"])
    for record in store.find(Collection.ATTENDANCE, {"student_id": student_id}):
        store.delete(Collection.ATTENDANCE, record["id"])
    logger.info(f"Deleting student {student_id}")
    return store.delete(Collection.STUDENTS, student_id)


def update_status(student_id: str, status: StudentStatus) -> Optional[Student]:
    if not _get_student_document(student_id):
        return None
    return Student.model_validate(
        store.update(Collection.STUDENTS, student_id, {"enrollment_status": status.value})
    )


def bulk_update(request: BulkUpdateRequest) -> BulkUpdateResult:
    changes = request.update_data.model_dump(mode="json", exclude_none=True)
    updated = 0
    not_found: List[str] = []
    for student_id in dict.fromkeys(request.student_ids):
        if not _get_student_document(student_id):
            not_found.append(student_id)
            continue
        if changes:
            store.update(Collection.STUDENTS, student_id, changes)
        updated += 1
    logger.info(f"Bulk updated {updated} student(s), {len(not_found)} not found")
    return BulkUpdateResult(updated=updated, not_found=not_found)


# ---------------------------------------------------------------------------
# Related records
# ---------------------------------------------------------------------------

def list_enrollments(student_id: str) -> List[Enrollment]:
    _require_student(student_id)
    enrollments = newest_first(store.find(Collection.ENROLLMENTS, {"student_id": student_id}))
    return [Enrollment.model_validate(doc) for doc in enrollments]


def list_payments(student_id: str) -> List[Payment]:
    _require_student(student_id)
    payments = newest_first(store.find(Collection.PAYMENTS, {"student_id": student_id}))
    return [Payment.model_validate(doc) for doc in payments]


def list_attendance(student_id: str) -> List[Attendance]:
    _require_student(student_id)
    records = sorted(store.find(Collection.ATTENDANCE, {"student_id": student_id}), key=lambda doc: doc["date"])
    return [Attendance.model_validate(doc) for doc in records]


def _fee_totals(student: Dict[str, Any]) -> tuple[float, float]:
    """(total fees, amount paid) for a student document."""
    enrollments = [
        e for e in store.find(Collection.ENROLLMENTS, {"student_id": student["id"]})
        if e.get("status") != EnrollmentStatus.DROPPED.value
    ]
    if enrollments:
        total = sum(float(e.get("final_amount") or 0) for e in enrollments)
    else:
        total = float((student.get("payment_plan") or {}).get("total_fees") or 0)
    paid = sum(
        float(p["amount"])
        for p in store.find(Collection.PAYMENTS, {"student_id": student["id"]})
        if p.get("status") == PaymentStatus.COMPLETED.value
    )
    return round(total, 2), round(paid, 2)


def due_date_status(due_date: date, reference: Optional[date] = None) -> DueDateStatus:
    """Classify a due date as overdue, due soon (within a week) or upcoming."""
    days = (due_date - (reference or today())).days
    if days < 0:
        return DueDateStatus(status="overdue", days=-days)
    if days <= DUE_SOON_DAYS:
        return DueDateStatus(status="soon", days=days)
    return DueDateStatus(status="upcoming", days=days)


def fee_summary(student_id: str) -> FeeSummary:
    student = _require_student(student_id)
    total, paid = _fee_totals(student)
    due = round(max(total - paid, 0), 2)
    due_date = parse_date((student.get("payment_plan") or {}).get("due_date"))

    if due <= 0:
        fee_status = FeeStatus.PAID
    elif due_date and due_date < today():
        fee_status = FeeStatus.OVERDUE
    else:
        fee_status = FeeStatus.PENDING

    return FeeSummary(
        student_id=student_id,
        total_fees=total,
        paid_amount=paid,
        due_amount=due,
        paid_percentage=min(round(paid / total * 100), 100) if total else 0,
        fee_status=fee_status,
        due_date=due_date,
        due_date_status=due_date_status(due_date) if due_date and due > 0 else None,
        payments=list_payments(student_id),
    )


def notify(student_id: str, subject: str, message: str) -> NotificationResult:
    student = _require_student(student_id)
    sent = send_mail(student["email"], subject, message)
    return NotificationResult(sent=sent, recipient=student["email"])


# ---------------------------------------------------------------------------
# Stats and export
# ---------------------------------------------------------------------------

def get_stats() -> StudentStats:
    students = store.find(Collection.STUDENTS, {"is_admitted": True})
    month = today().strftime("%Y-%m")
    outstanding = 0
    for student in students:
        total, paid = _fee_totals(student)
        if total - paid > 0:
            outstanding += 1
    return StudentStats(
        total=len(students),
        by_status=dict(Counter(s.get("enrollment_status") or StudentStatus.ACTIVE.value for s in students)),
        admitted_this_month=sum(1 for s in students if (s.get("admitted_at") or "").startswith(month)),
        with_outstanding_fees=outstanding,
    )


def export_csv(status: Optional[StudentStatus] = None, search: Optional[str] = None) -> str:
    filters: Dict[str, Any] = {"is_admitted": True}
    if status:
        filters["enrollment_status"] = status.value
    students = [
        doc for doc in newest_first(store.find(Collection.STUDENTS, filters))
        if matches_search(doc, search, SEARCH_FIELDS)
    ]
    return to_csv(students, EXPORT_COLUMNS)
