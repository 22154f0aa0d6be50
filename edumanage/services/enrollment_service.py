"""
Service layer for enrollments: a student's seat in a course batch with its
fee, discount and running paid amount.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from edumanage.models import (BatchStatus, Enrollment, EnrollmentCreate,
                              EnrollmentStatus, EnrollmentUpdate,
                              PaymentStatus)
from edumanage.services import student_service
from edumanage.services.common import newest_first, today
from edumanage.services.errors import (ConflictError, InvalidOperationError,
                                       NotFoundError)
from edumanage.storage import Collection, store

logger = logging.getLogger(__name__)

CLOSED_BATCH_STATUSES = (BatchStatus.COMPLETED.value, BatchStatus.CANCELLED.value)


def _money(value: float) -> float:
    return round(float(value), 2)


def check_enrollable(student_doc_id: str, course_id: str, batch_id: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Validate a new enrollment and return (course, batch)."""
    course = store.get(Collection.COURSES, course_id)
    if not course:
        raise NotFoundError(f"Course {course_id} not found")
    batch = store.get(Collection.BATCHES, batch_id)
    if not batch:
        raise NotFoundError(f"Batch {batch_id} not found")
    if batch["course_id"] != course_id:
        raise InvalidOperationError("Batch does not belong to the selected course")
    if batch.get("status") in CLOSED_BATCH_STATUSES:
        raise InvalidOperationError(f"Batch is {batch['status']} and no longer accepts enrollments")

    active = {"batch_id": batch_id, "status": EnrollmentStatus.ACTIVE.value}
    if store.find_one(Collection.ENROLLMENTS, {**active, "student_id": student_doc_id}):
        raise ConflictError("Student is already enrolled in this batch")
    if store.count(Collection.ENROLLMENTS, active) >= int(batch.get("max_students") or 0):
        raise ConflictError("Batch is full")
    return course, batch


def enroll_admitted(
    student_doc_id: str,
    course_id: str,
    batch_id: str,
    total_fee: Optional[float] = None,
    discount: float = 0,
    remarks: Optional[str] = None,
    lead_id: Optional[str] = None,
    enrolled_by: Optional[str] = None,
    enrollment_date: Optional[str] = None,
) -> Enrollment:
    course, _ = check_enrollable(student_doc_id, course_id, batch_id)
    total = _money(course.get("fee", 0) if total_fee is None else total_fee)
    if discount > total:
        raise InvalidOperationError("Discount cannot exceed the total fee")

    enrollment = store.insert(Collection.ENROLLMENTS, {
        "student_id": student_doc_id,
        "course_id": course_id,
        "batch_id": batch_id,
        "lead_id": lead_id,
        "enrollment_date": enrollment_date or today().isoformat(),
        "status": EnrollmentStatus.ACTIVE.value,
        "total_fee": total,
        "discount": _money(discount),
        "final_amount": _money(total - discount),
        "paid_amount": 0.0,
        "attended_sessions": 0,
        "remarks": remarks,
        "enrolled_by": enrolled_by,
    })
    logger.info(f"Enrolled student {student_doc_id} in batch {batch_id}")
    return Enrollment.model_validate(enrollment)


def create_enrollment(request: EnrollmentCreate, enrolled_by: Optional[str] = None) -> Enrollment:
    """
    Enroll a student in a batch. Given a leadId instead of a studentId, the
    lead is admitted first.
    """
    if request.student_id:
        person = store.get(Collection.STUDENTS, request.student_id)
        if not person:
            raise NotFoundError(f"Student {request.student_id} not found")
        if not person.get("is_admitted"):
            raise InvalidOperationError("Student has not been admitted yet")
    else:
        person = store.get(Collection.STUDENTS, request.lead_id)
        if not person:
            raise NotFoundError(f"Lead {request.lead_id} not found")

    check_enrollable(person["id"], request.course_id, request.batch_id)
    if not person.get("is_admitted"):
        student_service.admit(person)

    return enroll_admitted(
        student_doc_id=person["id"],
        course_id=request.course_id,
        batch_id=request.batch_id,
        total_fee=request.total_fee,
        discount=request.discount,
        remarks=request.remarks,
        lead_id=request.lead_id,
        enrolled_by=enrolled_by,
        enrollment_date=request.enrollment_date.isoformat() if request.enrollment_date else None,
    )


def list_enrollments(
    student_id: Optional[str] = None,
    course_id: Optional[str] = None,
    batch_id: Optional[str] = None,
    status: Optional[EnrollmentStatus] = None,
) -> List[Enrollment]:
    filters: Dict[str, Any] = {}
    if student_id:
        filters["student_id"] = student_id
    if course_id:
        filters["course_id"] = course_id
    if batch_id:
        filters["batch_id"] = batch_id
    if status:
        filters["status"] = status.value
    return [Enrollment.model_validate(doc) for doc in newest_first(store.find(Collection.ENROLLMENTS, filters))]


def get_enrollment(enrollment_id: str) -> Optional[Enrollment]:
    enrollment = store.get(Collection.ENROLLMENTS, enrollment_id)
    return Enrollment.model_validate(enrollment) if enrollment else None


def update_enrollment(enrollment_id: str, changes: EnrollmentUpdate) -> Optional[Enrollment]:
    enrollment = store.get(Collection.ENROLLMENTS, enrollment_id)
    if not enrollment:
        return None
    updates = changes.model_dump(exclude_unset=True, exclude_none=True)
    total = _money(updates.get("total_fee", enrollment["total_fee"]))
    discount = _money(updates.get("discount", enrollment["discount"]))
    if discount > total:
        raise InvalidOperationError("Discount cannot exceed the total fee")
    final = _money(total - discount)
    if final < float(enrollment.get("paid_amount") or 0):
        raise InvalidOperationError("Final amount cannot be lower than the amount already paid")
    updates.update({"total_fee": total, "discount": discount, "final_amount": final})
    return Enrollment.model_validate(store.update(Collection.ENROLLMENTS, enrollment_id, updates))


def update_status(enrollment_id: str, status: EnrollmentStatus) -> Optional[Enrollment]:
    enrollment = store.get(Collection.ENROLLMENTS, enrollment_id)
    if not enrollment:
        return None
    if status == EnrollmentStatus.ACTIVE and enrollment["status"] != EnrollmentStatus.ACTIVE.value:
        batch = store.get(Collection.BATCHES, enrollment["batch_id"])
        active = store.count(
            Collection.ENROLLMENTS, {"batch_id": enrollment["batch_id"], "status": EnrollmentStatus.ACTIVE.value}
        )
        if batch and active >= int(batch.get("max_students") or 0):
            raise ConflictError("Batch is full")
    return Enrollment.model_validate(store.update(Collection.ENROLLMENTS, enrollment_id, {"status": status.value}))


def delete_enrollment(enrollment_id: str) -> bool:
    if not store.get(Collection.ENROLLMENTS, enrollment_id):
        return False
    payments = store.find(Collection.PAYMENTS, {"enrollment_id": enrollment_id})
    blocking = {PaymentStatus.COMPLETED.value, PaymentStatus.PENDING.value}
    if any(p.get("status") in blocking for p in payments):
        raise ConflictError("Cannot delete an enrollment with completed or pending payments")
    logger.info(f"Deleting enrollment {enrollment_id}")
    return store.delete(Collection.ENROLLMENTS, enrollment_id)


def balance(enrollment: Dict[str, Any]) -> float:
    return _money(float(enrollment.get("final_amount") or 0) - float(enrollment.get("paid_amount") or 0))


def adjust_paid_amount(enrollment_id: str, delta: float) -> Optional[Dict[str, Any]]:
    """Add (or with a negative delta, remove) a completed payment from the running total."""
    enrollment = store.get(Collection.ENROLLMENTS, enrollment_id)
    if not enrollment:
        return None
    paid = max(_money(float(enrollment.get("paid_amount") or 0) + delta), 0.0)
    return store.update(Collection.ENROLLMENTS, enrollment_id, {"paid_amount": paid})


def adjust_attended_sessions(student_id: str, batch_id: str, delta: int) -> None:
    """Keep the attendance counter of the student's enrollment in the batch in step."""
    filters = {"student_id": student_id, "batch_id": batch_id}
    enrollment = (
        store.find_one(Collection.ENROLLMENTS, {**filters, "status": EnrollmentStatus.ACTIVE.value})
        or store.find_one(Collection.ENROLLMENTS, filters)
    )
    if not enrollment:
        return
    attended = max(int(enrollment.get("attended_sessions") or 0) + delta, 0)
    store.update(Collection.ENROLLMENTS, enrollment["id"], {"attended_sessions": attended})
