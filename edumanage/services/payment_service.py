"""
Service layer for payments and receipts.

Only completed payments count towards what a student has paid. Whenever a
payment enters or leaves the completed state its amount is added to or
removed from the enrollment's paid amount and the student's payment plan.
"""
from __future__ import annotations

import logging
import os
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from edumanage.models import (Payment, PaymentCreate, PaymentMethod,
                              PaymentStats, PaymentStatus, PaymentUpdate,
                              Receipt)
from edumanage.services import enrollment_service
from edumanage.services.common import (drop_nulls, newest_first,
                                       next_sequence, to_document, today)
from edumanage.services.errors import (ConflictError, InvalidOperationError,
                                       NotFoundError)
from edumanage.storage import Collection, store
from edumanage.storage.records import utc_now_iso

logger = logging.getLogger(__name__)

INSTITUTE_NAME = os.getenv("INSTITUTE_NAME", "EduManage Institute")
RECEIPT_PREFIX = "RCPT-"
# Rounding slack when comparing money amounts
TOLERANCE = 0.005


def next_receipt_number() -> str:
    return next_sequence("receipt_number", RECEIPT_PREFIX)


def _is_completed(payment: Dict[str, Any]) -> bool:
    return payment.get("status") == PaymentStatus.COMPLETED.value


def _apply(payment: Dict[str, Any], sign: int) -> None:
    """Add (sign=1) or remove (sign=-1) a completed payment from the running totals."""
    delta = sign * float(payment["amount"])
    if payment.get("enrollment_id"):
        enrollment_service.adjust_paid_amount(payment["enrollment_id"], delta)

    student = store.get(Collection.STUDENTS, payment["student_id"])
    if student:
        plan = dict(student.get("payment_plan") or {"total_fees": 0, "paid_amount": 0, "due_date": None})
        plan["paid_amount"] = max(round(float(plan.get("paid_amount") or 0) + delta, 2), 0.0)
        store.update(Collection.STUDENTS, student["id"], {"payment_plan": plan})


def _check_balance(enrollment_id: Optional[str], amount: float, already_counted: float = 0.0) -> None:
    if not enrollment_id:
        return
    enrollment = store.get(Collection.ENROLLMENTS, enrollment_id)
    if not enrollment:
        raise NotFoundError(f"Enrollment {enrollment_id} not found")
    outstanding = enrollment_service.balance(enrollment) + already_counted
    if amount > outstanding + TOLERANCE:
        raise InvalidOperationError(f"Payment exceeds the outstanding balance of {outstanding:.2f}")


def _require_payment(payment_id: str) -> Dict[str, Any]:
    payment = store.get(Collection.PAYMENTS, payment_id)
    if not payment:
        raise NotFoundError(f"Payment {payment_id} not found")
    return payment


def record_payment(request: PaymentCreate, collected_by: Optional[str] = None) -> Payment:
    student = store.get(Collection.STUDENTS, request.student_id)
    if not student or not student.get("is_admitted"):
        raise NotFoundError(f"Student {request.student_id} not found")
    if request.enrollment_id:
        enrollment = store.get(Collection.ENROLLMENTS, request.enrollment_id)
        if not enrollment:
            raise NotFoundError(f"Enrollment {request.enrollment_id} not found")
        if enrollment["student_id"] != request.student_id:
            raise InvalidOperationError("Enrollment belongs to a different student")
    if request.status == PaymentStatus.REFUNDED:
        raise InvalidOperationError("A new payment cannot be recorded as refunded")
    if request.status == PaymentStatus.COMPLETED:
        _check_balance(request.enrollment_id, request.amount)

    document = to_document(request)
    document.update({
        "amount": round(request.amount, 2),
        "payment_date": document.get("payment_date") or today().isoformat(),
        "receipt_number": next_receipt_number(),
        "is_refunded": False,
        "refunded_at": None,
        "refund_reason": None,
        "collected_by": collected_by,
    })
    payment = store.insert(Collection.PAYMENTS, document)
    if _is_completed(payment):
        _apply(payment, 1)
    logger.info(f"Recorded payment {payment['receipt_number']} of {payment['amount']} for {payment['student_id']}")
    return Payment.model_validate(payment)


def list_payments(
    student_id: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
    method: Optional[PaymentMethod] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[Payment]:
    filters: Dict[str, Any] = {}
    if student_id:
        filters["student_id"] = student_id
    if status:
        filters["status"] = status.value
    if method:
        filters["payment_method"] = method.value
    payments = newest_first(store.find(Collection.PAYMENTS, filters))
    if from_date:
        payments = [p for p in payments if p["payment_date"] >= from_date.isoformat()]
    if to_date:
        payments = [p for p in payments if p["payment_date"] <= to_date.isoformat()]
    return [Payment.model_validate(p) for p in payments]


def get_payment(payment_id: str) -> Optional[Payment]:
    payment = store.get(Collection.PAYMENTS, payment_id)
    return Payment.model_validate(payment) if payment else None


def update_payment(payment_id: str, changes: PaymentUpdate) -> Optional[Payment]:
    payment = store.get(Collection.PAYMENTS, payment_id)
    if not payment:
        return None
    if payment.get("is_refunded"):
        raise ConflictError("Refunded payments cannot be edited")
    updates = drop_nulls(to_document(changes, exclude_unset=True), ("amount", "payment_method", "payment_date", "status"))
    if updates.get("status") == PaymentStatus.REFUNDED.value:
        raise InvalidOperationError("Use the refund action to refund a payment")

    was_counted = _is_completed(payment)
    merged = {**payment, **updates}
    if _is_completed(merged):
        already = float(payment["amount"]) if was_counted else 0.0
        _check_balance(merged.get("enrollment_id"), float(merged["amount"]), already_counted=already)

    if was_counted:
        _apply(payment, -1)
    updated = store.update(Collection.PAYMENTS, payment_id, updates)
    if _is_completed(updated):
        _apply(updated, 1)
    return Payment.model_validate(updated)


def refund_payment(payment_id: str, reason: Optional[str] = None) -> Payment:
    payment = _require_payment(payment_id)
    if not _is_completed(payment):
        raise ConflictError("Only completed payments can be refunded")
    _apply(payment, -1)
    refunded = store.update(Collection.PAYMENTS, payment_id, {
        "status": PaymentStatus.REFUNDED.value,
        "is_refunded": True,
        "refunded_at": utc_now_iso(),
        "refund_reason": reason,
    })
    logger.info(f"Refunded payment {payment['receipt_number']}")
    return Payment.model_validate(refunded)


def delete_payment(payment_id: str) -> bool:
    payment = store.get(Collection.PAYMENTS, payment_id)
    if not payment:
        return False
    if _is_completed(payment):
        _apply(payment, -1)
    logger.info(f"Deleting payment {payment_id}")
    return store.delete(Collection.PAYMENTS, payment_id)


def get_stats() -> PaymentStats:
    payments = store.find(Collection.PAYMENTS)
    month = today().strftime("%Y-%m")
    by_method: Dict[str, float] = defaultdict(float)
    by_status: Dict[str, int] = defaultdict(int)
    collected = refunded = this_month = 0.0
    for payment in payments:
        by_status[payment["status"]] += 1
        amount = float(payment["amount"])
        if _is_completed(payment):
            collected += amount
            by_method[payment["payment_method"]] += amount
            if payment["payment_date"].startswith(month):
                this_month += amount
        elif payment.get("is_refunded"):
            refunded += amount
    return PaymentStats(
        total_collected=round(collected, 2),
        total_refunded=round(refunded, 2),
        count=len(payments),
        by_method={method: round(total, 2) for method, total in by_method.items()},
        by_status=dict(by_status),
        this_month=round(this_month, 2),
    )


def build_receipt(payment_id: str) -> Receipt:
    """Receipt data for printing, including the enrollment balance after this payment."""
    payment = _require_payment(payment_id)
    student = store.get(Collection.STUDENTS, payment["student_id"]) or {}
    course = batch = enrollment = None
    if payment.get("enrollment_id"):
        enrollment = store.get(Collection.ENROLLMENTS, payment["enrollment_id"])
    if enrollment:
        course = store.get(Collection.COURSES, enrollment["course_id"])
        batch = store.get(Collection.BATCHES, enrollment["batch_id"])

    total_fee = paid_to_date = balance_due = None
    if enrollment:
        total_fee = float(enrollment["final_amount"])
        paid_to_date = round(sum(
            float(p["amount"])
            for p in store.find(Collection.PAYMENTS, {"enrollment_id": enrollment["id"]})
            if _is_completed(p) and (p["payment_date"], p["receipt_number"]) <= (payment["payment_date"], payment["receipt_number"])
        ), 2)
        balance_due = round(max(total_fee - paid_to_date, 0), 2)

    return Receipt(
        institute_name=INSTITUTE_NAME,
        receipt_number=payment["receipt_number"],
        issued_at=datetime.now(timezone.utc),
        payment_id=payment["id"],
        student_name=student.get("name", "Unknown"),
        student_code=student.get("student_id"),
        course_name=course.get("name") if course else None,
        batch_name=batch.get("name") if batch else None,
        amount=payment["amount"],
        payment_method=payment["payment_method"],
        payment_date=payment["payment_date"],
        reference_number=payment.get("reference_number"),
        status=payment["status"],
        total_fee=total_fee,
        paid_to_date=paid_to_date,
        balance_due=balance_due,
    )
