"""
Payment endpoints: recording, refunds, statistics and receipts.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Payment, PaymentCreate, PaymentMethod,
                              PaymentRefund, PaymentStats, PaymentStatus,
                              PaymentUpdate, Permission, Receipt)
from edumanage.services import payment_service

router = APIRouter(prefix="/payments", tags=["payments"])

can_manage = require_permission(Permission.MANAGE_PAYMENTS)


@router.get("", response_model=List[Payment])
def list_payments(
    student_id: Optional[str] = Query(None, alias="studentId"),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    method: Optional[PaymentMethod] = None,
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    _: CurrentUser = Depends(can_manage),
) -> List[Payment]:
    return payment_service.list_payments(student_id, status_filter, method, from_date, to_date)


@router.get("/stats", response_model=PaymentStats)
def payment_stats(_: CurrentUser = Depends(can_manage)) -> PaymentStats:
    return payment_service.get_stats()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Payment)
def record_payment(request: PaymentCreate, user: CurrentUser = Depends(can_manage)) -> Payment:
    return payment_service.record_payment(request, collected_by=user["id"])


@router.get("/{payment_id}", response_model=Payment)
def get_payment(payment_id: str, _: CurrentUser = Depends(can_manage)) -> Payment:
    payment = payment_service.get_payment(payment_id)
    if payment is None:
        raise HTTPException(status_code=404, detail=f"Payment {payment_id} not found")
    return payment


@router.put("/{payment_id}", response_model=Payment)
def update_payment(payment_id: str, changes: PaymentUpdate, _: CurrentUser = Depends(can_manage)) -> Payment:
    payment = payment_service.update_payment(payment_id, changes)
    if payment is None:
        raise HTTPException(status_code=404, detail=f"Payment {payment_id} not found")
    return payment


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(payment_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not payment_service.delete_payment(payment_id):
        raise HTTPException(status_code=404, detail=f"Payment {payment_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{payment_id}/refund", response_model=Payment)
def refund_payment(payment_id: str, request: PaymentRefund, _: CurrentUser = Depends(can_manage)) -> Payment:
    return payment_service.refund_payment(payment_id, request.reason)


@router.get("/{payment_id}/receipt", response_model=Receipt)
def payment_receipt(payment_id: str, _: CurrentUser = Depends(can_manage)) -> Receipt:
    return payment_service.build_receipt(payment_id)
