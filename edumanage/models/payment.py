from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from edumanage.models.common import ApiModel


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    ONLINE = "online"
    CARD = "card"
    UPI = "upi"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentCreate(ApiModel):
    student_id: str = Field(..., description="Document id of the admitted student")
    enrollment_id: Optional[str] = Field(None, description="Enrollment the payment is applied to")
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_date: Optional[date] = Field(None, description="Defaults to today")
    reference_number: Optional[str] = Field(None, max_length=100)
    transaction_id: Optional[str] = Field(None, max_length=100)
    status: PaymentStatus = PaymentStatus.COMPLETED
    notes: Optional[str] = Field(None, max_length=1000)


class PaymentUpdate(ApiModel):
    amount: Optional[float] = Field(None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[date] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    transaction_id: Optional[str] = Field(None, max_length=100)
    status: Optional[PaymentStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)


class PaymentRefund(ApiModel):
    reason: Optional[str] = Field(None, max_length=500)


class Payment(ApiModel):
    id: str
    student_id: str
    enrollment_id: Optional[str] = None
    amount: float
    payment_method: PaymentMethod
    payment_date: date
    reference_number: Optional[str] = None
    transaction_id: Optional[str] = None
    status: PaymentStatus
    is_refunded: bool = False
    refunded_at: Optional[datetime] = None
    refund_reason: Optional[str] = None
    receipt_number: str = Field(..., description="Sequential receipt number, RCPT-NNNN")
    collected_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentStats(ApiModel):
    total_collected: float
    total_refunded: float
    count: int
    by_method: Dict[str, float]
    by_status: Dict[str, int]
    this_month: float


class Receipt(ApiModel):
    institute_name: str
    receipt_number: str
    issued_at: datetime
    payment_id: str
    student_name: str
    student_code: Optional[str] = None
    course_name: Optional[str] = None
    batch_name: Optional[str] = None
    amount: float
    payment_method: PaymentMethod
    payment_date: date
    reference_number: Optional[str] = None
    status: PaymentStatus
    total_fee: Optional[float] = None
    paid_to_date: Optional[float] = None
    balance_due: Optional[float] = Field(None, description="Balance left on the enrollment after this payment")


__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "PaymentCreate",
    "PaymentUpdate",
    "PaymentRefund",
    "Payment",
    "PaymentStats",
    "Receipt",
]
