from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from edumanage.models.common import ApiModel, Email, PersonName, Phone
from edumanage.models.lead import LeadSource, LeadStatus, PaymentPlan
from edumanage.models.payment import Payment


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"
    DROPPED = "dropped"


class FeeStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class StudentDetails(ApiModel):
    """Personal details captured at admission."""
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, pattern=r"^\d{4,10}$")
    parent_name: Optional[str] = Field(None, max_length=120)
    parent_phone: Optional[Phone] = None


class StudentCreate(StudentDetails):
    name: PersonName
    email: Email
    phone: Phone
    age: Optional[int] = Field(None, ge=1, le=120)
    source: LeadSource = LeadSource.WALKIN
    course_interest: Optional[str] = Field(None, max_length=200)
    payment_plan: PaymentPlan = Field(default_factory=PaymentPlan)


class StudentUpdate(StudentDetails):
    name: Optional[PersonName] = None
    email: Optional[Email] = None
    phone: Optional[Phone] = None
    age: Optional[int] = Field(None, ge=1, le=120)
    course_interest: Optional[str] = Field(None, max_length=200)
    payment_plan: Optional[PaymentPlan] = None


class Student(StudentDetails):
    id: str
    student_id: str = Field(..., description="Student number, STU-<year>-<NNNN>")
    name: str
    email: str
    phone: str
    age: Optional[int] = None
    source: LeadSource = LeadSource.OTHER
    status: LeadStatus = LeadStatus.CONVERTED
    course_interest: Optional[str] = None
    enrollment_status: StudentStatus = StudentStatus.ACTIVE
    payment_plan: PaymentPlan = Field(default_factory=PaymentPlan)
    is_admitted: bool = True
    admitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StudentStatusUpdate(ApiModel):
    status: StudentStatus


class LeadConversion(StudentDetails):
    course_id: Optional[str] = Field(None, description="Course to enroll in right away")
    batch_id: Optional[str] = Field(None, description="Batch to enroll in; requires course_id")
    discount: float = Field(0, ge=0)
    remarks: Optional[str] = Field(None, max_length=1000)


class BulkUpdateData(ApiModel):
    enrollment_status: Optional[StudentStatus] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    course_interest: Optional[str] = Field(None, max_length=200)


class BulkUpdateRequest(ApiModel):
    student_ids: List[str] = Field(..., min_length=1)
    update_data: BulkUpdateData


class BulkUpdateResult(ApiModel):
    updated: int
    not_found: List[str] = Field(default_factory=list)


class StudentStats(ApiModel):
    total: int
    by_status: Dict[str, int]
    admitted_this_month: int
    with_outstanding_fees: int


class DueDateStatus(ApiModel):
    status: str = Field(..., pattern="^(overdue|soon|upcoming)$")
    days: int = Field(..., ge=0, description="Days overdue or days remaining")


class FeeSummary(ApiModel):
    student_id: str
    total_fees: float
    paid_amount: float
    due_amount: float
    paid_percentage: int
    fee_status: FeeStatus
    due_date: Optional[date] = None
    due_date_status: Optional[DueDateStatus] = None
    payments: List[Payment] = Field(default_factory=list)


class NotificationRequest(ApiModel):
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)


class NotificationResult(ApiModel):
    sent: bool
    recipient: str
    channel: str = "email"


__all__ = [
    "Gender",
    "StudentStatus",
    "FeeStatus",
    "StudentDetails",
    "StudentCreate",
    "StudentUpdate",
    "Student",
    "StudentStatusUpdate",
    "LeadConversion",
    "BulkUpdateData",
    "BulkUpdateRequest",
    "BulkUpdateResult",
    "StudentStats",
    "DueDateStatus",
    "FeeSummary",
    "NotificationRequest",
    "NotificationResult",
]
