from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from edumanage.models.common import ApiModel


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"
    SUSPENDED = "suspended"


class EnrollmentCreate(ApiModel):
    student_id: Optional[str] = Field(None, description="Admitted student's document id")
    lead_id: Optional[str] = Field(None, description="Lead to admit and enroll in one step")
    course_id: str
    batch_id: str
    enrollment_date: Optional[date] = Field(None, description="Defaults to today")
    total_fee: Optional[float] = Field(None, ge=0, description="Defaults to the course fee")
    discount: float = Field(0, ge=0)
    remarks: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_person(self) -> "EnrollmentCreate":
        if not self.student_id and not self.lead_id:
            raise ValueError("Either studentId or leadId is required")
        return self


class EnrollmentUpdate(ApiModel):
    total_fee: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0)
    attended_sessions: Optional[int] = Field(None, ge=0)
    remarks: Optional[str] = Field(None, max_length=1000)


class EnrollmentStatusUpdate(ApiModel):
    status: EnrollmentStatus


class Enrollment(ApiModel):
    id: str
    student_id: str
    course_id: str
    batch_id: str
    lead_id: Optional[str] = None
    enrollment_date: date
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    total_fee: float
    discount: float = 0
    final_amount: float = Field(..., description="Total fee minus discount")
    paid_amount: float = Field(0, description="Sum of completed payments")
    attended_sessions: int = 0
    remarks: Optional[str] = None
    enrolled_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "EnrollmentStatus",
    "EnrollmentCreate",
    "EnrollmentUpdate",
    "EnrollmentStatusUpdate",
    "Enrollment",
]
