from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from edumanage.models.common import ApiModel, Email, PersonName, Phone


class LeadSource(str, Enum):
    WEBSITE = "website"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    WALKIN = "walkin"
    ADVERTISEMENT = "advertisement"
    OTHER = "other"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    FOLLOW_UP = "follow_up"
    CONVERTED = "converted"
    LOST = "lost"


class LeadReply(str, Enum):
    INTERESTED = "Interested"
    NOT_INTERESTED = "Not Interested"
    CALL_BACK = "Call Back"
    NO_RESPONSE = "No Response"


class CommunicationType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    MEETING = "meeting"


class PaymentPlan(ApiModel):
    total_fees: float = Field(0, ge=0, description="Agreed total fees")
    paid_amount: float = Field(0, ge=0, description="Amount paid so far")
    due_date: Optional[date] = Field(None, description="Date the remaining balance is due")


class LeadNote(ApiModel):
    id: str
    text: str
    created_by: Optional[str] = None
    created_at: datetime


class Communication(ApiModel):
    id: str
    type: CommunicationType
    summary: str
    outcome: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime


class FollowUp(ApiModel):
    id: str
    scheduled_for: datetime
    purpose: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    outcome: Optional[str] = None
    created_by: Optional[str] = None


class LeadCreate(ApiModel):
    name: PersonName
    email: Email
    phone: Phone
    age: Optional[int] = Field(None, ge=1, le=120)
    source: LeadSource = Field(LeadSource.WEBSITE, description="Where the lead came from")
    reply: Optional[LeadReply] = Field(None, description="Lead's answer to the last contact")
    remind: bool = Field(False, description="Whether a reminder is pending for this lead")
    course_interest: Optional[str] = Field(None, max_length=200)
    assigned_to: Optional[str] = Field(None, description="User responsible for the lead")
    follow_up_date: Optional[datetime] = None
    payment_plan: PaymentPlan = Field(default_factory=PaymentPlan)


class LeadUpdate(ApiModel):
    name: Optional[PersonName] = None
    email: Optional[Email] = None
    phone: Optional[Phone] = None
    age: Optional[int] = Field(None, ge=1, le=120)
    source: Optional[LeadSource] = None
    reply: Optional[LeadReply] = None
    remind: Optional[bool] = None
    course_interest: Optional[str] = Field(None, max_length=200)
    follow_up_date: Optional[datetime] = None
    payment_plan: Optional[PaymentPlan] = None


class Lead(ApiModel):
    id: str
    name: str
    email: str
    phone: str
    age: Optional[int] = None
    source: LeadSource = LeadSource.OTHER
    status: LeadStatus = LeadStatus.NEW
    reply: Optional[LeadReply] = None
    remind: bool = False
    course_interest: Optional[str] = None
    assigned_to: Optional[str] = None
    follow_up_date: Optional[datetime] = None
    payment_plan: PaymentPlan = Field(default_factory=PaymentPlan)
    notes: List[LeadNote] = Field(default_factory=list)
    communications: List[Communication] = Field(default_factory=list)
    follow_ups: List[FollowUp] = Field(default_factory=list)
    is_admitted: bool = False
    student_id: Optional[str] = Field(None, description="Student number once admitted")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadStatusUpdate(ApiModel):
    status: LeadStatus
    notes: Optional[str] = Field(None, max_length=2000)


class LeadAssign(ApiModel):
    user_id: str = Field(..., min_length=1)


class NoteCreate(ApiModel):
    note: str = Field(..., min_length=1, max_length=2000)


class CommunicationCreate(ApiModel):
    type: CommunicationType
    summary: str = Field(..., min_length=1, max_length=2000)
    outcome: Optional[str] = Field(None, max_length=500)


class FollowUpCreate(ApiModel):
    scheduled_for: datetime
    purpose: Optional[str] = Field(None, max_length=500)


class FollowUpComplete(ApiModel):
    outcome: Optional[str] = Field(None, max_length=500)


class LeadStats(ApiModel):
    total: int
    by_status: Dict[str, int]
    by_source: Dict[str, int]
    interested: int
    pending_reminders: int
    conversion_rate: float = Field(..., description="Converted leads as a percentage of all leads")


class LeadSourceCount(ApiModel):
    source: LeadSource
    count: int


class ImportRowError(ApiModel):
    line: int = Field(..., description="1-based line number in the uploaded file")
    error: str


class ImportResult(ApiModel):
    created: int
    errors: List[ImportRowError] = Field(default_factory=list)


__all__ = [
    "LeadSource",
    "LeadStatus",
    "LeadReply",
    "CommunicationType",
    "PaymentPlan",
    "LeadNote",
    "Communication",
    "FollowUp",
    "LeadCreate",
    "LeadUpdate",
    "Lead",
    "LeadStatusUpdate",
    "LeadAssign",
    "NoteCreate",
    "CommunicationCreate",
    "FollowUpCreate",
    "FollowUpComplete",
    "LeadStats",
    "LeadSourceCount",
    "ImportRowError",
    "ImportResult",
]
