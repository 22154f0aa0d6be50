from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from edumanage.models.common import ApiModel, ChartPoint


class ActivityType(str, Enum):
    LEAD_CREATED = "lead_created"
    ADMISSION = "admission"
    ENROLLMENT = "enrollment"
    PAYMENT = "payment"


class DashboardStats(ApiModel):
    total_students: int = Field(..., description="Every lead and student record")
    lead_count: int = Field(..., description="Records not yet admitted")
    admitted_count: int
    interested_count: int = Field(..., description="Records whose reply is Interested")
    pending_reminders: int = Field(..., description="Records with the remind flag set")
    success_rate: float = Field(..., description="Admitted as a percentage of all records, one decimal")
    overall_performance: str = Field(..., pattern="^[AB]$")
    student_data: List[ChartPoint]


class Activity(ApiModel):
    type: ActivityType
    description: str
    at: datetime
    reference_id: Optional[str] = None


class DashboardOverview(ApiModel):
    stats: DashboardStats
    revenue_collected: float
    outstanding_fees: float
    course_count: int
    active_batch_count: int
    enrollment_count: int
    recent_activity: List[Activity]


__all__ = ["ActivityType", "DashboardStats", "Activity", "DashboardOverview"]
