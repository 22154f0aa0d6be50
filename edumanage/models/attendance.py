from __future__ import annotations

from datetime import date as Date
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from edumanage.models.common import ApiModel


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class AttendanceCreate(ApiModel):
    batch_id: str
    student_id: str
    date: Date
    status: AttendanceStatus
    remarks: Optional[str] = Field(None, max_length=500)


class AttendanceUpdate(ApiModel):
    status: Optional[AttendanceStatus] = None
    remarks: Optional[str] = Field(None, max_length=500)


class Attendance(AttendanceCreate):
    id: str
    marked_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BulkAttendanceEntry(ApiModel):
    student_id: str
    status: AttendanceStatus
    remarks: Optional[str] = Field(None, max_length=500)


class BulkAttendanceRequest(ApiModel):
    batch_id: str
    date: Date
    entries: List[BulkAttendanceEntry] = Field(..., min_length=1)


class BulkAttendanceResult(ApiModel):
    created: List[Attendance] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list, description="Student ids already marked for the date or listed twice")


class AttendanceStats(ApiModel):
    total: int
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: float = Field(..., description="Present and late marks as a percentage of all marks")


__all__ = [
    "AttendanceStatus",
    "AttendanceCreate",
    "AttendanceUpdate",
    "Attendance",
    "BulkAttendanceEntry",
    "BulkAttendanceRequest",
    "BulkAttendanceResult",
    "AttendanceStats",
]
