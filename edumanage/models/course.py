from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from edumanage.models.common import ApiModel


class CourseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class BatchStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class SyllabusModule(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    topics: List[str] = Field(default_factory=list)
    duration_hours: Optional[float] = Field(None, ge=0)


class CourseCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=2, max_length=20, pattern=r"^[A-Za-z0-9_-]+$",
                      description="Unique course code, stored upper-case")
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    level: CourseLevel = CourseLevel.BEGINNER
    duration_weeks: int = Field(..., ge=1, le=520)
    fee: float = Field(..., ge=0)
    instructor: Optional[str] = Field(None, max_length=120)
    is_active: bool = True
    syllabus: List[SyllabusModule] = Field(default_factory=list)


class CourseUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=2, max_length=20, pattern=r"^[A-Za-z0-9_-]+$")
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    level: Optional[CourseLevel] = None
    duration_weeks: Optional[int] = Field(None, ge=1, le=520)
    fee: Optional[float] = Field(None, ge=0)
    instructor: Optional[str] = Field(None, max_length=120)
    is_active: Optional[bool] = None
    syllabus: Optional[List[SyllabusModule]] = None


class Course(CourseCreate):
    id: str
    enrolled_count: int = Field(0, description="Active enrollments across all batches")
    active_batches: int = Field(0, description="Upcoming or ongoing batches")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BatchFields(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    batch_code: Optional[str] = Field(None, max_length=40, description="Generated from the course code when omitted")
    instructor: Optional[str] = Field(None, max_length=120)
    start_date: date
    end_date: date
    schedule: List[Weekday] = Field(default_factory=list, description="Weekdays the batch meets")
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    classroom: Optional[str] = Field(None, max_length=100)
    max_students: int = Field(30, ge=1, le=1000)
    status: BatchStatus = BatchStatus.UPCOMING
    total_sessions: int = Field(0, ge=0)
    completed_sessions: int = Field(0, ge=0)


class BatchCreate(BatchFields):
    @model_validator(mode="after")
    def check_dates(self) -> "BatchCreate":
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after the start date")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after the start time")
        return self


class BatchUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    batch_code: Optional[str] = Field(None, max_length=40)
    instructor: Optional[str] = Field(None, max_length=120)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule: Optional[List[Weekday]] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    classroom: Optional[str] = Field(None, max_length=100)
    max_students: Optional[int] = Field(None, ge=1, le=1000)
    status: Optional[BatchStatus] = None
    total_sessions: Optional[int] = Field(None, ge=0)
    completed_sessions: Optional[int] = Field(None, ge=0)


class Batch(BatchFields):
    id: str
    course_id: str
    batch_code: str
    current_students: int = Field(0, description="Active enrollments in this batch")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "CourseLevel",
    "BatchStatus",
    "Weekday",
    "SyllabusModule",
    "CourseCreate",
    "CourseUpdate",
    "Course",
    "BatchFields",
    "BatchCreate",
    "BatchUpdate",
    "Batch",
]
