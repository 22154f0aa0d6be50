from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import Field

from edumanage.models.common import ApiModel


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class HealthTimelineEntry(ApiModel):
    bucket: datetime = Field(..., description="Bucket start (UTC)")
    value: float
    unit: Optional[str] = None


class HealthIssue(ApiModel):
    code: str = Field(..., description="Machine readable identifier, e.g. storage_unreachable")
    severity: str = Field(..., pattern="^(info|warning|error)$")
    summary: str
    details: Optional[str] = Field(None, description="What to check next")


class _Component(ApiModel):
    id: str = Field(..., description="api or storage")
    display_name: Optional[str] = None
    status: HealthStatus


class HealthComponentBrief(_Component):
    issue_count: int = Field(0, ge=0)
    last_event_at: Optional[datetime] = None


class HealthComponentDetail(_Component):
    observed_at: datetime
    description: Optional[str] = None
    metrics: Dict[str, Union[int, float, str, bool]] = Field(default_factory=dict)
    issues: List[HealthIssue] = Field(default_factory=list)
    timeline: List[HealthTimelineEntry] = Field(
        default_factory=list, description="Request rate buckets, filled when includeTimeline is set"
    )


class HealthRequestSummary(ApiModel):
    window_start: datetime
    window_end: datetime
    total_requests: int = Field(0, ge=0)
    per_route: Dict[str, int] = Field(default_factory=dict, description="Counts by route with ids collapsed")
    per_resource: Dict[str, int] = Field(default_factory=dict, description="Counts by resource (leads, students, ...)")
    per_status_class: Dict[str, int] = Field(default_factory=dict, description="Counts by 2xx/4xx/5xx")
    unique_clients: int = Field(0, ge=0)
    server_errors: int = Field(0, ge=0)


class HealthComponentCollection(ApiModel):
    components: List[HealthComponentDetail]
    generated_at: datetime
    window_minutes: int = Field(..., ge=5)


class HealthSummaryResponse(ApiModel):
    """Heartbeat payload of GET /health."""
    status: HealthStatus = Field(..., description="Worst status among the components")
    checked_at: datetime
    window_minutes: int = Field(..., ge=5)
    uptime_seconds: int = Field(..., ge=0)
    version: str
    storage_backend: str = Field(..., description="memory, dynamodb or mongodb")
    request_summary: HealthRequestSummary
    components: List[HealthComponentBrief] = Field(..., description="Most severe first")


__all__ = [
    "HealthStatus",
    "HealthTimelineEntry",
    "HealthIssue",
    "HealthComponentBrief",
    "HealthComponentDetail",
    "HealthRequestSummary",
    "HealthComponentCollection",
    "HealthSummaryResponse",
]
