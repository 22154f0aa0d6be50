"""
Health API endpoints.

Provides:
- /health: heartbeat with the overall status and last hour of traffic
- /health/components: per-component diagnostics (api, storage)
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List

from fastapi import APIRouter, Query

from edumanage import __version__
from edumanage.models import (HealthComponentBrief, HealthComponentCollection,
                              HealthComponentDetail, HealthIssue,
                              HealthRequestSummary, HealthStatus,
                              HealthSummaryResponse, HealthTimelineEntry)
from edumanage.services import metrics_tracker
from edumanage.storage import store

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)

SUMMARY_WINDOW_MINUTES = 60

# Lower is worse
SEVERITY = {HealthStatus.CRITICAL: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNKNOWN: 2, HealthStatus.OK: 3}

DISPLAY_NAMES = {"api": "API Service", "storage": "Document store"}


def _component_statuses(server_errors: int) -> Dict[str, HealthStatus]:
    storage_ok = store.ping()
    if not storage_ok:
        logger.warning(f"Storage backend {store.BACKEND_NAME} is unreachable")
    return {
        "api": HealthStatus.DEGRADED if server_errors else HealthStatus.OK,
        "storage": HealthStatus.OK if storage_ok else HealthStatus.CRITICAL,
    }


def _worst(statuses: List[HealthStatus]) -> HealthStatus:
    return min(statuses, key=SEVERITY.__getitem__)


def _issues(component: str, status: HealthStatus, server_errors: int) -> List[HealthIssue]:
    if status == HealthStatus.OK:
        return []
    if component == "api":
        return [HealthIssue(
            code="server_errors",
            severity="warning",
            summary=f"{server_errors} request(s) failed with a server error",
            details="Check the application logs for the stack traces.",
        )]
    return [HealthIssue(
        code="storage_unreachable",
        severity="error",
        summary=f"The {store.BACKEND_NAME} backend did not answer",
        details="Verify the storage credentials and network access.",
    )]


@router.get(
    "/health",
    summary="Heartbeat check.",
    responses={200: {"description": "Health summary of the API service."}},
)
async def health_summary() -> HealthSummaryResponse:
    """Overall status, uptime and request activity of the last hour."""
    now = datetime.now(timezone.utc)
    summary = metrics_tracker.get_request_summary(SUMMARY_WINDOW_MINUTES)
    statuses = _component_statuses(summary["server_errors"])

    components = [
        HealthComponentBrief(
            id=component,
            display_name=DISPLAY_NAMES[component],
            status=status,
            issue_count=len(_issues(component, status, summary["server_errors"])),
            last_event_at=now,
        )
        for component, status in statuses.items()
    ]
    components.sort(key=lambda component: SEVERITY[component.status])

    return HealthSummaryResponse(
        status=_worst(list(statuses.values())),
        checked_at=now,
        window_minutes=SUMMARY_WINDOW_MINUTES,
        uptime_seconds=metrics_tracker.get_uptime_seconds(),
        version=__version__,
        storage_backend=store.BACKEND_NAME,
        request_summary=HealthRequestSummary.model_validate(summary),
        components=components,
    )


@router.get(
    "/health/components",
    summary="Get component health details.",
    responses={200: {"description": "Detailed health information for API components."}},
)
async def health_components(
    window_minutes: int = Query(60, ge=5, le=1440, alias="windowMinutes"),
    include_timeline: bool = Query(False, alias="includeTimeline"),
) -> HealthComponentCollection:
    """Diagnostics for the api and storage components over the window."""
    now = datetime.now(timezone.utc)
    summary = metrics_tracker.get_request_summary(window_minutes)
    server_errors = summary["server_errors"]
    statuses = _component_statuses(server_errors)

    timeline = []
    if include_timeline:
        timeline = [HealthTimelineEntry(**entry) for entry in metrics_tracker.get_timeline(window_minutes)]

    api = HealthComponentDetail(
        id="api",
        display_name=DISPLAY_NAMES["api"],
        status=statuses["api"],
        observed_at=now,
        description="Main API service handling requests.",
        metrics={
            "requests_per_minute": round(metrics_tracker.get_requests_per_minute(window_minutes), 2),
            "uptime_hours": round(metrics_tracker.get_uptime_seconds() / 3600, 2),
            "server_errors": server_errors,
            "unique_clients": summary["unique_clients"],
        },
        issues=_issues("api", statuses["api"], server_errors),
        timeline=timeline,
    )
    storage = HealthComponentDetail(
        id="storage",
        display_name=DISPLAY_NAMES["storage"],
        status=statuses["storage"],
        observed_at=now,
        description="Persists users, leads, students, courses, payments and content.",
        metrics={"backend": store.BACKEND_NAME},
        issues=_issues("storage", statuses["storage"], server_errors),
    )

    return HealthComponentCollection(components=[api, storage], generated_at=now, window_minutes=window_minutes)
