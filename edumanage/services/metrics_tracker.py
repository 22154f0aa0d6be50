"""
In-memory request tracker behind the health endpoints.

Every API request is kept for a day as a small record (time, method, path,
status, client, resource). The health routes read windows of that log.
"""
from __future__ import annotations

import time
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NamedTuple, Optional

RETENTION = timedelta(hours=24)

_started_at = time.time()


class RequestRecord(NamedTuple):
    at: datetime
    method: str
    path: str
    status_code: int
    client_ip: Optional[str]
    resource: Optional[str]


_records: List[RequestRecord] = []


def _path_parts(path: str) -> List[str]:
    return [part for part in path.split("?")[0].split("/") if part]


def resource_for_path(path: str) -> Optional[str]:
    """Resource name of an API path: /api/leads/123/notes -> leads."""
    parts = _path_parts(path)
    if len(parts) >= 2 and parts[0] == "api":
        return parts[1]
    return None


def route_for_path(path: str) -> str:
    """Collapse ids out of a path: /api/leads/123/notes -> /api/leads."""
    parts = _path_parts(path)
    keep = 2 if parts and parts[0] == "api" else 1
    return "/" + "/".join(parts[:keep])


def record_request(
    method: str,
    path: str,
    status_code: int,
    client_ip: Optional[str] = None,
    resource: Optional[str] = None,
) -> None:
    now = datetime.now(timezone.utc)
    _records.append(RequestRecord(
        at=now,
        method=method,
        path=path,
        status_code=status_code,
        client_ip=client_ip,
        resource=resource or resource_for_path(path),
    ))
    # Records are appended in time order
    cutoff = now - RETENTION
    while _records and _records[0].at <= cutoff:
        _records.pop(0)


def _window(window_minutes: int) -> tuple[datetime, datetime, List[RequestRecord]]:
    end = datetime.now(timezone.utc)
    start = end - timedelta(minutes=window_minutes)
    return start, end, [record for record in _records if record.at >= start]


def get_uptime_seconds() -> int:
    return int(time.time() - _started_at)


def get_request_summary(window_minutes: int = 60) -> Dict[str, Any]:
    """Counts per route, resource and status class for the last window."""
    start, end, records = _window(window_minutes)
    return {
        "window_start": start,
        "window_end": end,
        "total_requests": len(records),
        "per_route": dict(Counter(route_for_path(r.path) for r in records)),
        "per_resource": dict(Counter(r.resource for r in records if r.resource)),
        "per_status_class": dict(Counter(f"{r.status_code // 100}xx" for r in records)),
        "unique_clients": len({r.client_ip for r in records if r.client_ip}),
        "server_errors": sum(1 for r in records if r.status_code >= 500),
    }


def get_requests_per_minute(window_minutes: int = 60) -> float:
    if window_minutes <= 0:
        return 0.0
    return len(_window(window_minutes)[2]) / window_minutes


def get_timeline(window_minutes: int = 60, buckets: int = 10) -> List[Dict[str, Any]]:
    """
    Request rate over the window split into equal buckets.

    Returns an empty list when nothing was recorded in the window.
    """
    start, _, records = _window(window_minutes)
    if not records:
        return []

    bucket_minutes = window_minutes / buckets
    counts = [0] * buckets
    for record in records:
        index = int((record.at - start).total_seconds() // (bucket_minutes * 60))
        counts[min(index, buckets - 1)] += 1

    return [
        {
            "bucket": start + timedelta(minutes=i * bucket_minutes),
            "value": round(count / bucket_minutes, 2),
            "unit": "req/min",
        }
        for i, count in enumerate(counts)
    ]


def reset() -> None:
    """Forget every recorded request."""
    _records.clear()
