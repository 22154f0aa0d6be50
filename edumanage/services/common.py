"""
Helpers shared by the resource services: model <-> document conversion,
search, sorting, pagination and sequential numbering.
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from edumanage.storage import store

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def to_document(model: BaseModel, exclude_unset: bool = False) -> Dict[str, Any]:
    """Dump a request model into a JSON-compatible, snake_case document."""
    return model.model_dump(mode="json", exclude_unset=exclude_unset)


def today() -> date:
    return datetime.now(timezone.utc).date()


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def matches_search(document: Mapping[str, Any], term: Optional[str], fields: Sequence[str]) -> bool:
    """Case-insensitive substring match over the given fields."""
    if not term:
        return True
    needle = term.strip().lower()
    return any(needle in str(document.get(field) or "").lower() for field in fields)


def newest_first(documents: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort by created_at descending; ties keep the later insert first."""
    return sorted(reversed(list(documents)), key=lambda doc: doc.get("created_at") or "", reverse=True)


def paginate(documents: Sequence[Any], page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT):
    """Return (slice, total, page, limit) with the limit clamped to MAX_LIMIT."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_LIMIT)
    start = (page - 1) * limit
    return list(documents[start:start + limit]), len(documents), page, limit


def next_sequence(counter: str, prefix: str, width: int = 4) -> str:
    """
    Next number in a `<prefix><NNNN>` series.

    Args:
        counter: Name of the store counter backing the series.
        prefix: Text placed before the zero-padded number.
        width: Minimum number of digits.

    Returns:
        The formatted identifier, unique even under concurrent callers.
    """
    return f"{prefix}{store.next_counter(counter):0{width}d}"


def percentage(part: float, whole: float, digits: int = 1) -> float:
    """part / whole * 100 rounded; 0 when whole is 0."""
    if not whole:
        return 0.0
    return round(part / whole * 100, digits)


def to_csv(rows: Iterable[Mapping[str, Any]], columns: Sequence[str]) -> str:
    """Render rows as CSV with a header line; missing values become blanks."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({column: "" if row.get(column) is None else row.get(column) for column in columns})
    return buffer.getvalue()


def drop_nulls(updates: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Remove explicit nulls sent for fields that cannot be cleared."""
    for field in fields:
        if field in updates and updates[field] is None:
            del updates[field]
    return updates
