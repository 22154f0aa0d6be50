"""
Service layer for leads: prospective students tracked in the `students`
collection until they are admitted.
"""
from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from edumanage.models import (Communication, CommunicationCreate, FollowUp,
                              FollowUpComplete, FollowUpCreate, ImportResult,
                              ImportRowError, Lead, LeadConversion,
                              LeadCreate, LeadNote, LeadReply, LeadSource,
                              LeadSourceCount, LeadStats, LeadStatus,
                              LeadUpdate, Page, Student)
from edumanage.services import enrollment_service, student_service
from edumanage.services.common import (DEFAULT_LIMIT, DEFAULT_PAGE,
                                       drop_nulls, matches_search,
                                       newest_first, paginate, percentage,
                                       to_csv, to_document)
from edumanage.services.errors import (ConflictError, InvalidOperationError,
                                       NotFoundError)
from edumanage.storage import Collection, store
from edumanage.storage.records import utc_now_iso

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "email", "phone")
REQUIRED_FIELDS = ("name", "email", "phone", "source", "remind", "payment_plan")
EXPORT_COLUMNS = (
    "id", "name", "email", "phone", "age", "source", "status", "reply", "remind",
    "course_interest", "assigned_to", "follow_up_date", "created_at",
)
OPEN_STATUSES = (LeadStatus.NEW.value, LeadStatus.CONTACTED.value)


def _get_lead_document(lead_id: str) -> Optional[Dict[str, Any]]:
    return store.get(Collection.STUDENTS, lead_id)


def _require_lead(lead_id: str) -> Dict[str, Any]:
    lead = _get_lead_document(lead_id)
    if not lead:
        raise NotFoundError(f"Lead {lead_id} not found")
    return lead


def _require_editable(lead_id: str) -> Dict[str, Any]:
    lead = _require_lead(lead_id)
    if lead.get("status") == LeadStatus.CONVERTED.value:
        raise ConflictError("Lead has already been converted")
    return lead


def _entry(**fields: Any) -> Dict[str, Any]:
    """New embedded entry (note, communication, follow-up) with id and timestamp."""
    return {"id": store.generate_id(), "created_at": utc_now_iso(), **fields}


def ensure_unique_email(email: str, exclude_id: Optional[str] = None) -> None:
    existing = store.find_one(Collection.STUDENTS, {"email": email})
    if existing and existing["id"] != exclude_id:
        raise ConflictError("A lead or student with this email already exists")


def _filtered_leads(
    status: Optional[LeadStatus] = None,
    source: Optional[LeadSource] = None,
    assigned_to: Optional[str] = None,
    reply: Optional[LeadReply] = None,
    search: Optional[str] = None,
    include_admitted: bool = False,
) -> List[Dict[str, Any]]:
    filters: Dict[str, Any] = {}
    if status:
        filters["status"] = status.value
    if source:
        filters["source"] = source.value
    if assigned_to:
        filters["assigned_to"] = assigned_to
    if reply:
        filters["reply"] = reply.value
    if not include_admitted and status != LeadStatus.CONVERTED:
        filters["is_admitted"] = False
    return [
        doc for doc in newest_first(store.find(Collection.STUDENTS, filters))
        if matches_search(doc, search, SEARCH_FIELDS)
    ]


def list_leads(
    status: Optional[LeadStatus] = None,
    source: Optional[LeadSource] = None,
    assigned_to: Optional[str] = None,
    reply: Optional[LeadReply] = None,
    search: Optional[str] = None,
    include_admitted: bool = False,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
) -> Page[Lead]:
    """List leads newest first. Admitted records are hidden unless asked for."""
    leads = _filtered_leads(status, source, assigned_to, reply, search, include_admitted)
    items, total, page, limit = paginate(leads, page, limit)
    return Page[Lead](items=[Lead.model_validate(doc) for doc in items], total=total, page=page, limit=limit)


def get_lead(lead_id: str) -> Optional[Lead]:
    lead = _get_lead_document(lead_id)
    return Lead.model_validate(lead) if lead else None


def create_lead(request: LeadCreate, created_by: Optional[str] = None) -> Lead:
    ensure_unique_email(request.email)
    if request.assigned_to and not store.get(Collection.USERS, request.assigned_to):
        raise NotFoundError(f"User {request.assigned_to} not found")
    document = to_document(request)
    document.update({
        "status": LeadStatus.NEW.value,
        "is_admitted": False,
        "student_id": None,
        "notes": [],
        "communications": [],
        "follow_ups": [],
        "created_by": created_by,
    })
    lead = store.insert(Collection.STUDENTS, document)
    logger.info(f"Created lead {lead['id']} from {lead['source']}")
    return Lead.model_validate(lead)


def update_lead(lead_id: str, changes: LeadUpdate) -> Optional[Lead]:
    if not _get_lead_document(lead_id):
        return None
    updates = to_document(changes, exclude_unset=True)
    if updates.get("email"):
        ensure_unique_email(updates["email"], exclude_id=lead_id)
    drop_nulls(updates, REQUIRED_FIELDS)
    return Lead.model_validate(store.update(Collection.STUDENTS, lead_id, updates))


def delete_lead(lead_id: str) -> bool:
    lead = _get_lead_document(lead_id)
    if not lead:
        return False
    if lead.get("is_admitted"):
        raise ConflictError("Lead has been admitted; delete the student record instead")
    logger.info(f"Deleting lead {lead_id}")
    return store.delete(Collection.STUDENTS, lead_id)


def update_status(lead_id: str, status: LeadStatus, notes: Optional[str], user_id: Optional[str]) -> Lead:
    if status == LeadStatus.CONVERTED:
        raise InvalidOperationError("Use the convert action to admit a lead")
    lead = _require_editable(lead_id)
    changes: Dict[str, Any] = {"status": status.value}
    if notes:
        changes["notes"] = lead.get("notes", []) + [
            _entry(text=f"Status changed to {status.value}: {notes}", created_by=user_id)
        ]
    return Lead.model_validate(store.update(Collection.STUDENTS, lead_id, changes))


def assign(lead_id: str, user_id: str) -> Lead:
    _require_lead(lead_id)
    if not store.get(Collection.USERS, user_id):
        raise NotFoundError(f"User {user_id} not found")
    return Lead.model_validate(store.update(Collection.STUDENTS, lead_id, {"assigned_to": user_id}))


# ---------------------------------------------------------------------------
# Notes, communications and follow-ups
# ---------------------------------------------------------------------------

def add_note(lead_id: str, text: str, user_id: Optional[str]) -> LeadNote:
    lead = _require_lead(lead_id)
    note = _entry(text=text, created_by=user_id)
    store.update(Collection.STUDENTS, lead_id, {"notes": lead.get("notes", []) + [note]})
    return LeadNote.model_validate(note)


def list_notes(lead_id: str) -> List[LeadNote]:
    return [LeadNote.model_validate(note) for note in _require_lead(lead_id).get("notes", [])]


def add_communication(lead_id: str, request: CommunicationCreate, user_id: Optional[str]) -> Communication:
    lead = _require_lead(lead_id)
    communication = _entry(created_by=user_id, **to_document(request))
    changes: Dict[str, Any] = {"communications": lead.get("communications", []) + [communication]}
    if lead.get("status") == LeadStatus.NEW.value:
        changes["status"] = LeadStatus.CONTACTED.value
    store.update(Collection.STUDENTS, lead_id, changes)
    return Communication.model_validate(communication)


def list_communications(lead_id: str) -> List[Communication]:
    return [Communication.model_validate(c) for c in _require_lead(lead_id).get("communications", [])]


def schedule_follow_up(lead_id: str, request: FollowUpCreate, user_id: Optional[str]) -> FollowUp:
    lead = _require_lead(lead_id)
    follow_up = _entry(created_by=user_id, completed=False, completed_at=None, outcome=None, **to_document(request))
    changes: Dict[str, Any] = {
        "follow_ups": lead.get("follow_ups", []) + [follow_up],
        "follow_up_date": follow_up["scheduled_for"],
        "remind": True,
    }
    if lead.get("status") in OPEN_STATUSES:
        changes["status"] = LeadStatus.FOLLOW_UP.value
    store.update(Collection.STUDENTS, lead_id, changes)
    return FollowUp.model_validate(follow_up)


def list_follow_ups(lead_id: str) -> List[FollowUp]:
    return [FollowUp.model_validate(f) for f in _require_lead(lead_id).get("follow_ups", [])]


def complete_follow_up(lead_id: str, follow_up_id: str, request: FollowUpComplete) -> FollowUp:
    lead = _require_lead(lead_id)
    follow_ups = lead.get("follow_ups", [])
    target = next((f for f in follow_ups if f["id"] == follow_up_id), None)
    if target is None:
        raise NotFoundError(f"Follow-up {follow_up_id} not found")
    if target.get("completed"):
        raise ConflictError("Follow-up is already completed")

    target.update({"completed": True, "completed_at": utc_now_iso(), "outcome": request.outcome})
    pending = [f for f in follow_ups if not f.get("completed")]
    changes: Dict[str, Any] = {"follow_ups": follow_ups}
    if not pending:
        changes["remind"] = False
        changes["follow_up_date"] = None
    else:
        changes["follow_up_date"] = min(f["scheduled_for"] for f in pending)
    store.update(Collection.STUDENTS, lead_id, changes)
    return FollowUp.model_validate(target)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def convert(lead_id: str, request: LeadConversion, user_id: Optional[str]) -> Student:
    """Admit a lead as a student and optionally enroll it in a batch."""
    lead = _require_lead(lead_id)
    if lead.get("is_admitted") or lead.get("status") == LeadStatus.CONVERTED.value:
        raise ConflictError("Lead has already been converted")
    if request.batch_id and not request.course_id:
        raise InvalidOperationError("courseId is required when batchId is given")

    if request.course_id and request.batch_id:
        # Validate the enrollment before admitting so a bad batch leaves the lead untouched
        enrollment_service.check_enrollable(lead_id, request.course_id, request.batch_id)

    details = request.model_dump(
        mode="json", exclude={"course_id", "batch_id", "discount", "remarks"}, exclude_none=True
    )
    student = student_service.admit(lead, details)
    if request.course_id and request.batch_id:
        enrollment_service.enroll_admitted(
            student_doc_id=student.id,
            course_id=request.course_id,
            batch_id=request.batch_id,
            discount=request.discount,
            remarks=request.remarks,
            lead_id=lead_id,
            enrolled_by=user_id,
        )
    logger.info(f"Converted lead {lead_id} into student {student.student_id}")
    return student


# ---------------------------------------------------------------------------
# Stats, sources, import and export
# ---------------------------------------------------------------------------

def get_stats() -> LeadStats:
    records = store.find(Collection.STUDENTS)
    by_status = Counter(doc.get("status") or LeadStatus.NEW.value for doc in records)
    by_source = Counter(doc.get("source") or LeadSource.OTHER.value for doc in records)
    return LeadStats(
        total=len(records),
        by_status=dict(by_status),
        by_source=dict(by_source),
        interested=sum(1 for doc in records if doc.get("reply") == LeadReply.INTERESTED.value),
        pending_reminders=sum(1 for doc in records if doc.get("remind")),
        conversion_rate=percentage(by_status.get(LeadStatus.CONVERTED.value, 0), len(records)),
    )


def get_sources() -> List[LeadSourceCount]:
    counts = Counter(doc.get("source") or LeadSource.OTHER.value for doc in store.find(Collection.STUDENTS))
    return [LeadSourceCount(source=source, count=counts.get(source.value, 0)) for source in LeadSource]


def export_csv(**filters: Any) -> str:
    return to_csv(_filtered_leads(**filters), EXPORT_COLUMNS)


def _normalise_row(row: Dict[str, Optional[str]]) -> Dict[str, Any]:
    """Map CSV headers (any case, camelCase or snake_case) to LeadCreate input."""
    cleaned: Dict[str, Any] = {}
    for key, value in row.items():
        if key is None or value is None or not value.strip():
            continue
        name = key.strip()
        if " " in name or "_" in name or name.isupper():
            name = name.lower().replace(" ", "_")
        else:
            name = name[:1].lower() + name[1:]
        cleaned[name] = value.strip()
    if "remind" in cleaned:
        cleaned["remind"] = cleaned["remind"].lower() in ("1", "true", "yes", "y")
    if "source" in cleaned:
        cleaned["source"] = cleaned["source"].lower().replace(" ", "_").replace("-", "")
    return cleaned


def import_csv(text: str, created_by: Optional[str] = None) -> ImportResult:
    """Create a lead per CSV row. Bad rows are reported with their line number."""
    text = text.lstrip("\ufeff")
    if not text.strip():
        raise InvalidOperationError("CSV body is empty")
    reader = csv.DictReader(io.StringIO(text))
    headers = {(h or "").strip().lower() for h in reader.fieldnames or []}
    missing = {"name", "email", "phone"} - headers
    if missing:
        raise InvalidOperationError(f"CSV header is missing column(s): {', '.join(sorted(missing))}")

    created = 0
    errors: List[ImportRowError] = []
    for row in reader:
        line = reader.line_num
        try:
            request = LeadCreate.model_validate(_normalise_row(row))
            create_lead(request, created_by)
            created += 1
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            errors.append(ImportRowError(line=line, error=f"{field}: {first.get('msg')}"))
        except (ConflictError, NotFoundError) as e:
            errors.append(ImportRowError(line=line, error=e.message))
    logger.info(f"Imported {created} lead(s), {len(errors)} row(s) rejected")
    return ImportResult(created=created, errors=errors)
