"""
Lead management endpoints.

Leads and students share one collection; a lead becomes a student through
``POST /leads/{id}/convert``.
"""
import logging
from typing import List, Optional

from fastapi import (APIRouter, Depends, HTTPException, Query, Request,
                     Response, status)

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Communication, CommunicationCreate, FollowUp,
                              FollowUpComplete, FollowUpCreate, ImportResult,
                              Lead, LeadAssign, LeadConversion, LeadCreate,
                              LeadNote, LeadReply, LeadSource,
                              LeadSourceCount, LeadStats, LeadStatus,
                              LeadStatusUpdate, LeadUpdate, NoteCreate, Page,
                              Permission, Student)
from edumanage.services import lead_service

router = APIRouter(prefix="/leads", tags=["leads"])
logger = logging.getLogger(__name__)

can_view = require_permission(Permission.VIEW_LEADS)
can_manage = require_permission(Permission.MANAGE_LEADS)


@router.get("", response_model=Page[Lead])
def list_leads(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    source: Optional[LeadSource] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    reply: Optional[LeadReply] = None,
    search: Optional[str] = None,
    include_admitted: bool = Query(False, alias="includeAdmitted"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: CurrentUser = Depends(can_view),
) -> Page[Lead]:
    return lead_service.list_leads(
        status=status_filter,
        source=source,
        assigned_to=assigned_to,
        reply=reply,
        search=search,
        include_admitted=include_admitted,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=LeadStats)
def lead_stats(_: CurrentUser = Depends(can_view)) -> LeadStats:
    return lead_service.get_stats()


@router.get("/sources", response_model=List[LeadSourceCount])
def lead_sources(_: CurrentUser = Depends(can_view)) -> List[LeadSourceCount]:
    return lead_service.get_sources()


@router.get("/export")
def export_leads(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    source: Optional[LeadSource] = None,
    search: Optional[str] = None,
    _: CurrentUser = Depends(can_view),
) -> Response:
    """Download the filtered leads as CSV."""
    body = lead_service.export_csv(status=status_filter, source=source, search=search)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="leads.csv"'},
    )


@router.post("/import", response_model=ImportResult)
async def import_leads(request: Request, user: CurrentUser = Depends(can_manage)) -> ImportResult:
    """Create leads from a CSV request body, reporting rejected rows by line."""
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV body must be UTF-8 encoded")
    result = lead_service.import_csv(text, created_by=user["id"])
    return result


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Lead)
def create_lead(request: LeadCreate, user: CurrentUser = Depends(can_manage)) -> Lead:
    return lead_service.create_lead(request, created_by=user["id"])


@router.get("/{lead_id}", response_model=Lead)
def get_lead(lead_id: str, _: CurrentUser = Depends(can_view)) -> Lead:
    lead = lead_service.get_lead(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    return lead


@router.put("/{lead_id}", response_model=Lead)
def update_lead(lead_id: str, changes: LeadUpdate, _: CurrentUser = Depends(can_manage)) -> Lead:
    lead = lead_service.update_lead(lead_id, changes)
    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    return lead


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lead(lead_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not lead_service.delete_lead(lead_id):
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{lead_id}/status", response_model=Lead)
def update_lead_status(lead_id: str, request: LeadStatusUpdate, user: CurrentUser = Depends(can_manage)) -> Lead:
    return lead_service.update_status(lead_id, request.status, request.notes, user["id"])


@router.patch("/{lead_id}/assign", response_model=Lead)
def assign_lead(lead_id: str, request: LeadAssign, _: CurrentUser = Depends(can_manage)) -> Lead:
    return lead_service.assign(lead_id, request.user_id)


@router.post("/{lead_id}/convert", status_code=status.HTTP_201_CREATED, response_model=Student)
def convert_lead(lead_id: str, request: LeadConversion, user: CurrentUser = Depends(can_manage)) -> Student:
    """Admit the lead as a student, enrolling it when a batch is given."""
    return lead_service.convert(lead_id, request, user["id"])


@router.post("/{lead_id}/notes", status_code=status.HTTP_201_CREATED, response_model=LeadNote)
def add_note(lead_id: str, request: NoteCreate, user: CurrentUser = Depends(can_manage)) -> LeadNote:
    return lead_service.add_note(lead_id, request.note, user["id"])


@router.get("/{lead_id}/notes", response_model=List[LeadNote])
def list_notes(lead_id: str, _: CurrentUser = Depends(can_view)) -> List[LeadNote]:
    return lead_service.list_notes(lead_id)


@router.post("/{lead_id}/communications", status_code=status.HTTP_201_CREATED, response_model=Communication)
def add_communication(
    lead_id: str, request: CommunicationCreate, user: CurrentUser = Depends(can_manage)
) -> Communication:
    return lead_service.add_communication(lead_id, request, user["id"])


@router.get("/{lead_id}/communications", response_model=List[Communication])
def list_communications(lead_id: str, _: CurrentUser = Depends(can_view)) -> List[Communication]:
    return lead_service.list_communications(lead_id)


@router.post("/{lead_id}/follow-up", status_code=status.HTTP_201_CREATED, response_model=FollowUp)
def schedule_follow_up(lead_id: str, request: FollowUpCreate, user: CurrentUser = Depends(can_manage)) -> FollowUp:
    return lead_service.schedule_follow_up(lead_id, request, user["id"])


@router.get("/{lead_id}/follow-ups", response_model=List[FollowUp])
def list_follow_ups(lead_id: str, _: CurrentUser = Depends(can_view)) -> List[FollowUp]:
    return lead_service.list_follow_ups(lead_id)


@router.patch("/{lead_id}/follow-ups/{follow_up_id}", response_model=FollowUp)
def complete_follow_up(
    lead_id: str, follow_up_id: str, request: FollowUpComplete, _: CurrentUser = Depends(can_manage)
) -> FollowUp:
    return lead_service.complete_follow_up(lead_id, follow_up_id, request)
