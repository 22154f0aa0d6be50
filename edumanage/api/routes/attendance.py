"""
Attendance endpoints.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Attendance, AttendanceCreate, AttendanceStats,
                              AttendanceStatus, AttendanceUpdate,
                              BulkAttendanceRequest, BulkAttendanceResult,
                              Permission)
from edumanage.services import attendance_service

router = APIRouter(prefix="/attendance", tags=["attendance"])

can_view = require_permission(Permission.MANAGE_ATTENDANCE, Permission.VIEW_STUDENTS)
can_manage = require_permission(Permission.MANAGE_ATTENDANCE)


@router.get("", response_model=List[Attendance])
def list_attendance(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    day: Optional[date] = Query(None, alias="date"),
    status_filter: Optional[AttendanceStatus] = Query(None, alias="status"),
    _: CurrentUser = Depends(can_view),
) -> List[Attendance]:
    return attendance_service.list_attendance(batch_id, student_id, day, status_filter)


@router.get("/stats", response_model=AttendanceStats)
def attendance_stats(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    _: CurrentUser = Depends(can_view),
) -> AttendanceStats:
    return attendance_service.get_stats(batch_id, student_id)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Attendance)
def mark_attendance(request: AttendanceCreate, user: CurrentUser = Depends(can_manage)) -> Attendance:
    return attendance_service.mark_attendance(request, marked_by=user["id"])


@router.post("/bulk", response_model=BulkAttendanceResult)
def mark_bulk_attendance(
    request: BulkAttendanceRequest, user: CurrentUser = Depends(can_manage)
) -> BulkAttendanceResult:
    """Mark a whole batch for one date; existing marks are skipped."""
    return attendance_service.mark_bulk(request, marked_by=user["id"])


@router.get("/{record_id}", response_model=Attendance)
def get_attendance(record_id: str, _: CurrentUser = Depends(can_view)) -> Attendance:
    record = attendance_service.get_attendance(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Attendance record {record_id} not found")
    return record


@router.put("/{record_id}", response_model=Attendance)
def update_attendance(record_id: str, changes: AttendanceUpdate, _: CurrentUser = Depends(can_manage)) -> Attendance:
    record = attendance_service.update_attendance(record_id, changes)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Attendance record {record_id} not found")
    return record


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attendance(record_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not attendance_service.delete_attendance(record_id):
        raise HTTPException(status_code=404, detail=f"Attendance record {record_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
