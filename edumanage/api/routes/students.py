"""
Student (admitted lead) endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Attendance, BulkUpdateRequest, BulkUpdateResult,
                              Enrollment, FeeSummary, NotificationRequest,
                              NotificationResult, Page, Payment, Permission,
                              Student, StudentCreate, StudentStats,
                              StudentStatus, StudentStatusUpdate,
                              StudentUpdate)
from edumanage.services import student_service

router = APIRouter(prefix="/students", tags=["students"])

can_view = require_permission(Permission.VIEW_STUDENTS)
can_manage = require_permission(Permission.MANAGE_STUDENTS)


def _not_found(student_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Student {student_id} not found")


@router.get("", response_model=Page[Student])
def list_students(
    status_filter: Optional[StudentStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    course_id: Optional[str] = Query(None, alias="courseId"),
    batch_id: Optional[str] = Query(None, alias="batchId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: CurrentUser = Depends(can_view),
) -> Page[Student]:
    return student_service.list_students(status_filter, search, course_id, batch_id, page, limit)


@router.get("/stats", response_model=StudentStats)
def student_stats(_: CurrentUser = Depends(can_view)) -> StudentStats:
    return student_service.get_stats()


@router.get("/search", response_model=List[Student])
def search_students(
    query: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    _: CurrentUser = Depends(can_view),
) -> List[Student]:
    return student_service.search_students(query, limit)


@router.get("/export")
def export_students(
    status_filter: Optional[StudentStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    _: CurrentUser = Depends(can_view),
) -> Response:
    body = student_service.export_csv(status_filter, search)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="students.csv"'},
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Student)
def create_student(request: StudentCreate, user: CurrentUser = Depends(can_manage)) -> Student:
    """Direct admission without going through the lead pipeline."""
    return student_service.create_student(request, created_by=user["id"])


@router.post("/bulk-update", response_model=BulkUpdateResult)
def bulk_update(request: BulkUpdateRequest, _: CurrentUser = Depends(can_manage)) -> BulkUpdateResult:
    return student_service.bulk_update(request)


@router.get("/{student_id}", response_model=Student)
def get_student(student_id: str, _: CurrentUser = Depends(can_view)) -> Student:
    student = student_service.get_student(student_id)
    if student is None:
        raise _not_found(student_id)
    return student


@router.put("/{student_id}", response_model=Student)
def update_student(student_id: str, changes: StudentUpdate, _: CurrentUser = Depends(can_manage)) -> Student:
    student = student_service.update_student(student_id, changes)
    if student is None:
        raise _not_found(student_id)
    return student


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_student(student_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not student_service.delete_student(student_id):
        raise _not_found(student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{student_id}/status", response_model=Student)
def update_student_status(
    student_id: str, request: StudentStatusUpdate, _: CurrentUser = Depends(can_manage)
) -> Student:
    student = student_service.update_status(student_id, request.status)
    if student is None:
        raise _not_found(student_id)
    return student


@router.get("/{student_id}/enrollments", response_model=List[Enrollment])
def student_enrollments(student_id: str, _: CurrentUser = Depends(can_view)) -> List[Enrollment]:
    return student_service.list_enrollments(student_id)


@router.get("/{student_id}/payments", response_model=List[Payment])
def student_payments(student_id: str, _: CurrentUser = Depends(can_view)) -> List[Payment]:
    return student_service.list_payments(student_id)


@router.get("/{student_id}/attendance", response_model=List[Attendance])
def student_attendance(student_id: str, _: CurrentUser = Depends(can_view)) -> List[Attendance]:
    return student_service.list_attendance(student_id)


@router.get("/{student_id}/fee-summary", response_model=FeeSummary)
def fee_summary(student_id: str, _: CurrentUser = Depends(can_view)) -> FeeSummary:
    return student_service.fee_summary(student_id)


@router.post("/{student_id}/notify", response_model=NotificationResult)
def notify_student(
    student_id: str, request: NotificationRequest, _: CurrentUser = Depends(can_manage)
) -> NotificationResult:
    return student_service.notify(student_id, request.subject, request.message)
