"""
Enrollment endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Enrollment, EnrollmentCreate, EnrollmentStatus,
                              EnrollmentStatusUpdate, EnrollmentUpdate,
                              Permission)
from edumanage.services import enrollment_service

router = APIRouter(prefix="/enrollments", tags=["enrollments"])

can_view = require_permission(Permission.VIEW_STUDENTS)
can_manage = require_permission(Permission.MANAGE_STUDENTS)


@router.get("", response_model=List[Enrollment])
def list_enrollments(
    student_id: Optional[str] = Query(None, alias="studentId"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    batch_id: Optional[str] = Query(None, alias="batchId"),
    status_filter: Optional[EnrollmentStatus] = Query(None, alias="status"),
    _: CurrentUser = Depends(can_view),
) -> List[Enrollment]:
    return enrollment_service.list_enrollments(student_id, course_id, batch_id, status_filter)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Enrollment)
def create_enrollment(request: EnrollmentCreate, user: CurrentUser = Depends(can_manage)) -> Enrollment:
    """Enroll a student (or a lead, which is admitted first) into a batch."""
    return enrollment_service.create_enrollment(request, enrolled_by=user["id"])


@router.get("/{enrollment_id}", response_model=Enrollment)
def get_enrollment(enrollment_id: str, _: CurrentUser = Depends(can_view)) -> Enrollment:
    enrollment = enrollment_service.get_enrollment(enrollment_id)
    if enrollment is None:
        raise HTTPException(status_code=404, detail=f"Enrollment {enrollment_id} not found")
    return enrollment


@router.put("/{enrollment_id}", response_model=Enrollment)
def update_enrollment(
    enrollment_id: str, changes: EnrollmentUpdate, _: CurrentUser = Depends(can_manage)
) -> Enrollment:
    enrollment = enrollment_service.update_enrollment(enrollment_id, changes)
    if enrollment is None:
        raise HTTPException(status_code=404, detail=f"Enrollment {enrollment_id} not found")
    return enrollment


@router.patch("/{enrollment_id}/status", response_model=Enrollment)
def update_enrollment_status(
    enrollment_id: str, request: EnrollmentStatusUpdate, _: CurrentUser = Depends(can_manage)
) -> Enrollment:
    enrollment = enrollment_service.update_status(enrollment_id, request.status)
    if enrollment is None:
        raise HTTPException(status_code=404, detail=f"Enrollment {enrollment_id} not found")
    return enrollment


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_enrollment(enrollment_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not enrollment_service.delete_enrollment(enrollment_id):
        raise HTTPException(status_code=404, detail=f"Enrollment {enrollment_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
