"""
Course and batch endpoints.

Batches are created and listed under their course but addressed directly
by id under ``/batches``.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Batch, BatchCreate, BatchStatus, BatchUpdate,
                              Course, CourseCreate, CourseLevel,
                              CourseUpdate, Permission)
from edumanage.services import course_service

router = APIRouter(prefix="/courses", tags=["courses"])
batch_router = APIRouter(prefix="/batches", tags=["batches"])

can_view = require_permission(Permission.VIEW_COURSES)
can_manage = require_permission(Permission.MANAGE_COURSES)


@router.get("", response_model=List[Course])
def list_courses(
    category: Optional[str] = None,
    level: Optional[CourseLevel] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    _: CurrentUser = Depends(can_view),
) -> List[Course]:
    return course_service.list_courses(category, level, is_active, search)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Course)
def create_course(request: CourseCreate, _: CurrentUser = Depends(can_manage)) -> Course:
    return course_service.create_course(request)


@router.get("/{course_id}", response_model=Course)
def get_course(course_id: str, _: CurrentUser = Depends(can_view)) -> Course:
    course = course_service.get_course(course_id)
    if course is None:
        raise HTTPException(status_code=404, detail=f"Course {course_id} not found")
    return course


@router.put("/{course_id}", response_model=Course)
def update_course(course_id: str, changes: CourseUpdate, _: CurrentUser = Depends(can_manage)) -> Course:
    course = course_service.update_course(course_id, changes)
    if course is None:
        raise HTTPException(status_code=404, detail=f"Course {course_id} not found")
    return course


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not course_service.delete_course(course_id):
        raise HTTPException(status_code=404, detail=f"Course {course_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{course_id}/batches", response_model=List[Batch])
def list_batches(
    course_id: str,
    status_filter: Optional[BatchStatus] = Query(None, alias="status"),
    _: CurrentUser = Depends(can_view),
) -> List[Batch]:
    return course_service.list_batches(course_id, status_filter)


@router.post("/{course_id}/batches", status_code=status.HTTP_201_CREATED, response_model=Batch)
def create_batch(course_id: str, request: BatchCreate, _: CurrentUser = Depends(can_manage)) -> Batch:
    return course_service.create_batch(course_id, request)


@batch_router.get("/{batch_id}", response_model=Batch)
def get_batch(batch_id: str, _: CurrentUser = Depends(can_view)) -> Batch:
    batch = course_service.get_batch(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Batch {batch_id} not found")
    return batch


@batch_router.put("/{batch_id}", response_model=Batch)
def update_batch(batch_id: str, changes: BatchUpdate, _: CurrentUser = Depends(can_manage)) -> Batch:
    batch = course_service.update_batch(batch_id, changes)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Batch {batch_id} not found")
    return batch


@batch_router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_batch(batch_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not course_service.delete_batch(batch_id):
        raise HTTPException(status_code=404, detail=f"Batch {batch_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
