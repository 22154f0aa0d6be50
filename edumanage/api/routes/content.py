"""
Learning content endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import RedirectResponse

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Content, ContentCreate, ContentType,
                              ContentUpdate, Permission, ShareRequest)
from edumanage.services import content_service

router = APIRouter(prefix="/content", tags=["content"])

can_view = require_permission(Permission.VIEW_CONTENT)
can_manage = require_permission(Permission.MANAGE_CONTENT)


@router.get("", response_model=List[Content])
def list_content(
    content_type: Optional[ContentType] = Query(None, alias="type"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    batch_id: Optional[str] = Query(None, alias="batchId"),
    tag: Optional[str] = None,
    search: Optional[str] = None,
    _: CurrentUser = Depends(can_view),
) -> List[Content]:
    return content_service.list_content(content_type, course_id, batch_id, tag, search)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Content)
def create_content(request: ContentCreate, user: CurrentUser = Depends(can_manage)) -> Content:
    return content_service.create_content(request, uploaded_by=user["id"])


@router.get("/{content_id}", response_model=Content)
def get_content(content_id: str, _: CurrentUser = Depends(can_view)) -> Content:
    content = content_service.get_content(content_id)
    if content is None:
        raise HTTPException(status_code=404, detail=f"Content {content_id} not found")
    return content


@router.put("/{content_id}", response_model=Content)
def update_content(content_id: str, changes: ContentUpdate, _: CurrentUser = Depends(can_manage)) -> Content:
    content = content_service.update_content(content_id, changes)
    if content is None:
        raise HTTPException(status_code=404, detail=f"Content {content_id} not found")
    return content


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_content(content_id: str, _: CurrentUser = Depends(can_manage)) -> Response:
    if not content_service.delete_content(content_id):
        raise HTTPException(status_code=404, detail=f"Content {content_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{content_id}/share", response_model=Content)
def share_content(content_id: str, request: ShareRequest, _: CurrentUser = Depends(can_manage)) -> Content:
    return content_service.share_content(content_id, request)


@router.get("/{content_id}/download")
def download_content(content_id: str, _: CurrentUser = Depends(can_view)) -> RedirectResponse:
    """Redirect to the file, counting the access."""
    return RedirectResponse(url=content_service.resolve_download_url(content_id), status_code=307)
