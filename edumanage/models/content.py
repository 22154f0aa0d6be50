from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from edumanage.models.common import ApiModel


class ContentType(str, Enum):
    VIDEO = "video"
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    LINK = "link"


class Visibility(str, Enum):
    PRIVATE = "private"
    BATCH = "batch"
    COURSE = "course"
    PUBLIC = "public"


class ContentCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    type: ContentType
    format: Optional[str] = Field(None, max_length=20, description="File format such as pdf or mp4")
    file_url: Optional[str] = Field(None, max_length=2000, description="External location of the file")
    storage_key: Optional[str] = Field(None, max_length=1024, description="Key inside the content bucket")
    file_size: Optional[int] = Field(None, ge=0, description="Size in bytes")
    tags: List[str] = Field(default_factory=list)
    course_id: Optional[str] = None
    batch_id: Optional[str] = None
    visibility: Visibility = Visibility.COURSE


class ContentUpdate(ApiModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    type: Optional[ContentType] = None
    format: Optional[str] = Field(None, max_length=20)
    file_url: Optional[str] = Field(None, max_length=2000)
    storage_key: Optional[str] = Field(None, max_length=1024)
    file_size: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    course_id: Optional[str] = None
    batch_id: Optional[str] = None
    visibility: Optional[Visibility] = None


class Content(ContentCreate):
    id: str
    uploaded_by: Optional[str] = None
    access_count: int = 0
    shared_with_users: List[str] = Field(default_factory=list)
    shared_with_batches: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShareRequest(ApiModel):
    user_ids: List[str] = Field(default_factory=list)
    batch_ids: List[str] = Field(default_factory=list)
    message: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_targets(self) -> "ShareRequest":
        if not self.user_ids and not self.batch_ids:
            raise ValueError("Provide at least one user or batch to share with")
        return self


__all__ = [
    "ContentType",
    "Visibility",
    "ContentCreate",
    "ContentUpdate",
    "Content",
    "ShareRequest",
]
