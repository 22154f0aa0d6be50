"""
Base model and shared field types.

Field names are snake_case in Python and camelCase on the wire; requests
accept either spelling.
"""
from __future__ import annotations

from typing import Annotated, Generic, List, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from edumanage import validators

T = TypeVar("T")

# Strings normalised and checked on the way in
Email = Annotated[str, AfterValidator(validators.check_email)]
Phone = Annotated[str, AfterValidator(validators.check_phone)]
Password = Annotated[str, AfterValidator(validators.check_password)]
PersonName = Annotated[str, Field(min_length=1, max_length=120), AfterValidator(validators.check_name)]


class ApiModel(BaseModel):
    """Base for every request/response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Page(ApiModel, Generic[T]):
    """One page of a list endpoint."""
    items: List[T]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)


class MessageResponse(ApiModel):
    message: str


class ChartPoint(ApiModel):
    """Label/count pair rendered by dashboard charts."""
    name: str
    count: int = Field(..., ge=0)


__all__ = [
    "ApiModel",
    "Page",
    "MessageResponse",
    "ChartPoint",
    "Email",
    "Phone",
    "Password",
    "PersonName",
]
