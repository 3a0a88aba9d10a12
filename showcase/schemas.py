"""
Pydantic schemas for the showcase API.

Wire format is camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from showcase.types import (
    CATEGORY_VALUES,
    MEDIA_TYPE_VALUES,
    Category,
    MediaType,
    Resource,
)

REQUIRED_CREATE_FIELDS = (
    "title",
    "description",
    "mediaUrl",
    "mediaType",
    "category",
    "resourceUrl",
)
TEXT_FIELDS = ("title", "description", "mediaUrl", "resourceUrl")
URL_FIELDS = ("mediaUrl", "resourceUrl")

# Error types whose message is already meant for the caller.
CALLER_FACING_ERRORS = {"invalid_body", "missing_field", "invalid_field"}


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError("invalid_field", message)


def _check_enums(data: dict) -> None:
    if "mediaType" in data and data["mediaType"] not in MEDIA_TYPE_VALUES:
        raise _invalid('mediaType must be either "image" or "video"')
    if "category" in data and data["category"] not in CATEGORY_VALUES:
        raise _invalid("category must be one of: " + ", ".join(CATEGORY_VALUES))


def _check_urls(data: dict) -> None:
    for name in URL_FIELDS:
        if name not in data:
            continue
        parsed = urlparse(str(data[name]))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise _invalid(f"{name} must be an absolute http(s) URL")


def _require_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise PydanticCustomError("invalid_body", "Request body must be a JSON object")
    return data


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class ResourceModel(CamelModel):
    id: str
    title: str
    description: str
    media_url: str
    media_type: str
    category: str
    tags: list[str] = Field(default_factory=list)
    resource_url: str
    created_at: Optional[datetime] = None
    is_published: bool = False
    featured: bool = False

    @classmethod
    def from_resource(cls, resource: Resource) -> "ResourceModel":
        return cls(**resource.as_dict())


def _coerce_tags(value: Any) -> list:
    return list(value) if isinstance(value, list) else []


class ResourceCreate(CamelModel):
    title: str
    description: str
    media_url: str
    media_type: MediaType
    category: Category
    resource_url: str
    tags: list[str] = Field(default_factory=list)
    is_published: bool = False
    featured: bool = False

    @model_validator(mode="before")
    @classmethod
    def _validate_payload(cls, data: Any) -> Any:
        data = _require_object(data)
        for name in REQUIRED_CREATE_FIELDS:
            if not data.get(name):
                raise PydanticCustomError(
                    "missing_field",
                    "Missing required field: {field}",
                    {"field": name},
                )
        _check_enums(data)
        _check_urls(data)
        return data

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list:
        return _coerce_tags(value)

    @field_validator("is_published", "featured", mode="before")
    @classmethod
    def _flags(cls, value: Any) -> Any:
        return False if value is None else value

    def to_fields(self) -> dict:
        fields = self.model_dump()
        fields["media_type"] = self.media_type.value
        fields["category"] = self.category.value
        return fields


class ResourceUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None
    category: Optional[Category] = None
    tags: Optional[list[str]] = None
    resource_url: Optional[str] = None
    is_published: Optional[bool] = None
    featured: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _validate_payload(cls, data: Any) -> Any:
        data = _require_object(data)
        _check_enums(data)
        for name in TEXT_FIELDS:
            if name in data and not data[name]:
                raise _invalid(f"{name} must not be empty")
        for name in ("isPublished", "featured"):
            if name in data and data[name] is None:
                raise _invalid(f"{name} must be a boolean")
        _check_urls(data)
        return data

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list:
        return _coerce_tags(value)

    def to_fields(self) -> dict:
        """Only the fields the caller actually sent."""
        fields = self.model_dump(exclude_unset=True)
        for name in ("media_type", "category"):
            if name in fields:
                fields[name] = getattr(self, name).value
        return fields


class ResourceListResponse(CamelModel):
    resources: list[ResourceModel]
    has_more: Optional[bool] = None
    next_cursor: Optional[str] = None


class SearchResponse(CamelModel):
    resources: list[ResourceModel]
    query: str
    category: Optional[str] = None


class CreateResourceResponse(CamelModel):
    id: str
    message: str


class MessageResponse(CamelModel):
    message: str


class MediaDeleteRequest(CamelModel):
    public_id: Optional[str] = None


class UploadTicketRequest(CamelModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)


class UploadTicketResponse(CamelModel):
    url: str
    fields: dict
    media_type: str
    public_id: Optional[str] = None
    public_url: Optional[str] = None


class FirebaseWebConfig(CamelModel):
    api_key: Optional[str] = None
    auth_domain: Optional[str] = None
    project_id: Optional[str] = None


class ClientConfigResponse(CamelModel):
    api_prefix: str
    firebase: FirebaseWebConfig
    categories: list[str]
    media_types: list[str]
    page_size: int
    featured_limit: int
    search_debounce_ms: int
    media_delete_requires_auth: bool
