"""
Domain types shared by the store, the API schemas and the media client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


RESOURCES_COLLECTION = "resources"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class Category(str, Enum):
    WEB = "web"
    APP = "app"
    DESIGN = "design"
    DEVELOPMENT = "development"
    AI = "ai"
    PRODUCTIVITY = "productivity"
    BUSINESS = "business"
    LEARNING = "learning"
    DEVOPS = "devops"


MEDIA_TYPE_VALUES = tuple(m.value for m in MediaType)
CATEGORY_VALUES = tuple(c.value for c in Category)

# Fields a caller may set; id and created_at belong to the store.
MUTABLE_FIELDS = (
    "title",
    "description",
    "media_url",
    "media_type",
    "category",
    "tags",
    "resource_url",
    "is_published",
    "featured",
)


@dataclass
class Resource:
    id: str
    title: str
    description: str
    media_url: str
    media_type: str
    category: str
    resource_url: str
    created_at: Optional[datetime]
    tags: list[str] = field(default_factory=list)
    is_published: bool = False
    featured: bool = False

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "media_url": self.media_url,
            "media_type": self.media_type,
            "category": self.category,
            "tags": list(self.tags),
            "resource_url": self.resource_url,
            "created_at": self.created_at,
            "is_published": self.is_published,
            "featured": self.featured,
        }

    def matches(self, search_term: str) -> bool:
        """Case-insensitive substring match on title, description or any tag."""
        needle = search_term.lower()
        if needle in (self.title or "").lower():
            return True
        if needle in (self.description or "").lower():
            return True
        return any(needle in (tag or "").lower() for tag in self.tags or [])


@dataclass
class ResourcePage:
    items: list[Resource]
    next_cursor: Optional[str] = None
    has_more: bool = False


@dataclass
class Identity:
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
