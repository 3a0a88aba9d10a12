"""
Ordering, search filtering and cursor handling shared by every store backend.

All listings are ordered newest first by ``created_at`` with the resource id
as a tie-breaker, so a cursor naming the last returned item identifies a
unique position regardless of which filters were applied.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime, timezone
from typing import Iterable, Optional

from showcase.errors import ValidationError
from showcase.types import Resource, ResourcePage

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def sort_key(resource: Resource) -> tuple[datetime, str]:
    return as_utc(resource.created_at), resource.id


def newest_first(resources: Iterable[Resource]) -> list[Resource]:
    return sorted(resources, key=sort_key, reverse=True)


def encode_cursor(resource: Resource) -> str:
    created_at, resource_id = sort_key(resource)
    raw = json.dumps({"t": created_at.isoformat(), "id": resource_id})
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        return as_utc(datetime.fromisoformat(payload["t"])), str(payload["id"])
    except (binascii.Error, ValueError, KeyError, TypeError, UnicodeError) as e:
        raise ValidationError("Invalid cursor") from e


def is_after(resource: Resource, position: tuple[datetime, str]) -> bool:
    """True when ``resource`` sorts strictly after ``position`` (newest first)."""
    return sort_key(resource) < position


def normalize_category(category: Optional[str]) -> Optional[str]:
    if not category or category == "all":
        return None
    return category


def select_page(
    candidates: Iterable[Resource],
    *,
    search: Optional[str],
    page_size: int,
    cursor: Optional[str],
) -> ResourcePage:
    """
    Filter, order and cut one page out of an unordered candidate set.

    ``candidates`` must already be restricted to the published (and category)
    subset; this applies the search term, sorts newest first, skips up to the
    cursor, and returns ``page_size`` items plus whether more remain.
    """
    position = decode_cursor(cursor) if cursor else None
    term = search.strip() if search else ""
    matched = [
        r
        for r in candidates
        if (not term or r.matches(term))
        and (position is None or is_after(r, position))
    ]
    ordered = newest_first(matched)
    items = ordered[:page_size]
    has_more = len(ordered) > page_size
    next_cursor = encode_cursor(items[-1]) if has_more and items else None
    return ResourcePage(items=items, next_cursor=next_cursor, has_more=has_more)
