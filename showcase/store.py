"""
Persistence adapters for resources: Firestore, SQLAlchemy and in-memory.

Every backend implements ``ResourceStore``. Enumerated fields are validated
by the API layer, not here.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, Query
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    Text,
    and_,
    create_engine,
    or_,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from showcase.errors import ResourceNotFoundError, StoreUnavailableError
from showcase.json_utils import convert_keys
from showcase.pagination import (
    as_utc,
    decode_cursor,
    newest_first,
    normalize_category,
    select_page,
)
from showcase.types import MUTABLE_FIELDS, RESOURCES_COLLECTION, Resource, ResourcePage

logger = logging.getLogger(__name__)

SEARCH_BATCH_SIZE = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResourceStore(Protocol):
    """Interface for resource persistence."""

    def create(self, fields: dict) -> str:
        ...

    def get(self, resource_id: str) -> Resource:
        ...

    def update(self, resource_id: str, fields: dict) -> None:
        ...

    def delete(self, resource_id: str) -> None:
        ...

    def list_published(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: int = 12,
        cursor: Optional[str] = None,
    ) -> ResourcePage:
        ...

    def list_all(self) -> list[Resource]:
        ...

    def list_featured(self, limit: int = 6) -> list[Resource]:
        ...

    def search(self, query: str, category: Optional[str] = None) -> list[Resource]:
        ...


def _writable(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}


def _new_resource(resource_id: str, fields: dict, created_at: datetime) -> Resource:
    return Resource(
        id=resource_id,
        title=fields.get("title", ""),
        description=fields.get("description", ""),
        media_url=fields.get("media_url", ""),
        media_type=fields.get("media_type", ""),
        category=fields.get("category", ""),
        resource_url=fields.get("resource_url", ""),
        created_at=created_at,
        tags=list(fields.get("tags") or []),
        is_published=bool(fields.get("is_published", False)),
        featured=bool(fields.get("featured", False)),
    )


class InMemoryResourceStore:
    """Simple in-memory store for development and tests."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.resources: dict[str, Resource] = {}
        self._clock = clock

    def create(self, fields: dict) -> str:
        resource_id = uuid.uuid4().hex
        self.resources[resource_id] = _new_resource(
            resource_id, _writable(fields), self._clock()
        )
        return resource_id

    def get(self, resource_id: str) -> Resource:
        resource = self.resources.get(resource_id)
        if resource is None:
            raise ResourceNotFoundError()
        return replace(resource, tags=list(resource.tags))

    def update(self, resource_id: str, fields: dict) -> None:
        resource = self.resources.get(resource_id)
        if resource is None:
            raise ResourceNotFoundError()
        self.resources[resource_id] = replace(resource, **_writable(fields))

    def delete(self, resource_id: str) -> None:
        self.resources.pop(resource_id, None)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.resources.clear()

    def _published(self, category: Optional[str] = None) -> list[Resource]:
        category = normalize_category(category)
        return [
            r
            for r in self.resources.values()
            if r.is_published and (category is None or r.category == category)
        ]

    def list_published(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: int = 12,
        cursor: Optional[str] = None,
    ) -> ResourcePage:
        return select_page(
            self._published(category),
            search=search,
            page_size=page_size,
            cursor=cursor,
        )

    def list_all(self) -> list[Resource]:
        return newest_first(self.resources.values())

    def list_featured(self, limit: int = 6) -> list[Resource]:
        return newest_first(r for r in self._published() if r.featured)[:limit]

    def search(self, query: str, category: Optional[str] = None) -> list[Resource]:
        return newest_first(r for r in self._published(category) if r.matches(query))


class UnconfiguredResourceStore:
    """
    Stand-in used when no backend credentials are configured.

    Public listings degrade to empty results; everything else fails with
    ``StoreUnavailableError``.
    """

    def create(self, fields: dict) -> str:
        raise StoreUnavailableError()

    def get(self, resource_id: str) -> Resource:
        raise StoreUnavailableError()

    def update(self, resource_id: str, fields: dict) -> None:
        raise StoreUnavailableError()

    def delete(self, resource_id: str) -> None:
        raise StoreUnavailableError()

    def list_published(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: int = 12,
        cursor: Optional[str] = None,
    ) -> ResourcePage:
        logger.warning("Resource store not configured, returning empty page")
        return ResourcePage(items=[])

    def list_all(self) -> list[Resource]:
        logger.warning("Resource store not configured, returning empty list")
        return []

    def list_featured(self, limit: int = 6) -> list[Resource]:
        return []

    def search(self, query: str, category: Optional[str] = None) -> list[Resource]:
        return []


@contextmanager
def _firestore_errors(action: str) -> Iterator[None]:
    try:
        yield
    except google_exceptions.NotFound as e:
        raise ResourceNotFoundError() from e
    except google_exceptions.GoogleAPIError as e:
        logger.error("Firestore error while %s: %s", action, e)
        raise StoreUnavailableError() from e


class FirestoreResourceStore:
    """
    Firestore-backed store.

    Firestore cannot combine the equality filters used here with a
    ``createdAt`` sort without a composite index, so candidates are read with
    equality filters only, ordered by document id, and the search filter and
    newest-first sort are applied in memory before the page is cut.

    Every call reads the whole filtered set. ``overfetch_factor`` only sets
    the batch size (``page_size * overfetch_factor`` documents per query);
    reading stops when a batch comes back short, never earlier, because
    document-id order says nothing about which documents are newest.
    """

    def __init__(self, client: Any, overfetch_factor: int = 2):
        self.client = client
        self.overfetch_factor = max(1, overfetch_factor)

    @property
    def collection(self):
        return self.client.collection(RESOURCES_COLLECTION)

    def _to_resource(self, snapshot) -> Resource:
        data = convert_keys(snapshot.to_dict() or {}, "camel_to_snake")
        return Resource(
            id=snapshot.id,
            title=data.get("title", ""),
            description=data.get("description", ""),
            media_url=data.get("media_url", ""),
            media_type=data.get("media_type", ""),
            category=data.get("category", ""),
            resource_url=data.get("resource_url", ""),
            created_at=data.get("created_at"),
            tags=list(data.get("tags") or []),
            is_published=bool(data.get("is_published", False)),
            featured=bool(data.get("featured", False)),
        )

    def create(self, fields: dict) -> str:
        document = convert_keys(_writable(fields), "snake_to_camel")
        document["createdAt"] = SERVER_TIMESTAMP
        with _firestore_errors("creating resource"):
            _, doc_ref = self.collection.add(document)
        return doc_ref.id

    def get(self, resource_id: str) -> Resource:
        with _firestore_errors("fetching resource"):
            snapshot = self.collection.document(resource_id).get()
        if not snapshot.exists:
            raise ResourceNotFoundError()
        return self._to_resource(snapshot)

    def update(self, resource_id: str, fields: dict) -> None:
        updates = convert_keys(_writable(fields), "snake_to_camel")
        if not updates:
            # update() with no fields is rejected by Firestore; still 404 on a
            # missing document.
            self.get(resource_id)
            return
        with _firestore_errors("updating resource"):
            self.collection.document(resource_id).update(updates)

    def delete(self, resource_id: str) -> None:
        with _firestore_errors("deleting resource"):
            self.collection.document(resource_id).delete()

    def _candidates(self, batch_size: int, **equals: Any) -> list[Resource]:
        query = self.collection
        for field_name, value in equals.items():
            query = query.where(filter=FieldFilter(field_name, "==", value))
        query = query.order_by(FieldPath.document_id())

        results: list[Resource] = []
        last_snapshot = None
        with _firestore_errors("querying resources"):
            while True:
                page_query = query.limit(batch_size)
                if last_snapshot is not None:
                    page_query = page_query.start_after(last_snapshot)
                batch = list(page_query.stream())
                results.extend(self._to_resource(s) for s in batch)
                if len(batch) < batch_size:
                    break
                last_snapshot = batch[-1]
        return results

    def _published_candidates(
        self, batch_size: int, category: Optional[str] = None, **extra: Any
    ) -> list[Resource]:
        equals: dict[str, Any] = {"isPublished": True}
        category = normalize_category(category)
        if category is not None:
            equals["category"] = category
        equals.update(extra)
        return self._candidates(batch_size, **equals)

    def list_published(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: int = 12,
        cursor: Optional[str] = None,
    ) -> ResourcePage:
        if cursor:
            decode_cursor(cursor)
        candidates = self._published_candidates(
            page_size * self.overfetch_factor, category
        )
        return select_page(
            candidates, search=search, page_size=page_size, cursor=cursor
        )

    def list_all(self) -> list[Resource]:
        with _firestore_errors("listing resources"):
            snapshots = list(
                self.collection.order_by(
                    "createdAt", direction=Query.DESCENDING
                ).stream()
            )
        return newest_first(self._to_resource(s) for s in snapshots)

    def list_featured(self, limit: int = 6) -> list[Resource]:
        candidates = self._published_candidates(
            limit * self.overfetch_factor, featured=True
        )
        return newest_first(candidates)[:limit]

    def search(self, query: str, category: Optional[str] = None) -> list[Resource]:
        candidates = self._published_candidates(
            SEARCH_BATCH_SIZE * self.overfetch_factor, category
        )
        return newest_first(r for r in candidates if r.matches(query))


Base = declarative_base()


class ResourceRow(Base):
    __tablename__ = "resources"
    __table_args__ = (
        Index(
            "ix_resources_published_category_created",
            "is_published",
            "category",
            "created_at",
        ),
        Index(
            "ix_resources_published_featured_created",
            "is_published",
            "featured",
            "created_at",
        ),
    )

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    media_url = Column(String, nullable=False)
    media_type = Column(String, nullable=False)
    category = Column(String, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    resource_url = Column(String, nullable=False)
    # Naive UTC so comparisons behave the same on SQLite and Postgres.
    created_at = Column(DateTime, nullable=False, index=True)
    is_published = Column(Boolean, nullable=False, default=False)
    featured = Column(Boolean, nullable=False, default=False)


def _naive_utc(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


class SqlResourceStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    The composite indexes on ``(is_published, category, created_at)`` and
    ``(is_published, featured, created_at)`` serve filtered, newest-first
    listings directly; only the search term is applied in memory.
    """

    def __init__(self, database_url: str, clock: Callable[[], datetime] = _utcnow):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlResourceStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        self._clock = clock
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Database error while %s: %s", action, e)
            raise StoreUnavailableError() from e

    def _to_resource(self, row: ResourceRow) -> Resource:
        return Resource(
            id=row.id,
            title=row.title,
            description=row.description,
            media_url=row.media_url,
            media_type=row.media_type,
            category=row.category,
            resource_url=row.resource_url,
            created_at=as_utc(row.created_at),
            tags=list(row.tags or []),
            is_published=bool(row.is_published),
            featured=bool(row.featured),
        )

    def create(self, fields: dict) -> str:
        resource = _new_resource(uuid.uuid4().hex, _writable(fields), self._clock())
        with self._session("creating resource") as session:
            row = ResourceRow(
                id=resource.id,
                title=resource.title,
                description=resource.description,
                media_url=resource.media_url,
                media_type=resource.media_type,
                category=resource.category,
                tags=resource.tags,
                resource_url=resource.resource_url,
                created_at=_naive_utc(resource.created_at),
                is_published=resource.is_published,
                featured=resource.featured,
            )
            session.add(row)
            session.commit()
        return resource.id

    def get(self, resource_id: str) -> Resource:
        with self._session("fetching resource") as session:
            row = session.get(ResourceRow, resource_id)
            if not row:
                raise ResourceNotFoundError()
            return self._to_resource(row)

    def update(self, resource_id: str, fields: dict) -> None:
        with self._session("updating resource") as session:
            row = session.get(ResourceRow, resource_id)
            if not row:
                raise ResourceNotFoundError()
            for name, value in _writable(fields).items():
                setattr(row, name, list(value) if name == "tags" else value)
            session.commit()

    def delete(self, resource_id: str) -> None:
        with self._session("deleting resource") as session:
            row = session.get(ResourceRow, resource_id)
            if row:
                session.delete(row)
                session.commit()

    def _published_query(self, category: Optional[str] = None):
        stmt = select(ResourceRow).where(ResourceRow.is_published.is_(True))
        category = normalize_category(category)
        if category is not None:
            stmt = stmt.where(ResourceRow.category == category)
        return stmt.order_by(ResourceRow.created_at.desc(), ResourceRow.id.desc())

    def list_published(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: int = 12,
        cursor: Optional[str] = None,
    ) -> ResourcePage:
        stmt = self._published_query(category)
        if cursor:
            created_at, last_id = decode_cursor(cursor)
            created_at = _naive_utc(created_at)
            stmt = stmt.where(
                or_(
                    ResourceRow.created_at < created_at,
                    and_(
                        ResourceRow.created_at == created_at,
                        ResourceRow.id < last_id,
                    ),
                )
            )
        if not (search and search.strip()):
            stmt = stmt.limit(page_size + 1)
        with self._session("listing published resources") as session:
            candidates = [self._to_resource(row) for row in session.scalars(stmt)]
        return select_page(
            candidates, search=search, page_size=page_size, cursor=cursor
        )

    def list_all(self) -> list[Resource]:
        stmt = select(ResourceRow).order_by(
            ResourceRow.created_at.desc(), ResourceRow.id.desc()
        )
        with self._session("listing resources") as session:
            return [self._to_resource(row) for row in session.scalars(stmt)]

    def list_featured(self, limit: int = 6) -> list[Resource]:
        stmt = (
            self._published_query()
            .where(ResourceRow.featured.is_(True))
            .limit(limit)
        )
        with self._session("listing featured resources") as session:
            return [self._to_resource(row) for row in session.scalars(stmt)]

    def search(self, query: str, category: Optional[str] = None) -> list[Resource]:
        with self._session("searching resources") as session:
            rows = session.scalars(self._published_query(category))
            return [r for r in (self._to_resource(row) for row in rows) if r.matches(query)]
