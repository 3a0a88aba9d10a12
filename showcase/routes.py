"""
HTTP routes for the showcase API.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Query

from showcase.auth import IdentityVerifier
from showcase.config import Settings
from showcase.dependencies import (
    authorize_media_delete,
    get_app_settings,
    get_identity_verifier,
    get_media_client,
    get_resource_store,
    parse_body,
    read_json_body,
    require_identity,
)
from showcase.errors import MediaDeleteRejectedError, ValidationError
from showcase.media import MediaClient
from showcase.schemas import (
    ClientConfigResponse,
    CreateResourceResponse,
    FirebaseWebConfig,
    MediaDeleteRequest,
    MessageResponse,
    ResourceCreate,
    ResourceListResponse,
    ResourceModel,
    ResourceUpdate,
    SearchResponse,
    UploadTicketRequest,
    UploadTicketResponse,
)
from showcase.store import ResourceStore
from showcase.types import CATEGORY_VALUES, MEDIA_TYPE_VALUES, Identity, Resource

logger = logging.getLogger(__name__)

router = APIRouter()


def _models(resources: list[Resource]) -> list[ResourceModel]:
    return [ResourceModel.from_resource(r) for r in resources]


@router.get(
    "/resources",
    response_model=ResourceListResponse,
    response_model_exclude_none=True,
)
def list_resources(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    cursor: Optional[str] = Query(None),
    admin: bool = Query(False),
    featured: bool = Query(False),
    authorization: Optional[str] = Header(default=None),
    store: ResourceStore = Depends(get_resource_store),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    settings: Settings = Depends(get_app_settings),
):
    """
    Published resources for the public, or everything for a verified admin.
    """
    if admin:
        verifier.verify(authorization)
        return ResourceListResponse(resources=_models(store.list_all()))

    if featured:
        featured_items = store.list_featured(limit or settings.featured_limit)
        return ResourceListResponse(resources=_models(featured_items))

    page = store.list_published(
        category=category,
        search=search,
        page_size=limit or settings.default_page_size,
        cursor=cursor,
    )
    return ResourceListResponse(
        resources=_models(page.items),
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@router.get("/resources/search", response_model=SearchResponse)
def search_resources(
    q: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    store: ResourceStore = Depends(get_resource_store),
):
    if not q or not q.strip():
        raise ValidationError("Search query is required")
    resources = store.search(q.strip(), category)
    return SearchResponse(resources=_models(resources), query=q, category=category)


@router.get(
    "/resources/{resource_id}",
    response_model=ResourceModel,
    response_model_exclude_none=True,
)
def get_resource(resource_id: str, store: ResourceStore = Depends(get_resource_store)):
    return ResourceModel.from_resource(store.get(resource_id))


@router.post(
    "/resources", response_model=CreateResourceResponse, status_code=201
)
def create_resource(
    identity: Identity = Depends(require_identity),
    body: Any = Depends(read_json_body),
    store: ResourceStore = Depends(get_resource_store),
):
    payload = parse_body(ResourceCreate, body)
    resource_id = store.create(payload.to_fields())
    logger.info("Resource %s created by %s", resource_id, identity.uid)
    return CreateResourceResponse(
        id=resource_id, message="Resource created successfully"
    )


@router.put("/resources/{resource_id}", response_model=MessageResponse)
def update_resource(
    resource_id: str,
    identity: Identity = Depends(require_identity),
    body: Any = Depends(read_json_body),
    store: ResourceStore = Depends(get_resource_store),
):
    fields = parse_body(ResourceUpdate, body).to_fields()
    store.update(resource_id, fields)
    logger.info(
        "Resource %s updated by %s (%s)",
        resource_id,
        identity.uid,
        ", ".join(sorted(fields)) or "no fields",
    )
    return MessageResponse(message="Resource updated successfully")


@router.delete("/resources/{resource_id}", response_model=MessageResponse)
def delete_resource(
    resource_id: str,
    identity: Identity = Depends(require_identity),
    store: ResourceStore = Depends(get_resource_store),
):
    store.delete(resource_id)
    logger.info("Resource %s deleted by %s", resource_id, identity.uid)
    return MessageResponse(message="Resource deleted successfully")


@router.post("/media/delete", response_model=MessageResponse)
def delete_media(
    identity: Optional[Identity] = Depends(authorize_media_delete),
    body: Any = Depends(read_json_body),
    media: MediaClient = Depends(get_media_client),
):
    payload = parse_body(MediaDeleteRequest, body) if body is not None else None
    public_id = payload.public_id if payload else None
    if not public_id:
        raise ValidationError("Public ID is required")
    if not media.delete(public_id):
        raise MediaDeleteRejectedError()
    logger.info(
        "Media %s deleted by %s", public_id, identity.uid if identity else "anonymous"
    )
    return MessageResponse(message="Media deleted successfully")


@router.post("/media/upload-ticket", response_model=UploadTicketResponse)
def create_upload_ticket(
    identity: Identity = Depends(require_identity),
    body: Any = Depends(read_json_body),
    media: MediaClient = Depends(get_media_client),
):
    payload = parse_body(UploadTicketRequest, body)
    ticket = media.upload_ticket(payload.filename, payload.content_type, payload.size)
    return UploadTicketResponse(
        url=ticket.url,
        fields=ticket.fields,
        media_type=ticket.media_type,
        public_id=ticket.public_id,
        public_url=ticket.public_url,
    )


@router.get("/client-config", response_model=ClientConfigResponse)
def client_config(settings: Settings = Depends(get_app_settings)):
    """Public, non-secret settings the browser needs to boot."""
    return ClientConfigResponse(
        api_prefix=settings.api_prefix,
        firebase=FirebaseWebConfig(
            api_key=settings.firebase_web_api_key,
            auth_domain=settings.firebase_web_auth_domain,
            project_id=settings.firebase_project_id,
        ),
        categories=list(CATEGORY_VALUES),
        media_types=list(MEDIA_TYPE_VALUES),
        page_size=settings.default_page_size,
        featured_limit=settings.featured_limit,
        search_debounce_ms=settings.search_debounce_ms,
        media_delete_requires_auth=settings.media_delete_requires_auth,
    )
