"""
Dependency wiring for the FastAPI app.

Services are built once per application in ``build_services`` and kept on
``app.state``; request handlers receive them through the ``get_*``
dependencies below, which makes them easy to replace in tests.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from fastapi import Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from showcase.auth import (
    DEV_IDENTITY,
    FirebaseIdentityVerifier,
    IdentityVerifier,
    UnconfiguredIdentityVerifier,
)
from showcase.config import Settings
from showcase.errors import ValidationError
from showcase.firebase import firestore_client, initialize_firebase_app
from showcase.media import (
    CloudinaryMediaClient,
    InMemoryMediaClient,
    MediaClient,
    S3MediaClient,
    UnconfiguredMediaClient,
)
from showcase.store import (
    FirestoreResourceStore,
    InMemoryResourceStore,
    ResourceStore,
    SqlResourceStore,
    UnconfiguredResourceStore,
)
from showcase.types import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppServices:
    settings: Settings
    store: ResourceStore
    verifier: IdentityVerifier
    media: MediaClient


def build_resource_store(settings: Settings, firebase_app=None) -> ResourceStore:
    if settings.use_in_memory_backends or settings.store_backend == "memory":
        return InMemoryResourceStore()
    if settings.store_backend == "sql":
        if settings.database_url:
            return SqlResourceStore(settings.database_url)
        logger.warning("DATABASE_URL is not set; resource store unavailable")
        return UnconfiguredResourceStore()
    if firebase_app is None:
        logger.warning("Firebase Admin not initialized; resource store unavailable")
        return UnconfiguredResourceStore()
    return FirestoreResourceStore(
        firestore_client(firebase_app), overfetch_factor=settings.overfetch_factor
    )


def build_identity_verifier(settings: Settings, firebase_app=None) -> IdentityVerifier:
    fallback = DEV_IDENTITY if settings.allow_dev_auth_fallback else None
    if fallback is not None:
        logger.warning("Development identity fallback is enabled")
    if firebase_app is None:
        return UnconfiguredIdentityVerifier(fallback=fallback)
    return FirebaseIdentityVerifier(firebase_app, fallback=fallback)


def build_media_client(settings: Settings) -> MediaClient:
    if settings.use_in_memory_backends or settings.media_backend == "memory":
        return InMemoryMediaClient()
    if settings.media_backend == "s3":
        if not settings.media_s3_bucket:
            logger.warning("MEDIA_S3_BUCKET is not set; media service unavailable")
            return UnconfiguredMediaClient()
        return S3MediaClient(
            bucket=settings.media_s3_bucket,
            region=settings.media_s3_region or "",
            endpoint=settings.media_s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.media_s3_public_base_url or "",
            folder=settings.cloudinary_folder,
        )
    if not (
        settings.cloudinary_cloud_name
        and settings.cloudinary_api_key
        and settings.cloudinary_api_secret
    ):
        logger.warning("Cloudinary credentials are not set; media service unavailable")
        return UnconfiguredMediaClient()
    return CloudinaryMediaClient(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        upload_preset=settings.cloudinary_upload_preset,
        folder=settings.cloudinary_folder,
    )


def build_services(settings: Settings) -> AppServices:
    firebase_app = None
    if not settings.use_in_memory_backends:
        firebase_app = initialize_firebase_app(settings)
    return AppServices(
        settings=settings,
        store=build_resource_store(settings, firebase_app),
        verifier=build_identity_verifier(settings, firebase_app),
        media=build_media_client(settings),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_app_settings(services: AppServices = Depends(get_services)) -> Settings:
    return services.settings


def get_resource_store(services: AppServices = Depends(get_services)) -> ResourceStore:
    return services.store


def get_identity_verifier(
    services: AppServices = Depends(get_services),
) -> IdentityVerifier:
    return services.verifier


def get_media_client(services: AppServices = Depends(get_services)) -> MediaClient:
    return services.media


def require_identity(
    authorization: Optional[str] = Header(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Identity:
    """Reject the request unless it carries a valid bearer token."""
    return verifier.verify(authorization)


def authorize_media_delete(
    authorization: Optional[str] = Header(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    settings: Settings = Depends(get_app_settings),
) -> Optional[Identity]:
    if not settings.media_delete_requires_auth:
        return None
    return verifier.verify(authorization)


async def read_json_body(request: Request) -> Any:
    """
    Decode the request body as JSON.

    Mutating routes declare this after their identity dependency; an
    empty body decodes to ``None``.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ValidationError("Invalid JSON body") from e


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_body(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from e
