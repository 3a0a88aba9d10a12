import itertools
from datetime import datetime, timedelta, timezone

from showcase.auth import extract_bearer_token
from showcase.config import Settings
from showcase.dependencies import AppServices
from showcase.errors import InvalidCredentialError
from showcase.media import InMemoryMediaClient
from showcase.store import InMemoryResourceStore
from showcase.types import Identity

ADMIN_TOKEN = "admin-token"
ADMIN_HEADERS = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


class FakeVerifier:
    """Accepts a single known token."""

    def __init__(self, token: str = ADMIN_TOKEN):
        self.token = token

    def verify(self, authorization):
        if extract_bearer_token(authorization) != self.token:
            raise InvalidCredentialError()
        return Identity(uid="admin-uid", email="admin@example.com", email_verified=True)


def ticking_clock(start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
    ticks = itertools.count()
    return lambda: start + timedelta(minutes=next(ticks))


def make_settings(**overrides) -> Settings:
    values = {"store_backend": "memory", "media_backend": "memory"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_services(settings=None, store=None, verifier=None, media=None) -> AppServices:
    return AppServices(
        settings=settings or make_settings(),
        store=store if store is not None else InMemoryResourceStore(clock=ticking_clock()),
        verifier=verifier or FakeVerifier(),
        media=media if media is not None else InMemoryMediaClient(),
    )


def resource_payload(**overrides) -> dict:
    payload = {
        "title": "React Hooks Guide",
        "description": "Patterns for state and effects",
        "mediaUrl": "https://res.cloudinary.com/demo/image/upload/hooks.png",
        "mediaType": "image",
        "category": "development",
        "tags": ["react", "hooks"],
        "resourceUrl": "https://example.com/hooks",
        "isPublished": True,
        "featured": False,
    }
    payload.update(overrides)
    return payload


def resource_fields(**overrides) -> dict:
    fields = {
        "title": "React Hooks Guide",
        "description": "Patterns for state and effects",
        "media_url": "https://res.cloudinary.com/demo/image/upload/hooks.png",
        "media_type": "image",
        "category": "development",
        "tags": ["react", "hooks"],
        "resource_url": "https://example.com/hooks",
        "is_published": True,
        "featured": False,
    }
    fields.update(overrides)
    return fields
