"""
Firebase Admin SDK initialization.

The app is created once per process from settings; when credentials are
missing or malformed the caller gets ``None`` and degrades instead of
crashing.
"""

from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from showcase.config import Settings

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "showcase"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def _certificate(settings: Settings) -> credentials.Certificate:
    if settings.google_application_credentials:
        return credentials.Certificate(settings.google_application_credentials)
    return credentials.Certificate(
        {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            "private_key": settings.firebase_private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        }
    )


def initialize_firebase_app(settings: Settings) -> Optional[firebase_admin.App]:
    if not settings.has_firebase_credentials:
        logger.warning(
            "Firebase Admin SDK not initialized: invalid or missing credentials"
        )
        return None
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    try:
        return firebase_admin.initialize_app(
            _certificate(settings), options, name=FIREBASE_APP_NAME
        )
    except (ValueError, OSError) as e:
        logger.warning("Firebase Admin SDK initialization failed: %s", e)
        return None


def firestore_client(app: firebase_admin.App):
    return firestore.client(app=app)
