"""
Bearer-token verification against Firebase Authentication.

Verification is stateless: every request presents an ID token which is
checked independently; no server-side session exists.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from showcase.errors import (
    IdentityServiceUnavailableError,
    InvalidCredentialError,
    MissingCredentialError,
)
from showcase.types import Identity

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

DEV_IDENTITY = Identity(uid="dev-user", email="dev@example.com", email_verified=True)


class IdentityVerifier(Protocol):
    def verify(self, authorization: Optional[str]) -> Identity:
        ...


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise MissingCredentialError()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise MissingCredentialError("No token provided")
    return token


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self, app, fallback: Optional[Identity] = None):
        self.app = app
        self.fallback = fallback

    def verify(self, authorization: Optional[str]) -> Identity:
        token = extract_bearer_token(authorization)
        try:
            decoded = firebase_auth.verify_id_token(token, app=self.app)
        except firebase_auth.CertificateFetchError as e:
            return self._unreachable(e)
        except (firebase_auth.InvalidIdTokenError, ValueError) as e:
            logger.info("Rejected ID token: %s", e)
            raise InvalidCredentialError() from e
        except firebase_exceptions.FirebaseError as e:
            return self._unreachable(e)

        return Identity(
            uid=decoded["uid"],
            email=decoded.get("email"),
            email_verified=bool(decoded.get("email_verified", False)),
        )

    def _unreachable(self, error: Exception) -> Identity:
        if self.fallback is not None:
            logger.warning(
                "Identity service unreachable (%s), using development identity",
                error,
            )
            return self.fallback
        logger.error("Identity service unreachable: %s", error)
        raise IdentityServiceUnavailableError("Identity service unavailable") from error


class UnconfiguredIdentityVerifier:
    """Used when Firebase Admin could not be initialized."""

    def __init__(self, fallback: Optional[Identity] = None):
        self.fallback = fallback

    def verify(self, authorization: Optional[str]) -> Identity:
        extract_bearer_token(authorization)
        if self.fallback is not None:
            logger.warning(
                "Firebase Admin not initialized, using development identity"
            )
            return self.fallback
        raise IdentityServiceUnavailableError()
