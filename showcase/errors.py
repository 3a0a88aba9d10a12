"""
Error taxonomy for the API.

Adapters translate SDK exceptions into these types; ``create_app`` registers
handlers that render them as ``{"error": message}`` with ``status_code``.
"""

from __future__ import annotations


class ShowcaseError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ShowcaseError):
    status_code = 400
    message = "Invalid request"


class AuthenticationError(ShowcaseError):
    status_code = 401
    message = "Invalid token"


class MissingCredentialError(AuthenticationError):
    message = "No valid authorization header"


class InvalidCredentialError(AuthenticationError):
    message = "Invalid token"


class ResourceNotFoundError(ShowcaseError):
    status_code = 404
    message = "Resource not found"


class UpstreamUnavailableError(ShowcaseError):
    status_code = 500
    message = "Service unavailable"


class StoreUnavailableError(UpstreamUnavailableError):
    message = "Resource store is not available"


class IdentityServiceUnavailableError(UpstreamUnavailableError):
    message = "Identity service is not configured"


class MediaServiceError(ShowcaseError):
    status_code = 500
    message = "Failed to delete media"


class MediaDeleteRejectedError(MediaServiceError):
    status_code = 400
    message = "Failed to delete media from CDN"
