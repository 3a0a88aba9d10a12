"""
FastAPI application entry point for the showcase backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from showcase.config import Settings, get_settings
from showcase.dependencies import AppServices, build_services
from showcase.errors import ShowcaseError, UpstreamUnavailableError
from showcase.pages import STATIC_DIR
from showcase.pages import router as pages_router
from showcase.routes import router
from showcase.schemas import CALLER_FACING_ERRORS

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = ("body", "query", "path", "header")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    error_type = first.get("type")
    if error_type in CALLER_FACING_ERRORS:
        return first.get("msg", "Invalid request")
    if error_type == "json_invalid":
        return "Invalid JSON body"
    location = [
        str(part) for part in first.get("loc", ()) if part not in _LOCATION_PREFIXES
    ]
    if error_type == "missing" and not location:
        return "Request body is required"
    if location:
        return f"Invalid value for {'.'.join(location)}: {first.get('msg')}"
    return first.get("msg", "Invalid request")


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShowcaseError)
    async def _showcase_error(request: Request, exc: ShowcaseError):
        if isinstance(exc, UpstreamUnavailableError):
            logger.error(
                "%s %s failed: %s",
                request.method,
                request.url.path,
                exc.__cause__ or exc,
            )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": _validation_message(exc)}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": exc.detail}, status_code=exc.status_code, headers=exc.headers
        )


def create_app(
    settings: Settings | None = None, services: AppServices | None = None
) -> FastAPI:
    if settings is None:
        settings = services.settings if services else get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Showcase Resources", version="0.1.0")
    app.state.services = services or build_services(settings)
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pages_router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    return app


app = create_app()
