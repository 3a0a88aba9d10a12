"""
HTML pages for the browsing and admin UI.

The pages are static single-page shells; all data comes from the JSON API.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from showcase.config import Settings
from showcase.dependencies import get_app_settings

STATIC_DIR = Path(__file__).resolve().parent / "static"

router = APIRouter(include_in_schema=False)


def _render(name: str, settings: Settings) -> HTMLResponse:
    page = (STATIC_DIR / name).read_text(encoding="utf-8")
    return HTMLResponse(page.replace("{{API_PREFIX}}", settings.api_prefix))


@router.get("/", response_class=HTMLResponse)
def index(settings: Settings = Depends(get_app_settings)) -> HTMLResponse:
    return _render("index.html", settings)


@router.get("/resources", response_class=HTMLResponse)
def resources_page(settings: Settings = Depends(get_app_settings)) -> HTMLResponse:
    return _render("resources.html", settings)


@router.get("/admin", response_class=HTMLResponse)
def admin_page(settings: Settings = Depends(get_app_settings)) -> HTMLResponse:
    return _render("admin.html", settings)
