"""Web interface routes implementation."""

import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ...common.url_builder import build_dashboard_url, build_short_url
from ...errors import LinkShortenerError, StoreError
from ..api.routes import load_analytics, to_http_exception
from ..auth import check_token

router = APIRouter()

logger = logging.getLogger(__name__)

template_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
templates = Jinja2Templates(directory=template_dir)


def pagination_range(current: int, total: int) -> List[int]:
    """Page numbers shown around the current page (two on each side)."""
    start = max(current - 2, 1)
    end = min(current + 2, total)
    return list(range(start, end + 1))


def divf(a: int, b: int) -> float:
    return a / b if b else 0.0


templates.env.globals.update(
    pagination_range=pagination_range,
    build_url=build_dashboard_url,
    divf=divf,
)


def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


def render_error(request: Request, message: str, status_code: int) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"error_message": message},
        status_code=status_code,
    )


@router.get("/health", include_in_schema=False)
async def health_check_web(request: Request):
    """Health check endpoint (simple version for load balancers)."""
    service = request.app.state.service
    
    health = await service.health_check()
    
    if health["overall"]:
        return {"status": "healthy"}
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service unhealthy",
    )


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def dashboard(
    request: Request,
    page: Optional[str] = None,
    size: Optional[str] = None,
    search: Optional[str] = None,
):
    """Serve the dashboard with the link table and recent clicks."""
    config = request.app.state.config
    analytics, search_term = await load_analytics(request, page, size, search)
    
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Link Shortener Dashboard",
            "analytics": analytics,
            "base_url": build_short_url("", config.base_url, config.path_prefix).rstrip("/"),
            "search_term": search_term,
        },
    )


@router.get("/analytics", include_in_schema=False)
async def analytics_fragment(
    request: Request,
    page: Optional[str] = None,
    size: Optional[str] = None,
    search: Optional[str] = None,
):
    """Analytics as JSON for API clients, or the table fragment for htmx."""
    config = request.app.state.config
    analytics, search_term = await load_analytics(request, page, size, search)
    
    if wants_json(request):
        return JSONResponse(analytics.to_dict())
    
    return templates.TemplateResponse(
        request,
        "analytics_table.html",
        {
            "analytics": analytics,
            "base_url": build_short_url("", config.base_url, config.path_prefix).rstrip("/"),
            "search_term": search_term,
        },
    )


@router.post("/shorten", include_in_schema=False)
async def shorten_form(
    request: Request,
    original_url: str = Form(""),
    custom_code: str = Form(""),
    created_by: str = Form(""),
    auth_token: str = Form(""),
):
    """Handle the dashboard form.
    
    The token may come from the Authorization header or, for plain HTML
    forms, from the ``auth_token`` field.
    """
    service = request.app.state.service
    config = request.app.state.config
    
    authorization = request.headers.get("authorization")
    if not authorization and auth_token:
        authorization = f"Bearer {auth_token}"
    failure = check_token(authorization, config.auth_token)
    if failure:
        status_code, message = failure
        raise HTTPException(status_code=status_code, detail=message)
    
    original_url = original_url.strip()
    if not original_url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Original URL is required")
    
    try:
        result = await service.create_short_url(
            original_url=original_url,
            custom_code=custom_code.strip() or None,
            created_by=created_by.strip(),
        )
    except LinkShortenerError as e:
        if wants_json(request):
            raise to_http_exception(e)
        http_error = to_http_exception(e)
        return templates.TemplateResponse(
            request,
            "success_message.html",
            {"success": False, "error": http_error.detail},
            status_code=http_error.status_code,
        )
    
    if wants_json(request):
        return {
            "short_code": result["short_code"],
            "short_url": result["short_url"],
            "original_url": result["original_url"],
        }
    
    return templates.TemplateResponse(
        request,
        "success_message.html",
        {"success": True, "short_url": result["short_url"], "error": None},
    )


@router.get("/{short_code}", include_in_schema=False)
async def redirect_to_url(request: Request, short_code: str):
    """Redirect to the original URL and queue the click for accounting."""
    service = request.app.state.service
    recorder = request.app.state.recorder
    
    try:
        original_url = await service.resolve(short_code)
    except StoreError as e:
        logger.error(f"Error resolving {short_code}: {e}")
        return render_error(request, "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
    
    if original_url is None:
        return render_error(
            request,
            f"Short code '{short_code}' not found",
            status.HTTP_404_NOT_FOUND,
        )
    
    # Accounting happens off the response path; the redirect never waits on it
    recorder.dispatch(
        short_code,
        user_agent=getattr(request.state, "user_agent", ""),
        ip_address=getattr(request.state, "client_ip", ""),
        referrer=getattr(request.state, "referrer", ""),
    )
    
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
