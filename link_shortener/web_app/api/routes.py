"""API routes implementation."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...errors import (
    AllocationExhaustedError,
    ConflictError,
    LinkShortenerError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..auth import require_bearer_token
from .schemas import (
    AnalyticsResponse,
    ErrorResponse,
    HealthResponse,
    LinkResponse,
    ShortenRequest,
    ShortenResponse,
)

router = APIRouter()

logger = logging.getLogger(__name__)


def to_http_exception(error: LinkShortenerError) -> HTTPException:
    """Map a service error to the HTTP response the caller sees."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, AllocationExhaustedError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    if isinstance(error, StoreError):
        logger.error(f"Storage error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


def int_param(value: Optional[str], default: int) -> int:
    """Parse an integer query parameter, falling back to ``default``."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


async def load_analytics(request: Request, page: Optional[str], size: Optional[str], search: Optional[str]):
    """Fetch an analytics page using raw query parameter values."""
    service = request.app.state.service
    search_term = (search or "").strip()
    try:
        return await service.list_analytics(
            page=int_param(page, 1),
            page_size=int_param(size, 50),
            search=search_term or None,
        ), search_term
    except LinkShortenerError as e:
        raise to_http_exception(e)


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    dependencies=[Depends(require_bearer_token)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        409: {"model": ErrorResponse, "description": "Custom code already exists"},
        503: {"model": ErrorResponse, "description": "No free short code found, retry"},
    },
    summary="Create short URL",
    description="Create a short URL. Optionally provide a custom short code.",
)
async def shorten_url(request: Request, body: ShortenRequest):
    """Create a short URL."""
    service = request.app.state.service
    
    try:
        result = await service.create_short_url(
            original_url=body.original_url.strip(),
            custom_code=(body.custom_code or "").strip() or None,
            created_by=(body.created_by or "").strip(),
        )
    except LinkShortenerError as e:
        raise to_http_exception(e)
    
    return ShortenResponse(
        short_code=result["short_code"],
        short_url=result["short_url"],
        original_url=result["original_url"],
    )


@router.get(
    "/urls/{short_code}",
    response_model=LinkResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Short code not found"},
    },
    summary="Get link details",
)
async def get_link(request: Request, short_code: str):
    """Get a link mapping including its click count."""
    service = request.app.state.service
    
    try:
        link = await service.get_link(short_code)
    except LinkShortenerError as e:
        raise to_http_exception(e)
    
    return LinkResponse.model_validate(link.to_dict())


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Get analytics",
    description="Paginated links filtered by search term, plus the latest clicks across all links.",
)
async def get_analytics(
    request: Request,
    page: Optional[str] = None,
    size: Optional[str] = None,
    search: Optional[str] = None,
):
    """Get paginated analytics."""
    analytics, _ = await load_analytics(request, page, size, search)
    return AnalyticsResponse.model_validate(analytics.to_dict())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request):
    """Health check with database detail."""
    service = request.app.state.service
    
    health = await service.health_check()
    
    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
