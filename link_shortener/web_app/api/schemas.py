"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class ShortenRequest(BaseModel):
    """Request to shorten a URL."""
    
    original_url: str = Field(..., description="The URL to shorten", min_length=1)
    custom_code: Optional[str] = Field(None, description="Optional custom short code")
    created_by: Optional[str] = Field("", description="Who created the link")
    
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "original_url": "https://example.org/very/long/path/to/resource",
                    "custom_code": None,
                    "created_by": "docs-team"
                },
                {
                    "original_url": "https://example.org/a",
                    "custom_code": "promo1"
                }
            ]
        }
    }


class ShortenResponse(BaseModel):
    """Response after shortening a URL."""
    
    short_code: str = Field(..., description="The accepted short code")
    short_url: str = Field(..., description="The complete short URL")
    original_url: str = Field(..., description="The original long URL")


class LinkResponse(BaseModel):
    """A stored link mapping."""
    
    short_code: str
    original_url: str
    created_at: datetime
    created_by: str = ""
    click_count: int
    last_accessed: Optional[datetime] = None


class ClickResponse(BaseModel):
    """One recorded click."""
    
    id: int
    short_code: str
    timestamp: datetime
    user_agent: str = ""
    ip_address: str = ""
    referrer: str = ""


class PaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    page_size: int
    total_items: int
    has_next: bool
    has_prev: bool


class AnalyticsResponse(BaseModel):
    """Paginated links, totals and the recent click feed."""
    
    links: List[LinkResponse]
    total_links: int
    total_clicks: int
    recent_clicks: List[ClickResponse]
    pagination: PaginationResponse


class HealthResponse(BaseModel):
    """Health check response."""
    
    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""
    
    detail: str = Field(..., description="Error message")
