"""Data models for the link shortener."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def to_timestamp(value: datetime) -> int:
    """Convert a datetime to whole Unix seconds (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Convert stored Unix seconds back to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class LinkMapping:
    """A short code and the destination it resolves to."""

    short_code: str
    original_url: str
    created_at: datetime
    created_by: str = ""
    click_count: int = 0
    last_accessed: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "short_code": self.short_code,
            "original_url": self.original_url,
            "created_at": _isoformat(self.created_at),
            "created_by": self.created_by,
            "click_count": self.click_count,
            "last_accessed": _isoformat(self.last_accessed),
        }

    @classmethod
    def from_row(cls, row) -> "LinkMapping":
        """Create from a ``link_mappings`` row."""
        return cls(
            short_code=row["short_code"],
            original_url=row["original_url"],
            created_at=from_timestamp(row["created_at"]),
            created_by=row["created_by"] or "",
            click_count=row["click_count"] or 0,
            last_accessed=from_timestamp(row["last_accessed"]),
        )


@dataclass
class ClickEvent:
    """One served redirect."""

    id: int
    short_code: str
    timestamp: datetime
    user_agent: str = ""
    ip_address: str = ""
    referrer: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "short_code": self.short_code,
            "timestamp": _isoformat(self.timestamp),
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "referrer": self.referrer,
        }

    @classmethod
    def from_row(cls, row) -> "ClickEvent":
        """Create from a ``click_analytics`` row."""
        return cls(
            id=row["id"],
            short_code=row["short_code"],
            timestamp=from_timestamp(row["timestamp"]),
            user_agent=row["user_agent"] or "",
            ip_address=row["ip_address"] or "",
            referrer=row["referrer"] or "",
        )


@dataclass
class Pagination:
    """Page metadata for analytics listings."""

    current_page: int
    total_pages: int
    page_size: int
    total_items: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, page_size: int, total_items: int) -> "Pagination":
        total_pages = math.ceil(total_items / page_size) if total_items else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            page_size=page_size,
            total_items=total_items,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    def to_dict(self) -> dict:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


@dataclass
class AnalyticsPage:
    """A filtered page of links plus the system-wide recent click feed."""

    links: List[LinkMapping]
    total_links: int
    total_clicks: int
    recent_clicks: List[ClickEvent]
    pagination: Pagination

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "links": [link.to_dict() for link in self.links],
            "total_links": self.total_links,
            "total_clicks": self.total_clicks,
            "recent_clicks": [click.to_dict() for click in self.recent_clicks],
            "pagination": self.pagination.to_dict(),
        }


@dataclass
class ImportRecord:
    """A pre-parsed row handed to the bulk importer."""

    short_code: str
    original_url: str
    created_at: str
    line_number: Optional[int] = None


@dataclass
class ImportResult:
    """Tally of one bulk import run."""

    total: int = 0
    imported: int = 0
    duplicates: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "imported": self.imported,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
        }
