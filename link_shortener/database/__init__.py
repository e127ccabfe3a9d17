"""Storage layer for the link shortener."""

from .base import LinkStoreBase
from .sqlite import SQLiteLinkStore, SQLiteTransaction
from .models import (
    AnalyticsPage,
    ClickEvent,
    ImportRecord,
    ImportResult,
    LinkMapping,
    Pagination,
)

__all__ = [
    "LinkStoreBase",
    "SQLiteLinkStore",
    "SQLiteTransaction",
    "AnalyticsPage",
    "ClickEvent",
    "ImportRecord",
    "ImportResult",
    "LinkMapping",
    "Pagination",
]
