"""Abstract base class for link shortener storage implementations."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .models import ClickEvent, LinkMapping


class LinkStoreBase(ABC):
    """Persistent table of code -> URL mappings plus the click log.

    Write operations accept an optional ``tx`` unit of work obtained from
    :meth:`transaction`. When given, the operation joins that transaction;
    otherwise it runs as its own atomic unit.
    """

    def __init__(self, db_config: str):
        """Initialize store.

        Args:
            db_config: Storage location (file path or connection string)
        """
        self.db_config = db_config

    @abstractmethod
    async def initialize(self) -> None:
        """Create the schema if it does not exist."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager:
        """Open a unit of work.

        Commits when the block exits normally and rolls back when it raises.
        """
        pass

    @abstractmethod
    async def put(
        self,
        short_code: str,
        original_url: str,
        created_by: str,
        now: datetime,
        tx: Optional[Any] = None,
    ) -> None:
        """Insert a new mapping atomically.

        Args:
            short_code: The short code to use
            original_url: The destination URL
            created_by: Free-text attribution
            now: Creation timestamp
            tx: Optional unit of work to join

        Raises:
            CodeAlreadyExistsError: If short_code is already taken
            StoreError: On any other storage failure
        """
        pass

    @abstractmethod
    async def get(self, short_code: str) -> Optional[str]:
        """Get the destination URL for a short code, or None."""
        pass

    @abstractmethod
    async def get_link(self, short_code: str) -> Optional[LinkMapping]:
        """Get the full mapping for a short code, or None."""
        pass

    @abstractmethod
    async def exists(self, short_code: str, tx: Optional[Any] = None) -> bool:
        """Check whether a short code is already taken."""
        pass

    @abstractmethod
    async def record_click(
        self,
        short_code: str,
        user_agent: str,
        ip_address: str,
        referrer: str,
        now: datetime,
        tx: Optional[Any] = None,
    ) -> None:
        """Append a click event and bump the mapping's counters.

        The log insert and the counter update are applied together or not
        at all.

        Raises:
            StoreError: On storage failure
        """
        pass

    @abstractmethod
    async def list_page(
        self,
        search: Optional[str],
        page: int,
        page_size: int,
    ) -> Tuple[List[LinkMapping], int, int]:
        """Read one page of mappings.

        Args:
            search: Optional substring matched against code or URL
            page: 1-based page number
            page_size: Rows per page

        Returns:
            Tuple of (rows, total matching mappings, sum of their click counts)
        """
        pass

    @abstractmethod
    async def recent_clicks(self, limit: int = 50) -> List[ClickEvent]:
        """Most recent click events across all mappings."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close storage connections."""
        pass
