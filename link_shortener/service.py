"""Allocation and click-accounting logic for the link shortener."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .common.url_builder import build_short_url
from .common.validators import is_valid_short_code, is_valid_url
from .database.base import LinkStoreBase
from .database.models import AnalyticsPage, LinkMapping, Pagination
from .errors import (
    AllocationExhaustedError,
    CodeAlreadyExistsError,
    CustomCodeTakenError,
    NotFoundError,
    ValidationError,
)
from .shortcode import ShortCodeGenerator


MAX_ALLOCATION_ATTEMPTS = 10

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000
RECENT_CLICKS_LIMIT = 50


class LinkShortenerService:
    """Service layer for creating, resolving and accounting short links.

    The service keeps no state of its own. Uniqueness is decided by the
    store's atomic insert, so concurrent creators never need a separate
    existence check.
    """

    def __init__(
        self,
        store: LinkStoreBase,
        base_url: str = "http://localhost:8080",
        path_prefix: str = "",
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        max_allocation_attempts: int = MAX_ALLOCATION_ATTEMPTS,
    ):
        """Initialize link shortener service.

        Args:
            store: Storage backend
            base_url: Base URL used to build full short links
            path_prefix: Optional path prefix for short links
            short_code_generator: Optional short code generator
            logger: Optional logger
            max_allocation_attempts: Candidates tried before giving up
        """
        self.store = store
        self.base_url = base_url
        self.path_prefix = path_prefix
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.max_allocation_attempts = max_allocation_attempts

    @classmethod
    def from_config(cls, store: LinkStoreBase, config, logger: Optional[logging.Logger] = None):
        """Build a service from a :class:`~link_shortener.config.Config`."""
        return cls(
            store=store,
            base_url=config.base_url,
            path_prefix=config.path_prefix,
            logger=logger,
            max_allocation_attempts=config.max_allocation_attempts,
        )

    async def create_short_url(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        created_by: str = "",
    ) -> Dict[str, Any]:
        """Create a new short URL.

        Args:
            original_url: The destination URL
            custom_code: Optional caller-chosen short code
            created_by: Free-text attribution

        Returns:
            Dictionary with short_code, short_url, original_url, created_at

        Raises:
            ValidationError: If the URL or custom code is malformed
            CustomCodeTakenError: If the custom code is already in use
            AllocationExhaustedError: If no free code was found
            StoreError: On storage failure
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise ValidationError(f"Invalid URL: {error}")

        created_by = created_by or ""

        if custom_code:
            is_valid, error = is_valid_short_code(custom_code)
            if not is_valid:
                raise ValidationError(f"Invalid custom code: {error}")

            created_at = datetime.now(timezone.utc).replace(microsecond=0)
            try:
                await self.store.put(custom_code, original_url, created_by, created_at)
            except CodeAlreadyExistsError as e:
                raise CustomCodeTakenError(custom_code) from e
            short_code = custom_code
        else:
            short_code, created_at = await self._allocate_short_code(original_url, created_by)

        self.logger.info(f"Created short URL: {short_code} -> {original_url}")

        return {
            "short_code": short_code,
            "short_url": build_short_url(short_code, self.base_url, self.path_prefix),
            "original_url": original_url,
            "created_at": created_at,
        }

    async def _allocate_short_code(self, original_url: str, created_by: str):
        """Generate candidates and insert until one is accepted by the store.

        Only a uniqueness violation triggers another attempt; any other
        store error propagates immediately.

        Returns:
            Tuple of (short_code, created_at)
        """
        for attempt in range(1, self.max_allocation_attempts + 1):
            code = self.generator.generate()
            created_at = datetime.now(timezone.utc).replace(microsecond=0)
            try:
                await self.store.put(code, original_url, created_by, created_at)
            except CodeAlreadyExistsError:
                self.logger.debug(f"Collision on generated code {code} (attempt {attempt})")
                continue

            if attempt > 1:
                self.logger.debug(f"Generated code after {attempt} attempts: {code}")
            return code, created_at

        self.logger.warning(
            f"Short code allocation exhausted after {self.max_allocation_attempts} attempts"
        )
        raise AllocationExhaustedError(self.max_allocation_attempts)

    async def resolve(self, short_code: str) -> Optional[str]:
        """Get the destination URL for a short code.

        Args:
            short_code: The short code to lookup

        Returns:
            Original URL or None if not found
        """
        original_url = await self.store.get(short_code)
        if original_url is None:
            self.logger.debug(f"Short code not found: {short_code}")
        return original_url

    async def get_link(self, short_code: str) -> LinkMapping:
        """Get the full mapping for a short code.

        Raises:
            NotFoundError: If the short code does not exist
        """
        link = await self.store.get_link(short_code)
        if link is None:
            raise NotFoundError(short_code)
        return link

    async def record_click(
        self,
        short_code: str,
        user_agent: str = "",
        ip_address: str = "",
        referrer: str = "",
        at: Optional[datetime] = None,
        tx=None,
    ) -> None:
        """Append a click event and update the mapping's counters atomically.

        Args:
            short_code: The short code that was resolved
            user_agent: Client User-Agent header
            ip_address: Client IP address
            referrer: Referer header
            at: Click time (defaults to now)
            tx: Optional unit of work from ``store.transaction()`` to join
        """
        at = at or datetime.now(timezone.utc)
        await self.store.record_click(short_code, user_agent, ip_address, referrer, at, tx=tx)
        self.logger.debug(f"Recorded click for {short_code}")

    async def list_analytics(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        search: Optional[str] = None,
    ) -> AnalyticsPage:
        """Get a page of links with totals and the recent click feed.

        The recent click feed always covers every link; it is not narrowed
        by ``search``.

        Args:
            page: 1-based page number (values below 1 become 1)
            page_size: Rows per page, clamped to [1, 1000]; defaults to 50
            search: Optional substring matched against code or URL

        Returns:
            AnalyticsPage
        """
        page = max(page or 1, 1)
        if page_size is None:
            page_size = DEFAULT_PAGE_SIZE
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        search = search or None

        links, total_links, total_clicks = await self.store.list_page(search, page, page_size)
        recent_clicks = await self.store.recent_clicks(RECENT_CLICKS_LIMIT)

        return AnalyticsPage(
            links=links,
            total_links=total_links,
            total_clicks=total_clicks,
            recent_clicks=recent_clicks,
            pagination=Pagination.build(page, page_size, total_links),
        )

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        db_healthy = await self.store.health_check()
        return {
            "database": db_healthy,
            "overall": db_healthy,
        }

    async def close(self) -> None:
        """Close service connections."""
        await self.store.close()
