"""Background click recording for the redirect path."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .errors import LinkShortenerError


@dataclass
class PendingClick:
    """A click waiting to be written."""

    short_code: str
    user_agent: str = ""
    ip_address: str = ""
    referrer: str = ""
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ClickRecorder:
    """Bounded, best-effort queue between redirects and click accounting.

    ``dispatch`` never blocks and never raises. Each queued click is written
    at most once: a full queue drops the click and a failed write is logged
    and discarded. Both cases show up only as an undercount.
    """

    def __init__(
        self,
        service,
        max_queue_size: int = 10000,
        workers: int = 4,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize click recorder.

        Args:
            service: Object exposing ``record_click`` (usually LinkShortenerService)
            max_queue_size: Clicks held before new ones are dropped
            workers: Number of concurrent writer tasks
            logger: Optional logger
        """
        self.service = service
        self.max_queue_size = max_queue_size
        self.worker_count = workers
        self.logger = logger or logging.getLogger(__name__)

        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []

        self.recorded = 0
        self.dropped = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue else 0

    async def start(self) -> None:
        """Start the writer tasks."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"click-recorder-{i}")
            for i in range(self.worker_count)
        ]
        self.logger.info(
            f"Click recorder started with {self.worker_count} workers "
            f"(queue size {self.max_queue_size})"
        )

    def dispatch(
        self,
        short_code: str,
        user_agent: str = "",
        ip_address: str = "",
        referrer: str = "",
        at: Optional[datetime] = None,
    ) -> bool:
        """Queue a click without waiting for it to be written.

        Returns:
            True if queued, False if dropped
        """
        click = PendingClick(
            short_code=short_code,
            user_agent=user_agent or "",
            ip_address=ip_address or "",
            referrer=referrer or "",
            at=at or datetime.now(timezone.utc),
        )

        if not self.running:
            self.dropped += 1
            self.logger.warning(f"Click recorder not running, dropped click for {short_code}")
            return False

        try:
            self._queue.put_nowait(click)
        except asyncio.QueueFull:
            self.dropped += 1
            self.logger.warning(f"Click queue full, dropped click for {short_code}")
            return False
        return True

    async def _worker(self, worker_id: int) -> None:
        while True:
            click = await self._queue.get()
            try:
                await self.service.record_click(
                    click.short_code,
                    click.user_agent,
                    click.ip_address,
                    click.referrer,
                    at=click.at,
                )
                self.recorded += 1
            except LinkShortenerError as e:
                self.failed += 1
                self.logger.error(f"Failed to record click for {click.short_code}: {e}")
            except Exception as e:
                self.failed += 1
                self.logger.exception(
                    f"Unexpected error recording click for {click.short_code} in worker {worker_id}: {e}"
                )
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued click has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Drain the queue, then stop the writer tasks."""
        if not self.running:
            return

        await self.join()

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        self.logger.info(
            f"Click recorder stopped (recorded={self.recorded}, "
            f"dropped={self.dropped}, failed={self.failed})"
        )
