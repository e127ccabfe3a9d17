"""SQLite implementation for the link shortener store."""

import asyncio
import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from ..errors import CodeAlreadyExistsError, StoreError
from .base import LinkStoreBase
from .models import ClickEvent, LinkMapping, to_timestamp


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS link_mappings (
    short_code TEXT PRIMARY KEY,
    original_url TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    created_by TEXT,
    click_count INTEGER DEFAULT 0,
    last_accessed INTEGER
);

CREATE INDEX IF NOT EXISTS idx_created_at ON link_mappings(created_at);
CREATE INDEX IF NOT EXISTS idx_click_count ON link_mappings(click_count);

CREATE TABLE IF NOT EXISTS click_analytics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    short_code TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    user_agent TEXT,
    ip_address TEXT,
    referrer TEXT,
    FOREIGN KEY (short_code) REFERENCES link_mappings(short_code)
);

CREATE INDEX IF NOT EXISTS idx_short_code_timestamp ON click_analytics(short_code, timestamp);
"""

LINK_COLUMNS = "short_code, original_url, created_at, created_by, click_count, last_accessed"


# Largest value SQLite can bind as an INTEGER
SQLITE_MAX_INTEGER = 2**63 - 1


def _is_unique_violation(error: sqlite3.IntegrityError) -> bool:
    message = str(error)
    return "UNIQUE constraint failed" in message or "PRIMARY KEY constraint failed" in message


async def _in_thread(func: Callable, *args) -> Any:
    """Run ``func(*args)`` in a worker thread.

    A cancelled caller still waits for the thread to finish before the
    cancellation propagates, so the connection it used is never touched by
    two threads at once or handed back to the pool while busy.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        await asyncio.wait([future])
        if not future.cancelled():
            # Outcome is discarded along with the cancelled caller
            future.exception()
        raise


class SQLiteTransaction:
    """A unit of work bound to one pooled connection.

    Store operations passed this object run their statements on its
    connection, inside the transaction opened by
    :meth:`SQLiteLinkStore.transaction`.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    async def run(self, func: Callable, *args) -> Any:
        """Run ``func(conn, *args)`` on the transaction's connection in a worker thread."""
        return await _in_thread(func, self.conn, *args)


class SQLiteLinkStore(LinkStoreBase):
    """SQLite implementation of the link store.

    Blocking sqlite3 calls run in worker threads. At most ``pool_size``
    connections are in use at once; further callers wait for one to be
    released.
    """

    def __init__(
        self,
        db_config: str,
        pool_size: int = 25,
        busy_timeout_ms: int = 5000,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize SQLite store.

        Args:
            db_config: Path of the database file
            pool_size: Maximum number of concurrent connections
            busy_timeout_ms: How long a writer waits on a locked database
            logger: Optional logger instance
        """
        super().__init__(db_config)

        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")

        self.logger = logger or logging.getLogger(__name__)
        self.pool_size = pool_size
        self.busy_timeout_ms = busy_timeout_ms

        self._semaphore = asyncio.Semaphore(pool_size)
        self._idle: List[sqlite3.Connection] = []
        self._closed = False

    def _connect(self) -> sqlite3.Connection:
        """Open and configure one connection."""
        if self.db_config != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(self.db_config)), exist_ok=True)

        conn = sqlite3.connect(
            self.db_config,
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
        self.logger.debug(f"Opened SQLite connection to {self.db_config}")
        return conn

    @asynccontextmanager
    async def _get_connection(self):
        """Borrow a connection from the pool."""
        if self._closed:
            raise StoreError("Store is closed")

        async with self._semaphore:
            if self._idle:
                conn = self._idle.pop()
            else:
                try:
                    conn = await _in_thread(self._connect)
                except sqlite3.Error as e:
                    raise StoreError(f"Failed to open database {self.db_config}: {e}") from e
            try:
                yield conn
            finally:
                if self._closed:
                    conn.close()
                else:
                    self._idle.append(conn)

    async def _run(self, func: Callable, *args, tx: Optional[SQLiteTransaction] = None) -> Any:
        """Run ``func(conn, *args)`` inside ``tx`` or on a freshly borrowed connection."""
        if tx is not None:
            return await tx.run(func, *args)
        async with self._get_connection() as conn:
            return await _in_thread(func, conn, *args)

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    async def initialize(self) -> None:
        """Create tables and indexes if they don't exist."""
        self.logger.info(f"Initializing schema in {self.db_config}")
        try:
            async with self._get_connection() as conn:
                await _in_thread(conn.executescript, SCHEMA_SQL)
        except sqlite3.Error as e:
            self.logger.error(f"Error creating tables: {e}")
            raise StoreError(f"Failed to create schema: {e}") from e

    @asynccontextmanager
    async def transaction(self):
        """Open a ``BEGIN IMMEDIATE`` unit of work."""
        async with self._get_connection() as conn:
            try:
                await _in_thread(conn.execute, "BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(f"Failed to begin transaction: {e}") from e
            except asyncio.CancelledError:
                # BEGIN may have completed before the cancellation landed
                await _in_thread(self._rollback, conn)
                raise

            tx = SQLiteTransaction(conn)
            try:
                yield tx
            except BaseException:
                await _in_thread(self._rollback, conn)
                raise

            try:
                await _in_thread(conn.execute, "COMMIT")
            except sqlite3.Error as e:
                await _in_thread(self._rollback, conn)
                raise StoreError(f"Failed to commit transaction: {e}") from e

    # Statements, executed in worker threads

    @staticmethod
    def _insert_mapping(
        conn: sqlite3.Connection,
        short_code: str,
        original_url: str,
        created_by: str,
        created_at: int,
    ) -> None:
        conn.execute(
            """
            INSERT INTO link_mappings (short_code, original_url, created_at, created_by, click_count)
            VALUES (?, ?, ?, ?, 0)
            """,
            (short_code, original_url, created_at, created_by),
        )

    @staticmethod
    def _insert_click(
        conn: sqlite3.Connection,
        short_code: str,
        user_agent: str,
        ip_address: str,
        referrer: str,
        timestamp: int,
    ) -> None:
        conn.execute(
            """
            INSERT INTO click_analytics (short_code, timestamp, user_agent, ip_address, referrer)
            VALUES (?, ?, ?, ?, ?)
            """,
            (short_code, timestamp, user_agent, ip_address, referrer),
        )
        # last_accessed tracks the newest click even if clicks land out of order
        conn.execute(
            """
            UPDATE link_mappings
            SET click_count = click_count + 1,
                last_accessed = MAX(COALESCE(last_accessed, 0), ?)
            WHERE short_code = ?
            """,
            (timestamp, short_code),
        )

    @classmethod
    def _record_click_unit(cls, conn: sqlite3.Connection, *args) -> None:
        """Apply one click in its own transaction, entirely within one thread."""
        conn.execute("BEGIN IMMEDIATE")
        try:
            cls._insert_click(conn, *args)
            conn.execute("COMMIT")
        except BaseException:
            cls._rollback(conn)
            raise

    @staticmethod
    def _select_url(conn: sqlite3.Connection, short_code: str) -> Optional[str]:
        row = conn.execute(
            "SELECT original_url FROM link_mappings WHERE short_code = ?",
            (short_code,),
        ).fetchone()
        return row["original_url"] if row else None

    @staticmethod
    def _select_link(conn: sqlite3.Connection, short_code: str) -> Optional[LinkMapping]:
        row = conn.execute(
            f"SELECT {LINK_COLUMNS} FROM link_mappings WHERE short_code = ?",
            (short_code,),
        ).fetchone()
        return LinkMapping.from_row(row) if row else None

    @staticmethod
    def _select_exists(conn: sqlite3.Connection, short_code: str) -> bool:
        row = conn.execute(
            "SELECT EXISTS(SELECT 1 FROM link_mappings WHERE short_code = ?)",
            (short_code,),
        ).fetchone()
        return bool(row[0])

    @staticmethod
    def _select_page(
        conn: sqlite3.Connection,
        search: Optional[str],
        page: int,
        page_size: int,
    ) -> Tuple[List[LinkMapping], int, int]:
        where_clause = ""
        args: list = []
        if search:
            pattern = f"%{search}%"
            where_clause = "WHERE (short_code LIKE ? OR original_url LIKE ?)"
            args = [pattern, pattern]

        offset = (page - 1) * page_size

        # Totals and rows come from the same read snapshot
        conn.execute("BEGIN")
        try:
            totals = conn.execute(
                f"SELECT COUNT(*), COALESCE(SUM(click_count), 0) FROM link_mappings {where_clause}",
                args,
            ).fetchone()
            # An offset SQLite cannot bind is past the end of any table
            if offset > SQLITE_MAX_INTEGER:
                return [], totals[0], totals[1]
            rows = conn.execute(
                f"""
                SELECT {LINK_COLUMNS}
                FROM link_mappings {where_clause}
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                [*args, page_size, offset],
            ).fetchall()
        finally:
            conn.execute("COMMIT")

        return [LinkMapping.from_row(row) for row in rows], totals[0], totals[1]

    @staticmethod
    def _select_recent_clicks(conn: sqlite3.Connection, limit: int) -> List[ClickEvent]:
        rows = conn.execute(
            """
            SELECT id, short_code, timestamp, user_agent, ip_address, referrer
            FROM click_analytics
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        return [ClickEvent.from_row(row) for row in rows]

    # Public API

    async def put(
        self,
        short_code: str,
        original_url: str,
        created_by: str,
        now: datetime,
        tx: Optional[SQLiteTransaction] = None,
    ) -> None:
        try:
            await self._run(
                self._insert_mapping,
                short_code,
                original_url,
                created_by or "",
                to_timestamp(now),
                tx=tx,
            )
        except sqlite3.IntegrityError as e:
            if _is_unique_violation(e):
                raise CodeAlreadyExistsError(short_code) from e
            raise StoreError(f"Failed to store URL mapping: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Failed to store URL mapping: {e}") from e

        self.logger.debug(f"Stored mapping {short_code} -> {original_url}")

    async def get(self, short_code: str) -> Optional[str]:
        try:
            return await self._run(self._select_url, short_code)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to look up {short_code}: {e}") from e

    async def get_link(self, short_code: str) -> Optional[LinkMapping]:
        try:
            return await self._run(self._select_link, short_code)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to look up {short_code}: {e}") from e

    async def exists(self, short_code: str, tx: Optional[SQLiteTransaction] = None) -> bool:
        try:
            return await self._run(self._select_exists, short_code, tx=tx)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to check {short_code}: {e}") from e

    async def record_click(
        self,
        short_code: str,
        user_agent: str,
        ip_address: str,
        referrer: str,
        now: datetime,
        tx: Optional[SQLiteTransaction] = None,
    ) -> None:
        args = (short_code, user_agent or "", ip_address or "", referrer or "", to_timestamp(now))

        if tx is not None:
            await self._apply_click(tx, args)
            return

        try:
            await self._run(self._record_click_unit, *args)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to record click for {short_code}: {e}") from e

    async def _apply_click(self, tx: SQLiteTransaction, args: tuple) -> None:
        try:
            await tx.run(self._insert_click, *args)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to record click for {args[0]}: {e}") from e

    async def list_page(
        self,
        search: Optional[str],
        page: int,
        page_size: int,
    ) -> Tuple[List[LinkMapping], int, int]:
        try:
            return await self._run(self._select_page, search, page, page_size)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to fetch links: {e}") from e

    async def recent_clicks(self, limit: int = 50) -> List[ClickEvent]:
        try:
            return await self._run(self._select_recent_clicks, limit)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to fetch recent clicks: {e}") from e

    async def health_check(self) -> bool:
        try:
            async with self._get_connection() as conn:
                await _in_thread(conn.execute, "SELECT 1")
            return True
        except (sqlite3.Error, StoreError) as e:
            self.logger.error(f"Health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close all idle connections; borrowed ones close on release."""
        self._closed = True
        while self._idle:
            conn = self._idle.pop()
            try:
                conn.close()
            except sqlite3.Error as e:
                self.logger.error(f"Error closing connection: {e}")
        self.logger.debug("SQLite store closed")
