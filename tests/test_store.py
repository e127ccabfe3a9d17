"""Tests for the SQLite store."""

import asyncio
import time

import pytest
from datetime import datetime, timedelta, timezone

from link_shortener.database.sqlite import SQLiteLinkStore
from link_shortener.errors import CodeAlreadyExistsError, StoreError


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
class TestSQLiteLinkStore:
    """Test store operations against a real database file."""
    
    async def test_put_and_get(self, store):
        await store.put("abcd", "https://example.org/doc", "tester", NOW)
        
        assert await store.get("abcd") == "https://example.org/doc"
        assert await store.get("zzzz") is None
    
    async def test_get_link(self, store):
        await store.put("abcd", "https://example.org/doc", "tester", NOW)
        
        link = await store.get_link("abcd")
        
        assert link.short_code == "abcd"
        assert link.created_by == "tester"
        assert link.created_at == NOW
        assert link.click_count == 0
        assert link.last_accessed is None
        assert await store.get_link("zzzz") is None
    
    async def test_duplicate_put_conflicts(self, store):
        await store.put("abcd", "https://example.org/first", "", NOW)
        
        with pytest.raises(CodeAlreadyExistsError) as exc_info:
            await store.put("abcd", "https://example.org/second", "", NOW)
        
        assert exc_info.value.short_code == "abcd"
        assert await store.get("abcd") == "https://example.org/first"
    
    async def test_short_codes_are_case_sensitive(self, store):
        await store.put("abcd", "https://example.org/lower", "", NOW)
        await store.put("ABCD", "https://example.org/upper", "", NOW)
        
        assert await store.get("abcd") == "https://example.org/lower"
        assert await store.get("ABCD") == "https://example.org/upper"
    
    async def test_exists(self, store):
        await store.put("abcd", "https://example.org/doc", "", NOW)
        
        assert await store.exists("abcd")
        assert not await store.exists("zzzz")
    
    async def test_record_click(self, store):
        await store.put("abcd", "https://example.org/doc", "", NOW)
        
        await store.record_click("abcd", "Mozilla/5.0", "1.2.3.4", "https://ref.example", NOW)
        await store.record_click("abcd", "curl/8.0", "5.6.7.8", "", NOW + timedelta(seconds=30))
        
        link = await store.get_link("abcd")
        assert link.click_count == 2
        assert link.last_accessed == NOW + timedelta(seconds=30)
        
        clicks = await store.recent_clicks(10)
        assert len(clicks) == 2
        assert clicks[0].user_agent == "curl/8.0"
        assert clicks[1].ip_address == "1.2.3.4"
        assert clicks[1].referrer == "https://ref.example"
    
    async def test_last_accessed_keeps_newest(self, store):
        """An older click arriving late does not move last_accessed back."""
        await store.put("abcd", "https://example.org/doc", "", NOW)
        
        await store.record_click("abcd", "", "", "", NOW + timedelta(minutes=5))
        await store.record_click("abcd", "", "", "", NOW)
        
        link = await store.get_link("abcd")
        assert link.click_count == 2
        assert link.last_accessed == NOW + timedelta(minutes=5)
    
    async def test_transaction_commits(self, store):
        async with store.transaction() as tx:
            await store.put("abcd", "https://example.org/doc", "", NOW, tx=tx)
            await store.record_click("abcd", "", "", "", NOW, tx=tx)
        
        link = await store.get_link("abcd")
        assert link.click_count == 1
    
    async def test_transaction_rolls_back(self, store):
        """Nothing written inside a failed unit of work is visible."""
        await store.put("abcd", "https://example.org/doc", "", NOW)
        
        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                await store.put("efgh", "https://example.org/other", "", NOW, tx=tx)
                await store.record_click("abcd", "", "", "", NOW, tx=tx)
                raise RuntimeError("boom")
        
        assert await store.get("efgh") is None
        assert (await store.get_link("abcd")).click_count == 0
        assert await store.recent_clicks(10) == []
    
    async def test_list_page_orders_newest_first(self, store):
        for i in range(5):
            await store.put(f"code{i}", f"https://example.org/{i}", "", NOW + timedelta(minutes=i))
        
        links, total_links, total_clicks = await store.list_page(None, 1, 2)
        
        assert [link.short_code for link in links] == ["code4", "code3"]
        assert total_links == 5
        assert total_clicks == 0
        
        links, _, _ = await store.list_page(None, 3, 2)
        assert [link.short_code for link in links] == ["code0"]
    
    async def test_list_page_search(self, store):
        await store.put("docs1", "https://example.org/a", "", NOW)
        await store.put("blog1", "https://example.org/docs/b", "", NOW)
        await store.put("misc1", "https://example.org/c", "", NOW)
        await store.record_click("docs1", "", "", "", NOW)
        await store.record_click("misc1", "", "", "", NOW)
        
        links, total_links, total_clicks = await store.list_page("docs", 1, 10)
        
        assert {link.short_code for link in links} == {"docs1", "blog1"}
        assert total_links == 2
        assert total_clicks == 1
    
    async def test_recent_clicks_limit(self, store):
        await store.put("abcd", "https://example.org/doc", "", NOW)
        for i in range(5):
            await store.record_click("abcd", "", "", "", NOW + timedelta(seconds=i))
        
        clicks = await store.recent_clicks(3)
        
        assert len(clicks) == 3
        assert clicks[0].timestamp == NOW + timedelta(seconds=4)
    
    async def test_health_check(self, store):
        assert await store.health_check() is True
        
        await store.close()
        
        assert await store.health_check() is False
    
    async def test_closed_store_raises(self, store):
        await store.close()
        
        with pytest.raises(StoreError):
            await store.get("abcd")
    
    async def test_data_survives_reopen(self, db_path, logger):
        first = SQLiteLinkStore(db_config=db_path, logger=logger)
        await first.initialize()
        await first.put("abcd", "https://example.org/doc", "", NOW)
        await first.close()
        
        second = SQLiteLinkStore(db_config=db_path, logger=logger)
        await second.initialize()
        try:
            assert await second.get("abcd") == "https://example.org/doc"
        finally:
            await second.close()
    
    async def test_invalid_pool_size(self, db_path):
        with pytest.raises(ValueError):
            SQLiteLinkStore(db_config=db_path, pool_size=0)


def slow_insert_click(conn, short_code, user_agent, ip_address, referrer, timestamp):
    """Click write that pauses between the log insert and the counter update."""
    conn.execute(
        """
        INSERT INTO click_analytics (short_code, timestamp, user_agent, ip_address, referrer)
        VALUES (?, ?, ?, ?, ?)
        """,
        (short_code, timestamp, user_agent, ip_address, referrer),
    )
    time.sleep(0.3)
    conn.execute(
        "UPDATE link_mappings SET click_count = click_count + 1 WHERE short_code = ?",
        (short_code,),
    )


@pytest.mark.asyncio
class TestCancelledWrites:
    """Cancelling a caller mid-write never splits a click."""
    
    async def _cancel_midway(self, coro):
        task = asyncio.create_task(coro)
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
    
    async def _assert_consistent(self, store):
        link = await store.get_link("abcd")
        clicks = await store.recent_clicks(100)
        assert link.click_count == len(clicks)
    
    async def test_cancelled_click(self, store, monkeypatch):
        await store.put("abcd", "https://example.org/doc", "", NOW)
        monkeypatch.setattr(SQLiteLinkStore, "_insert_click", staticmethod(slow_insert_click))
        
        await self._cancel_midway(store.record_click("abcd", "", "", "", NOW))
        
        monkeypatch.undo()
        await self._assert_consistent(store)
    
    async def test_cancelled_click_in_transaction(self, store, monkeypatch):
        await store.put("abcd", "https://example.org/doc", "", NOW)
        monkeypatch.setattr(SQLiteLinkStore, "_insert_click", staticmethod(slow_insert_click))
        
        async def click_in_transaction():
            async with store.transaction() as tx:
                await store.record_click("abcd", "", "", "", NOW, tx=tx)
        
        await self._cancel_midway(click_in_transaction())
        
        monkeypatch.undo()
        link = await store.get_link("abcd")
        assert link.click_count == 0
        assert await store.recent_clicks(100) == []
    
    async def test_store_usable_after_cancelled_click(self, store, monkeypatch):
        await store.put("abcd", "https://example.org/doc", "", NOW)
        monkeypatch.setattr(SQLiteLinkStore, "_insert_click", staticmethod(slow_insert_click))
        
        await self._cancel_midway(store.record_click("abcd", "", "", "", NOW))
        
        monkeypatch.undo()
        for _ in range(3):
            await store.record_click("abcd", "", "", "", NOW)
        await store.put("efgh", "https://example.org/other", "", NOW)
        
        await self._assert_consistent(store)
        assert await store.get("efgh") == "https://example.org/other"


@pytest.mark.asyncio
class TestPaging:
    """Test page bounds."""
    
    async def test_page_far_past_the_end(self, store):
        """An offset too large for SQLite reads as an empty page."""
        await store.put("abcd", "https://example.org/doc", "", NOW)
        
        links, total_links, total_clicks = await store.list_page(None, 10**17, 1000)
        
        assert links == []
        assert total_links == 1
        assert total_clicks == 0
