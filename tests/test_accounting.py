"""Tests for background click recording."""

import asyncio

import pytest

from link_shortener.accounting import ClickRecorder
from link_shortener.errors import StoreError


class FlakyService:
    """Service stub whose first write fails."""
    
    def __init__(self):
        self.calls = []
    
    async def record_click(self, short_code, user_agent, ip_address, referrer, at=None):
        self.calls.append(short_code)
        if len(self.calls) == 1:
            raise StoreError("database is locked")


class BlockingService:
    """Service stub that waits until released."""
    
    def __init__(self):
        self.release = asyncio.Event()
        self.recorded = []
    
    async def record_click(self, short_code, user_agent, ip_address, referrer, at=None):
        await self.release.wait()
        self.recorded.append(short_code)


@pytest.mark.asyncio
class TestClickRecorder:
    """Test the click queue."""
    
    async def test_dispatched_clicks_are_recorded(self, service, recorder):
        await service.create_short_url("https://example.org/doc", custom_code="doc1")
        
        for _ in range(10):
            assert recorder.dispatch("doc1", "Mozilla/5.0", "1.2.3.4", "https://ref.example")
        await recorder.join()
        
        link = await service.get_link("doc1")
        assert link.click_count == 10
        assert recorder.recorded == 10
        assert recorder.dropped == 0
        
        analytics = await service.list_analytics()
        assert analytics.recent_clicks[0].referrer == "https://ref.example"
    
    async def test_dispatch_before_start_drops(self, service, logger):
        recorder = ClickRecorder(service, logger=logger)
        
        assert recorder.dispatch("doc1") is False
        assert recorder.dropped == 1
        assert recorder.running is False
    
    async def test_full_queue_drops(self, logger):
        stub = BlockingService()
        recorder = ClickRecorder(stub, max_queue_size=2, workers=1, logger=logger)
        await recorder.start()
        
        accepted = [recorder.dispatch("doc1") for _ in range(2)]
        # Let the worker take the first click off the queue
        await asyncio.sleep(0)
        accepted += [recorder.dispatch("doc1") for _ in range(5)]
        
        assert all(accepted[:3])
        assert recorder.dropped >= 1
        
        stub.release.set()
        await recorder.close()
        
        assert len(stub.recorded) + recorder.dropped == 7
    
    async def test_failed_write_is_logged_not_raised(self, logger):
        stub = FlakyService()
        recorder = ClickRecorder(stub, workers=1, logger=logger)
        await recorder.start()
        
        recorder.dispatch("doc1")
        recorder.dispatch("doc2")
        await recorder.join()
        
        assert recorder.failed == 1
        assert recorder.recorded == 1
        assert recorder.running is True
        
        await recorder.close()
    
    async def test_close_drains_queue(self, service, logger):
        await service.create_short_url("https://example.org/doc", custom_code="doc1")
        recorder = ClickRecorder(service, workers=2, logger=logger)
        await recorder.start()
        
        for _ in range(25):
            recorder.dispatch("doc1")
        await recorder.close()
        
        assert recorder.running is False
        assert recorder.pending == 0
        assert (await service.get_link("doc1")).click_count == 25
    
    async def test_unknown_code_click_is_harmless(self, service, recorder):
        """A click for a code that was never created leaves no mapping behind."""
        recorder.dispatch("ghost")
        await recorder.join()
        
        assert await service.resolve("ghost") is None
