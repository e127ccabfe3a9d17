"""Pytest configuration and fixtures."""

import pytest
from typing import AsyncGenerator

from link_shortener.accounting import ClickRecorder
from link_shortener.config import Config
from link_shortener.database.sqlite import SQLiteLinkStore
from link_shortener.service import LinkShortenerService
from link_shortener.shortcode import ShortCodeGenerator
from link_shortener.common.logging_config import setup_logging


class ScriptedGenerator(ShortCodeGenerator):
    """Generator that hands out a fixed sequence of candidates."""
    
    def __init__(self, codes):
        super().__init__()
        self.codes = list(codes)
        self.calls = 0
    
    def generate(self) -> str:
        code = self.codes[min(self.calls, len(self.codes) - 1)]
        self.calls += 1
        return code


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh SQLite database file."""
    return str(tmp_path / "links.db")


@pytest.fixture
async def store(db_path, logger) -> AsyncGenerator[SQLiteLinkStore, None]:
    """Create an initialized store."""
    db = SQLiteLinkStore(db_config=db_path, pool_size=5, logger=logger)
    await db.initialize()
    
    yield db
    
    await db.close()


@pytest.fixture
def config(db_path):
    """Configuration used by HTTP tests."""
    return Config(
        database_path=db_path,
        base_url="http://testserver",
        auth_token="secret-token",
    )


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator()


@pytest.fixture
async def service(store, short_code_generator, logger) -> LinkShortenerService:
    """Create service instance."""
    return LinkShortenerService(
        store=store,
        base_url="http://testserver",
        short_code_generator=short_code_generator,
        logger=logger,
    )


@pytest.fixture
async def recorder(service, logger) -> AsyncGenerator[ClickRecorder, None]:
    """Started click recorder."""
    click_recorder = ClickRecorder(service, max_queue_size=100, workers=2, logger=logger)
    await click_recorder.start()
    
    yield click_recorder
    
    await click_recorder.close()


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.org/doc",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456?tab=votes#answer-1",
    ]
