#!/usr/bin/env python3
"""
Main entry point for the link shortener service.

Concurrency: requests are handled concurrently on one event loop; storage
calls run in worker threads against a bounded SQLite connection pool, and
click accounting is drained from a bounded queue by background tasks.

Usage:
    python app.py

Environment variables:
    DATABASE_PATH - SQLite database file
    BASE_URL - Base URL for short links
    AUTH_TOKEN - Bearer token required to create links
    PORT - Port to listen on
    LOG_LEVEL - Logging level
"""

import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from link_shortener.accounting import ClickRecorder
from link_shortener.config import load_config
from link_shortener.database.sqlite import SQLiteLinkStore
from link_shortener.service import LinkShortenerService
from link_shortener.common.logging_config import setup_logging
from link_shortener.web_app import create_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the store, service and click recorder; tear them down on exit."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting link shortener service...")

    logger.info(f"Opening database at {config.database_path}")
    store = SQLiteLinkStore(
        db_config=config.database_path,
        pool_size=config.pool_size,
        logger=logger,
    )
    await store.initialize()

    service = LinkShortenerService.from_config(store, config, logger=logger)

    recorder = ClickRecorder(
        service,
        max_queue_size=config.click_queue_size,
        workers=config.click_workers,
        logger=logger,
    )
    await recorder.start()

    app.state.store = store
    app.state.service = service
    app.state.recorder = recorder

    if not config.auth_token:
        logger.warning("AUTH_TOKEN is not set; link creation will be rejected")

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down link shortener service...")

    await recorder.close()
    await service.close()

    logger.info("Service stopped")


def build_server(config, logger) -> uvicorn.Server:
    """Create the uvicorn server for the configured app.

    uvicorn handles SIGINT/SIGTERM itself: it stops accepting connections,
    finishes in-flight requests and then runs the lifespan shutdown, which
    drains the click queue.
    """
    app = create_app(
        store_instance=None,
        service_instance=None,
        recorder_instance=None,
        config=config,
        lifespan=lifespan,
        logger=logger,
    )
    app.state.logger = logger

    return uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.host,
            port=config.port,
            workers=config.workers,
            log_level=config.log_level.lower(),
            access_log=False,
        )
    )


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )
    logger.info(f"Link shortener configuration: {config.model_dump(exclude={'auth_token'})}")

    server = build_server(config, logger)

    try:
        logger.info(f"Listening on {config.host}:{config.port}, short links under {config.base_url}")
        server.run()
    except Exception as e:
        logger.exception(f"Server stopped with an error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
