"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI

from .api import api_router
from .web import web_router
from .middleware import ClientInfoMiddleware, LoggingMiddleware


def create_app(
    store_instance,
    service_instance,
    recorder_instance,
    config,
    lifespan=None,
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    """Create and configure FastAPI application.
    
    Args:
        store_instance: Store instance
        service_instance: LinkShortenerService instance
        recorder_instance: ClickRecorder used by the redirect route
        config: Configuration instance
        lifespan: Optional lifespan context manager that builds the instances
        logger: Optional logger for request logging
        
    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Link Shortener",
        description="Short link service with click analytics",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    
    # Store instances in app state for access in routes
    app.state.store = store_instance
    app.state.service = service_instance
    app.state.recorder = recorder_instance
    app.state.config = config
    
    # Last added runs first, so client info is available to the logger
    app.add_middleware(LoggingMiddleware, logger=logger)
    app.add_middleware(ClientInfoMiddleware)
    
    app.include_router(api_router, prefix="/api", tags=["API"])
    app.include_router(web_router, tags=["Web"])
    
    return app
