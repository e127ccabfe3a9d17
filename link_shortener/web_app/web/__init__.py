"""HTML pages, form submission and redirects."""

from .routes import router as web_router

__all__ = ["web_router"]
