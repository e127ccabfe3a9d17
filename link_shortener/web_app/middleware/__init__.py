"""Middleware for the link shortener web app."""

from .client import ClientInfoMiddleware
from .logging import LoggingMiddleware

__all__ = ["ClientInfoMiddleware", "LoggingMiddleware"]
