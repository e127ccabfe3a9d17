"""Common utilities for the link shortener."""

from .validators import is_valid_url, is_valid_short_code
from .headers import get_client_ip, parse_bearer_token
from .url_builder import build_short_url, build_dashboard_url
from .logging_config import setup_logging, get_logger

__all__ = [
    "is_valid_url",
    "is_valid_short_code",
    "get_client_ip",
    "parse_bearer_token",
    "build_short_url",
    "build_dashboard_url",
    "setup_logging",
    "get_logger",
]
