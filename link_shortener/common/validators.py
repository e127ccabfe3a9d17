"""Validation utilities for the link shortener."""

import re
from urllib.parse import urlparse
from typing import Tuple


SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

CUSTOM_CODE_MIN_LENGTH = 3
CUSTOM_CODE_MAX_LENGTH = 20


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a destination URL.
    
    Only syntactic well-formedness is checked: the URL must parse with a
    non-empty scheme and host.
    
    Args:
        url: The URL to validate
        
    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"
    
    try:
        result = urlparse(url)
    except ValueError as e:
        return False, f"Invalid URL format: {e}"
    
    if not result.scheme:
        return False, "URL must include a scheme"
    
    if not result.netloc or not result.hostname:
        return False, "URL must have a valid host"
    
    return True, ""


def is_valid_short_code(
    short_code: str,
    min_length: int = CUSTOM_CODE_MIN_LENGTH,
    max_length: int = CUSTOM_CODE_MAX_LENGTH,
) -> Tuple[bool, str]:
    """Validate a short code.
    
    Args:
        short_code: The short code to validate
        min_length: Minimum length for short code
        max_length: Maximum length for short code
        
    Returns:
        Tuple of (is_valid, error_message)
    """
    if not short_code or not isinstance(short_code, str):
        return False, "Short code is required"
    
    if len(short_code) < min_length:
        return False, f"Short code must be at least {min_length} characters"
    
    if len(short_code) > max_length:
        return False, f"Short code must be at most {max_length} characters"
    
    if not SHORT_CODE_PATTERN.match(short_code):
        return False, "Short code can only contain letters, numbers, hyphens, and underscores"
    
    return True, ""
