"""Header parsing utilities for the link shortener."""

from typing import Dict, Mapping, Optional


def extract_forwarded_headers(headers: Mapping[str, str]) -> Dict[str, Optional[str]]:
    """Extract proxy headers from a request.
    
    Args:
        headers: Request headers mapping
        
    Returns:
        Dictionary with forwarded_for and real_ip
    """
    # Convert headers to lowercase for case-insensitive lookup
    headers_lower = {k.lower(): v for k, v in headers.items()}
    
    return {
        "forwarded_for": headers_lower.get("x-forwarded-for"),
        "real_ip": headers_lower.get("x-real-ip"),
    }


def get_client_ip(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> str:
    """Determine the client IP address for click analytics.
    
    Priority:
    1. First address in X-Forwarded-For
    2. X-Real-IP
    3. Socket peer address
    
    Args:
        headers: Request headers
        remote_addr: Peer address of the connection, if known
        
    Returns:
        Client IP, or an empty string when nothing is known
    """
    forwarded = extract_forwarded_headers(headers)
    
    if forwarded["forwarded_for"]:
        return forwarded["forwarded_for"].split(",")[0].strip()
    
    if forwarded["real_ip"]:
        return forwarded["real_ip"].strip()
    
    return remote_addr or ""


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer`` header value.
    
    Returns None if the header is missing or uses another scheme.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):]
