"""URL building utilities for the link shortener."""


def build_short_url(
    short_code: str,
    base_url: str,
    path_prefix: str = "",
) -> str:
    """Build complete short URL.
    
    Args:
        short_code: The short code
        base_url: Base URL (e.g., https://lnk.example.org)
        path_prefix: Optional path prefix (e.g., /s)
        
    Returns:
        Complete short URL
    """
    base = base_url.rstrip("/")
    prefix = path_prefix.strip("/")
    
    if prefix:
        return f"{base}/{prefix}/{short_code}"
    return f"{base}/{short_code}"


def build_dashboard_url(page: int, page_size: int, search_term: str = "") -> str:
    """Build the dashboard query string for a pagination link."""
    params = f"page={page}&size={page_size}"
    if search_term:
        params += "&search=" + search_term.replace(" ", "+")
    return "/?" + params
