"""Bearer token checks for link creation."""

import hmac
from typing import Optional, Tuple

from fastapi import HTTPException, Request, status

from ..common.headers import parse_bearer_token


def check_token(authorization: Optional[str], expected_token: Optional[str]) -> Optional[Tuple[int, str]]:
    """Validate an Authorization header against the configured token.
    
    Returns:
        None if the request is authorized, otherwise (status_code, message)
    """
    if not expected_token:
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "Auth token is not configured"
    
    if not authorization:
        return status.HTTP_401_UNAUTHORIZED, "Authorization header required"
    
    token = parse_bearer_token(authorization)
    if token is None:
        return status.HTTP_401_UNAUTHORIZED, "Bearer token required"
    
    if not hmac.compare_digest(token.encode(), expected_token.encode()):
        return status.HTTP_401_UNAUTHORIZED, "Invalid token"
    
    return None


async def require_bearer_token(request: Request) -> None:
    """FastAPI dependency rejecting requests without the configured bearer token."""
    config = request.app.state.config
    failure = check_token(request.headers.get("authorization"), config.auth_token)
    if failure:
        status_code, message = failure
        raise HTTPException(status_code=status_code, detail=message)
