"""Client metadata middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from ...common.headers import get_client_ip


class ClientInfoMiddleware(BaseHTTPMiddleware):
    """Middleware to resolve the client's address behind proxies."""
    
    async def dispatch(self, request: Request, call_next: Callable):
        """Store client IP, user agent and referrer on request state."""
        remote_addr = request.client.host if request.client else None
        request.state.client_ip = get_client_ip(request.headers, remote_addr)
        request.state.user_agent = request.headers.get("user-agent", "")
        request.state.referrer = request.headers.get("referer", "")
        
        response = await call_next(request)
        return response
