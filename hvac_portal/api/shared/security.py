"""
Security Middleware and Utilities

Response hardening headers and request helpers shared by the auth endpoints
and middleware.
"""

from typing import Callable, Collection, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ...core.auth import client_address
from ...core.auth.rate_limit import UNKNOWN_CLIENT

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


class SecurityMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every response and drops the server header."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value

        if "server" in response.headers:
            del response.headers["server"]

        return response


class StarletteRequestContext:
    """Adapts a Starlette request to the authorizer's request interface."""

    def __init__(self, request: Request):
        self._request = request

    @property
    def path(self) -> str:
        return self._request.url.path

    def header(self, name: str) -> Optional[str]:
        return self._request.headers.get(name)

    def cookie(self, name: str) -> Optional[str]:
        return self._request.cookies.get(name)


def get_client_ip(request: Request, trusted_proxies: Collection[str] = ()) -> str:
    """
    Client address used as the rate-limit key and in audit records.

    Proxy headers win over the socket peer; "unknown" when nothing is available.
    When trusted_proxies is non-empty the headers are only read if the socket
    peer is one of them.
    """
    peer = request.client.host if request.client and request.client.host else None
    if trusted_proxies and peer not in trusted_proxies:
        return peer or UNKNOWN_CLIENT

    address = client_address(StarletteRequestContext(request))
    if address != UNKNOWN_CLIENT:
        return address
    return peer or UNKNOWN_CLIENT
