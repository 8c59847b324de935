"""Security helpers for the HTTP transport of the docs MCP server."""

from __future__ import annotations

import hmac
from collections.abc import Awaitable, Callable, Iterable

from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

HEALTH_PATH = "/mcp/health"
SECRET_HEADER = "x-mcp-secret"


def _presented_secret(request: Request) -> str | None:
    provided = request.headers.get(SECRET_HEADER)
    if provided:
        return provided
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return None


class SharedSecretMiddleware(BaseHTTPMiddleware):
    """Reject requests that do not carry the configured shared secret."""

    def __init__(
        self, app: ASGIApp, secret: str, exempt_paths: Iterable[str] = (HEALTH_PATH,)
    ) -> None:
        super().__init__(app)
        if not secret:
            raise ValueError("Shared secret must be configured")
        self._secret = secret.encode("utf-8")
        self._exempt = frozenset(exempt_paths)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self._exempt:
            return await call_next(request)

        provided = _presented_secret(request)
        if provided is None or not hmac.compare_digest(provided.encode("utf-8"), self._secret):
            return JSONResponse({"detail": "Unauthorized"}, status_code=401)

        return await call_next(request)


def build_security_middleware(secret: str | None) -> list[Middleware]:
    """Create the middleware stack for the HTTP transport.

    CORS is always enabled. When a shared secret is configured
    it is enforced on every request except the health check.
    """

    middleware: list[Middleware] = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    ]

    if secret:
        middleware.insert(0, Middleware(SharedSecretMiddleware, secret=secret))

    return middleware
