"""ASGI authentication middleware."""

import json
import re

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from app.core.exceptions import AppException
from app.core.redis import is_token_revoked
from app.services.token_service import TokenService

logger = structlog.get_logger()

PUBLIC_PATHS: set[str] = {
    "",
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}

# Guest endpoints are reached through the bearer link alone.
_GUEST_TOKEN = r"[A-Za-z0-9_-]+"
PUBLIC_ROUTES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("GET", re.compile(rf"/api/v1/guest-chat/(?!create$){_GUEST_TOKEN}")),
    ("GET", re.compile(rf"/api/v1/guest-chat/{_GUEST_TOKEN}/messages")),
    ("POST", re.compile(rf"/api/v1/guest-chat/{_GUEST_TOKEN}/message")),
)


def is_public(method: str, path: str) -> bool:
    """Check whether a request may skip bearer authentication."""
    normalized = path.rstrip("/") or "/"
    if normalized in PUBLIC_PATHS or path.startswith(("/docs", "/redoc")):
        return True
    return any(
        method == route_method and pattern.fullmatch(normalized)
        for route_method, pattern in PUBLIC_ROUTES
    )


class AuthMiddleware:
    """Pure ASGI middleware for JWT validation."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self._tokens = TokenService()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        if method == "OPTIONS" or is_public(method, scope["path"]):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        auth_header = headers.get(b"authorization", b"").decode()

        if not auth_header.startswith("Bearer "):
            await self._send_error(
                send, 401, "MISSING_TOKEN", "Authorization header required"
            )
            return

        try:
            payload = self._tokens.decode_token(auth_header[7:])
        except AppException as exc:
            await self._send_error(send, exc.status_code, exc.code, exc.message)
            return

        if payload.type != "access":
            await self._send_error(send, 401, "INVALID_TOKEN", "Invalid token type")
            return

        if await is_token_revoked(payload.jti):
            await self._send_error(
                send, 401, "TOKEN_BLACKLISTED", "Token has been revoked"
            )
            return

        if not payload.sub.isdigit():
            await self._send_error(send, 401, "INVALID_TOKEN", "Invalid token subject")
            return

        scope.setdefault("state", {})
        scope["state"]["user_id"] = int(payload.sub)
        scope["state"]["email"] = payload.email
        scope["state"]["role"] = payload.role
        scope["state"]["jti"] = payload.jti

        await self.app(scope, receive, send)

    @staticmethod
    async def _send_error(send: Send, status: int, code: str, message: str) -> None:
        """Send a JSON error response directly."""
        logger.info("Request rejected by auth middleware", code=code)
        body = json.dumps({"status": status, "message": message, "code": code}).encode()

        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
