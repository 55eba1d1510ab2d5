"""
Authentication Middleware for the Ask Maia MCP Server

API key authentication for the HTTP transport.
Format: Authorization: Bearer <api_key>

Keys map to client names in settings.yaml (auth.api_keys). Health and info
endpoints stay public so health checks work with auth enabled.
"""

import hmac
import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from config import ServerConfig

logger = logging.getLogger(__name__)

PUBLIC_PATH_PREFIXES = ("/healthz", "/version", "/_info")


def _unauthorized(error: str, message: Optional[str] = None) -> JSONResponse:
    content = {"error": error}
    if message:
        content["message"] = message
    return JSONResponse(status_code=401, content=content)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    API Key Authentication Middleware
    """

    def __init__(self, app, config: ServerConfig):
        super().__init__(app)
        self.enabled = config.auth_enabled
        self.api_keys = dict(config.api_keys)

        logger.info(
            "AuthMiddleware initialized | enabled=%s | api_keys=%d | public_prefixes=%s",
            self.enabled,
            len(self.api_keys),
            PUBLIC_PATH_PREFIXES,
        )

    def client_for(self, api_key: str) -> Optional[str]:
        for key, client_name in self.api_keys.items():
            if hmac.compare_digest(key.encode(), api_key.encode()):
                return client_name
        return None

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not self.enabled or path.startswith(PUBLIC_PATH_PREFIXES):
            return await call_next(request)

        host = request.client.host if request.client else "unknown"

        auth_header = request.headers.get("authorization")
        if not auth_header:
            logger.warning(f"[AUTH] Missing Authorization header from {host} for path: {path}")
            return _unauthorized(
                "Authentication required",
                "Missing Authorization header. Use: Authorization: Bearer <api_key>",
            )

        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning(f"[AUTH] Invalid Authorization format from {host} for path: {path}")
            return _unauthorized("Invalid Authorization format. Use: Authorization: Bearer <api_key>")

        client_name = self.client_for(parts[1])
        if not client_name:
            logger.warning(f"[AUTH] Invalid API key from {host} for path: {path}")
            return _unauthorized("Invalid API key")

        logger.info(f"[AUTH] ✅ Authenticated client: {client_name} → {path}")
        request.state.client_name = client_name
        return await call_next(request)
