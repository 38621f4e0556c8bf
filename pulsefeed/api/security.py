"""
Read API security helpers: response headers, CORS origin resolution and
JSON error responses.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from aiohttp import web

from ..config.settings import ApiSettings
from ..utils.exceptions import get_user_friendly_message
from ..utils.logging import get_api_logger

logger = get_api_logger()

LOCAL_HOSTS = {"localhost", "127.0.0.1"}

BASE_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Cache-Control": "public, max-age=300",
}


def resolve_cors_origin(
    origin: Optional[str],
    allowed_origins: List[str],
    production_origin: Optional[str] = None,
) -> str:
    """Pick the Access-Control-Allow-Origin value for a request origin.

    No origin (direct API calls) gets "*". Allowed and local origins are
    echoed back. Anything else gets the production origin, or the first
    allowed origin when there is none.
    """
    if not origin:
        return "*"
    if origin in allowed_origins:
        return origin

    host = urlparse(origin).hostname or ""
    if host in LOCAL_HOSTS:
        return origin

    if production_origin:
        return production_origin
    return allowed_origins[0] if allowed_origins else "http://localhost:5173"


def get_security_headers(origin: Optional[str], settings: ApiSettings) -> Dict[str, str]:
    """Security and CORS headers for a response."""
    headers = dict(BASE_SECURITY_HEADERS)

    if settings.enable_hsts:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    headers["Access-Control-Allow-Origin"] = resolve_cors_origin(
        origin, settings.origins(), settings.web_app_url
    )
    if origin:
        headers["Vary"] = "Origin"

    return headers


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.Response(
        text=json.dumps(data, ensure_ascii=False),
        status=status,
        content_type="application/json",
    )


def json_error(status: int, message: str) -> web.Response:
    """Error body: {"error": message}. Never carries internal details."""
    return json_response({"error": message}, status=status)


def security_middleware(settings: ApiSettings):
    """Build middleware that adds security headers to every response."""

    @web.middleware
    async def middleware(request: web.Request, handler) -> web.StreamResponse:
        try:
            response = await handler(request)
        except web.HTTPException as e:
            response = json_error(e.status, e.reason)
        except Exception as e:
            logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
            response = json_error(500, get_user_friendly_message(e))

        response.headers.update(get_security_headers(request.headers.get("Origin"), settings))
        return response

    return middleware
