"""
Security headers for the SlotSwap API

Every response is JSON (the notification WebSocket never passes through
here), so the header set is fixed and computed once at startup.
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

# A JSON body may not load, frame or submit anything
API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'; form-action 'none'"

DISABLED_BROWSER_FEATURES = ("camera", "geolocation", "microphone", "payment", "usb")


def build_security_headers(production: bool) -> dict[str, str]:
    """Header name -> value applied to every API response"""
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "Content-Security-Policy": API_CSP,
        "Permissions-Policy": ", ".join(f"{feature}=()" for feature in DISABLED_BROWSER_FEATURES),
    }
    if production:
        # One year, HTTPS only
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamps the API header set on responses outside ``exclude_paths``"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None, production: bool = IS_PRODUCTION):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.headers = build_security_headers(production)
        logger.info(f"🛡️ Security headers: {', '.join(self.headers)}")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self.exclude_paths):
            return response

        response.headers.update(self.headers)
        # Slot and request listings change with every swap
        response.headers.setdefault("Cache-Control", "no-store")
        return response
