"""
ASGI middleware logging every HTTP request with its status and latency.

Pure ASGI (not BaseHTTPMiddleware) so Server-Sent Event streams pass through
untouched; streams are logged when they finish.
"""

import logging
import time
from typing import Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Log method, path, status code and duration of HTTP requests."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are not logged (e.g., ["/health"])
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        path = scope.get("path", "")
        status_code = 500
        started = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.exception(f"{method} {path} raised")
            raise
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            level = logging.WARNING if status_code >= 500 else logging.INFO
            logger.log(
                level,
                f"{method} {path} -> {status_code} ({duration_ms:.1f}ms)",
                extra={"extra_fields": {
                    "method": method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 1),
                }},
            )
