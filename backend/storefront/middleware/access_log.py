from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.logging import get_logger


def _level_for(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One structured line per request, logged at a level that follows the status."""

    def __init__(self, app, *, exclude_paths: set[str] | None = None):
        super().__init__(app)
        self.exclude_paths = frozenset(exclude_paths or ())
        self.log = get_logger("access")

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # request.state.user is set by the auth dependency further in.
            user = getattr(request.state, "user", None)
            getattr(self.log, _level_for(status_code))(
                "request",
                http_method=request.method,
                path=request.url.path,
                query=request.url.query or None,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                client_ip=request.client.host if request.client else None,
                user_id=getattr(user, "user_id", None),
            )
