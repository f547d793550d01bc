"""
Exception handlers that turn every failure into a problem+json response.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .errors import StorefrontError
from .observability.logging import get_logger
from .problem_details import BEARER_CHALLENGE, error_response, problem_response

log = get_logger("errors")

# Request sections FastAPI prefixes onto a validation error location.
_LOCATION_SECTIONS = frozenset({"body", "query", "path", "header", "cookie"})


def validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for err in exc.errors():
        loc = tuple(err.get("loc") or ())
        out.append(
            {
                "location": [str(part) for part in loc],
                "path": ".".join(str(part) for part in loc if part not in _LOCATION_SECTIONS),
                "message": err.get("msg") or "Invalid value",
                "type": err.get("type"),
            }
        )
    return out


async def _on_storefront_error(request: Request, exc: StorefrontError) -> Response:
    if exc.status_code >= 500:
        log.error("service_error", error=exc.message, entity=exc.entity)
    return error_response(request, exc)


async def _on_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
    detail = exc.detail if isinstance(exc.detail, str) and exc.detail else None
    if exc.status_code == 404 and detail in (None, "Not Found"):
        # Starlette's router 404 for an unknown path.
        detail = "Route not found"

    headers = dict(exc.headers or {})
    if exc.status_code == 401:
        headers = {**BEARER_CHALLENGE, **headers}

    return problem_response(
        request=request,
        status_code=exc.status_code,
        detail=detail,
        headers=headers or None,
    )


async def _on_validation_error(request: Request, exc: RequestValidationError) -> Response:
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=validation_errors(exc),
    )


async def _on_database_unavailable(request: Request, exc: OperationalError) -> Response:
    log.error("database_unavailable", error=str(exc.orig or exc))
    return problem_response(request=request, status_code=503, detail="Database is unavailable")


async def _on_unhandled(request: Request, exc: Exception) -> Response:
    # Runs outside the request-context middleware, so the id comes from state.
    user = getattr(request.state, "user", None)
    log.error(
        "unhandled_exception",
        request_id=getattr(request.state, "request_id", None),
        http_method=request.method,
        path=request.url.path,
        user_id=getattr(user, "user_id", None),
        exc_info=exc,
    )
    return problem_response(request=request, status_code=500, detail=str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, _on_storefront_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _on_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _on_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(OperationalError, _on_database_unavailable)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _on_unhandled)
