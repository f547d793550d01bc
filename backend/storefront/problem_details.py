"""
RFC 7807 problem+json rendering for every error the API returns.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .errors import StorefrontError
from .settings import Settings, get_settings

PROBLEM_JSON = "application/problem+json"
BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _settings_for(request: Request) -> Settings:
    s = getattr(request.app.state, "settings", None)
    return s if isinstance(s, Settings) else get_settings()


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    status_code = int(status_code)
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": title or status_title(status_code),
        "status": status_code,
    }

    # Server error details stay in the logs in production.
    if detail and not (status_code >= 500 and _settings_for(request).is_production):
        body["detail"] = str(detail)

    body["instance"] = request.url.path

    rid = getattr(request.state, "request_id", None)
    if rid:
        body["requestId"] = str(rid)
    if errors:
        body["errors"] = errors
    if extensions:
        # Kept under one key so they never collide with the RFC members.
        body["extensions"] = extensions

    return ORJSONResponse(
        status_code=status_code,
        content=body,
        media_type=PROBLEM_JSON,
        headers=headers,
    )


def error_response(request: Request, exc: StorefrontError) -> ORJSONResponse:
    return problem_response(
        request=request,
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.message,
        extensions=exc.extensions(),
        headers=BEARER_CHALLENGE if exc.status_code == 401 else None,
    )
