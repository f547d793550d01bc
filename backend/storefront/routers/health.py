from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse

from ..db import get_database
from .deps import AppSettings

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/")
def root():
    return {
        "message": "Welcome to the eCommerce API!",
        "version": API_VERSION,
        "documentation": "/api",
        "endpoints": {
            "auth": "/auth",
            "users": "/users",
            "products": "/products",
            "orders": "/orders",
            "reviews": "/reviews",
            "health": "/health",
        },
    }


@router.get("/health")
def health(request: Request, settings: AppSettings):
    connected = get_database(request).ping()
    started_at = getattr(request.app.state, "started_at", None)
    body = {
        "status": "ok" if connected else "error",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "uptime": round(time.monotonic() - started_at, 3) if started_at else 0.0,
        "environment": settings.normalized_environment,
        "database": {
            "type": settings.database_kind,
            "status": "connected" if connected else "disconnected",
        },
        "version": API_VERSION,
    }
    if not connected:
        return ORJSONResponse(status_code=503, content=body)
    return body
