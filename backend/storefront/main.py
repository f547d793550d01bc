from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .auth.blacklist import TokenBlacklist
from .auth.tokens import TokenService
from .db import Database
from .exception_handlers import register_exception_handlers
from .middleware.access_log import AccessLogMiddleware
from .middleware.cors import allow_credentials_for, build_allowed_origins
from .middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .routers import auth, health, orders, products, reviews, users
from .settings import Settings, get_settings


def _lifespan_for(settings: Settings, database: Database):
    log = get_logger("lifecycle")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.database_auto_create:
            database.create_all()
        log.info("app_started", port=settings.port, database=settings.database_kind)
        try:
            yield
        finally:
            database.dispose()
            log.info("app_stopped")

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    settings.require_in_production()
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    get_logger("lifecycle").info("app_configuring", settings=settings.to_log_safe_dict())

    database = Database(settings.database_url, echo=settings.database_echo)
    tokens = TokenService(settings)

    app = FastAPI(
        title="eCommerce API",
        description="Users, products, orders and reviews with JWT authentication",
        version=health.API_VERSION,
        default_response_class=ORJSONResponse,
        docs_url="/api",
        openapi_url="/api-json",
        redirect_slashes=False,
        lifespan=_lifespan_for(settings, database),
    )
    app.state.settings = settings
    app.state.database = database
    app.state.token_service = tokens
    app.state.token_blacklist = TokenBlacklist(
        maxsize=settings.token_blacklist_max_size,
        default_ttl=tokens.access_ttl_seconds,
    )
    app.state.started_at = time.monotonic()

    # Last added runs first: request id, then CORS, then the access log.
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/health"})
    origins = build_allowed_origins(cors_origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials_for(origins),
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=3000,
    )
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    for module in (health, auth, users, products, orders, reviews):
        app.include_router(module.router)

    return app


app = create_app()
