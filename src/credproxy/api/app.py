# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from credproxy import __version__
from credproxy.api.errors import register_error_handlers
from credproxy.api.middleware import RateLimitMiddleware, RequestMiddleware
from credproxy.api.routes import approvals, audit, health, proxy, verbs
from credproxy.api.routes import plugins as plugin_routes
from credproxy.broker import Broker
from credproxy.core.config import Settings, get_settings
from credproxy.plugins.base import CredentialPlugin


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    owned: Broker | None = None
    if app.state.broker is None:
        owned = await Broker.create(app.state.settings, plugins=app.state.plugins)
        await owned.start()
        app.state.broker = owned

    yield

    if owned is not None:
        await owned.stop()
        app.state.broker = None


def create_app(
    settings: Settings | None = None,
    *,
    broker: Broker | None = None,
    plugins: list[CredentialPlugin] | None = None,
) -> FastAPI:
    """Build the API.

    Pass a started *broker* to serve it directly (tests do this, since
    ASGI transports do not run lifespan events); otherwise the lifespan
    builds one from *settings*.
    """
    app = FastAPI(
        title="credproxy",
        description="Credential broker that executes operations on behalf of applications",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.settings = broker.settings if broker else (settings or get_settings())
    app.state.broker = broker
    app.state.plugins = plugins

    register_error_handlers(app)

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(proxy.router, prefix="/api/v1", tags=["proxy"])
    app.include_router(approvals.router, prefix="/api/v1", tags=["approvals"])
    app.include_router(audit.router, prefix="/api/v1", tags=["audit"])
    app.include_router(plugin_routes.router, prefix="/api/v1", tags=["plugins"])
    app.include_router(verbs.router, prefix="/api/v1", tags=["verbs"])
    app.add_middleware(RequestMiddleware)
    if app.state.settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            per_ip=app.state.settings.rate_limit_per_ip,
            per_key=app.state.settings.rate_limit_per_key,
        )

    return app
