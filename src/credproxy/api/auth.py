# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Dependencies for the admin API: broker access and API key authentication."""

from __future__ import annotations

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from credproxy.broker import Broker

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_broker(request: Request) -> Broker:
    broker: Broker | None = request.app.state.broker
    if broker is None:
        raise HTTPException(status_code=503, detail="Broker is not running")
    return broker


async def require_api_key(
    request: Request,
    api_key: str | None = Security(_api_key_header),
) -> str:
    """Validate the X-API-Key header for admin endpoints.

    If no API keys are configured, authentication is disabled (open access).
    Proxy endpoints never use this; they authenticate by request signature.
    """
    keys = request.app.state.settings.api_keys

    # No keys configured = auth disabled
    if not keys:
        return "anonymous"

    if not api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key header")

    if api_key not in keys:
        raise HTTPException(status_code=403, detail="Invalid API key")

    return api_key
