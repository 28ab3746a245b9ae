# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Map broker exceptions onto ``{success: false, error}`` responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from credproxy.core.exceptions import (
    ApprovalError,
    AuthenticationError,
    CredProxyError,
    InfrastructureError,
    NotFoundError,
    PluginError,
    PluginNotFoundError,
    ValidationError,
)

logger = logging.getLogger("credproxy.api.errors")

# Checked in order; the first matching class decides the status code.
_STATUS_CODES: list[tuple[type[CredProxyError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (PluginNotFoundError, 404),
    (PluginError, 400),
    (ApprovalError, 409),
    (InfrastructureError, 500),
]


def status_for(exc: CredProxyError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _handle_broker_error(request: Request, exc: CredProxyError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return error_response(code, str(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CredProxyError, _handle_broker_error)  # type: ignore[arg-type]
