# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Proxy submission and status polling endpoints.

These endpoints are authenticated by the request signature, not by API key.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from credproxy.api.auth import get_broker
from credproxy.api.errors import error_response
from credproxy.broker import Broker
from credproxy.core.constants import TERMINAL_REQUEST_STATUSES
from credproxy.proxy.pipeline import SubmitStatus

router = APIRouter()


@router.post("/proxy")
async def submit_proxy_request(
    request: Request,
    broker: Broker = Depends(get_broker),
) -> JSONResponse:
    """Submit a signed request for the broker to execute."""
    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return error_response(400, "Request body must be valid JSON")
    if not isinstance(raw, dict):
        return error_response(400, "Request body must be a JSON object")

    result = await broker.pipeline.submit(raw)
    status_code = 403 if result.status == SubmitStatus.DENIED else 202
    return JSONResponse(status_code=status_code, content=result.to_dict())


@router.get("/proxy/status/{request_id}")
async def proxy_request_status(
    request_id: str,
    broker: Broker = Depends(get_broker),
) -> dict[str, Any]:
    record = await broker.pipeline.status(request_id)
    body: dict[str, Any] = {"success": True, "status": str(record.status)}
    if record.status in TERMINAL_REQUEST_STATUSES:
        body["result"] = record.response_data
    return body
