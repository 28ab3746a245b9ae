# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Health check endpoints."""

from __future__ import annotations

import aiosqlite
from fastapi import APIRouter, Request
from pydantic import BaseModel

from credproxy import __version__

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ReadyResponse(BaseModel):
    status: str
    database: str
    plugins: int = 0


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", service="credproxy", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def ready(request: Request) -> ReadyResponse:
    broker = request.app.state.broker
    if broker is None:
        return ReadyResponse(status="not_ready", database="not initialized")
    try:
        cursor = await broker.db.execute("SELECT 1")
        await cursor.fetchone()
    except aiosqlite.Error as exc:
        return ReadyResponse(status="not_ready", database=str(exc))
    return ReadyResponse(status="ready", database="connected", plugins=len(broker.plugins))
