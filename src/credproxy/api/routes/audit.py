# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit log endpoints for reviewing proxy and approval activity."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from credproxy.api.auth import get_broker, require_api_key
from credproxy.audit.events import AuditEventType
from credproxy.broker import Broker

router = APIRouter()


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_id: str
    timestamp: str
    event_type: str
    actor: str
    resource_type: str = ""
    request_id: str = ""
    action: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class AuditListResponse(BaseModel):
    total: int
    events: list[AuditEventResponse]


def _row_to_response(row: dict[str, Any]) -> AuditEventResponse:
    return AuditEventResponse(
        event_id=row["event_id"],
        timestamp=row["timestamp"],
        event_type=row["event_type"],
        actor=row["actor"],
        resource_type=row.get("resource_type") or "",
        request_id=row.get("resource_id") or "",
        action=row.get("action") or "",
        details=row.get("details") or {},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/audit", response_model=AuditListResponse)
async def list_audit_events(
    request_id: str | None = Query(default=None, alias="requestId"),
    event_type: AuditEventType | None = Query(default=None, alias="eventType"),
    actor: str | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    broker: Broker = Depends(get_broker),
    _api_key: str = Depends(require_api_key),
) -> AuditListResponse:
    """List audit events, newest first, filtered by request, event type or actor."""
    kind = str(event_type) if event_type is not None else None
    total = await broker.audit_store.count_events(
        event_type=kind, resource_id=request_id, actor=actor
    )
    rows = await broker.audit_store.list_events(
        event_type=kind, resource_id=request_id, actor=actor, limit=limit, offset=offset
    )
    return AuditListResponse(total=total, events=[_row_to_response(row) for row in rows])
