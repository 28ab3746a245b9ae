# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Verb catalogue endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from credproxy.api.auth import get_broker
from credproxy.broker import Broker
from credproxy.core.constants import VerbScope
from credproxy.verbs.models import Verb, VerbResolution

router = APIRouter()


@router.get("/verbs", response_model=list[Verb], response_model_by_alias=True)
async def list_verbs(
    scope: VerbScope | None = None,
    plugin_type: str | None = Query(default=None, alias="pluginType"),
    credential_type: str | None = Query(default=None, alias="credentialType"),
    search: str | None = None,
    tags: list[str] | None = Query(default=None),
    broker: Broker = Depends(get_broker),
) -> list[Verb]:
    return broker.verbs.query(
        scope=scope,
        plugin_type=plugin_type,
        credential_type=credential_type,
        search=search,
        tags=tags,
    )


@router.get("/verbs/{verb_id}", response_model=Verb, response_model_by_alias=True)
async def get_verb(verb_id: str, broker: Broker = Depends(get_broker)) -> Verb:
    verb = broker.verbs.get(verb_id)
    if verb is None:
        raise HTTPException(status_code=404, detail=f"Verb {verb_id} not found")
    return verb


@router.post("/verbs/{verb_id}/resolve", response_model=VerbResolution, response_model_by_alias=True)
async def resolve_verb(
    verb_id: str,
    params: dict[str, Any] | None = None,
    broker: Broker = Depends(get_broker),
) -> VerbResolution:
    """Map a verb onto its operation, filling in parameter defaults."""
    resolution = broker.verbs.resolve(verb_id, params or {})
    if resolution is None:
        raise HTTPException(status_code=404, detail=f"Verb {verb_id} not found")
    return resolution
