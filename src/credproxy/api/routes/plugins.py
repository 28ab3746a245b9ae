# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Plugin discovery endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from credproxy.api.auth import get_broker
from credproxy.broker import Broker

router = APIRouter()


@router.get("/plugins")
async def list_plugins(broker: Broker = Depends(get_broker)) -> list[dict[str, Any]]:
    """List registered credential plugins and their operations."""
    return [info.to_dict() for info in broker.plugins.list_plugins()]


@router.get("/plugins/{plugin_type}/operations/{operation}/risk")
async def assess_operation_risk(
    plugin_type: str,
    operation: str,
    broker: Broker = Depends(get_broker),
) -> dict[str, Any]:
    """Advisory risk assessment for one plugin operation."""
    return broker.plugins.assess_risk(plugin_type, operation, {}).to_dict()
