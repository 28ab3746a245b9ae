# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Manual approval endpoints for operators."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from credproxy.api.auth import get_broker, require_api_key
from credproxy.broker import Broker
from credproxy.models.request import Approval

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class ApprovalDecisionRequest(BaseModel):
    approver: str = Field(min_length=1, description="Identity recorded as the decider")


class ApprovalResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    request_id: str
    policy_id: str
    status: str
    approvers: list[str]
    created_at: datetime
    expires_at: datetime


def _to_response(approval: Approval) -> ApprovalResponse:
    return ApprovalResponse(
        request_id=approval.request_id,
        policy_id=approval.policy_id,
        status=str(approval.status),
        approvers=approval.approvers,
        created_at=approval.created_at,
        expires_at=approval.expires_at,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/approvals", response_model=list[ApprovalResponse])
async def list_pending_approvals(
    limit: int = 100,
    broker: Broker = Depends(get_broker),
    _api_key: str = Depends(require_api_key),
) -> list[ApprovalResponse]:
    approvals = await broker.approvals.list_pending(limit=limit)
    return [_to_response(a) for a in approvals]


@router.post("/approvals/{request_id}/approve")
async def approve_request(
    request_id: str,
    body: ApprovalDecisionRequest,
    broker: Broker = Depends(get_broker),
    _api_key: str = Depends(require_api_key),
) -> dict[str, Any]:
    """Approve a pending request and queue it for execution."""
    result = await broker.pipeline.resolve_approval(
        request_id, approved=True, actor=body.approver
    )
    return result.to_dict()


@router.post("/approvals/{request_id}/reject")
async def reject_request(
    request_id: str,
    body: ApprovalDecisionRequest,
    broker: Broker = Depends(get_broker),
    _api_key: str = Depends(require_api_key),
) -> dict[str, Any]:
    result = await broker.pipeline.resolve_approval(
        request_id, approved=False, actor=body.approver
    )
    return result.to_dict()
