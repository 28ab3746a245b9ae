# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Proxy request, queued job, request record and approval models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from credproxy.core.constants import ApprovalStatus, RequestStatus


class ProxyRequest(BaseModel):
    """A validated, signed request from an application.  Immutable once built."""

    model_config = ConfigDict(frozen=True)

    application_id: str
    credential_id: str
    operation: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    signature: str = Field(default="", repr=False)

    def context(self, *, credential_type: str = "") -> dict[str, Any]:
        """Return the lookup context policies resolve ``target_field`` against."""
        return {
            "applicationId": self.application_id,
            "credentialId": self.credential_id,
            "operation": self.operation,
            "parameters": dict(self.parameters),
            "timestamp": self.timestamp.isoformat(),
            "credential": {"id": self.credential_id, "type": credential_type},
        }


class ProxyJob(BaseModel):
    """Payload placed on the queue for an approved request."""

    request_id: str
    application_id: str
    credential_id: str
    operation: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class RequestRecord(BaseModel):
    """Durable, pollable record of a proxy request's lifecycle."""

    id: str
    application_id: str
    credential_id: str
    operation: str
    status: RequestStatus = RequestStatus.PENDING
    request_data: dict[str, Any] = Field(default_factory=dict)
    response_data: Any = None
    attempts: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Approval(BaseModel):
    """Manual approval state for one request."""

    request_id: str
    policy_id: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    approvers: list[str] = Field(default_factory=list)
    decided_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime
    decided_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) > self.expires_at

    def is_accepted(self, now: datetime | None = None) -> bool:
        return self.status == ApprovalStatus.APPROVED and not self.is_expired(now)
