# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit event data model and event type enumeration."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class AuditEventType(StrEnum):
    """Lifecycle events of proxy requests and approvals."""

    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_DENIED = "request_denied"
    REQUEST_PENDING = "request_pending"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"
    APPROVAL_GRANTED = "approval_granted"
    APPROVAL_REJECTED = "approval_rejected"
    APPROVAL_EXPIRED = "approval_expired"


class AuditEvent(BaseModel):
    """A single auditable event.

    ``details`` carries decision context only.  Request parameters and
    credential material never go in here.
    """

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    event_type: AuditEventType
    actor: str = Field(
        default="system",
        description="Application id, approver name, or 'system' for the worker",
    )
    resource_type: str = Field(default="proxy_request")
    resource_id: str = Field(default="", description="Request id the event refers to")
    action: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str = ""
