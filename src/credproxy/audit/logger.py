# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit logger recording request and approval lifecycle events."""

from __future__ import annotations

import logging
from typing import Any

from credproxy.audit.events import AuditEvent, AuditEventType
from credproxy.audit.store import AuditStore

_logger = logging.getLogger("credproxy.audit")


class AuditLogger:
    """Fire-and-forget audit trail.

    Failures to persist an event are logged but never propagate, so an
    audit outage cannot change a request's outcome.  Without a store the
    events only reach the ``credproxy.audit`` logger.
    """

    def __init__(self, store: AuditStore | None = None) -> None:
        self._store = store

    async def log(self, event: AuditEvent) -> AuditEvent:
        if self._store is not None:
            try:
                await self._store.insert(event)
            except Exception:
                _logger.exception("Failed to persist audit event %s", event.event_id)

        _logger.info(
            "audit event=%s type=%s actor=%s resource=%s/%s",
            event.event_id,
            event.event_type,
            event.actor,
            event.resource_type,
            event.resource_id,
        )
        return event

    # -----------------------------------------------------------------
    # Convenience methods for common event types
    # -----------------------------------------------------------------

    async def request_submitted(
        self, request_id: str, application_id: str, credential_id: str, operation: str
    ) -> AuditEvent:
        return await self.log(
            AuditEvent(
                event_type=AuditEventType.REQUEST_SUBMITTED,
                actor=application_id,
                resource_id=request_id,
                action=f"{operation} on {credential_id} queued",
                details={"credential_id": credential_id, "operation": operation},
            )
        )

    async def request_denied(
        self,
        request_id: str,
        application_id: str,
        credential_id: str,
        operation: str,
        *,
        reason: str,
        policy_id: str | None = None,
    ) -> AuditEvent:
        return await self.log(
            AuditEvent(
                event_type=AuditEventType.REQUEST_DENIED,
                actor=application_id,
                resource_id=request_id,
                action=f"{operation} on {credential_id} denied",
                details={
                    "credential_id": credential_id,
                    "operation": operation,
                    "reason": reason,
                    "policy_id": policy_id,
                },
            )
        )

    async def request_pending(
        self, request_id: str, application_id: str, *, policy_id: str | None, reason: str
    ) -> AuditEvent:
        return await self.log(
            AuditEvent(
                event_type=AuditEventType.REQUEST_PENDING,
                actor=application_id,
                resource_id=request_id,
                action="awaiting manual approval",
                details={"policy_id": policy_id, "reason": reason},
            )
        )

    async def request_finished(
        self,
        request_id: str,
        *,
        success: bool,
        attempts: int,
        error: str | None = None,
    ) -> AuditEvent:
        details: dict[str, Any] = {"attempts": attempts}
        if error:
            details["error"] = error
        return await self.log(
            AuditEvent(
                event_type=(
                    AuditEventType.REQUEST_COMPLETED if success else AuditEventType.REQUEST_FAILED
                ),
                resource_id=request_id,
                action="completed" if success else "failed",
                details=details,
            )
        )

    async def approval_decided(
        self, request_id: str, event_type: AuditEventType, *, actor: str = "system"
    ) -> AuditEvent:
        action_map = {
            AuditEventType.APPROVAL_GRANTED: "approval granted",
            AuditEventType.APPROVAL_REJECTED: "approval rejected",
            AuditEventType.APPROVAL_EXPIRED: "approval expired",
        }
        return await self.log(
            AuditEvent(
                event_type=event_type,
                actor=actor,
                resource_type="approval",
                resource_id=request_id,
                action=action_map.get(event_type, "approval changed"),
            )
        )
