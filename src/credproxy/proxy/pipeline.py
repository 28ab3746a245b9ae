# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Proxy request pipeline: validate, check access, decide, persist, enqueue.

State machine per request::

    SUBMITTED -> VALIDATED -> DENIED
                           -> PENDING  --(approve)--> APPROVED ...
                           -> APPROVED -> QUEUED -> PROCESSING -> COMPLETED | ERROR

Denied requests are answered synchronously and leave no request record.
Pending and approved requests get a record keyed by a fresh request id.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import aiosqlite

from credproxy.audit.events import AuditEventType
from credproxy.audit.logger import AuditLogger
from credproxy.core.constants import DecisionStatus, PolicyType, RequestStatus
from credproxy.core.exceptions import (
    ApprovalError,
    AuthenticationError,
    InfrastructureError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from credproxy.models.policy import Decision, ManualApprovalConfig, Policy
from credproxy.models.request import ProxyJob, ProxyRequest, RequestRecord
from credproxy.policies.approvals import ApprovalStore
from credproxy.policies.engine import PolicyEngine
from credproxy.proxy.queue import JobQueue
from credproxy.proxy.validator import FailureKind, RequestValidator
from credproxy.storage.repositories.applications import ApplicationRepository
from credproxy.storage.repositories.credentials import CredentialRepository
from credproxy.storage.repositories.policies import PolicyRepository
from credproxy.storage.repositories.requests import RequestRepository

logger = logging.getLogger("credproxy.proxy.pipeline")

QUEUE_FAILURE_MESSAGE = "failed to queue request"
APPROVAL_EXPIRED = "approval expired"


class SubmitStatus(StrEnum):
    PROCESSING = "PROCESSING"
    PENDING = "PENDING"
    DENIED = "DENIED"


@dataclass(frozen=True)
class SubmitResult:
    status: SubmitStatus
    request_id: str
    message: str = ""
    policy_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": self.status != SubmitStatus.DENIED,
            "status": str(self.status),
            "requestId": self.request_id,
        }
        if self.status == SubmitStatus.DENIED:
            body["message"] = self.message
            if self.policy_id:
                body["policyId"] = self.policy_id
        return body


class ProxyPipeline:
    """Orchestrates a proxy request from submission to a pollable record."""

    def __init__(
        self,
        *,
        validator: RequestValidator,
        engine: PolicyEngine,
        queue: JobQueue,
        applications: ApplicationRepository,
        credentials: CredentialRepository,
        policies: PolicyRepository,
        requests: RequestRepository,
        approvals: ApprovalStore,
        audit: AuditLogger | None = None,
        default_approval_minutes: int = 60,
    ) -> None:
        self._validator = validator
        self._engine = engine
        self._queue = queue
        self._applications = applications
        self._credentials = credentials
        self._policies = policies
        self._requests = requests
        self._approvals = approvals
        self._audit = audit or AuditLogger()
        self._default_approval_minutes = default_approval_minutes

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, raw: dict[str, Any]) -> SubmitResult:
        """Process an inbound request body.

        Raises:
            ValidationError: Missing fields or a stale/unparseable timestamp.
            AuthenticationError: The signature does not verify.
            InfrastructureError: The request could not be persisted or queued.
        """
        outcome = await self._validator.validate(raw)
        request_id = str(uuid.uuid4())

        if outcome.failure == FailureKind.INVALID_SIGNATURE:
            raise AuthenticationError(outcome.message)
        if outcome.failure == FailureKind.UNKNOWN_APPLICATION:
            return await self._deny_raw(request_id, raw, outcome.message)
        if outcome.failure is not None:
            raise ValidationError(outcome.message)

        request = outcome.request
        if request is None:
            raise ValidationError(outcome.message or "request could not be parsed")

        try:
            denial, credential_type = await self._check_access(request)
            if denial:
                return await self._deny(request_id, request, denial)
            policies = await self._policies.list_applicable(
                credential_id=request.credential_id, plugin_type=credential_type
            )
        except StorageError as exc:
            logger.error("Could not load policies for request %s: %s", request_id, exc)
            return await self._deny(request_id, request, "policies could not be loaded")
        except aiosqlite.Error as exc:
            raise InfrastructureError(QUEUE_FAILURE_MESSAGE) from exc

        decision = await self._engine.evaluate(
            request, policies, request_id=request_id, credential_type=credential_type
        )
        if decision.denied:
            return await self._deny(request_id, request, decision.reason, decision.policy_id)

        record = _new_record(request_id, request)
        try:
            await self._requests.create(record)
        except (StorageError, aiosqlite.Error) as exc:
            logger.error("Failed to persist request %s: %s", request_id, exc)
            raise InfrastructureError(QUEUE_FAILURE_MESSAGE) from exc

        if decision.pending:
            await self._park(record, decision, policies)
            return SubmitResult(SubmitStatus.PENDING, request_id, decision.reason)

        await self._enqueue(record)
        await self._audit.request_submitted(
            request_id, request.application_id, request.credential_id, request.operation
        )
        return SubmitResult(SubmitStatus.PROCESSING, request_id, decision.reason)

    async def status(self, request_id: str) -> RequestRecord:
        """Return the current record.  Read-only.

        Raises:
            NotFoundError: No request with this id exists.
        """
        record = await self._requests.get(request_id)
        if record is None:
            raise NotFoundError(f"Request {request_id} not found")
        return record

    # ------------------------------------------------------------------
    # Manual approval
    # ------------------------------------------------------------------

    async def resolve_approval(
        self, request_id: str, *, approved: bool, actor: str
    ) -> SubmitResult:
        """Approve or reject a pending request.

        Approval re-evaluates the stored request with the approval in
        place.  A gated request is never charged against COUNT_BASED
        limits at submission, so this evaluation charges it once.

        Raises:
            NotFoundError: Unknown request or approval.
            ApprovalError: The approval is not pending, expired, or *actor*
                may not decide it.
        """
        if request_id in await self.expire_approvals():
            raise ApprovalError(f"Approval for request {request_id} has expired")

        record = await self.status(request_id)
        if record.status != RequestStatus.PENDING:
            raise ApprovalError(f"Request {request_id} is {record.status}, not awaiting approval")

        if not approved:
            await self._approvals.reject(request_id, actor)
            await self._audit.approval_decided(
                request_id, AuditEventType.APPROVAL_REJECTED, actor=actor
            )
            message = f"request rejected by {actor}"
            await self._requests.update_status(
                request_id, RequestStatus.DENIED, response_data={"error": message}
            )
            return SubmitResult(SubmitStatus.DENIED, request_id, message)

        approval = await self._approvals.approve(request_id, actor)
        await self._audit.approval_decided(
            request_id, AuditEventType.APPROVAL_GRANTED, actor=actor
        )

        request = _request_from_record(record)
        denial, credential_type = await self._check_access(request)
        if denial:
            decision = Decision(status=DecisionStatus.DENIED, reason=denial)
        else:
            policies = await self._policies.list_applicable(
                credential_id=request.credential_id, plugin_type=credential_type
            )
            decision = await self._engine.evaluate(
                request, policies, request_id=request_id, credential_type=credential_type
            )

        if decision.pending:
            # The accepted approval lapsed between the decision and the
            # re-evaluation; nothing else can move the record on.
            await self._requests.update_status(
                request_id, RequestStatus.DENIED, response_data={"error": APPROVAL_EXPIRED}
            )
            await self._audit.approval_decided(request_id, AuditEventType.APPROVAL_EXPIRED)
            return SubmitResult(SubmitStatus.DENIED, request_id, APPROVAL_EXPIRED)
        if decision.denied:
            await self._requests.update_status(
                request_id,
                RequestStatus.DENIED,
                response_data={"error": decision.reason, "policyId": decision.policy_id},
            )
            await self._audit.request_denied(
                request_id,
                request.application_id,
                request.credential_id,
                request.operation,
                reason=decision.reason,
                policy_id=decision.policy_id,
            )
            return SubmitResult(SubmitStatus.DENIED, request_id, decision.reason, decision.policy_id)

        await self._enqueue(record)
        logger.info("Request %s approved by %s and queued", request_id, approval.decided_by)
        return SubmitResult(SubmitStatus.PROCESSING, request_id, decision.reason)

    async def expire_approvals(self) -> list[str]:
        """Deny every request whose approval window has lapsed."""
        expired = await self._approvals.expire_stale()
        for request_id in expired:
            await self._requests.update_status(
                request_id, RequestStatus.DENIED, response_data={"error": APPROVAL_EXPIRED}
            )
            await self._audit.approval_decided(request_id, AuditEventType.APPROVAL_EXPIRED)
        return expired

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _check_access(self, request: ProxyRequest) -> tuple[str | None, str]:
        """Return ``(denial_reason, credential_type)``."""
        credential = await self._credentials.get(request.credential_id)
        if credential is None:
            return "credential not found", ""
        if not credential.is_enabled:
            return "credential is disabled", credential.type
        if not await self._applications.has_grant(request.application_id, request.credential_id):
            return "application does not have access to this credential", credential.type
        return None, credential.type

    async def _deny(
        self,
        request_id: str,
        request: ProxyRequest,
        reason: str,
        policy_id: str | None = None,
    ) -> SubmitResult:
        logger.info(
            "Request %s denied: %s",
            request_id,
            reason,
            extra={"request_id": request_id, "policy_id": policy_id},
        )
        await self._audit.request_denied(
            request_id,
            request.application_id,
            request.credential_id,
            request.operation,
            reason=reason,
            policy_id=policy_id,
        )
        return SubmitResult(SubmitStatus.DENIED, request_id, reason, policy_id)

    async def _deny_raw(self, request_id: str, raw: dict[str, Any], reason: str) -> SubmitResult:
        await self._audit.request_denied(
            request_id,
            str(raw.get("applicationId", "")),
            str(raw.get("credentialId", "")),
            str(raw.get("operation", "")),
            reason=reason,
        )
        return SubmitResult(SubmitStatus.DENIED, request_id, reason)

    async def _park(self, record: RequestRecord, decision: Decision, policies: list[Policy]) -> None:
        policy = next((p for p in policies if p.id == decision.policy_id), None)
        approvers: list[str] = []
        minutes = self._default_approval_minutes
        if policy is not None and policy.type == PolicyType.MANUAL_APPROVAL:
            config = ManualApprovalConfig.model_validate(policy.config)
            approvers = config.approvers
            minutes = config.expiration_minutes
        try:
            await self._approvals.create(
                record.id, decision.policy_id or "", approvers, minutes
            )
        except (StorageError, aiosqlite.Error) as exc:
            await self._mark_error(record.id)
            raise InfrastructureError(QUEUE_FAILURE_MESSAGE) from exc
        await self._audit.request_pending(
            record.id, record.application_id, policy_id=decision.policy_id, reason=decision.reason
        )

    async def _enqueue(self, record: RequestRecord) -> None:
        job = ProxyJob(
            request_id=record.id,
            application_id=record.application_id,
            credential_id=record.credential_id,
            operation=record.operation,
            parameters=record.request_data.get("parameters", {}),
        )
        try:
            # Marked before the hand-off so a fast worker's result is never
            # overwritten.
            await self._requests.update_status(record.id, RequestStatus.PROCESSING)
            queued = await self._queue.enqueue(job)
        except Exception as exc:
            logger.error("Failed to queue request %s: %s", record.id, exc)
            await self._mark_error(record.id)
            raise InfrastructureError(QUEUE_FAILURE_MESSAGE) from exc
        if not queued:
            logger.info("Request %s was already queued", record.id)

    async def _mark_error(self, request_id: str) -> None:
        try:
            await self._requests.update_status(
                request_id, RequestStatus.ERROR, response_data={"error": QUEUE_FAILURE_MESSAGE}
            )
        except (StorageError, aiosqlite.Error):
            logger.exception("Failed to mark request %s as ERROR", request_id)


def _new_record(request_id: str, request: ProxyRequest) -> RequestRecord:
    return RequestRecord(
        id=request_id,
        application_id=request.application_id,
        credential_id=request.credential_id,
        operation=request.operation,
        status=RequestStatus.PENDING,
        request_data={
            "applicationId": request.application_id,
            "credentialId": request.credential_id,
            "operation": request.operation,
            "parameters": dict(request.parameters),
            "timestamp": request.timestamp.isoformat(),
        },
    )


def _request_from_record(record: RequestRecord) -> ProxyRequest:
    data = record.request_data
    return ProxyRequest(
        application_id=record.application_id,
        credential_id=record.credential_id,
        operation=record.operation,
        parameters=data.get("parameters", {}),
        timestamp=data["timestamp"],
    )
