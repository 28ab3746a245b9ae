# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Approval records for MANUAL_APPROVAL policies.

Legal transitions are ``PENDING -> APPROVED | REJECTED | EXPIRED``.  Each
transition is a single conditional UPDATE, so two approvers racing on the
same request cannot both win.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import aiosqlite

from credproxy.core.constants import ApprovalStatus
from credproxy.core.exceptions import ApprovalError, NotFoundError
from credproxy.models.request import Approval

logger = logging.getLogger("credproxy.policies.approvals")

# Approver entry that lets any authenticated admin decide.
ANY_APPROVER = "*"


class ApprovalStore:
    """CRUD and state transitions for the approvals table."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(
        self,
        request_id: str,
        policy_id: str,
        approvers: list[str],
        expiration_minutes: int,
        *,
        now: datetime | None = None,
    ) -> Approval:
        """Open an approval for *request_id*; an existing one is returned as-is."""
        existing = await self.get(request_id)
        if existing is not None:
            return existing
        created = now or datetime.now(UTC)
        approval = Approval(
            request_id=request_id,
            policy_id=policy_id,
            approvers=list(approvers),
            created_at=created,
            expires_at=created + timedelta(minutes=expiration_minutes),
        )
        await self._db.execute(
            """
            INSERT OR IGNORE INTO approvals (
                request_id, policy_id, status, approvers, created_at, expires_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                approval.request_id,
                approval.policy_id,
                str(approval.status),
                json.dumps(approval.approvers),
                approval.created_at.isoformat(),
                approval.expires_at.isoformat(),
            ),
        )
        await self._db.commit()
        logger.info("Approval opened for request %s by policy %s", request_id, policy_id)
        return approval

    async def get(self, request_id: str) -> Approval | None:
        cursor = await self._db.execute(
            "SELECT * FROM approvals WHERE request_id = ?", (request_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_approval(row)

    async def approve(
        self, request_id: str, actor: str, *, now: datetime | None = None
    ) -> Approval:
        """Accept a pending approval.

        Raises:
            NotFoundError: No approval exists for the request.
            ApprovalError: The approval is not pending, has expired, or
                *actor* is not one of its approvers.
        """
        return await self._decide(request_id, actor, ApprovalStatus.APPROVED, now)

    async def reject(
        self, request_id: str, actor: str, *, now: datetime | None = None
    ) -> Approval:
        """Reject a pending approval."""
        return await self._decide(request_id, actor, ApprovalStatus.REJECTED, now)

    async def expire_stale(self, *, now: datetime | None = None) -> list[str]:
        """Mark every pending approval past its expiry as EXPIRED.

        Returns the request ids that transitioned.
        """
        ts = (now or datetime.now(UTC)).isoformat()
        rows = await self._db.execute_fetchall(
            """
            UPDATE approvals SET status = ?, decided_at = ?
            WHERE status = ? AND expires_at < ?
            RETURNING request_id
            """,
            (str(ApprovalStatus.EXPIRED), ts, str(ApprovalStatus.PENDING), ts),
        )
        await self._db.commit()
        expired = [row["request_id"] for row in rows]
        if expired:
            logger.info("Expired %d stale approval(s)", len(expired))
        return expired

    async def list_pending(self, limit: int = 100) -> list[Approval]:
        cursor = await self._db.execute(
            "SELECT * FROM approvals WHERE status = ? ORDER BY created_at ASC LIMIT ?",
            (str(ApprovalStatus.PENDING), limit),
        )
        rows = await cursor.fetchall()
        return [_row_to_approval(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _decide(
        self,
        request_id: str,
        actor: str,
        target: ApprovalStatus,
        now: datetime | None,
    ) -> Approval:
        approval = await self.get(request_id)
        if approval is None:
            raise NotFoundError(f"No approval for request {request_id}")
        if approval.status != ApprovalStatus.PENDING:
            raise ApprovalError(
                f"Approval for request {request_id} is already {approval.status}"
            )
        if ANY_APPROVER not in approval.approvers and actor not in approval.approvers:
            raise ApprovalError(f"{actor!r} is not an approver for request {request_id}")

        decided = now or datetime.now(UTC)
        if approval.is_expired(decided):
            # Left PENDING for the expiry sweep, which also denies the request.
            raise ApprovalError(f"Approval for request {request_id} has expired")

        cursor = await self._db.execute(
            """
            UPDATE approvals SET status = ?, decided_by = ?, decided_at = ?
            WHERE request_id = ? AND status = ?
            """,
            (str(target), actor, decided.isoformat(), request_id, str(ApprovalStatus.PENDING)),
        )
        await self._db.commit()
        if cursor.rowcount == 0:
            raise ApprovalError(f"Approval for request {request_id} was decided concurrently")

        logger.info("Request %s %s by %s", request_id, target.lower(), actor)
        return approval.model_copy(
            update={"status": target, "decided_by": actor, "decided_at": decided}
        )


def _row_to_approval(row: aiosqlite.Row) -> Approval:
    data: dict[str, Any] = dict(row)
    data["approvers"] = json.loads(data.get("approvers") or "[]")
    return Approval.model_validate(data)
