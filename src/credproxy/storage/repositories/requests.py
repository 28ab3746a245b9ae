# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository for proxy request records."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from credproxy.core.constants import RequestStatus
from credproxy.models.request import RequestRecord


class RequestRepository:
    """CRUD operations for the proxy_requests table."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(self, record: RequestRecord) -> None:
        await self._db.execute(
            """
            INSERT INTO proxy_requests (
                id, application_id, credential_id, operation, status,
                request_data, response_data, attempts, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.application_id,
                record.credential_id,
                record.operation,
                str(record.status),
                json.dumps(record.request_data),
                json.dumps(record.response_data) if record.response_data is not None else None,
                record.attempts,
                record.created_at.isoformat(),
                record.updated_at.isoformat(),
            ),
        )
        await self._db.commit()

    async def get(self, request_id: str) -> RequestRecord | None:
        cursor = await self._db.execute(
            "SELECT * FROM proxy_requests WHERE id = ?", (request_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    async def list_recent(
        self, *, status: RequestStatus | None = None, limit: int = 50
    ) -> list[RequestRecord]:
        if status is None:
            cursor = await self._db.execute(
                "SELECT * FROM proxy_requests ORDER BY created_at DESC LIMIT ?", (limit,)
            )
        else:
            cursor = await self._db.execute(
                "SELECT * FROM proxy_requests WHERE status = ? ORDER BY created_at DESC LIMIT ?",
                (str(status), limit),
            )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        response_data: Any = None,
    ) -> bool:
        """Set the status, and the response payload when one is given."""
        now = datetime.now(UTC).isoformat()
        if response_data is None:
            cursor = await self._db.execute(
                "UPDATE proxy_requests SET status = ?, updated_at = ? WHERE id = ?",
                (str(status), now, request_id),
            )
        else:
            cursor = await self._db.execute(
                """
                UPDATE proxy_requests SET status = ?, response_data = ?, updated_at = ?
                WHERE id = ?
                """,
                (str(status), json.dumps(response_data, default=str), now, request_id),
            )
        await self._db.commit()
        return cursor.rowcount > 0

    async def record_attempt(self, request_id: str) -> int:
        """Increment and return the attempt counter for *request_id*."""
        rows = await self._db.execute_fetchall(
            """
            UPDATE proxy_requests SET attempts = attempts + 1, updated_at = ?
            WHERE id = ? RETURNING attempts
            """,
            (datetime.now(UTC).isoformat(), request_id),
        )
        await self._db.commit()
        for row in rows:
            return int(row[0])
        return 0


def _row_to_record(row: aiosqlite.Row) -> RequestRecord:
    data: dict[str, Any] = dict(row)
    data["request_data"] = json.loads(data.get("request_data") or "{}")
    raw = data.get("response_data")
    data["response_data"] = json.loads(raw) if raw is not None else None
    return RequestRecord.model_validate(data)
