# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit event persistence to the SQLite audit_log table."""

from __future__ import annotations

import json
from typing import Any

import aiosqlite

from credproxy.audit.events import AuditEvent


class AuditStore:
    """Repository for persisting and querying audit events in SQLite."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def insert(self, event: AuditEvent) -> None:
        await self._db.execute(
            """
            INSERT INTO audit_log (
                event_id, timestamp, event_type, actor,
                resource_type, resource_id, action, details, ip_address
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.timestamp.isoformat(),
                str(event.event_type),
                event.actor,
                event.resource_type,
                event.resource_id,
                event.action,
                json.dumps(event.details, default=str),
                event.ip_address,
            ),
        )
        await self._db.commit()

    async def list_events(
        self,
        *,
        event_type: str | None = None,
        resource_id: str | None = None,
        actor: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query audit events, newest first."""
        where, params = _filters(event_type, resource_id, actor)
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ? OFFSET ?"  # noqa: S608
        params.extend([limit, offset])

        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()
        return [_row_to_dict(row) for row in rows]

    async def count_events(
        self,
        *,
        event_type: str | None = None,
        resource_id: str | None = None,
        actor: str | None = None,
    ) -> int:
        """Return the number of events matching the filters."""
        where, params = _filters(event_type, resource_id, actor)
        cursor = await self._db.execute(
            f"SELECT COUNT(*) FROM audit_log{where}",  # noqa: S608
            params,
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0


def _filters(
    event_type: str | None, resource_id: str | None, actor: str | None
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in (
        ("event_type", event_type),
        ("resource_id", resource_id),
        ("actor", actor),
    ):
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value)
    where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    return where, params


def _row_to_dict(row: aiosqlite.Row) -> dict[str, Any]:
    d = dict(row)
    if isinstance(d.get("details"), str):
        try:
            d["details"] = json.loads(d["details"])
        except (json.JSONDecodeError, TypeError):
            d["details"] = {}
    return d
