# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository for registered applications and their credential grants."""

from __future__ import annotations

from typing import Any

import aiosqlite

from credproxy.models.credential import Application


class ApplicationRepository:
    """CRUD operations for the applications and application_credentials tables."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(self, app: Application) -> None:
        await self._db.execute(
            """
            INSERT INTO applications (id, name, public_key, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (app.id, app.name, app.public_key, app.status, app.created_at.isoformat()),
        )
        await self._db.commit()

    async def get(self, app_id: str) -> Application | None:
        cursor = await self._db.execute("SELECT * FROM applications WHERE id = ?", (app_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return Application.model_validate(dict(row))

    async def list_all(self) -> list[dict[str, Any]]:
        cursor = await self._db.execute(
            "SELECT id, name, status, created_at FROM applications ORDER BY created_at"
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def set_status(self, app_id: str, status: str) -> bool:
        cursor = await self._db.execute(
            "UPDATE applications SET status = ? WHERE id = ?", (status, app_id)
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def grant(self, app_id: str, credential_id: str) -> None:
        """Allow *app_id* to request operations on *credential_id*."""
        await self._db.execute(
            """
            INSERT OR IGNORE INTO application_credentials (application_id, credential_id)
            VALUES (?, ?)
            """,
            (app_id, credential_id),
        )
        await self._db.commit()

    async def revoke(self, app_id: str, credential_id: str) -> bool:
        cursor = await self._db.execute(
            "DELETE FROM application_credentials WHERE application_id = ? AND credential_id = ?",
            (app_id, credential_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def has_grant(self, app_id: str, credential_id: str) -> bool:
        cursor = await self._db.execute(
            """
            SELECT 1 FROM application_credentials
            WHERE application_id = ? AND credential_id = ?
            """,
            (app_id, credential_id),
        )
        return await cursor.fetchone() is not None
