# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository for stored credentials.  Only ciphertext is ever written."""

from __future__ import annotations

from typing import Any

import aiosqlite

from credproxy.models.credential import Credential


class CredentialRepository:
    """CRUD operations for the credentials table."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(self, credential: Credential) -> None:
        await self._db.execute(
            """
            INSERT INTO credentials (
                id, name, type, encrypted_data, owner_id, is_enabled, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                credential.id,
                credential.name,
                credential.type,
                credential.encrypted_data,
                credential.owner_id,
                int(credential.is_enabled),
                credential.created_at.isoformat(),
            ),
        )
        await self._db.commit()

    async def get(self, credential_id: str) -> Credential | None:
        cursor = await self._db.execute(
            "SELECT * FROM credentials WHERE id = ?", (credential_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Credential.model_validate(dict(row))

    async def list_all(self) -> list[dict[str, Any]]:
        """List credentials without their encrypted payloads."""
        cursor = await self._db.execute(
            """
            SELECT id, name, type, owner_id, is_enabled, created_at
            FROM credentials ORDER BY created_at
            """
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def set_enabled(self, credential_id: str, enabled: bool) -> bool:
        cursor = await self._db.execute(
            "UPDATE credentials SET is_enabled = ? WHERE id = ?",
            (int(enabled), credential_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0
