# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository for policies.  The engine only ever reads through here."""

from __future__ import annotations

import json
from typing import Any

import aiosqlite

from credproxy.core.constants import PolicyScope
from credproxy.core.exceptions import StorageError
from credproxy.models.policy import Policy
from credproxy.policies.engine import select_applicable


class PolicyRepository:
    """CRUD operations for the policies table."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(self, policy: Policy) -> None:
        """Persist *policy* after checking its type-specific configuration.

        Raises:
            pydantic.ValidationError: ``config`` does not match the policy type.
        """
        policy.typed_config()
        await self._db.execute(
            """
            INSERT INTO policies (
                id, name, description, type, scope, credential_id, plugin_type,
                is_active, priority, config, message
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                policy.id,
                policy.name,
                policy.description,
                str(policy.type),
                str(policy.scope),
                policy.credential_id,
                policy.plugin_type,
                int(policy.is_active),
                policy.priority,
                json.dumps(policy.config),
                policy.message,
            ),
        )
        await self._db.commit()

    async def get(self, policy_id: str) -> Policy | None:
        cursor = await self._db.execute("SELECT * FROM policies WHERE id = ?", (policy_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_policy(row)

    async def list_all(self) -> list[Policy]:
        cursor = await self._db.execute("SELECT * FROM policies ORDER BY priority DESC, id")
        rows = await cursor.fetchall()
        return [_row_to_policy(row) for row in rows]

    async def list_applicable(self, *, credential_id: str, plugin_type: str) -> list[Policy]:
        """Active GLOBAL, credential- and plugin-scoped policies, highest priority first."""
        cursor = await self._db.execute(
            """
            SELECT * FROM policies
            WHERE is_active = 1 AND (
                scope = ?
                OR (scope = ? AND credential_id = ?)
                OR (scope = ? AND plugin_type = ?)
            )
            ORDER BY created_at, id
            """,
            (
                str(PolicyScope.GLOBAL),
                str(PolicyScope.CREDENTIAL),
                credential_id,
                str(PolicyScope.PLUGIN),
                plugin_type,
            ),
        )
        rows = await cursor.fetchall()
        policies = [_row_to_policy(row) for row in rows]
        return select_applicable(policies, credential_id=credential_id, plugin_type=plugin_type)

    async def set_active(self, policy_id: str, active: bool) -> bool:
        cursor = await self._db.execute(
            "UPDATE policies SET is_active = ? WHERE id = ?", (int(active), policy_id)
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def delete(self, policy_id: str) -> bool:
        cursor = await self._db.execute("DELETE FROM policies WHERE id = ?", (policy_id,))
        await self._db.commit()
        return cursor.rowcount > 0


def _row_to_policy(row: aiosqlite.Row) -> Policy:
    data: dict[str, Any] = dict(row)
    data.pop("created_at", None)
    try:
        data["config"] = json.loads(data.get("config") or "{}")
        return Policy.model_validate(data)
    except ValueError as exc:
        # An unreadable policy must not silently drop out of evaluation.
        raise StorageError(f"Policy {data.get('id')} is malformed: {exc}") from exc
