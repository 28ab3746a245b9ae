# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the versioned database migrations."""

from __future__ import annotations

from credproxy.storage.database import close_db, init_db
from credproxy.storage.migrations import (
    all_migrations,
    get_current_version,
    get_pending_migrations,
    run_migrations,
)

EXPECTED_TABLES = {
    "applications",
    "credentials",
    "application_credentials",
    "policies",
    "proxy_requests",
    "approvals",
    "usage_counters",
    "audit_log",
    "schema_migrations",
}


async def _tables(db) -> set[str]:
    cursor = await db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in await cursor.fetchall()}


class TestMigrations:
    def test_versions_are_sequential(self) -> None:
        versions = [m.version for m in all_migrations()]
        assert versions == list(range(1, len(versions) + 1))
        assert len(versions) == 3

    async def test_fresh_database_is_fully_migrated(self, db) -> None:
        assert await get_current_version(db) == 3
        assert await get_pending_migrations(db) == []
        assert EXPECTED_TABLES <= await _tables(db)

    async def test_without_auto_migrate_everything_is_pending(self, tmp_path) -> None:
        conn = await init_db(tmp_path / "bare.db", auto_migrate=False)
        try:
            assert await get_current_version(conn) == 0
            assert len(await get_pending_migrations(conn)) == 3

            applied = await run_migrations(conn)
            assert [m.name for m in applied] == [
                "initial_schema",
                "approvals_and_usage_counters",
                "audit_log",
            ]
            assert await run_migrations(conn) == []
        finally:
            await close_db(conn)

    async def test_reopening_runs_nothing(self, tmp_path) -> None:
        path = tmp_path / "again.db"
        await close_db(await init_db(path))
        conn = await init_db(path, auto_migrate=False)
        try:
            assert await get_pending_migrations(conn) == []
        finally:
            await close_db(conn)

    async def test_foreign_keys_enabled(self, db) -> None:
        cursor = await db.execute("PRAGMA foreign_keys")
        row = await cursor.fetchone()
        assert row[0] == 1
