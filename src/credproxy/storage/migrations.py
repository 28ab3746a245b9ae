# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Versioned database migrations for the credproxy database.

Applied versions are tracked in a ``schema_migrations`` table.  Each
migration is idempotent and committed on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

import aiosqlite

logger = logging.getLogger("credproxy.storage.migrations")

# ---------------------------------------------------------------------------
# Migration registry infrastructure
# ---------------------------------------------------------------------------

MigrationFunc = Callable[[aiosqlite.Connection], Coroutine[Any, Any, None]]


@dataclass(frozen=True, slots=True)
class Migration:
    """A single database migration."""

    version: int
    name: str
    func: MigrationFunc


# Ordered list of all migrations.  New migrations are appended here.
_MIGRATIONS: list[Migration] = []


def _register(version: int, name: str) -> Callable[[MigrationFunc], MigrationFunc]:
    """Decorator that registers a migration function."""

    def decorator(fn: MigrationFunc) -> MigrationFunc:
        _MIGRATIONS.append(Migration(version=version, name=name, func=fn))
        return fn

    return decorator


def all_migrations() -> list[Migration]:
    return list(_MIGRATIONS)


# ---------------------------------------------------------------------------
# Schema-migrations bookkeeping table
# ---------------------------------------------------------------------------

_CREATE_SCHEMA_MIGRATIONS = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


async def get_current_version(db: aiosqlite.Connection) -> int:
    """Return the highest applied migration version, or 0 if none."""
    await db.execute(_CREATE_SCHEMA_MIGRATIONS)
    await db.commit()
    cursor = await db.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
    row = await cursor.fetchone()
    return int(row[0]) if row else 0


async def get_pending_migrations(db: aiosqlite.Connection) -> list[Migration]:
    """Return migrations that have not yet been applied."""
    current = await get_current_version(db)
    return [m for m in _MIGRATIONS if m.version > current]


async def run_migrations(db: aiosqlite.Connection) -> list[Migration]:
    """Run all pending migrations in order and return those applied."""
    applied: list[Migration] = []

    for migration in await get_pending_migrations(db):
        logger.info("Applying migration %03d: %s", migration.version, migration.name)
        await migration.func(db)
        await db.execute(
            "INSERT OR IGNORE INTO schema_migrations (version, name) VALUES (?, ?)",
            (migration.version, migration.name),
        )
        await db.commit()
        applied.append(migration)

    return applied


# =========================================================================
# Migration 001 -- applications, credentials, policies, proxy requests
# =========================================================================

_CREATE_APPLICATIONS = """
CREATE TABLE IF NOT EXISTS applications (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    public_key TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_CREDENTIALS = """
CREATE TABLE IF NOT EXISTS credentials (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL,
    encrypted_data TEXT NOT NULL,
    owner_id TEXT NOT NULL DEFAULT '',
    is_enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_APPLICATION_CREDENTIALS = """
CREATE TABLE IF NOT EXISTS application_credentials (
    application_id TEXT NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
    credential_id TEXT NOT NULL REFERENCES credentials(id) ON DELETE CASCADE,
    granted_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (application_id, credential_id)
);
"""

_CREATE_POLICIES = """
CREATE TABLE IF NOT EXISTS policies (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL,
    scope TEXT NOT NULL DEFAULT 'GLOBAL',
    credential_id TEXT REFERENCES credentials(id) ON DELETE CASCADE,
    plugin_type TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    priority INTEGER NOT NULL DEFAULT 0,
    config TEXT NOT NULL DEFAULT '{}',
    message TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_PROXY_REQUESTS = """
CREATE TABLE IF NOT EXISTS proxy_requests (
    id TEXT PRIMARY KEY,
    application_id TEXT NOT NULL,
    credential_id TEXT NOT NULL,
    operation TEXT NOT NULL,
    status TEXT NOT NULL,
    request_data TEXT NOT NULL DEFAULT '{}',
    response_data TEXT,
    attempts INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

_INDEXES_001 = [
    "CREATE INDEX IF NOT EXISTS idx_policies_scope ON policies(scope);",
    "CREATE INDEX IF NOT EXISTS idx_policies_credential ON policies(credential_id);",
    "CREATE INDEX IF NOT EXISTS idx_proxy_requests_status ON proxy_requests(status);",
    "CREATE INDEX IF NOT EXISTS idx_proxy_requests_app ON proxy_requests(application_id);",
]


@_register(1, "initial_schema")
async def _migration_001_initial_schema(db: aiosqlite.Connection) -> None:
    await db.execute(_CREATE_APPLICATIONS)
    await db.execute(_CREATE_CREDENTIALS)
    await db.execute(_CREATE_APPLICATION_CREDENTIALS)
    await db.execute(_CREATE_POLICIES)
    await db.execute(_CREATE_PROXY_REQUESTS)
    for idx_sql in _INDEXES_001:
        await db.execute(idx_sql)


# =========================================================================
# Migration 002 -- approvals and usage counters
# =========================================================================

_CREATE_APPROVALS = """
CREATE TABLE IF NOT EXISTS approvals (
    request_id TEXT PRIMARY KEY,
    policy_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'PENDING',
    approvers TEXT NOT NULL DEFAULT '[]',
    decided_by TEXT,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    decided_at TEXT
);
"""

_CREATE_USAGE_COUNTERS = """
CREATE TABLE IF NOT EXISTS usage_counters (
    key TEXT PRIMARY KEY,
    count INTEGER NOT NULL DEFAULT 0,
    expires_at TEXT NOT NULL
);
"""


@_register(2, "approvals_and_usage_counters")
async def _migration_002_approvals(db: aiosqlite.Connection) -> None:
    """Replace simulated approval and rate-limit checks with real tables."""
    await db.execute(_CREATE_APPROVALS)
    await db.execute(_CREATE_USAGE_COUNTERS)
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_approvals_status ON approvals(status, expires_at);"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_usage_counters_expiry ON usage_counters(expires_at);"
    )


# =========================================================================
# Migration 003 -- audit_log
# =========================================================================

_CREATE_AUDIT_LOG = """
CREATE TABLE IF NOT EXISTS audit_log (
    event_id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    event_type TEXT NOT NULL,
    actor TEXT NOT NULL DEFAULT 'system',
    resource_type TEXT NOT NULL DEFAULT '',
    resource_id TEXT NOT NULL DEFAULT '',
    action TEXT NOT NULL DEFAULT '',
    details TEXT NOT NULL DEFAULT '{}',
    ip_address TEXT NOT NULL DEFAULT ''
);
"""


@_register(3, "audit_log")
async def _migration_003_audit_log(db: aiosqlite.Connection) -> None:
    await db.execute(_CREATE_AUDIT_LOG)
    await db.execute("CREATE INDEX IF NOT EXISTS idx_audit_type ON audit_log(event_type);")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_audit_ts ON audit_log(timestamp);")
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_audit_resource ON audit_log(resource_type, resource_id);"
    )
