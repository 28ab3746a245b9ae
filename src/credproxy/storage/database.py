# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""SQLite connection management.

Connections are owned by whoever opens them (the service container in the
API lifespan, or a CLI command); there is no module-level connection.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from credproxy.core.exceptions import StorageError
from credproxy.storage.migrations import run_migrations


async def init_db(
    db_path: Path | str = "credproxy.db",
    *,
    auto_migrate: bool = True,
) -> aiosqlite.Connection:
    """Open a connection, optionally run migrations, and return it.

    Enables WAL mode and foreign keys for performance and integrity.
    """
    db: aiosqlite.Connection | None = None
    try:
        db = await aiosqlite.connect(str(db_path))
        db.row_factory = aiosqlite.Row

        # Enable WAL mode for concurrent read performance
        await db.execute("PRAGMA journal_mode=WAL")
        # Enable foreign key constraint enforcement
        await db.execute("PRAGMA foreign_keys=ON")

        if auto_migrate:
            await run_migrations(db)

        return db
    except Exception as exc:
        if db is not None:
            await db.close()
        msg = f"Failed to initialize database at {db_path}: {exc}"
        raise StorageError(msg) from exc


async def close_db(db: aiosqlite.Connection | None) -> None:
    """Close *db* if it is open."""
    if db is not None:
        await db.close()
