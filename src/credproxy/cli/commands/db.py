# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Database management commands."""

from __future__ import annotations

import asyncio

import typer

app = typer.Typer()


@app.command()
def init() -> None:
    """Create the SQLite database and apply every migration."""
    asyncio.run(_init_db())


async def _init_db() -> None:
    from credproxy.core.config import get_settings
    from credproxy.storage.database import close_db, init_db
    from credproxy.storage.migrations import get_current_version

    settings = get_settings()
    typer.echo(f"Initializing database at {settings.db_path}...")
    db = await init_db(settings.db_path)
    try:
        version = await get_current_version(db)
    finally:
        await close_db(db)
    typer.echo(f"Database initialized at schema version {version}.")


@app.command()
def migrate() -> None:
    """Apply pending database migrations.

    Shows the current schema version and any pending migrations,
    then applies them in order.
    """
    asyncio.run(_migrate_db())


async def _migrate_db() -> None:
    from credproxy.core.config import get_settings
    from credproxy.storage.database import close_db, init_db
    from credproxy.storage.migrations import (
        get_current_version,
        get_pending_migrations,
        run_migrations,
    )

    settings = get_settings()
    db = await init_db(settings.db_path, auto_migrate=False)

    try:
        current = await get_current_version(db)
        pending = await get_pending_migrations(db)

        typer.echo(f"Database: {settings.db_path}")
        typer.echo(f"Current schema version: {current}")

        if not pending:
            typer.echo("No pending migrations.")
            return

        typer.echo(f"Pending migrations: {len(pending)}")
        for m in pending:
            typer.echo(f"  {m.version:03d}: {m.name}")

        applied = await run_migrations(db)
        for m in applied:
            typer.echo(f"Applied migration {m.version:03d}: {m.name}")

        typer.echo(f"Schema version is now: {await get_current_version(db)}")
    finally:
        await close_db(db)
