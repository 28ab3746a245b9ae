# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for querying the audit log."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

app = typer.Typer()


@app.command(name="list")
def audit_list(
    request_id: Annotated[
        str | None,
        typer.Option("--request", "-r", help="Only events for this proxy request"),
    ] = None,
    event_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Filter by event type, e.g. request_denied"),
    ] = None,
    actor: Annotated[
        str | None,
        typer.Option("--actor", "-a", help="Filter by application id or approver"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of events to show"),
    ] = 50,
) -> None:
    """List audit events, newest first."""
    asyncio.run(_async_audit_list(request_id, event_type, actor, limit))


async def _async_audit_list(
    request_id: str | None,
    event_type: str | None,
    actor: str | None,
    limit: int,
) -> None:
    from rich.console import Console
    from rich.table import Table

    from credproxy.audit.store import AuditStore
    from credproxy.core.config import get_settings
    from credproxy.storage.database import close_db, init_db

    settings = get_settings()
    db = await init_db(settings.db_path)
    try:
        events = await AuditStore(db).list_events(
            event_type=event_type, resource_id=request_id, actor=actor, limit=limit
        )
    finally:
        await close_db(db)

    console = Console()
    if not events:
        console.print("[dim]No audit events found.[/dim]")
        return

    table = Table(title="Audit Events")
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Event Type", style="cyan")
    table.add_column("Actor", style="yellow")
    table.add_column("Request ID", style="green", no_wrap=True)
    table.add_column("Action", style="bold")
    for event in events:
        table.add_row(
            event.get("timestamp", ""),
            event.get("event_type", ""),
            event.get("actor", ""),
            event.get("resource_id", ""),
            event.get("action", ""),
        )
    console.print(table)
    console.print(f"\n[dim]Showing {len(events)} event(s)[/dim]")
