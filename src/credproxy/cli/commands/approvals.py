# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for reviewing manual approvals."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

app = typer.Typer()


@app.command(name="list")
def approvals_list(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Max rows to show")] = 50,
) -> None:
    """List requests waiting for a manual decision."""
    asyncio.run(_async_list(limit))


async def _async_list(limit: int) -> None:
    from rich.console import Console
    from rich.table import Table

    from credproxy.core.config import get_settings
    from credproxy.policies.approvals import ApprovalStore
    from credproxy.storage.database import close_db, init_db

    settings = get_settings()
    db = await init_db(settings.db_path)
    try:
        pending = await ApprovalStore(db).list_pending(limit=limit)
    finally:
        await close_db(db)

    console = Console()
    if not pending:
        console.print("[dim]No pending approvals.[/dim]")
        return

    table = Table(title="Pending Approvals")
    table.add_column("Request ID", style="cyan", no_wrap=True)
    table.add_column("Policy")
    table.add_column("Approvers")
    table.add_column("Expires (UTC)")
    for approval in pending:
        table.add_row(
            approval.request_id,
            approval.policy_id,
            ", ".join(approval.approvers) or "-",
            approval.expires_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@app.command()
def approve(
    request_id: Annotated[str, typer.Argument(help="Request awaiting approval")],
    approver: Annotated[str, typer.Option("--as", help="Approver identity")],
) -> None:
    """Approve a pending request and execute it in this process."""
    asyncio.run(_async_decide(request_id, approver, approved=True))


@app.command()
def reject(
    request_id: Annotated[str, typer.Argument(help="Request awaiting approval")],
    approver: Annotated[str, typer.Option("--as", help="Approver identity")],
) -> None:
    """Reject a pending request."""
    asyncio.run(_async_decide(request_id, approver, approved=False))


async def _async_decide(request_id: str, approver: str, *, approved: bool) -> None:
    from credproxy.broker import Broker
    from credproxy.core.config import get_settings
    from credproxy.core.exceptions import ApprovalError, NotFoundError

    broker = await Broker.create(get_settings())
    await broker.start()
    try:
        try:
            result = await broker.pipeline.resolve_approval(
                request_id, approved=approved, actor=approver
            )
        except (ApprovalError, NotFoundError) as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc

        typer.echo(f"{request_id}: {result.status}")
        if result.message and not approved:
            typer.echo(result.message)

        # The queue lives in this process; wait for the job before exiting.
        await broker.queue.join()
        record = await broker.pipeline.status(request_id)
        typer.echo(f"Final status: {record.status}")
    finally:
        await broker.stop()
