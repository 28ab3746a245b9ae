# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for inspecting credential plugins."""

from __future__ import annotations

from typing import Annotated

import typer

app = typer.Typer()


@app.command(name="list")
def plugin_list() -> None:
    """List built-in credential plugins and their operations."""
    from rich.console import Console
    from rich.table import Table

    from credproxy.plugins.builtin import create_registry

    registry = create_registry()
    console = Console()

    table = Table(title="Credential Plugins")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Operation")
    table.add_column("Risk", justify="right")
    table.add_column("Idempotent")
    table.add_column("Required params")

    for info in registry.list_plugins():
        for n, op in enumerate(info.operations):
            table.add_row(
                info.type if n == 0 else "",
                info.name if n == 0 else "",
                info.version if n == 0 else "",
                op.name,
                str(op.risk_level),
                "[green]yes[/green]" if op.idempotent else "[yellow]no[/yellow]",
                ", ".join(op.required_params) or "-",
            )

    console.print(table)


@app.command()
def risk(
    plugin_type: Annotated[str, typer.Argument(help="Plugin type, e.g. API_KEY")],
    operation: Annotated[str, typer.Argument(help="Operation name")],
) -> None:
    """Show the advisory risk assessment for a plugin operation."""
    from credproxy.core.exceptions import PluginNotFoundError
    from credproxy.plugins.builtin import create_registry

    try:
        assessment = create_registry().assess_risk(plugin_type, operation)
    except PluginNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    typer.echo(f"{plugin_type} {operation}: risk {assessment.score}/10")
    for factor in assessment.factors:
        typer.echo(f"  - {factor}")
    if assessment.recommended_policies:
        typer.echo("Recommended policies: " + ", ".join(str(p) for p in assessment.recommended_policies))
