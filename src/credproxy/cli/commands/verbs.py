# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for the verb catalogue."""

from __future__ import annotations

from typing import Annotated

import typer

app = typer.Typer()


@app.command(name="list")
def verbs_list(
    scope: Annotated[
        str | None, typer.Option("--scope", help="GLOBAL, PLUGIN or CREDENTIAL")
    ] = None,
    plugin_type: Annotated[
        str | None, typer.Option("--plugin-type", help="Only verbs for this plugin type")
    ] = None,
    search: Annotated[
        str | None, typer.Option("--search", "-s", help="Substring of name or description")
    ] = None,
) -> None:
    """List default and plugin-derived verbs."""
    from rich.console import Console
    from rich.table import Table

    from credproxy.core.constants import VerbScope
    from credproxy.plugins.builtin import create_registry
    from credproxy.verbs.registry import VerbRegistry

    registry = VerbRegistry()
    registry.register_defaults()
    registry.discover_plugin_verbs(create_registry())

    verbs = registry.query(
        scope=VerbScope(scope.upper()) if scope else None,
        plugin_type=plugin_type,
        search=search,
    )

    console = Console()
    if not verbs:
        console.print("[dim]No verbs match.[/dim]")
        return

    table = Table(title="Verbs")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Scope")
    table.add_column("Operation")
    table.add_column("Tags")
    table.add_column("Description")
    for verb in verbs:
        table.add_row(
            verb.id, str(verb.scope), verb.operation, ", ".join(verb.tags), verb.description
        )
    console.print(table)
