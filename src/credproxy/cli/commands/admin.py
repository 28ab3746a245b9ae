# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Provisioning commands: applications, credentials, grants and policies.

Credential data is read as a JSON object and encrypted before it is stored.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from pathlib import Path
from typing import Annotated, Any

import typer

app = typer.Typer()


def _load_json(raw: str) -> dict[str, Any]:
    """Parse *raw* as JSON, or as a path to a JSON file when prefixed with ``@``."""
    text = Path(raw[1:]).read_text() if raw.startswith("@") else raw
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        typer.echo(f"Invalid JSON: {exc}", err=True)
        raise typer.Exit(1) from exc
    if not isinstance(data, dict):
        typer.echo("Expected a JSON object", err=True)
        raise typer.Exit(1)
    return data


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


@app.command(name="add-app")
def add_app(
    name: Annotated[str, typer.Argument(help="Application name")],
    public_key: Annotated[Path, typer.Option("--public-key", help="PEM public key file")],
    app_id: Annotated[str | None, typer.Option("--id", help="Application id")] = None,
) -> None:
    """Register an application and its signing key."""
    from credproxy.models.credential import Application

    application = Application(
        id=app_id or str(uuid.uuid4()), name=name, public_key=public_key.read_text()
    )
    asyncio.run(_run(lambda db: _repos(db)["applications"].create(application)))
    typer.echo(application.id)


@app.command()
def grant(
    app_id: Annotated[str, typer.Argument(help="Application id")],
    credential_id: Annotated[str, typer.Argument(help="Credential id")],
) -> None:
    """Allow an application to use a credential."""
    asyncio.run(_run(lambda db: _repos(db)["applications"].grant(app_id, credential_id)))
    typer.echo(f"Granted {app_id} access to {credential_id}")


@app.command()
def revoke(
    app_id: Annotated[str, typer.Argument(help="Application id")],
    credential_id: Annotated[str, typer.Argument(help="Credential id")],
) -> None:
    """Withdraw an application's access to a credential."""
    removed = asyncio.run(
        _run(lambda db: _repos(db)["applications"].revoke(app_id, credential_id))
    )
    if not removed:
        typer.echo("No such grant.", err=True)
        raise typer.Exit(1)
    typer.echo(f"Revoked {app_id} access to {credential_id}")


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@app.command(name="add-credential")
def add_credential(
    name: Annotated[str, typer.Argument(help="Credential name")],
    cred_type: Annotated[str, typer.Option("--type", "-t", help="Plugin type, e.g. API_KEY")],
    data: Annotated[str, typer.Option("--data", help="JSON object, or @file.json")],
    owner: Annotated[str, typer.Option("--owner", help="Owning user id")] = "",
    credential_id: Annotated[str | None, typer.Option("--id", help="Credential id")] = None,
) -> None:
    """Validate, encrypt and store a credential."""
    from credproxy.core.config import get_settings
    from credproxy.core.crypto import CredentialCipher
    from credproxy.models.credential import Credential
    from credproxy.plugins.builtin import create_registry

    payload = _load_json(data)
    plugin = create_registry().get(cred_type)
    if plugin is None:
        typer.echo(f"Unknown credential type: {cred_type}", err=True)
        raise typer.Exit(1)
    problem = plugin.validate_credential(payload)
    if problem:
        typer.echo(f"Invalid credential data: {problem}", err=True)
        raise typer.Exit(1)

    cid = credential_id or str(uuid.uuid4())
    cipher = CredentialCipher(get_settings().encryption_key)
    credential = Credential(
        id=cid,
        name=name,
        type=cred_type,
        owner_id=owner,
        encrypted_data=cipher.encrypt(payload, credential_id=cid),
    )
    asyncio.run(_run(lambda db: _repos(db)["credentials"].create(credential)))
    typer.echo(cid)


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


@app.command(name="add-policy")
def add_policy(
    policy: Annotated[str, typer.Argument(help="Policy JSON (camelCase), or @file.json")],
) -> None:
    """Create a policy from its JSON definition."""
    from pydantic import ValidationError as PydanticValidationError

    from credproxy.models.policy import Policy

    data = _load_json(policy)
    data.setdefault("id", str(uuid.uuid4()))
    try:
        model = Policy.model_validate(data)
        model.typed_config()
    except PydanticValidationError as exc:
        typer.echo(f"Invalid policy: {exc}", err=True)
        raise typer.Exit(1) from exc

    asyncio.run(_run(lambda db: _repos(db)["policies"].create(model)))
    typer.echo(model.id)


@app.command(name="list")
def list_all() -> None:
    """Show applications, credentials and policies."""
    from rich.console import Console
    from rich.table import Table

    async def _collect(db: Any) -> tuple[list[Any], list[Any], list[Any]]:
        repos = _repos(db)
        return (
            await repos["applications"].list_all(),
            await repos["credentials"].list_all(),
            await repos["policies"].list_all(),
        )

    apps, creds, policies = asyncio.run(_run(_collect))
    console = Console()

    table = Table(title="Applications")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    for row in apps:
        table.add_row(row["id"], row["name"], row["status"])
    console.print(table)

    table = Table(title="Credentials")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Enabled")
    for row in creds:
        table.add_row(row["id"], row["name"], row["type"], "yes" if row["is_enabled"] else "no")
    console.print(table)

    table = Table(title="Policies")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Scope")
    table.add_column("Priority", justify="right")
    table.add_column("Active")
    for p in policies:
        table.add_row(
            p.id, p.name, str(p.type), str(p.scope), str(p.priority), "yes" if p.is_active else "no"
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _repos(db: Any) -> dict[str, Any]:
    from credproxy.storage.repositories import (
        ApplicationRepository,
        CredentialRepository,
        PolicyRepository,
    )

    return {
        "applications": ApplicationRepository(db),
        "credentials": CredentialRepository(db),
        "policies": PolicyRepository(db),
    }


async def _run(action: Any) -> Any:
    from credproxy.core.config import get_settings
    from credproxy.storage.database import close_db, init_db

    db = await init_db(get_settings().db_path)
    try:
        return await action(db)
    finally:
        await close_db(db)
