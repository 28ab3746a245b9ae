# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from credproxy.cli.commands import admin, approvals, audit, db, plugin, verbs

app = typer.Typer(
    name="credproxy",
    help="Credential broker that executes operations on behalf of applications",
    no_args_is_help=True,
)

app.add_typer(db.app, name="db", help="Database management")
app.add_typer(plugin.app, name="plugin", help="Inspect credential plugins")
app.add_typer(verbs.app, name="verbs", help="Inspect the verb catalogue")
app.add_typer(approvals.app, name="approvals", help="Review manual approvals")
app.add_typer(audit.app, name="audit", help="Query the audit log")
app.add_typer(admin.app, name="admin", help="Provision applications, credentials and policies")


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Bind port")] = None,
) -> None:
    """Start the credproxy API server."""
    import uvicorn

    from credproxy.core.config import get_settings
    from credproxy.core.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    # A single process: queued jobs live in memory.
    uvicorn.run(
        "credproxy.api.app:create_app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        factory=True,
        log_config=None,
    )


@app.command()
def keygen(
    app_keypair: Annotated[
        Path | None,
        typer.Option(
            "--app-keypair",
            help="Also write an Ed25519 signing key for an application to this path",
        ),
    ] = None,
) -> None:
    """Print a fresh CREDPROXY_ENCRYPTION_KEY value."""
    from credproxy.core.crypto import generate_secret

    typer.echo(generate_secret())

    if app_keypair is not None:
        from cryptography.hazmat.primitives import serialization
        from cryptography.hazmat.primitives.asymmetric import ed25519

        from credproxy.proxy.signing import public_key_pem

        key = ed25519.Ed25519PrivateKey.generate()
        app_keypair.write_bytes(
            key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        app_keypair.chmod(0o600)
        public_path = app_keypair.with_suffix(".pub")
        public_path.write_text(public_key_pem(key))
        typer.echo(f"Private key written to {app_keypair}", err=True)
        typer.echo(f"Public key written to {public_path}", err=True)


@app.command()
def version() -> None:
    """Show the credproxy version."""
    from credproxy import __version__

    typer.echo(f"credproxy {__version__}")
