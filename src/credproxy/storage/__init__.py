# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Storage layer -- SQLite connection, migrations, and repositories."""

from credproxy.storage.database import close_db, init_db
from credproxy.storage.migrations import run_migrations
from credproxy.storage.repositories import (
    ApplicationRepository,
    CredentialRepository,
    PolicyRepository,
    RequestRepository,
)

__all__ = [
    "ApplicationRepository",
    "CredentialRepository",
    "PolicyRepository",
    "RequestRepository",
    "close_db",
    "init_db",
    "run_migrations",
]
