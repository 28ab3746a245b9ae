# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Credential and application models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Credential(BaseModel):
    """A stored secret.  ``encrypted_data`` is never decrypted outside a worker."""

    id: str
    name: str = ""
    type: str
    encrypted_data: str = Field(repr=False)
    owner_id: str = ""
    is_enabled: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Application(BaseModel):
    """A third-party application allowed to submit signed proxy requests."""

    id: str
    name: str = ""
    public_key: str = Field(description="PEM-encoded RSA or Ed25519 public key", repr=False)
    status: str = "active"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_active(self) -> bool:
        return self.status == "active"
