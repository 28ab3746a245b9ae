# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519
from httpx import ASGITransport, AsyncClient

from credproxy.api.app import create_app
from credproxy.broker import Broker
from credproxy.core.config import Settings
from credproxy.core.crypto import CredentialCipher
from credproxy.models.credential import Application, Credential
from credproxy.proxy.signing import public_key_pem, sign_payload
from credproxy.storage.database import close_db, init_db
from tests.doubles import EchoPlugin

TEST_SECRET = "test-encryption-secret"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        db_path=tmp_path / "credproxy.db",
        encryption_key=TEST_SECRET,
        counter_backend="sqlite",
        queue_workers=2,
        queue_attempts=3,
        queue_backoff_seconds=0.01,
        api_keys=[],
    )


@pytest.fixture
async def db(tmp_path):
    """A migrated temporary SQLite database."""
    conn = await init_db(tmp_path / "test.db")
    yield conn
    await close_db(conn)


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(TEST_SECRET)


@pytest.fixture
def signing_key() -> ed25519.Ed25519PrivateKey:
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture
def sign_request(signing_key) -> Callable[..., dict[str, Any]]:
    """Build a signed raw request body for the broker's ``POST /proxy``."""

    def _sign(
        *,
        application_id: str = "app-1",
        credential_id: str = "cred-1",
        operation: str = "echo",
        parameters: dict[str, Any] | None = None,
        timestamp: Any = None,
        key: Any = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "applicationId": application_id,
            "credentialId": credential_id,
            "operation": operation,
            "parameters": parameters if parameters is not None else {"message": "hi"},
            "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
        }
        body["signature"] = sign_payload(key or signing_key, body)
        return body

    return _sign


@pytest.fixture
async def broker(settings):
    """A started broker whose only plugin is :class:`EchoPlugin`."""
    instance = await Broker.create(settings, plugins=[EchoPlugin()])
    await instance.start()
    yield instance
    await instance.stop()


@pytest.fixture
async def seeded(broker, signing_key):
    """The broker with ``app-1`` granted access to the ECHO credential ``cred-1``."""
    await broker.applications.create(
        Application(id="app-1", name="Test App", public_key=public_key_pem(signing_key))
    )
    await broker.credentials.create(
        Credential(
            id="cred-1",
            name="echo token",
            type="ECHO",
            encrypted_data=broker.cipher.encrypt({"token": "abcdef"}, credential_id="cred-1"),
        )
    )
    await broker.applications.grant("app-1", "cred-1")
    return broker


@pytest.fixture
async def client(seeded):
    """An HTTP client bound to an app serving the seeded broker."""
    app = create_app(broker=seeded)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
