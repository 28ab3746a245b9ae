# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Test doubles shared by unit and integration tests."""

from __future__ import annotations

from typing import Any

from credproxy.core.exceptions import PluginExecutionError
from credproxy.plugins.base import CredentialPlugin, OperationMetadata, PluginMetadata


class EchoPlugin(CredentialPlugin):
    """Echoes its parameters and reports the length of the secret it saw.

    ``fail_times`` makes the first N calls raise a transient error.
    """

    def __init__(self, *, fail_times: int = 0, idempotent: bool = True) -> None:
        self.calls: list[dict[str, Any]] = []
        self._fail_times = fail_times
        self._idempotent = idempotent

    @property
    def plugin_metadata(self) -> PluginMetadata:
        return PluginMetadata(type="ECHO", name="Echo", version="0.0.1")

    @property
    def supported_operations(self) -> tuple[OperationMetadata, ...]:
        return (
            OperationMetadata(
                name="echo",
                required_params=("message",),
                risk_level=1,
                idempotent=self._idempotent,
            ),
        )

    def validate_credential(self, credential_data: dict[str, Any]) -> str | None:
        return None if "token" in credential_data else "token is required"

    async def execute_operation(
        self, operation: str, credential_data: dict[str, Any], params: dict[str, Any]
    ) -> Any:
        self.calls.append(dict(params))
        if len(self.calls) <= self._fail_times:
            raise PluginExecutionError("upstream unavailable", transient=True)
        return {"echo": params["message"], "tokenLength": len(credential_data["token"])}
