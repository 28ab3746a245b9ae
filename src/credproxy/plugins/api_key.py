# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""API key plugin: performs HTTP requests with the key injected as a header."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from credproxy.core.constants import PolicyType
from credproxy.core.exceptions import PluginExecutionError
from credproxy.plugins.base import CredentialPlugin, OperationMetadata, PluginMetadata

logger = logging.getLogger("credproxy.plugins.api_key")

_TIMEOUT_SECONDS = 30.0
_DEFAULT_HEADER = "Authorization"
_MIN_KEY_LENGTH = 8


def _http_operation(method: str, *, risk: int, idempotent: bool) -> OperationMetadata:
    optional = ("headers", "params") if method == "GET" else ("headers", "data", "params")
    return OperationMetadata(
        name=method,
        description=f"Make a {method} request",
        required_params=("url",),
        optional_params=optional,
        risk_level=risk,
        idempotent=idempotent,
        recommended_policies=(PolicyType.ALLOW_LIST, PolicyType.COUNT_BASED),
    )


_OPERATIONS = (
    _http_operation("GET", risk=3, idempotent=True),
    _http_operation("POST", risk=6, idempotent=False),
    _http_operation("PUT", risk=6, idempotent=True),
    _http_operation("PATCH", risk=6, idempotent=False),
    _http_operation("DELETE", risk=8, idempotent=True),
)


class ApiKeyPlugin(CredentialPlugin):
    """Authenticates outbound HTTP calls with a stored API key.

    Credential data: ``apiKey`` (required), ``baseUrl`` (used to resolve
    relative ``url`` parameters) and ``headerName`` (default
    ``Authorization``).

    Args:
        transport: Optional httpx transport, used by tests to stub the
            third-party service.
        timeout: Per-request timeout in seconds.
    """

    base_risk = 5

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = _TIMEOUT_SECONDS,
    ) -> None:
        self._transport = transport
        self._timeout = timeout

    @property
    def plugin_metadata(self) -> PluginMetadata:
        return PluginMetadata(
            type="API_KEY",
            name="API Key",
            version="1.0.0",
            description="Use API keys to authenticate HTTP requests to third-party services",
        )

    @property
    def supported_operations(self) -> tuple[OperationMetadata, ...]:
        return _OPERATIONS

    def validate_credential(self, credential_data: dict[str, Any]) -> str | None:
        api_key = credential_data.get("apiKey")
        if not isinstance(api_key, str) or not api_key:
            return "apiKey is required"
        if len(api_key) < _MIN_KEY_LENGTH:
            return f"API key should be at least {_MIN_KEY_LENGTH} characters long"
        base_url = credential_data.get("baseUrl")
        if base_url and not str(base_url).startswith(("http://", "https://")):
            return "baseUrl must be an http(s) URL"
        return None

    async def execute_operation(
        self,
        operation: str,
        credential_data: dict[str, Any],
        params: dict[str, Any],
    ) -> Any:
        error = self.validate_credential(credential_data)
        if error:
            raise PluginExecutionError(error)

        url = _resolve_url(credential_data.get("baseUrl"), str(params["url"]))
        header_name = credential_data.get("headerName") or _DEFAULT_HEADER
        headers = {**(params.get("headers") or {}), header_name: credential_data["apiKey"]}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    operation,
                    url,
                    headers=headers,
                    params=params.get("params"),
                    json=params.get("data"),
                )
            except httpx.TimeoutException as exc:
                raise PluginExecutionError(f"API request timed out: {url}", transient=True) from exc
            except httpx.TransportError as exc:
                raise PluginExecutionError(f"API request failed: {exc}", transient=True) from exc

        logger.info("%s %s -> %d", operation, url, response.status_code)
        if response.status_code >= 500:
            raise PluginExecutionError(
                f"API request failed with status {response.status_code}", transient=True
            )

        result: dict[str, Any] = {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "data": _body(response),
            "headers": dict(response.headers),
        }
        if response.is_error:
            result["error"] = True
        return result


def _resolve_url(base_url: str | None, url: str) -> str:
    if url.startswith(("http://", "https://")) or not base_url:
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
