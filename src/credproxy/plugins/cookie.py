# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Cookie plugin: exposes stored session cookies without revealing their values."""

from __future__ import annotations

from typing import Any

from credproxy.core.constants import PolicyType
from credproxy.core.exceptions import PluginExecutionError
from credproxy.plugins.base import CredentialPlugin, OperationMetadata, PluginMetadata

_MASK = "********"

_ATTRIBUTES = {"domain", "path", "expires", "secure", "httponly", "samesite", "max-age"}

_OPERATIONS = (
    OperationMetadata(
        name="get_cookies",
        description="Get all cookies in the credential",
        optional_params=("domain", "path"),
        risk_level=4,
        idempotent=True,
        applicable_policies=(PolicyType.ALLOW_LIST, PolicyType.TIME_BASED),
        recommended_policies=(PolicyType.ALLOW_LIST,),
    ),
    OperationMetadata(
        name="add_cookies_to_request",
        description="Add cookies to a request as headers",
        required_params=("headers",),
        optional_params=("domain", "path"),
        risk_level=7,
        idempotent=True,
        recommended_policies=(PolicyType.ALLOW_LIST, PolicyType.COUNT_BASED),
    ),
)


def parse_cookie_string(cookie_string: str) -> list[dict[str, Any]]:
    """Parse a ``Cookie``/``Set-Cookie`` style string into cookie dicts."""
    cookies: list[dict[str, Any]] = []
    # Attributes (Path, Secure, ...) attach to the cookie that precedes them.
    for part in cookie_string.split(";"):
        name, _, value = part.partition("=")
        name, value = name.strip(), value.strip()
        if not name:
            continue
        key = name.lower()
        if key in _ATTRIBUTES:
            if cookies:
                _set_attribute(cookies[-1], key, value)
        else:
            cookies.append({"name": name, "value": value})
    return cookies


def _set_attribute(cookie: dict[str, Any], key: str, value: str) -> None:
    if key == "secure":
        cookie["secure"] = True
    elif key == "httponly":
        cookie["httpOnly"] = True
    elif key == "samesite":
        cookie["sameSite"] = value
    elif key == "max-age":
        cookie["maxAge"] = value
    else:
        cookie[key] = value


class CookiePlugin(CredentialPlugin):
    """Credential data: ``cookies`` as a list of cookie objects or a cookie string."""

    base_risk = 6

    @property
    def plugin_metadata(self) -> PluginMetadata:
        return PluginMetadata(
            type="COOKIE",
            name="Cookie Plugin",
            version="1.0.0",
            description="Plugin for managing and using cookie credentials",
        )

    @property
    def supported_operations(self) -> tuple[OperationMetadata, ...]:
        return _OPERATIONS

    def validate_credential(self, credential_data: dict[str, Any]) -> str | None:
        raw = credential_data.get("cookies")
        if isinstance(raw, str):
            return None if parse_cookie_string(raw) else "Invalid cookie format"
        if isinstance(raw, list):
            for cookie in raw:
                if not isinstance(cookie, dict) or not cookie.get("name") or not cookie.get("value"):
                    return "All cookies must have a name and value"
            return None
        return "Invalid credential data format"

    async def execute_operation(
        self,
        operation: str,
        credential_data: dict[str, Any],
        params: dict[str, Any],
    ) -> Any:
        error = self.validate_credential(credential_data)
        if error:
            raise PluginExecutionError(error)
        cookies = _select(_cookies(credential_data), params.get("domain"), params.get("path"))

        if operation == "get_cookies":
            return [{**cookie, "value": _MASK} for cookie in cookies]

        headers = params.get("headers")
        if not isinstance(headers, dict):
            raise PluginExecutionError("headers must be an object")
        cookie_header = "; ".join(f"{c['name']}={c['value']}" for c in cookies)
        return {"headers": {**headers, "Cookie": cookie_header}}


def _cookies(credential_data: dict[str, Any]) -> list[dict[str, Any]]:
    raw = credential_data["cookies"]
    if isinstance(raw, str):
        return parse_cookie_string(raw)
    return [dict(c) for c in raw]


def _select(
    cookies: list[dict[str, Any]], domain: str | None, path: str | None
) -> list[dict[str, Any]]:
    selected = []
    for cookie in cookies:
        if domain and cookie.get("domain") and not domain.endswith(cookie["domain"]):
            continue
        if path and cookie.get("path") and not path.startswith(cookie["path"]):
            continue
        selected.append(cookie)
    return selected
