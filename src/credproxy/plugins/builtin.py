# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""The static set of plugins shipped with credproxy."""

from __future__ import annotations

from credproxy.plugins.api_key import ApiKeyPlugin
from credproxy.plugins.base import CredentialPlugin
from credproxy.plugins.cookie import CookiePlugin
from credproxy.plugins.registry import PluginRegistry


def builtin_plugins() -> list[CredentialPlugin]:
    """Return one instance of every built-in plugin."""
    return [ApiKeyPlugin(), CookiePlugin()]


def create_registry(plugins: list[CredentialPlugin] | None = None) -> PluginRegistry:
    """Build a registry from *plugins*, defaulting to the built-ins."""
    return PluginRegistry(builtin_plugins() if plugins is None else plugins)
