# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Plugin registry: one executor per credential type, registered explicitly."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from credproxy.core.exceptions import (
    MissingParameterError,
    PluginConflictError,
    PluginError,
    PluginNotFoundError,
    UnsupportedOperationError,
)
from credproxy.plugins.base import CredentialPlugin, OperationMetadata, OperationRiskAssessment

logger = logging.getLogger("credproxy.plugins.registry")


@dataclass
class PluginInfo:
    """Snapshot of a plugin's metadata and declared operations."""

    type: str
    name: str
    version: str
    description: str
    operations: list[OperationMetadata]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "operations": [op.to_dict() for op in self.operations],
        }


class PluginRegistry:
    """Maps credential types to plugin instances.

    Typical usage::

        registry = PluginRegistry(builtin_plugins())
        result = await registry.execute("API_KEY", "GET", secret, {"url": url})
    """

    def __init__(self, plugins: Iterable[CredentialPlugin] = ()) -> None:
        self._entries: dict[str, CredentialPlugin] = {}
        for plugin in plugins:
            self.register(plugin)

    def register(self, plugin: CredentialPlugin) -> None:
        """Register *plugin* for its credential type.

        Raises:
            PluginConflictError: A plugin is already registered for the type.
            PluginError: The plugin's metadata is incomplete.
        """
        self._validate(plugin)
        meta = plugin.plugin_metadata
        if meta.type in self._entries:
            raise PluginConflictError(f"A plugin is already registered for type {meta.type}")
        self._entries[meta.type] = plugin
        logger.info("Registered plugin %s v%s for type %s", meta.name, meta.version, meta.type)

    @staticmethod
    def _validate(plugin: CredentialPlugin) -> None:
        meta = plugin.plugin_metadata
        if not meta.type or not meta.type.strip():
            raise PluginError("Plugin has empty type")
        if not meta.name or not meta.name.strip():
            raise PluginError(f"Plugin for type {meta.type} has empty name")
        names = [op.name for op in plugin.supported_operations]
        if len(names) != len(set(names)):
            raise PluginError(f"Plugin {meta.name} declares duplicate operations")

    def get(self, plugin_type: str) -> CredentialPlugin | None:
        return self._entries.get(plugin_type)

    def require(self, plugin_type: str) -> CredentialPlugin:
        plugin = self._entries.get(plugin_type)
        if plugin is None:
            raise PluginNotFoundError(f"No plugin registered for credential type {plugin_type}")
        return plugin

    def __contains__(self, plugin_type: object) -> bool:
        return plugin_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def resolve_operation(
        self, plugin_type: str, operation: str, params: dict[str, Any]
    ) -> tuple[CredentialPlugin, OperationMetadata]:
        """Check that *operation* is declared and fully parameterised.

        Raises:
            PluginNotFoundError: No plugin for *plugin_type*.
            UnsupportedOperationError: The plugin does not declare *operation*.
            MissingParameterError: A required parameter is absent.
        """
        plugin = self.require(plugin_type)
        op = plugin.get_operation(operation)
        if op is None:
            raise UnsupportedOperationError(
                f"Unsupported operation {operation!r} for credential type {plugin_type}"
            )
        missing = plugin.missing_params(op, params)
        if missing:
            raise MissingParameterError(
                f"Missing required parameter(s) for {operation}: {', '.join(missing)}"
            )
        return plugin, op

    async def execute(
        self,
        plugin_type: str,
        operation: str,
        credential_data: dict[str, Any],
        params: dict[str, Any],
    ) -> Any:
        plugin, _ = self.resolve_operation(plugin_type, operation, params)
        return await plugin.execute_operation(operation, credential_data, params)

    def list_plugins(self) -> list[PluginInfo]:
        result: list[PluginInfo] = []
        for plugin in self._entries.values():
            meta = plugin.plugin_metadata
            result.append(
                PluginInfo(
                    type=meta.type,
                    name=meta.name,
                    version=meta.version,
                    description=meta.description,
                    operations=list(plugin.supported_operations),
                )
            )
        return result

    def assess_risk(
        self, plugin_type: str, operation: str, context: dict[str, Any] | None = None
    ) -> OperationRiskAssessment:
        """Advisory risk score for an operation.  Never enforced."""
        return self.require(plugin_type).assess_operation_risk(operation, context)
