# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Credential plugins and the registry that dispatches operations to them."""

from credproxy.plugins.base import (
    CredentialHealth,
    CredentialPlugin,
    OperationMetadata,
    OperationRiskAssessment,
    PluginMetadata,
)
from credproxy.plugins.builtin import builtin_plugins, create_registry
from credproxy.plugins.registry import PluginInfo, PluginRegistry

__all__ = [
    "CredentialHealth",
    "CredentialPlugin",
    "OperationMetadata",
    "OperationRiskAssessment",
    "PluginInfo",
    "PluginMetadata",
    "PluginRegistry",
    "builtin_plugins",
    "create_registry",
]
