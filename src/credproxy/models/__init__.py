# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Domain models for policies, credentials and proxy requests."""

from credproxy.models.credential import Application, Credential
from credproxy.models.policy import (
    AllowListConfig,
    CountBasedConfig,
    Decision,
    DenyListConfig,
    ManualApprovalConfig,
    Policy,
    TimeBasedConfig,
)
from credproxy.models.request import Approval, ProxyJob, ProxyRequest, RequestRecord

__all__ = [
    "AllowListConfig",
    "Application",
    "Approval",
    "CountBasedConfig",
    "Credential",
    "Decision",
    "DenyListConfig",
    "ManualApprovalConfig",
    "Policy",
    "ProxyJob",
    "ProxyRequest",
    "RequestRecord",
    "TimeBasedConfig",
]
