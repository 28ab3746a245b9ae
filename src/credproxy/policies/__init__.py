# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Policy evaluation: engine, per-type evaluators, usage counters and approvals."""

from credproxy.policies.approvals import ApprovalStore
from credproxy.policies.counter import (
    MemoryUsageCounter,
    RedisUsageCounter,
    SQLiteUsageCounter,
    UsageCounter,
    create_counter,
)
from credproxy.policies.engine import PolicyEngine, select_applicable
from credproxy.policies.evaluators import EvaluationContext, PolicyEvaluator, PolicyResult

__all__ = [
    "ApprovalStore",
    "EvaluationContext",
    "MemoryUsageCounter",
    "PolicyEngine",
    "PolicyEvaluator",
    "PolicyResult",
    "RedisUsageCounter",
    "SQLiteUsageCounter",
    "UsageCounter",
    "create_counter",
    "select_applicable",
]
