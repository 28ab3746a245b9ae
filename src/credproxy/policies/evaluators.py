# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Per-type policy evaluators.

Each evaluator turns one policy plus the request context into a
:class:`PolicyResult`.  Evaluators may raise; the engine converts any
exception into a fail-closed denial for that policy.
"""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from credproxy.core.constants import PolicyType
from credproxy.models.policy import (
    AllowListConfig,
    CountBasedConfig,
    DenyListConfig,
    ManualApprovalConfig,
    Policy,
    TimeBasedConfig,
)
from credproxy.models.request import ProxyRequest
from credproxy.policies.approvals import ApprovalStore
from credproxy.policies.counter import UsageCounter, window_key
from credproxy.policies.matching import MISSING, lookup, match_any


class Outcome(enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    PENDING = "pending"


@dataclass
class PolicyResult:
    outcome: Outcome
    reason: str = ""

    @classmethod
    def allow(cls, reason: str = "") -> PolicyResult:
        return cls(Outcome.ALLOW, reason)

    @classmethod
    def deny(cls, reason: str) -> PolicyResult:
        return cls(Outcome.DENY, reason)

    @classmethod
    def pending(cls, reason: str) -> PolicyResult:
        return cls(Outcome.PENDING, reason)


@dataclass
class EvaluationContext:
    """Everything an evaluator may consult for one request.

    ``now`` is the wall clock used for usage-counter windows.  TIME_BASED
    policies use the request timestamp instead.
    """

    request: ProxyRequest
    request_id: str | None = None
    credential_type: str = ""
    now: datetime = field(default_factory=lambda: datetime.now(UTC))

    def fields(self) -> dict[str, Any]:
        return self.request.context(credential_type=self.credential_type)


class PolicyEvaluator(abc.ABC):
    """Evaluates a single policy type."""

    policy_type: PolicyType

    @abc.abstractmethod
    async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        """Return the outcome of *policy* for *ctx*."""


class AllowListEvaluator(PolicyEvaluator):
    policy_type = PolicyType.ALLOW_LIST

    async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        config = AllowListConfig.model_validate(policy.config)
        value = lookup(ctx.fields(), config.target_field)
        if value is MISSING:
            return PolicyResult.deny(
                policy.message or f"Field '{config.target_field}' is missing from the request"
            )
        if match_any(value, config.allowed_values, case_sensitive=config.case_sensitive):
            return PolicyResult.allow()
        return PolicyResult.deny(
            policy.message
            or f"Value '{value}' is not in the allowed list for field '{config.target_field}'"
        )


class DenyListEvaluator(PolicyEvaluator):
    policy_type = PolicyType.DENY_LIST

    async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        config = DenyListConfig.model_validate(policy.config)
        value = lookup(ctx.fields(), config.target_field)
        if value is MISSING:
            return PolicyResult.allow()
        if match_any(value, config.denied_values, case_sensitive=config.case_sensitive):
            return PolicyResult.deny(
                policy.message
                or f"Value '{value}' is in the denied list for field '{config.target_field}'"
            )
        return PolicyResult.allow()


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


class TimeBasedEvaluator(PolicyEvaluator):
    policy_type = PolicyType.TIME_BASED

    async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        config = TimeBasedConfig.model_validate(policy.config)
        local = ctx.request.timestamp.astimezone(ZoneInfo(config.timezone))

        # isoweekday(): Monday=1 ... Sunday=7; policies use Sunday=0.
        day = local.isoweekday() % 7
        if config.allowed_days and day not in config.allowed_days:
            return PolicyResult.deny(
                policy.message or "Operation not allowed on this day of the week"
            )

        if config.allowed_hours_start and config.allowed_hours_end:
            current = local.hour * 60 + local.minute
            start = _minutes(config.allowed_hours_start)
            end = _minutes(config.allowed_hours_end)
            if current < start or current > end:
                return PolicyResult.deny(
                    policy.message
                    or f"Operation only allowed between {config.allowed_hours_start} "
                    f"and {config.allowed_hours_end}"
                )

        today = local.date()
        if config.start_date and today < config.start_date:
            return PolicyResult.deny(
                policy.message or "Operation not allowed before the policy start date"
            )
        if config.end_date and today > config.end_date:
            return PolicyResult.deny(
                policy.message or "Operation not allowed after the policy end date"
            )
        return PolicyResult.allow()


class CountBasedEvaluator(PolicyEvaluator):
    policy_type = PolicyType.COUNT_BASED

    def __init__(self, counter: UsageCounter) -> None:
        self._counter = counter

    async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        config = CountBasedConfig.model_validate(policy.config)
        key = window_key(
            policy.id,
            ctx.request.credential_id,
            config.time_window_seconds,
            ctx.now,
            ctx.request.operation if config.per_operation else None,
        )
        count = await self._counter.increment(key, config.time_window_seconds)

        if count > config.max_requests:
            return PolicyResult.deny(
                policy.message
                or f"Usage limit of {config.max_requests} requests per "
                f"{config.time_window_seconds}s exceeded"
            )
        return PolicyResult.allow()


class ManualApprovalEvaluator(PolicyEvaluator):
    policy_type = PolicyType.MANUAL_APPROVAL

    def __init__(self, approvals: ApprovalStore | None = None) -> None:
        self._approvals = approvals

    async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        config = ManualApprovalConfig.model_validate(policy.config)
        if self._approvals is not None and ctx.request_id:
            approval = await self._approvals.get(ctx.request_id)
            if approval is not None and approval.is_accepted():
                return PolicyResult.allow(f"approved by {approval.decided_by}")
        return PolicyResult.pending(
            policy.message
            or f"Request requires manual approval from {', '.join(config.approvers)}"
        )


def default_evaluators(
    counter: UsageCounter, approvals: ApprovalStore | None = None
) -> dict[PolicyType, PolicyEvaluator]:
    evaluators: list[PolicyEvaluator] = [
        AllowListEvaluator(),
        DenyListEvaluator(),
        TimeBasedEvaluator(),
        CountBasedEvaluator(counter),
        ManualApprovalEvaluator(approvals),
    ]
    return {e.policy_type: e for e in evaluators}
