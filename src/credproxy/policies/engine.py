# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Policy evaluation engine.

Combines every applicable policy into one :class:`Decision`:

1. No active policies: APPROVED (explicit fail-open default).
2. Any MANUAL_APPROVAL policy without an accepted approval: PENDING,
   whatever the priorities of the other policies.
3. Remaining policies are walked by priority, highest first; the first
   denial wins and is cited.
4. Otherwise APPROVED, citing the highest-priority policy.

An evaluator that raises, or a policy type with no evaluator, denies
(fail-closed) and is cited as the denying policy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from credproxy.core.constants import (
    DEFAULT_APPROVAL_REASON,
    DecisionStatus,
    PolicyScope,
    PolicyType,
)
from credproxy.models.policy import Decision, Policy
from credproxy.models.request import ProxyRequest
from credproxy.policies.approvals import ApprovalStore
from credproxy.policies.counter import MemoryUsageCounter, UsageCounter
from credproxy.policies.evaluators import (
    EvaluationContext,
    Outcome,
    PolicyEvaluator,
    PolicyResult,
    default_evaluators,
)

logger = logging.getLogger("credproxy.policies.engine")


def select_applicable(
    policies: Iterable[Policy], *, credential_id: str, plugin_type: str
) -> list[Policy]:
    """Filter *policies* to the active ones that apply, highest priority first.

    Applicable means GLOBAL, CREDENTIAL-scoped to *credential_id*, or
    PLUGIN-scoped to *plugin_type*.  The sort is stable, so equal
    priorities keep their input order.
    """
    selected = []
    for policy in policies:
        if not policy.is_active:
            continue
        if (
            policy.scope == PolicyScope.GLOBAL
            or (policy.scope == PolicyScope.CREDENTIAL and policy.credential_id == credential_id)
            or (policy.scope == PolicyScope.PLUGIN and policy.plugin_type == plugin_type)
        ):
            selected.append(policy)
    return sorted(selected, key=lambda p: p.priority, reverse=True)


class PolicyEngine:
    """Evaluates a request against an ordered policy set.

    Args:
        counter: Usage counter backing COUNT_BASED policies.
        approvals: Approval store consulted by MANUAL_APPROVAL policies.
            Without one, manual approval policies always stay pending.
        evaluators: Override the evaluator for individual policy types.
    """

    def __init__(
        self,
        counter: UsageCounter | None = None,
        approvals: ApprovalStore | None = None,
        evaluators: dict[PolicyType, PolicyEvaluator] | None = None,
    ) -> None:
        self._evaluators = default_evaluators(counter or MemoryUsageCounter(), approvals)
        if evaluators:
            self._evaluators.update(evaluators)

    async def evaluate(
        self,
        request: ProxyRequest,
        policies: Iterable[Policy],
        *,
        request_id: str | None = None,
        credential_type: str = "",
        now: datetime | None = None,
    ) -> Decision:
        active = sorted(
            (p for p in policies if p.is_active), key=lambda p: p.priority, reverse=True
        )
        if not active:
            return Decision(status=DecisionStatus.APPROVED, reason=DEFAULT_APPROVAL_REASON)

        ctx = EvaluationContext(
            request=request,
            request_id=request_id,
            credential_type=credential_type,
            now=now or datetime.now(UTC),
        )

        # Approval gates are checked before anything else so no allow, at
        # any priority, can bypass them.
        gates = [p for p in active if p.type == PolicyType.MANUAL_APPROVAL]
        for policy in gates:
            result = await self._run(policy, ctx)
            if result.outcome is Outcome.PENDING:
                return Decision(
                    status=DecisionStatus.PENDING, reason=result.reason, policy_id=policy.id
                )
            if result.outcome is Outcome.DENY:
                return Decision(
                    status=DecisionStatus.DENIED, reason=result.reason, policy_id=policy.id
                )

        for policy in active:
            if policy.type == PolicyType.MANUAL_APPROVAL:
                continue
            result = await self._run(policy, ctx)
            if result.outcome is not Outcome.ALLOW:
                logger.info("Request denied by policy %s (%s)", policy.name, policy.id)
                return Decision(
                    status=DecisionStatus.DENIED, reason=result.reason, policy_id=policy.id
                )

        top = active[0]
        return Decision(
            status=DecisionStatus.APPROVED,
            reason=f"approved by policy {top.name} ({top.id})",
            policy_id=top.id,
        )

    async def _run(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
        evaluator = self._evaluators.get(policy.type)
        if evaluator is None:
            logger.warning("No evaluator for policy type %s (policy %s)", policy.type, policy.id)
            return PolicyResult.deny(f"Unknown policy type: {policy.type}")
        try:
            return await evaluator.evaluate(policy, ctx)
        except Exception as exc:
            logger.error("Error evaluating policy %s: %s", policy.id, exc)
            return PolicyResult.deny(f"Error evaluating policy {policy.name}: {exc}")
