# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the policy evaluation engine and per-type evaluators."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from credproxy.core.constants import (
    DEFAULT_APPROVAL_REASON,
    DecisionStatus,
    PolicyScope,
    PolicyType,
)
from credproxy.models.policy import Policy
from credproxy.models.request import ProxyRequest
from credproxy.policies.approvals import ApprovalStore
from credproxy.policies.counter import MemoryUsageCounter
from credproxy.policies.engine import PolicyEngine, select_applicable
from credproxy.policies.evaluators import EvaluationContext, PolicyEvaluator, PolicyResult

# 2026-03-02 is a Monday, 2026-03-01 a Sunday.
MONDAY_10 = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
SUNDAY_10 = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(
    operation: str = "GET",
    parameters: dict[str, Any] | None = None,
    timestamp: datetime = MONDAY_10,
) -> ProxyRequest:
    return ProxyRequest(
        application_id="app-1",
        credential_id="cred-1",
        operation=operation,
        parameters=parameters or {"url": "https://api.example.com/v1/users"},
        timestamp=timestamp,
    )


def _policy(
    policy_id: str,
    policy_type: PolicyType,
    config: dict[str, Any],
    *,
    priority: int = 0,
    is_active: bool = True,
    **extra: Any,
) -> Policy:
    return Policy(
        id=policy_id,
        name=f"policy {policy_id}",
        type=policy_type,
        config=config,
        priority=priority,
        is_active=is_active,
        **extra,
    )


def allow_ops(policy_id: str, *ops: str, priority: int = 0, **extra: Any) -> Policy:
    return _policy(
        policy_id,
        PolicyType.ALLOW_LIST,
        {"targetField": "operation", "allowedValues": list(ops)},
        priority=priority,
        **extra,
    )


def deny_ops(policy_id: str, *ops: str, priority: int = 0, **extra: Any) -> Policy:
    return _policy(
        policy_id,
        PolicyType.DENY_LIST,
        {"targetField": "operation", "deniedValues": list(ops)},
        priority=priority,
        **extra,
    )


def manual(policy_id: str, *, priority: int = 0) -> Policy:
    return _policy(
        policy_id, PolicyType.MANUAL_APPROVAL, {"approvers": ["alice"]}, priority=priority
    )


WORKING_HOURS = {
    "allowedDays": [1, 2, 3, 4, 5],
    "allowedHoursStart": "09:00",
    "allowedHoursEnd": "17:00",
}


@pytest.fixture
def engine() -> PolicyEngine:
    return PolicyEngine(MemoryUsageCounter())


# ---------------------------------------------------------------------------
# Decision algorithm
# ---------------------------------------------------------------------------


class TestDecisionAlgorithm:
    async def test_no_policies_approves_by_default(self, engine: PolicyEngine) -> None:
        decision = await engine.evaluate(_request(), [])
        assert decision.status == DecisionStatus.APPROVED
        assert decision.reason == DEFAULT_APPROVAL_REASON
        assert decision.reason == "no policies found, default approval"
        assert decision.policy_id is None

    async def test_only_inactive_policies_counts_as_none(self, engine: PolicyEngine) -> None:
        decision = await engine.evaluate(_request(), [deny_ops("d", "GET", is_active=False)])
        assert decision.reason == DEFAULT_APPROVAL_REASON

    @pytest.mark.parametrize("manual_priority", [-100, 0, 5, 1000])
    async def test_manual_approval_always_pending(
        self, engine: PolicyEngine, manual_priority: int
    ) -> None:
        policies = [
            allow_ops("allow", "GET", priority=100),
            deny_ops("deny", "GET", priority=50),
            manual("gate", priority=manual_priority),
        ]
        decision = await engine.evaluate(_request(), policies)
        assert decision.status == DecisionStatus.PENDING
        assert decision.policy_id == "gate"

    async def test_first_denial_by_priority_wins(self, engine: PolicyEngine) -> None:
        policies = [
            deny_ops("low-deny", "GET", priority=1),
            deny_ops("high-deny", "GET", priority=10),
            allow_ops("allow", "GET", priority=5),
        ]
        decision = await engine.evaluate(_request(), policies)
        assert decision.status == DecisionStatus.DENIED
        assert decision.policy_id == "high-deny"

    async def test_approval_cites_highest_priority_policy(self, engine: PolicyEngine) -> None:
        policies = [allow_ops("p10", "GET", priority=10), allow_ops("p100", "GET", priority=100)]
        decision = await engine.evaluate(_request(), policies)
        assert decision.status == DecisionStatus.APPROVED
        assert "p100" in decision.reason
        assert "p10)" not in decision.reason
        assert decision.policy_id == "p100"

    @pytest.mark.parametrize(
        "policies",
        [
            [allow_ops("a", "GET")],
            [deny_ops("d", "GET")],
            [allow_ops("a", "POST", priority=3), deny_ops("d", "DELETE")],
            [manual("m")],
        ],
    )
    async def test_inactive_policy_never_changes_outcome(
        self, policies: list[Policy]
    ) -> None:
        inactive = [
            deny_ops("x-deny", "*", is_active=False, priority=999),
            manual("x-gate").model_copy(update={"is_active": False}),
        ]
        without = await PolicyEngine(MemoryUsageCounter()).evaluate(_request(), policies)
        with_inactive = await PolicyEngine(MemoryUsageCounter()).evaluate(
            _request(), [*policies, *inactive]
        )
        assert with_inactive == without

    async def test_evaluator_exception_fails_closed(self) -> None:
        class Exploding(PolicyEvaluator):
            policy_type = PolicyType.ALLOW_LIST

            async def evaluate(self, policy: Policy, ctx: EvaluationContext) -> PolicyResult:
                raise RuntimeError("boom")

        engine = PolicyEngine(evaluators={PolicyType.ALLOW_LIST: Exploding()})
        decision = await engine.evaluate(_request(), [allow_ops("a", "GET")])
        assert decision.status == DecisionStatus.DENIED
        assert decision.policy_id == "a"
        assert "boom" in decision.reason

    async def test_malformed_config_fails_closed(self, engine: PolicyEngine) -> None:
        broken = _policy("broken", PolicyType.ALLOW_LIST, {"targetField": "operation"})
        decision = await engine.evaluate(_request(), [broken])
        assert decision.status == DecisionStatus.DENIED
        assert decision.policy_id == "broken"


# ---------------------------------------------------------------------------
# Policy selection
# ---------------------------------------------------------------------------


class TestSelectApplicable:
    def test_scopes_and_ordering(self) -> None:
        policies = [
            allow_ops("global", "GET", priority=1),
            allow_ops(
                "cred", "GET", priority=5, scope=PolicyScope.CREDENTIAL, credential_id="cred-1"
            ),
            allow_ops(
                "other-cred",
                "GET",
                priority=9,
                scope=PolicyScope.CREDENTIAL,
                credential_id="cred-2",
            ),
            allow_ops("plugin", "GET", priority=3, scope=PolicyScope.PLUGIN, plugin_type="API_KEY"),
            allow_ops("cookie", "GET", priority=7, scope=PolicyScope.PLUGIN, plugin_type="COOKIE"),
            allow_ops("off", "GET", priority=100, is_active=False),
        ]
        selected = select_applicable(policies, credential_id="cred-1", plugin_type="API_KEY")
        assert [p.id for p in selected] == ["cred", "plugin", "global"]

    def test_equal_priorities_keep_input_order(self) -> None:
        policies = [allow_ops("first", "GET"), allow_ops("second", "GET")]
        selected = select_applicable(policies, credential_id="c", plugin_type="API_KEY")
        assert [p.id for p in selected] == ["first", "second"]


# ---------------------------------------------------------------------------
# Per-type evaluators
# ---------------------------------------------------------------------------


class TestAllowList:
    async def test_glob_on_nested_field(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "urls",
            PolicyType.ALLOW_LIST,
            {"targetField": "parameters.url", "allowedValues": ["https://api.example.com/*"]},
        )
        ok = await engine.evaluate(_request(), [policy])
        bad = await engine.evaluate(
            _request(parameters={"url": "https://evil.example.net/"}), [policy]
        )
        assert ok.status == DecisionStatus.APPROVED
        assert bad.status == DecisionStatus.DENIED
        assert "not in the allowed list" in bad.reason

    async def test_missing_field_denies(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "method",
            PolicyType.ALLOW_LIST,
            {"targetField": "parameters.method", "allowedValues": ["*"]},
        )
        decision = await engine.evaluate(_request(), [policy])
        assert decision.status == DecisionStatus.DENIED

    async def test_custom_message(self, engine: PolicyEngine) -> None:
        policy = allow_ops("a", "POST", message="reads only")
        decision = await engine.evaluate(_request(), [policy])
        assert decision.reason == "reads only"


class TestDenyList:
    async def test_match_denies(self, engine: PolicyEngine) -> None:
        decision = await engine.evaluate(_request("DELETE"), [deny_ops("d", "DEL*")])
        assert decision.status == DecisionStatus.DENIED
        assert decision.policy_id == "d"

    async def test_missing_field_allows(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "d", PolicyType.DENY_LIST, {"targetField": "parameters.method", "deniedValues": ["*"]}
        )
        decision = await engine.evaluate(_request(), [policy])
        assert decision.status == DecisionStatus.APPROVED

    async def test_case_insensitive(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "d",
            PolicyType.DENY_LIST,
            {"targetField": "operation", "deniedValues": ["delete"], "caseSensitive": False},
        )
        decision = await engine.evaluate(_request("DELETE"), [policy])
        assert decision.status == DecisionStatus.DENIED


class TestTimeBased:
    async def test_monday_morning_approved(self, engine: PolicyEngine) -> None:
        policy = _policy("hours", PolicyType.TIME_BASED, WORKING_HOURS)
        decision = await engine.evaluate(_request(timestamp=MONDAY_10), [policy])
        assert decision.status == DecisionStatus.APPROVED

    async def test_sunday_morning_denied(self, engine: PolicyEngine) -> None:
        policy = _policy("hours", PolicyType.TIME_BASED, WORKING_HOURS)
        decision = await engine.evaluate(_request(timestamp=SUNDAY_10), [policy])
        assert decision.status == DecisionStatus.DENIED
        assert decision.reason == "Operation not allowed on this day of the week"

    @pytest.mark.parametrize(
        ("hour", "minute", "expected"),
        [
            (9, 0, DecisionStatus.APPROVED),
            (17, 0, DecisionStatus.APPROVED),
            (8, 59, DecisionStatus.DENIED),
            (17, 1, DecisionStatus.DENIED),
        ],
    )
    async def test_hour_bounds_are_inclusive(
        self, engine: PolicyEngine, hour: int, minute: int, expected: DecisionStatus
    ) -> None:
        policy = _policy("hours", PolicyType.TIME_BASED, WORKING_HOURS)
        ts = MONDAY_10.replace(hour=hour, minute=minute)
        decision = await engine.evaluate(_request(timestamp=ts), [policy])
        assert decision.status == expected

    async def test_policy_timezone(self, engine: PolicyEngine) -> None:
        # 10:00 UTC Monday is 19:00 in Tokyo.
        policy = _policy(
            "tokyo", PolicyType.TIME_BASED, {**WORKING_HOURS, "timezone": "Asia/Tokyo"}
        )
        decision = await engine.evaluate(_request(timestamp=MONDAY_10), [policy])
        assert decision.status == DecisionStatus.DENIED

    async def test_date_range(self, engine: PolicyEngine) -> None:
        policy = _policy("window", PolicyType.TIME_BASED, {"endDate": "2026-03-01"})
        decision = await engine.evaluate(_request(timestamp=MONDAY_10), [policy])
        assert decision.status == DecisionStatus.DENIED


class TestCountBased:
    async def test_denies_once_limit_reached(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "quota", PolicyType.COUNT_BASED, {"maxRequests": 2, "timeWindowSeconds": 60}
        )
        results = [
            (await engine.evaluate(_request(), [policy], now=MONDAY_10)).status for _ in range(3)
        ]
        assert results == [
            DecisionStatus.APPROVED,
            DecisionStatus.APPROVED,
            DecisionStatus.DENIED,
        ]

    async def test_new_window_resets(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "quota", PolicyType.COUNT_BASED, {"maxRequests": 1, "timeWindowSeconds": 60}
        )
        first = await engine.evaluate(_request(), [policy], now=MONDAY_10)
        later = await engine.evaluate(
            _request(), [policy], now=MONDAY_10 + timedelta(seconds=120)
        )
        assert first.status == later.status == DecisionStatus.APPROVED

    async def test_pending_gate_does_not_charge(self, engine: PolicyEngine) -> None:
        quota = _policy(
            "quota", PolicyType.COUNT_BASED, {"maxRequests": 1, "timeWindowSeconds": 60}
        )
        for n in range(3):
            decision = await engine.evaluate(
                _request(), [manual("m"), quota], request_id=f"r{n}", now=MONDAY_10
            )
            assert decision.status == DecisionStatus.PENDING
        decision = await engine.evaluate(_request(), [quota], now=MONDAY_10)
        assert decision.status == DecisionStatus.APPROVED

    async def test_per_operation_buckets(self, engine: PolicyEngine) -> None:
        policy = _policy(
            "quota",
            PolicyType.COUNT_BASED,
            {"maxRequests": 1, "timeWindowSeconds": 60, "perOperation": True},
        )
        get = await engine.evaluate(_request("GET"), [policy], now=MONDAY_10)
        post = await engine.evaluate(_request("POST"), [policy], now=MONDAY_10)
        assert get.status == post.status == DecisionStatus.APPROVED


class TestManualApproval:
    async def test_without_store_stays_pending(self, engine: PolicyEngine) -> None:
        decision = await engine.evaluate(_request(), [manual("m")], request_id="r1")
        assert decision.status == DecisionStatus.PENDING
        assert "alice" in decision.reason

    async def test_accepted_approval_lets_other_policies_decide(self, db) -> None:
        store = ApprovalStore(db)
        engine = PolicyEngine(MemoryUsageCounter(), store)
        await store.create("r1", "m", ["alice"], 60)
        await store.approve("r1", "alice")

        approved = await engine.evaluate(_request(), [manual("m")], request_id="r1")
        assert approved.status == DecisionStatus.APPROVED

        denied = await engine.evaluate(
            _request(), [manual("m"), deny_ops("d", "GET")], request_id="r1"
        )
        assert denied.status == DecisionStatus.DENIED
        assert denied.policy_id == "d"

    async def test_rejected_approval_stays_pending(self, db) -> None:
        store = ApprovalStore(db)
        engine = PolicyEngine(MemoryUsageCounter(), store)
        await store.create("r1", "m", ["alice"], 60)
        await store.reject("r1", "alice")
        decision = await engine.evaluate(_request(), [manual("m")], request_id="r1")
        assert decision.status == DecisionStatus.PENDING
