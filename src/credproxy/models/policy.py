# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Policy, typed policy configuration and evaluation decision models."""

from __future__ import annotations

import re
from datetime import date
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from credproxy.core.constants import DecisionStatus, PolicyScope, PolicyType

_HHMM = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


class _ConfigModel(BaseModel):
    """Accepts both camelCase (stored by the dashboard) and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AllowListConfig(_ConfigModel):
    target_field: str = Field(min_length=1)
    allowed_values: list[str] = Field(min_length=1)
    case_sensitive: bool = True


class DenyListConfig(_ConfigModel):
    target_field: str = Field(min_length=1)
    denied_values: list[str] = Field(min_length=1)
    case_sensitive: bool = True


class TimeBasedConfig(_ConfigModel):
    allowed_days: list[int] | None = None  # 0 = Sunday ... 6 = Saturday
    allowed_hours_start: str | None = None
    allowed_hours_end: str | None = None
    timezone: str = "UTC"
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("allowed_days")
    @classmethod
    def _check_days(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(d < 0 or d > 6 for d in v):
            raise ValueError("allowed_days entries must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @field_validator("allowed_hours_start", "allowed_hours_end")
    @classmethod
    def _check_hhmm(cls, v: str | None) -> str | None:
        if v is not None and not _HHMM.match(v):
            raise ValueError(f"Expected HH:MM, got {v!r}")
        return v

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v


class CountBasedConfig(_ConfigModel):
    max_requests: int = Field(ge=1)
    time_window_seconds: int = Field(ge=1)
    per_operation: bool = False


class ManualApprovalConfig(_ConfigModel):
    approvers: list[str] = Field(min_length=1)
    expiration_minutes: int = Field(default=60, ge=1)


PolicyConfig = (
    AllowListConfig | DenyListConfig | TimeBasedConfig | CountBasedConfig | ManualApprovalConfig
)

CONFIG_MODELS: dict[PolicyType, type[_ConfigModel]] = {
    PolicyType.ALLOW_LIST: AllowListConfig,
    PolicyType.DENY_LIST: DenyListConfig,
    PolicyType.TIME_BASED: TimeBasedConfig,
    PolicyType.COUNT_BASED: CountBasedConfig,
    PolicyType.MANUAL_APPROVAL: ManualApprovalConfig,
}


class Policy(BaseModel):
    """A configured access rule.

    Written by the policy CRUD layer; the engine only reads it.  ``config``
    is kept as a raw mapping so a malformed configuration surfaces at
    evaluation time (where it fails closed) instead of hiding the policy.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    type: PolicyType
    scope: PolicyScope = PolicyScope.GLOBAL
    credential_id: str | None = None
    plugin_type: str | None = None
    is_active: bool = True
    priority: int = 0
    config: dict[str, Any] = Field(default_factory=dict)
    message: str | None = None

    @model_validator(mode="after")
    def _check_scope_target(self) -> Policy:
        if self.scope == PolicyScope.CREDENTIAL and not self.credential_id:
            raise ValueError("CREDENTIAL-scoped policies require credential_id")
        if self.scope == PolicyScope.PLUGIN and not self.plugin_type:
            raise ValueError("PLUGIN-scoped policies require plugin_type")
        return self

    def typed_config(self) -> PolicyConfig:
        """Parse ``config`` into the model for this policy's type."""
        return CONFIG_MODELS[self.type].model_validate(self.config)  # type: ignore[return-value]


class Decision(BaseModel):
    """Outcome of evaluating a request against a policy set."""

    status: DecisionStatus
    reason: str
    policy_id: str | None = None

    @property
    def approved(self) -> bool:
        return self.status == DecisionStatus.APPROVED

    @property
    def denied(self) -> bool:
        return self.status == DecisionStatus.DENIED

    @property
    def pending(self) -> bool:
        return self.status == DecisionStatus.PENDING
