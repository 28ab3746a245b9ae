# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Abstract base class and metadata types for credential plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from credproxy.core.constants import PolicyType

ALL_POLICY_TYPES: tuple[PolicyType, ...] = tuple(PolicyType)


@dataclass(frozen=True)
class PluginMetadata:
    """Immutable metadata describing a credential plugin."""

    type: str
    name: str
    version: str
    description: str = ""


@dataclass(frozen=True)
class OperationMetadata:
    """An operation a plugin can perform with its credential type.

    ``risk_level`` and the policy lists are advisory metadata for policy
    authoring; nothing enforces them.  ``idempotent`` operations may be
    re-invoked when a transient failure is retried.
    """

    name: str
    description: str = ""
    required_params: tuple[str, ...] = ()
    optional_params: tuple[str, ...] = ()
    risk_level: int = 5
    idempotent: bool = False
    applicable_policies: tuple[PolicyType, ...] = ALL_POLICY_TYPES
    recommended_policies: tuple[PolicyType, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= self.risk_level <= 10:
            raise ValueError(f"risk_level must be between 1 and 10, got {self.risk_level}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("required_params", "optional_params"):
            data[key] = list(data[key])
        for key in ("applicable_policies", "recommended_policies"):
            data[key] = [str(p) for p in data[key]]
        return data


@dataclass
class CredentialHealth:
    healthy: bool
    message: str = ""
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class OperationRiskAssessment:
    operation: str
    score: int
    factors: list[str] = field(default_factory=list)
    recommended_policies: list[PolicyType] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "score": self.score,
            "factors": list(self.factors),
            "recommendedPolicies": [str(p) for p in self.recommended_policies],
        }


class CredentialPlugin(ABC):
    """Executor for one credential type.

    Subclasses **must** implement:
      - ``plugin_metadata`` (property returning ``PluginMetadata``)
      - ``supported_operations`` (property returning the declared operations)
      - ``validate_credential``
      - ``execute_operation``

    The registry checks that an operation is declared and that its required
    parameters are present before ``execute_operation`` is called.
    Plugins are stateless: decrypted credential data is passed per call and
    must not be retained.
    """

    base_risk: int = 5

    @property
    @abstractmethod
    def plugin_metadata(self) -> PluginMetadata:
        """Return metadata describing this plugin."""
        ...

    @property
    @abstractmethod
    def supported_operations(self) -> tuple[OperationMetadata, ...]:
        """Return the operations this plugin can perform."""
        ...

    @property
    def type(self) -> str:
        return self.plugin_metadata.type

    @abstractmethod
    def validate_credential(self, credential_data: dict[str, Any]) -> str | None:
        """Return an error message if *credential_data* is unusable, else ``None``."""
        ...

    @abstractmethod
    async def execute_operation(
        self,
        operation: str,
        credential_data: dict[str, Any],
        params: dict[str, Any],
    ) -> Any:
        """Perform *operation* and return a JSON-serialisable result.

        Raises:
            PluginExecutionError: The third-party call failed.
        """
        ...

    # -- shared behaviour ---------------------------------------------------

    def get_operation(self, name: str) -> OperationMetadata | None:
        for op in self.supported_operations:
            if op.name == name:
                return op
        return None

    def missing_params(self, operation: OperationMetadata, params: dict[str, Any]) -> list[str]:
        return [p for p in operation.required_params if params.get(p) is None]

    async def check_credential_health(self, credential_data: dict[str, Any]) -> CredentialHealth:
        """Report whether the credential looks usable.  Offline by default."""
        error = self.validate_credential(credential_data)
        if error:
            return CredentialHealth(healthy=False, message=error)
        return CredentialHealth(healthy=True, message="credential is valid")

    def assess_operation_risk(
        self, operation: str, context: dict[str, Any] | None = None
    ) -> OperationRiskAssessment:
        op = self.get_operation(operation)
        if op is None:
            return OperationRiskAssessment(
                operation=operation,
                score=self.base_risk,
                factors=["operation is not declared by this plugin"],
            )
        factors = [f"declared risk level {op.risk_level}"]
        if not op.idempotent:
            factors.append("operation is not idempotent")
        if op.risk_level >= 7:
            factors.append("high-risk operation")
        return OperationRiskAssessment(
            operation=operation,
            score=op.risk_level,
            factors=factors,
            recommended_policies=list(op.recommended_policies),
        )
