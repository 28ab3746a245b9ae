# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations shared across the policy engine, pipeline and registries."""

from enum import StrEnum


class PolicyType(StrEnum):
    ALLOW_LIST = "ALLOW_LIST"
    DENY_LIST = "DENY_LIST"
    TIME_BASED = "TIME_BASED"
    COUNT_BASED = "COUNT_BASED"
    MANUAL_APPROVAL = "MANUAL_APPROVAL"


class PolicyScope(StrEnum):
    GLOBAL = "GLOBAL"
    PLUGIN = "PLUGIN"
    CREDENTIAL = "CREDENTIAL"


class DecisionStatus(StrEnum):
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    PENDING = "PENDING"


class RequestStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"
    DENIED = "DENIED"


class ApprovalStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class VerbScope(StrEnum):
    GLOBAL = "GLOBAL"
    PLUGIN = "PLUGIN"
    CREDENTIAL = "CREDENTIAL"


TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.COMPLETED, RequestStatus.ERROR, RequestStatus.DENIED}
)

DEFAULT_APPROVAL_REASON = "no policies found, default approval"
