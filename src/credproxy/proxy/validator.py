# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Structural, freshness and signature checks for inbound proxy requests.

Checks run in a fixed order and stop at the first failure: required fields,
then timestamp freshness (regardless of signature), then the signature
against the calling application's registered public key.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

from credproxy.models.credential import Application
from credproxy.models.request import ProxyRequest
from credproxy.proxy.signing import verify_signature

logger = logging.getLogger("credproxy.proxy.validator")

REQUIRED_FIELDS = ("credentialId", "applicationId", "operation", "timestamp", "signature")

# Epoch values above this are taken to be milliseconds.
_MS_THRESHOLD = 100_000_000_000


class FailureKind(StrEnum):
    MISSING_FIELDS = "MISSING_FIELDS"
    MALFORMED = "MALFORMED"
    EXPIRED_TIMESTAMP = "EXPIRED_TIMESTAMP"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    UNKNOWN_APPLICATION = "UNKNOWN_APPLICATION"


FAILURE_MESSAGES: dict[FailureKind, str] = {
    FailureKind.MISSING_FIELDS: "Missing required fields",
    FailureKind.MALFORMED: "parameters must be an object",
    FailureKind.EXPIRED_TIMESTAMP: "Request timestamp is invalid or expired",
    FailureKind.INVALID_SIGNATURE: "Invalid signature",
    FailureKind.UNKNOWN_APPLICATION: "Application not found",
}


class ApplicationLookup(Protocol):
    async def get(self, app_id: str) -> Application | None: ...


@dataclass(frozen=True)
class ValidationOutcome:
    request: ProxyRequest | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES[self.failure] if self.failure else ""

    @classmethod
    def fail(cls, kind: FailureKind) -> ValidationOutcome:
        return cls(failure=kind)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse epoch milliseconds, epoch seconds or ISO-8601 into aware UTC."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)
    if isinstance(value, int | float):
        seconds = value / 1000 if abs(value) >= _MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    return None


class RequestValidator:
    """Validates raw request bodies into :class:`ProxyRequest` objects.

    Args:
        applications: Lookup for registered applications and their keys.
        validity_seconds: Maximum allowed ``|now - timestamp|``.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        applications: ApplicationLookup,
        *,
        validity_seconds: int = 300,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._applications = applications
        self._validity_seconds = validity_seconds
        self._clock = clock or (lambda: datetime.now(UTC))

    async def validate(self, raw: dict[str, Any]) -> ValidationOutcome:
        if any(raw.get(name) in (None, "") for name in REQUIRED_FIELDS):
            return ValidationOutcome.fail(FailureKind.MISSING_FIELDS)

        parameters = raw.get("parameters")
        if parameters is None:
            parameters = {}
        if not isinstance(parameters, dict):
            return ValidationOutcome.fail(FailureKind.MALFORMED)

        timestamp = parse_timestamp(raw["timestamp"])
        if timestamp is None:
            return ValidationOutcome.fail(FailureKind.EXPIRED_TIMESTAMP)
        skew = abs((self._clock() - timestamp).total_seconds())
        if skew > self._validity_seconds:
            return ValidationOutcome.fail(FailureKind.EXPIRED_TIMESTAMP)

        app_id = str(raw["applicationId"])
        application = await self._applications.get(app_id)
        if application is None or not application.is_active:
            logger.info("Request from unknown or inactive application %s", app_id)
            return ValidationOutcome.fail(FailureKind.UNKNOWN_APPLICATION)

        if not verify_signature(application.public_key, raw, str(raw["signature"])):
            logger.warning("Invalid signature from application %s", app_id)
            return ValidationOutcome.fail(FailureKind.INVALID_SIGNATURE)

        return ValidationOutcome(
            request=ProxyRequest(
                application_id=app_id,
                credential_id=str(raw["credentialId"]),
                operation=str(raw["operation"]),
                parameters=parameters,
                timestamp=timestamp,
                signature=str(raw["signature"]),
            )
        )
