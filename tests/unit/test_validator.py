# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for request signing and the request validator."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from credproxy.models.credential import Application
from credproxy.proxy.signing import (
    canonical_payload,
    public_key_pem,
    sign_payload,
    verify_signature,
)
from credproxy.proxy.validator import (
    FailureKind,
    RequestValidator,
    parse_timestamp,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
NOW_MS = int(NOW.timestamp() * 1000)


class FakeApplications:
    def __init__(self, *apps: Application) -> None:
        self._apps = {a.id: a for a in apps}

    async def get(self, app_id: str) -> Application | None:
        return self._apps.get(app_id)


@pytest.fixture
def validator(signing_key) -> RequestValidator:
    apps = FakeApplications(
        Application(id="app-1", public_key=public_key_pem(signing_key)),
        Application(id="app-off", public_key=public_key_pem(signing_key), status="suspended"),
    )
    return RequestValidator(apps, validity_seconds=300, clock=lambda: NOW)


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


class TestCanonicalPayload:
    def test_key_order_and_compact_form(self) -> None:
        payload = canonical_payload(
            {
                "timestamp": 1,
                "signature": "ignored",
                "parameters": {"b": 1},
                "operation": "GET",
                "credentialId": "c",
                "applicationId": "a",
            }
        )
        assert payload == (
            b'{"applicationId":"a","credentialId":"c","operation":"GET",'
            b'"parameters":{"b":1},"timestamp":1}'
        )

    def test_missing_parameters_become_empty_object(self) -> None:
        payload = json.loads(canonical_payload({"applicationId": "a"}))
        assert payload["parameters"] == {}


class TestSignatures:
    @pytest.mark.parametrize(
        "key",
        [
            ed25519.Ed25519PrivateKey.generate(),
            rsa.generate_private_key(public_exponent=65537, key_size=2048),
        ],
        ids=["ed25519", "rsa"],
    )
    def test_sign_and_verify(self, key) -> None:
        fields = {"applicationId": "a", "credentialId": "c", "operation": "GET", "timestamp": 1}
        signature = sign_payload(key, fields)
        assert verify_signature(public_key_pem(key), fields, signature)
        assert not verify_signature(public_key_pem(key), {**fields, "operation": "POST"}, signature)

    def test_garbage_inputs_do_not_verify(self, signing_key) -> None:
        fields = {"applicationId": "a"}
        assert not verify_signature(public_key_pem(signing_key), fields, "not base64!")
        assert not verify_signature("not a pem", fields, sign_payload(signing_key, fields))


# ---------------------------------------------------------------------------
# Timestamp parsing
# ---------------------------------------------------------------------------


class TestParseTimestamp:
    def test_epoch_milliseconds(self) -> None:
        assert parse_timestamp(NOW_MS) == NOW

    def test_epoch_seconds(self) -> None:
        assert parse_timestamp(int(NOW.timestamp())) == NOW

    def test_numeric_string(self) -> None:
        assert parse_timestamp(str(NOW_MS)) == NOW

    def test_iso(self) -> None:
        assert parse_timestamp("2026-06-01T14:00:00+02:00") == NOW

    def test_naive_iso_is_utc(self) -> None:
        assert parse_timestamp("2026-06-01T12:00:00") == NOW

    @pytest.mark.parametrize("value", ["yesterday", True, None, [1], {"t": 1}])
    def test_unparseable(self, value) -> None:
        assert parse_timestamp(value) is None


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class TestRequestValidator:
    async def test_valid_request(self, validator: RequestValidator, sign_request) -> None:
        outcome = await validator.validate(sign_request(timestamp=NOW_MS))
        assert outcome.ok
        assert outcome.request is not None
        assert outcome.request.application_id == "app-1"
        assert outcome.request.parameters == {"message": "hi"}
        assert outcome.request.timestamp == NOW

    @pytest.mark.parametrize(
        "field", ["credentialId", "applicationId", "operation", "timestamp", "signature"]
    )
    async def test_missing_field(self, validator: RequestValidator, sign_request, field) -> None:
        body = sign_request(timestamp=NOW_MS)
        del body[field]
        outcome = await validator.validate(body)
        assert outcome.failure == FailureKind.MISSING_FIELDS
        assert outcome.message == "Missing required fields"

    async def test_parameters_must_be_object(self, validator: RequestValidator) -> None:
        body = {
            "applicationId": "app-1",
            "credentialId": "cred-1",
            "operation": "echo",
            "parameters": ["x"],
            "timestamp": NOW_MS,
            "signature": "c2ln",
        }
        outcome = await validator.validate(body)
        assert outcome.failure == FailureKind.MALFORMED

    @pytest.mark.parametrize("skew", [timedelta(seconds=-301), timedelta(seconds=301)])
    async def test_stale_timestamp_even_if_signed(
        self, validator: RequestValidator, sign_request, skew
    ) -> None:
        ts = int((NOW + skew).timestamp() * 1000)
        outcome = await validator.validate(sign_request(timestamp=ts))
        assert outcome.failure == FailureKind.EXPIRED_TIMESTAMP
        assert outcome.message == "Request timestamp is invalid or expired"

    async def test_edge_of_window_is_accepted(
        self, validator: RequestValidator, sign_request
    ) -> None:
        ts = int((NOW - timedelta(seconds=300)).timestamp() * 1000)
        outcome = await validator.validate(sign_request(timestamp=ts))
        assert outcome.ok

    async def test_expiry_checked_before_signature(self, validator: RequestValidator) -> None:
        body = {
            "applicationId": "app-1",
            "credentialId": "cred-1",
            "operation": "echo",
            "timestamp": NOW_MS - 3_600_000,
            "signature": "Ym9ndXM=",
        }
        outcome = await validator.validate(body)
        assert outcome.failure == FailureKind.EXPIRED_TIMESTAMP

    async def test_tampered_request(self, validator: RequestValidator, sign_request) -> None:
        body = sign_request(timestamp=NOW_MS)
        body["operation"] = "delete_everything"
        outcome = await validator.validate(body)
        assert outcome.failure == FailureKind.INVALID_SIGNATURE

    async def test_signed_with_another_key(
        self, validator: RequestValidator, sign_request
    ) -> None:
        other = ed25519.Ed25519PrivateKey.generate()
        outcome = await validator.validate(sign_request(timestamp=NOW_MS, key=other))
        assert outcome.failure == FailureKind.INVALID_SIGNATURE

    @pytest.mark.parametrize("app_id", ["app-unknown", "app-off"])
    async def test_unknown_or_inactive_application(
        self, validator: RequestValidator, sign_request, app_id
    ) -> None:
        outcome = await validator.validate(sign_request(application_id=app_id, timestamp=NOW_MS))
        assert outcome.failure == FailureKind.UNKNOWN_APPLICATION
