# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Canonical request payload and signature helpers.

Applications sign the compact JSON object

    {"applicationId":..,"credentialId":..,"operation":..,"parameters":..,"timestamp":..}

with keys in exactly that order.  RSA keys sign with PKCS#1 v1.5 over
SHA-256; Ed25519 keys sign the payload bytes directly.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, padding, rsa

SIGNED_FIELDS = ("applicationId", "credentialId", "operation", "parameters", "timestamp")

PrivateKey = rsa.RSAPrivateKey | ed25519.Ed25519PrivateKey


def canonical_payload(fields: dict[str, Any]) -> bytes:
    """Serialize the signed fields of a raw request body."""
    ordered = {name: fields.get(name) for name in SIGNED_FIELDS}
    if ordered["parameters"] is None:
        ordered["parameters"] = {}
    return json.dumps(ordered, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_payload(private_key: PrivateKey, fields: dict[str, Any]) -> str:
    """Return the base64 signature an application sends with *fields*."""
    payload = canonical_payload(fields)
    if isinstance(private_key, rsa.RSAPrivateKey):
        signature = private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
    else:
        signature = private_key.sign(payload)
    return base64.b64encode(signature).decode("ascii")


def verify_signature(public_key_pem: str, fields: dict[str, Any], signature_b64: str) -> bool:
    """Return ``True`` if *signature_b64* is valid for *fields* under the key.

    Unparseable keys, unsupported key types and malformed base64 all
    verify as ``False``.
    """
    try:
        signature = base64.b64decode(signature_b64, validate=True)
        public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    except (binascii.Error, ValueError, TypeError, AttributeError):
        return False

    payload = canonical_payload(fields)
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature, payload, padding.PKCS1v15(), hashes.SHA256())
        elif isinstance(public_key, ed25519.Ed25519PublicKey):
            public_key.verify(signature, payload)
        else:
            return False
    except InvalidSignature:
        return False
    return True


def public_key_pem(private_key: PrivateKey) -> str:
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("ascii")
    )
