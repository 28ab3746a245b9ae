# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""AES-256-GCM envelope for credential data at rest.

Only the transient decrypt path is used by the broker itself; ``encrypt``
exists for provisioning tools and tests.  Key management is external: the
configured secret is stretched with HKDF into the data key.
"""

from __future__ import annotations

import base64
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from credproxy.core.exceptions import ConfigurationError, DecryptionError

HKDF_SALT = b"credproxy"
_HKDF_INFO = b"credential-data"
_NONCE_BYTES = 12
_VERSION = "v1"


def derive_key(secret: str, length: int = 32) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=HKDF_SALT,
        info=_HKDF_INFO,
    )
    return hkdf.derive(secret.encode("utf-8"))


def generate_secret() -> str:
    """Return a fresh random secret suitable for ``CREDPROXY_ENCRYPTION_KEY``."""
    return base64.urlsafe_b64encode(os.urandom(32)).decode("ascii")


class CredentialCipher:
    """Encrypts and decrypts credential payloads (JSON objects).

    The serialized form is ``v1.<nonce_b64>.<ciphertext_b64>``; the
    credential id is bound as associated data when supplied so a ciphertext
    cannot be swapped between credentials.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ConfigurationError("Encryption key must not be empty")
        self._aead = AESGCM(derive_key(secret))

    def encrypt(self, data: dict[str, Any], *, credential_id: str = "") -> str:
        nonce = os.urandom(_NONCE_BYTES)
        plaintext = json.dumps(data, separators=(",", ":")).encode("utf-8")
        ciphertext = self._aead.encrypt(nonce, plaintext, credential_id.encode("utf-8") or None)
        return ".".join(
            (
                _VERSION,
                base64.b64encode(nonce).decode("ascii"),
                base64.b64encode(ciphertext).decode("ascii"),
            )
        )

    def decrypt(self, blob: str, *, credential_id: str = "") -> dict[str, Any]:
        try:
            version, nonce_b64, ct_b64 = blob.split(".")
        except (AttributeError, ValueError) as exc:
            raise DecryptionError("Malformed encrypted credential data") from exc
        if version != _VERSION:
            raise DecryptionError(f"Unsupported credential envelope version: {version}")

        try:
            nonce = base64.b64decode(nonce_b64)
            ciphertext = base64.b64decode(ct_b64)
            plaintext = self._aead.decrypt(nonce, ciphertext, credential_id.encode("utf-8") or None)
        except (InvalidTag, ValueError) as exc:
            raise DecryptionError("Credential data could not be decrypted") from exc

        try:
            data = json.loads(plaintext)
        except json.JSONDecodeError as exc:
            raise DecryptionError("Decrypted credential data is not valid JSON") from exc
        if not isinstance(data, dict):
            raise DecryptionError("Decrypted credential data must be an object")
        return data
