# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Structured logging that keeps credential material out of log output.

Messages are scrubbed of bearer and basic tokens, secret-looking
``key=value`` / ``"key": "value"`` pairs, sealed credential envelopes and
PEM private keys.  Request correlation fields passed through ``extra=``
(see :data:`CONTEXT_FIELDS`) become top-level keys in JSON output.
"""

import json
import logging
import re
import sys
from typing import Any

REDACTED = "[REDACTED]"

REDACT_PATTERNS = [
    re.compile(r"((?:Bearer|Basic)\s+[A-Za-z0-9\-._~+/]{6})[A-Za-z0-9\-._~+/]*=*"),
    re.compile(
        r"""(["']?(?:api[_-]?key|token|password|secret|cookie|signature)["']?\s*[:=]\s*["']?)"""
        r"""[^"'\s,;}]+""",
        re.IGNORECASE,
    ),
    re.compile(r"(v1\.[A-Za-z0-9+/]{4})[A-Za-z0-9+/=]*\.[A-Za-z0-9+/=]+"),
    re.compile(r"(-----BEGIN [A-Z ]*PRIVATE KEY-----)[\s\S]*?-----END [A-Z ]*PRIVATE KEY-----"),
]

# Correlation fields lifted from ``logger.info(..., extra={...})``.
CONTEXT_FIELDS = ("request_id", "application_id", "credential_id", "policy_id")

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def redact_sensitive(text: str) -> str:
    for pattern in REDACT_PATTERNS:
        text = pattern.sub(rf"\1{REDACTED}", text)
    return text


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_sensitive(record.getMessage()),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            log_entry["exception"] = redact_sensitive(f"{type(exc).__name__}: {exc}")
        return json.dumps(log_entry)


class TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        request_id = getattr(record, "request_id", None)
        if request_id is not None:
            msg = f"{msg} [request={request_id}]"
        return redact_sensitive(msg)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Attach one stderr handler to the ``credproxy`` logger tree."""
    root = logging.getLogger("credproxy")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            TextFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
