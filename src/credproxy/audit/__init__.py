# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit trail for proxy request and approval lifecycle events."""

from credproxy.audit.events import AuditEvent, AuditEventType
from credproxy.audit.logger import AuditLogger
from credproxy.audit.store import AuditStore

__all__ = ["AuditEvent", "AuditEventType", "AuditLogger", "AuditStore"]
