# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the audit trail: events, persistence and the logger."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

from credproxy.audit.events import AuditEvent, AuditEventType
from credproxy.audit.logger import AuditLogger
from credproxy.audit.store import AuditStore

# ---------------------------------------------------------------------------
# AuditEvent
# ---------------------------------------------------------------------------


class TestAuditEvent:
    def test_defaults(self) -> None:
        event = AuditEvent(event_type=AuditEventType.REQUEST_SUBMITTED)
        assert len(event.event_id) == 32
        assert event.actor == "system"
        assert event.resource_type == "proxy_request"
        assert event.details == {}

    def test_event_ids_are_unique(self) -> None:
        a = AuditEvent(event_type=AuditEventType.REQUEST_DENIED)
        b = AuditEvent(event_type=AuditEventType.REQUEST_DENIED)
        assert a.event_id != b.event_id


# ---------------------------------------------------------------------------
# AuditStore
# ---------------------------------------------------------------------------


class TestAuditStore:
    async def test_insert_and_list(self, db) -> None:
        store = AuditStore(db)
        event = AuditEvent(
            event_type=AuditEventType.REQUEST_DENIED,
            actor="app-1",
            resource_id="req-1",
            details={"reason": "blocked"},
        )
        await store.insert(event)

        rows = await store.list_events()
        assert len(rows) == 1
        assert rows[0]["event_id"] == event.event_id
        assert rows[0]["event_type"] == "request_denied"
        assert rows[0]["details"] == {"reason": "blocked"}

    async def test_filters(self, db) -> None:
        store = AuditStore(db)
        await store.insert(
            AuditEvent(event_type=AuditEventType.REQUEST_SUBMITTED, actor="app-1", resource_id="r1")
        )
        await store.insert(
            AuditEvent(event_type=AuditEventType.REQUEST_DENIED, actor="app-2", resource_id="r2")
        )
        await store.insert(
            AuditEvent(event_type=AuditEventType.APPROVAL_GRANTED, actor="alice", resource_id="r1")
        )

        assert len(await store.list_events(resource_id="r1")) == 2
        assert [r["actor"] for r in await store.list_events(event_type="request_denied")] == [
            "app-2"
        ]
        assert [r["resource_id"] for r in await store.list_events(actor="alice")] == ["r1"]
        assert len(await store.list_events(limit=1)) == 1
        assert await store.count_events() == 3
        assert await store.count_events(resource_id="r1", actor="alice") == 1


# ---------------------------------------------------------------------------
# AuditLogger
# ---------------------------------------------------------------------------


class TestAuditLogger:
    async def test_helpers_persist_events(self, db) -> None:
        store = AuditStore(db)
        audit = AuditLogger(store)
        await audit.request_submitted("r1", "app-1", "cred-1", "echo")
        await audit.request_denied("r2", "app-1", "cred-1", "echo", reason="no", policy_id="p1")

        denied = await store.list_events(event_type="request_denied")
        assert denied[0]["details"]["policy_id"] == "p1"
        assert denied[0]["details"]["reason"] == "no"

    async def test_store_failure_is_swallowed(self, caplog) -> None:
        store = AsyncMock(spec=AuditStore)
        store.insert.side_effect = RuntimeError("disk full")
        audit = AuditLogger(store)

        with caplog.at_level(logging.ERROR, logger="credproxy.audit"):
            event = await audit.request_submitted("r1", "app-1", "cred-1", "echo")

        assert event.resource_id == "r1"
        assert "Failed to persist audit event" in caplog.text

    async def test_without_store_only_logs(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="credproxy.audit"):
            await AuditLogger().request_submitted("r1", "app-1", "cred-1", "echo")
        assert "request_submitted" in caplog.text

    async def test_details_never_carry_parameters(self, db) -> None:
        store = AuditStore(db)
        await AuditLogger(store).request_submitted("r1", "app-1", "cred-1", "echo")
        row = (await store.list_events())[0]
        assert set(row["details"]) == {"credential_id", "operation"}
