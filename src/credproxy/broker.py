# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Service container wiring the broker's components together.

Every service is constructed here and handed to its consumers explicitly;
nothing in the package keeps process-wide instances.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

import aiosqlite

from credproxy.audit.logger import AuditLogger
from credproxy.audit.store import AuditStore
from credproxy.core.config import Settings
from credproxy.core.crypto import CredentialCipher
from credproxy.plugins.base import CredentialPlugin
from credproxy.plugins.builtin import create_registry
from credproxy.plugins.registry import PluginRegistry
from credproxy.policies.approvals import ApprovalStore
from credproxy.policies.counter import UsageCounter, create_counter
from credproxy.policies.engine import PolicyEngine
from credproxy.proxy.pipeline import ProxyPipeline
from credproxy.proxy.queue import JobQueue, MemoryJobQueue
from credproxy.proxy.validator import RequestValidator
from credproxy.proxy.worker import ProxyWorker
from credproxy.storage.database import close_db, init_db
from credproxy.storage.repositories.applications import ApplicationRepository
from credproxy.storage.repositories.credentials import CredentialRepository
from credproxy.storage.repositories.policies import PolicyRepository
from credproxy.storage.repositories.requests import RequestRepository
from credproxy.verbs.registry import VerbRegistry

logger = logging.getLogger("credproxy.broker")

_APPROVAL_SWEEP_SECONDS = 30


@dataclass
class Broker:
    """All long-lived services for one running broker."""

    settings: Settings
    db: aiosqlite.Connection
    cipher: CredentialCipher
    plugins: PluginRegistry
    verbs: VerbRegistry
    applications: ApplicationRepository
    credentials: CredentialRepository
    policies: PolicyRepository
    requests: RequestRepository
    approvals: ApprovalStore
    counter: UsageCounter
    engine: PolicyEngine
    audit: AuditLogger
    audit_store: AuditStore
    queue: JobQueue
    worker: ProxyWorker
    pipeline: ProxyPipeline
    _sweeper: asyncio.Task[None] | None = field(default=None, repr=False)

    @classmethod
    async def create(
        cls,
        settings: Settings,
        *,
        plugins: list[CredentialPlugin] | None = None,
        queue: JobQueue | None = None,
    ) -> Broker:
        """Open the database and build every service from *settings*."""
        db = await init_db(settings.db_path, auto_migrate=settings.auto_migrate)
        try:
            return cls._build(settings, db, plugins, queue)
        except Exception:
            await close_db(db)
            raise

    @classmethod
    def _build(
        cls,
        settings: Settings,
        db: aiosqlite.Connection,
        plugins: list[CredentialPlugin] | None,
        queue: JobQueue | None,
    ) -> Broker:
        registry = create_registry(plugins)
        verbs = VerbRegistry()
        verbs.register_defaults()
        verbs.discover_plugin_verbs(registry)

        cipher = CredentialCipher(settings.encryption_key)
        applications = ApplicationRepository(db)
        credentials = CredentialRepository(db)
        policies = PolicyRepository(db)
        requests = RequestRepository(db)
        approvals = ApprovalStore(db)
        counter = create_counter(settings.counter_backend, db=db, redis_url=settings.redis_url)
        audit_store = AuditStore(db)
        audit = AuditLogger(audit_store)

        engine = PolicyEngine(counter, approvals)
        job_queue = queue or MemoryJobQueue(
            workers=settings.queue_workers,
            attempts=settings.queue_attempts,
            backoff_seconds=settings.queue_backoff_seconds,
        )
        worker = ProxyWorker(
            requests=requests,
            credentials=credentials,
            plugins=registry,
            cipher=cipher,
            audit=audit,
        )
        validator = RequestValidator(
            applications, validity_seconds=settings.timestamp_validity_seconds
        )
        pipeline = ProxyPipeline(
            validator=validator,
            engine=engine,
            queue=job_queue,
            applications=applications,
            credentials=credentials,
            policies=policies,
            requests=requests,
            approvals=approvals,
            audit=audit,
            default_approval_minutes=settings.approval_expiration_minutes,
        )
        return cls(
            settings=settings,
            db=db,
            cipher=cipher,
            plugins=registry,
            verbs=verbs,
            applications=applications,
            credentials=credentials,
            policies=policies,
            requests=requests,
            approvals=approvals,
            counter=counter,
            engine=engine,
            audit=audit,
            audit_store=audit_store,
            queue=job_queue,
            worker=worker,
            pipeline=pipeline,
        )

    async def start(self) -> None:
        """Start the workers and the approval expiry sweeper."""
        await self.queue.start(self.worker.handle)
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        await self.queue.stop()
        await self.counter.close()
        await close_db(self.db)
        logger.info("Broker stopped")

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await self.pipeline.expire_approvals()
            except Exception:
                logger.exception("Approval expiry sweep failed")
            await asyncio.sleep(_APPROVAL_SWEEP_SECONDS)
