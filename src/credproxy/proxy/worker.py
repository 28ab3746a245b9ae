# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Queue worker: executes approved requests through the plugin registry.

Retry rules:

* a failure before the plugin is invoked (storage trouble) is retried;
* a failure inside the plugin is retried only when the operation is
  declared idempotent and the plugin marked the error transient;
* lookup and validation failures (unknown or disabled credential,
  undeclared operation, missing parameter, undecryptable data) are final.

The request record is written ERROR only once no retry will follow.
"""

from __future__ import annotations

import logging
from typing import Any

import aiosqlite

from credproxy.audit.logger import AuditLogger
from credproxy.core.constants import TERMINAL_REQUEST_STATUSES, RequestStatus
from credproxy.core.crypto import CredentialCipher
from credproxy.core.exceptions import (
    DecryptionError,
    NotFoundError,
    PluginError,
    PluginExecutionError,
    StorageError,
)
from credproxy.models.credential import Credential
from credproxy.plugins.registry import PluginRegistry
from credproxy.proxy.queue import Job, JobOutcome
from credproxy.storage.repositories.credentials import CredentialRepository
from credproxy.storage.repositories.requests import RequestRepository

logger = logging.getLogger("credproxy.proxy.worker")


class ProxyWorker:
    """Handles one queued job per call to :meth:`handle`.  Never raises."""

    def __init__(
        self,
        *,
        requests: RequestRepository,
        credentials: CredentialRepository,
        plugins: PluginRegistry,
        cipher: CredentialCipher,
        audit: AuditLogger | None = None,
    ) -> None:
        self._requests = requests
        self._credentials = credentials
        self._plugins = plugins
        self._cipher = cipher
        self._audit = audit or AuditLogger()

    async def handle(self, job: Job) -> JobOutcome:
        payload = job.payload
        request_id = payload.request_id

        try:
            record = await self._requests.get(request_id)
            if record is None:
                logger.error("Job %s has no request record; dropping", request_id)
                return JobOutcome.DONE
            if record.status in TERMINAL_REQUEST_STATUSES:
                logger.info("Request %s already %s; skipping redelivery", request_id, record.status)
                return JobOutcome.DONE
            attempts = await self._requests.record_attempt(request_id)
            credential = await self._load_credential(payload.credential_id)
            _, operation = self._plugins.resolve_operation(
                credential.type, payload.operation, dict(payload.parameters)
            )
            # Decrypted only for the duration of this attempt.
            secret = self._cipher.decrypt(
                credential.encrypted_data, credential_id=credential.id
            )
        except (NotFoundError, PluginError, DecryptionError) as exc:
            return await self._fail(request_id, str(exc), attempts=job.attempt)
        except (StorageError, aiosqlite.Error) as exc:
            logger.warning("Storage error preparing request %s: %s", request_id, exc)
            if job.is_last_attempt:
                return await self._fail(request_id, f"storage error: {exc}", attempts=job.attempt)
            return JobOutcome.RETRY

        try:
            result = await self._plugins.execute(
                credential.type, payload.operation, secret, dict(payload.parameters)
            )
        except PluginExecutionError as exc:
            retryable = exc.transient and operation.idempotent
            return await self._plugin_failed(job, str(exc), retryable)
        except Exception as exc:
            logger.exception("Plugin %s crashed on request %s", credential.type, request_id)
            return await self._plugin_failed(job, f"plugin error: {exc}", retryable=False)
        finally:
            del secret

        try:
            await self._requests.update_status(
                request_id, RequestStatus.COMPLETED, response_data=_jsonable(result)
            )
        except (StorageError, aiosqlite.Error):
            # The operation ran; re-running it to record the result is not safe.
            logger.exception("Failed to store result of request %s", request_id)
            return JobOutcome.DONE

        logger.info(
            "Request %s completed after %d attempt(s)",
            request_id,
            attempts,
            extra={"request_id": request_id},
        )
        await self._audit.request_finished(request_id, success=True, attempts=attempts)
        return JobOutcome.DONE

    async def _load_credential(self, credential_id: str) -> Credential:
        credential = await self._credentials.get(credential_id)
        if credential is None:
            raise NotFoundError(f"Credential {credential_id} not found")
        if not credential.is_enabled:
            raise NotFoundError(f"Credential {credential_id} is disabled")
        return credential

    async def _plugin_failed(self, job: Job, message: str, retryable: bool) -> JobOutcome:
        if retryable and not job.is_last_attempt:
            logger.warning("Request %s attempt %d failed: %s", job.id, job.attempt, message)
            return JobOutcome.RETRY
        return await self._fail(job.id, message, attempts=job.attempt)

    async def _fail(self, request_id: str, message: str, *, attempts: int) -> JobOutcome:
        logger.error(
            "Request %s failed: %s", request_id, message, extra={"request_id": request_id}
        )
        try:
            await self._requests.update_status(
                request_id, RequestStatus.ERROR, response_data={"error": message}
            )
        except (StorageError, aiosqlite.Error):
            logger.exception("Failed to mark request %s as ERROR", request_id)
        await self._audit.request_finished(
            request_id, success=False, attempts=attempts, error=message
        )
        return JobOutcome.DONE


def _jsonable(result: Any) -> Any:
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    return result
