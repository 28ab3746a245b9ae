# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for credproxy."""


class CredProxyError(Exception):
    """Base exception for all credproxy errors."""


class ConfigurationError(CredProxyError):
    """Invalid or missing configuration."""


class ValidationError(CredProxyError):
    """Malformed request: missing fields or an expired timestamp."""


class AuthenticationError(CredProxyError):
    """Request signature could not be verified."""


class NotFoundError(CredProxyError):
    """A referenced application, credential or request does not exist."""


class StorageError(CredProxyError):
    """Database or storage operation failed."""


class DecryptionError(CredProxyError):
    """Encrypted credential data could not be decrypted."""


class InfrastructureError(CredProxyError):
    """A backing service (queue, database) is unavailable."""


class QueueError(InfrastructureError):
    """A job could not be enqueued."""


class ApprovalError(CredProxyError):
    """Illegal approval state transition."""


class PluginError(CredProxyError):
    """Base class for plugin registry and execution errors."""


class PluginNotFoundError(PluginError):
    """No plugin is registered for a credential type."""


class PluginConflictError(PluginError):
    """A plugin is already registered for a credential type."""


class UnsupportedOperationError(PluginError):
    """The operation is not declared by the plugin."""


class MissingParameterError(PluginError):
    """A required operation parameter was not supplied."""


class PluginExecutionError(PluginError):
    """The plugin failed while talking to the third-party system.

    ``transient`` marks failures worth retrying (timeouts, 5xx responses).
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient
