# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository layer for credproxy storage."""

from credproxy.storage.repositories.applications import ApplicationRepository
from credproxy.storage.repositories.credentials import CredentialRepository
from credproxy.storage.repositories.policies import PolicyRepository
from credproxy.storage.repositories.requests import RequestRepository

__all__ = [
    "ApplicationRepository",
    "CredentialRepository",
    "PolicyRepository",
    "RequestRepository",
]
