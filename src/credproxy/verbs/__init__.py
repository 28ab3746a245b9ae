# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Verb registry mapping human-readable actions to plugin operations."""

from credproxy.verbs.models import Verb, VerbParameter, VerbResolution
from credproxy.verbs.registry import DEFAULT_VERBS, VerbRegistry

__all__ = ["DEFAULT_VERBS", "Verb", "VerbParameter", "VerbRegistry", "VerbResolution"]
