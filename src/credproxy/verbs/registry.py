# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""In-memory verb registry.

Verbs give policy authors readable names ("read credential", "api_key:GET")
for the operations the pipeline executes.  Bulk registration for a plugin or
credential type namespaces ids as ``{type}:{verb_id}`` so types never
collide.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from credproxy.core.constants import VerbScope
from credproxy.plugins.registry import PluginRegistry
from credproxy.verbs.models import Verb, VerbResolution

logger = logging.getLogger("credproxy.verbs.registry")

DEFAULT_VERBS: tuple[Verb, ...] = (
    Verb(
        id="access_application",
        name="access application",
        description="Access an application",
        scope=VerbScope.GLOBAL,
        operation="access",
        is_default=True,
        examples=["If any application wants to access application then allow"],
    ),
    Verb(
        id="read_credential",
        name="read credential",
        description="Read credential values",
        scope=VerbScope.CREDENTIAL,
        operation="read",
        is_default=True,
        examples=["If any application wants to read credential then allow"],
    ),
    Verb(
        id="use_credential",
        name="use credential",
        description="Use a credential for authentication",
        scope=VerbScope.CREDENTIAL,
        operation="use",
        is_default=True,
        examples=["If any application wants to use credential then allow"],
    ),
)


class VerbRegistry:
    """Insertion-ordered map of verb id to :class:`Verb`."""

    def __init__(self) -> None:
        self._verbs: dict[str, Verb] = {}

    def __len__(self) -> int:
        return len(self._verbs)

    def register(self, verb: Verb) -> Verb:
        """Add *verb*, or merge its explicitly set fields into an existing one."""
        existing = self._verbs.get(verb.id)
        if existing is not None:
            merged = Verb.model_validate(
                {**existing.model_dump(), **verb.model_dump(exclude_unset=True)}
            )
            self._verbs[verb.id] = merged
            logger.debug("Updated existing verb: %s", verb.id)
            return merged
        self._verbs[verb.id] = verb
        logger.debug("Registered new verb: %s", verb.id)
        return verb

    def unregister(self, verb_id: str) -> bool:
        removed = self._verbs.pop(verb_id, None) is not None
        if removed:
            logger.debug("Unregistered verb: %s", verb_id)
        return removed

    def get(self, verb_id: str) -> Verb | None:
        return self._verbs.get(verb_id)

    def query(
        self,
        *,
        scope: VerbScope | None = None,
        plugin_type: str | None = None,
        credential_type: str | None = None,
        search: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> list[Verb]:
        """Return verbs matching every supplied filter.

        ``search`` is a case-insensitive substring match over name and
        description; ``tags`` matches verbs sharing at least one tag.
        """
        result = list(self._verbs.values())
        if scope is not None:
            result = [v for v in result if v.scope == scope]
        if plugin_type:
            result = [
                v for v in result if v.scope == VerbScope.PLUGIN and v.plugin_type == plugin_type
            ]
        if credential_type:
            result = [
                v
                for v in result
                if v.scope == VerbScope.CREDENTIAL and v.credential_type == credential_type
            ]
        if search:
            needle = search.lower()
            result = [
                v for v in result if needle in v.name.lower() or needle in v.description.lower()
            ]
        wanted = set(tags or ())
        if wanted:
            result = [v for v in result if wanted.intersection(v.tags)]
        return result

    def resolve(self, verb_id: str, params: dict[str, Any]) -> VerbResolution | None:
        """Map a verb to its operation, applying declared parameter defaults."""
        verb = self._verbs.get(verb_id)
        if verb is None:
            logger.warning("Attempted to map unknown verb: %s", verb_id)
            return None
        resolved = dict(params)
        for param in verb.parameters:
            if param.name not in resolved and param.default_value is not None:
                resolved[param.name] = param.default_value
        return VerbResolution(verb_id=verb.id, operation=verb.operation, parameters=resolved)

    def register_for_plugin(self, plugin_type: str, verbs: Iterable[Verb]) -> list[Verb]:
        return [
            self.register(
                v.model_copy(
                    update={
                        "id": f"{plugin_type}:{v.id}",
                        "scope": VerbScope.PLUGIN,
                        "plugin_type": plugin_type,
                    }
                )
            )
            for v in verbs
        ]

    def register_for_credential(self, credential_type: str, verbs: Iterable[Verb]) -> list[Verb]:
        return [
            self.register(
                v.model_copy(
                    update={
                        "id": f"{credential_type}:{v.id}",
                        "scope": VerbScope.CREDENTIAL,
                        "credential_type": credential_type,
                    }
                )
            )
            for v in verbs
        ]

    def register_defaults(self) -> list[Verb]:
        registered = [self.register(v) for v in DEFAULT_VERBS]
        logger.info("Initialized verb registry with %d default verbs", len(registered))
        return registered

    def discover_plugin_verbs(self, plugins: PluginRegistry) -> list[Verb]:
        """Register one PLUGIN verb per operation declared by each plugin."""
        registered: list[Verb] = []
        for info in plugins.list_plugins():
            verbs = [
                Verb(
                    id=op.name,
                    name=op.name.replace("_", " ").lower(),
                    description=op.description,
                    operation=op.name,
                    tags=[info.type.lower()],
                )
                for op in info.operations
            ]
            registered.extend(self.register_for_plugin(info.type, verbs))
        return registered
