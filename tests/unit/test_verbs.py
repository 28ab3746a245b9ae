# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the verb registry."""

from __future__ import annotations

import pytest

from credproxy.core.constants import VerbScope
from credproxy.plugins.builtin import create_registry
from credproxy.verbs.models import Verb, VerbParameter
from credproxy.verbs.registry import DEFAULT_VERBS, VerbRegistry


@pytest.fixture
def registry() -> VerbRegistry:
    reg = VerbRegistry()
    reg.register_defaults()
    return reg


def _fetch_verb(**overrides) -> Verb:
    fields = {
        "id": "fetch",
        "name": "fetch page",
        "description": "Fetch a page of results",
        "operation": "GET",
        "parameters": [
            VerbParameter(name="url", required=True),
            VerbParameter(name="page", type="number", default_value=1),
        ],
        "tags": ["http", "read"],
    }
    fields.update(overrides)
    return Verb(**fields)


class TestRegistration:
    def test_defaults(self, registry: VerbRegistry) -> None:
        assert len(registry) == len(DEFAULT_VERBS) == 3
        verb = registry.get("read_credential")
        assert verb is not None
        assert verb.scope == VerbScope.CREDENTIAL
        assert verb.is_default

    def test_register_upserts(self, registry: VerbRegistry) -> None:
        registry.register(_fetch_verb())
        updated = registry.register(Verb(id="fetch", name="fetch", operation="GET", tags=["x"]))
        assert len(registry) == 4
        assert updated.tags == ["x"]
        # Fields not supplied on update keep their previous values.
        assert updated.description == "Fetch a page of results"
        assert [p.name for p in updated.parameters] == ["url", "page"]

    def test_unregister(self, registry: VerbRegistry) -> None:
        assert registry.unregister("use_credential") is True
        assert registry.unregister("use_credential") is False
        assert registry.get("use_credential") is None

    def test_camel_case_input(self) -> None:
        verb = Verb.model_validate(
            {"id": "v", "name": "v", "operation": "op", "pluginType": "API_KEY", "isDefault": True}
        )
        assert verb.plugin_type == "API_KEY"
        assert verb.model_dump(by_alias=True)["isDefault"] is True


class TestBulkRegistration:
    def test_register_for_plugin_namespaces_and_stamps_scope(
        self, registry: VerbRegistry
    ) -> None:
        [verb] = registry.register_for_plugin("API_KEY", [_fetch_verb()])
        assert verb.id == "API_KEY:fetch"
        assert verb.scope == VerbScope.PLUGIN
        assert verb.plugin_type == "API_KEY"

    def test_same_id_for_two_types_does_not_collide(self, registry: VerbRegistry) -> None:
        registry.register_for_plugin("API_KEY", [_fetch_verb()])
        registry.register_for_plugin("COOKIE", [_fetch_verb()])
        assert registry.get("API_KEY:fetch") is not None
        assert registry.get("COOKIE:fetch") is not None

    def test_register_for_credential(self, registry: VerbRegistry) -> None:
        [verb] = registry.register_for_credential("COOKIE", [_fetch_verb()])
        assert verb.id == "COOKIE:fetch"
        assert verb.scope == VerbScope.CREDENTIAL
        assert verb.credential_type == "COOKIE"

    def test_discover_plugin_verbs(self, registry: VerbRegistry) -> None:
        verbs = registry.discover_plugin_verbs(create_registry())
        ids = {v.id for v in verbs}
        assert {"API_KEY:GET", "API_KEY:DELETE", "COOKIE:get_cookies"} <= ids
        cookie = registry.get("COOKIE:add_cookies_to_request")
        assert cookie is not None
        assert cookie.operation == "add_cookies_to_request"
        assert cookie.tags == ["cookie"]


class TestQuery:
    @pytest.fixture(autouse=True)
    def _populate(self, registry: VerbRegistry) -> None:
        registry.register_for_plugin("API_KEY", [_fetch_verb()])
        registry.register_for_credential("COOKIE", [_fetch_verb(id="jar", tags=["cookie"])])

    def test_by_scope(self, registry: VerbRegistry) -> None:
        ids = [v.id for v in registry.query(scope=VerbScope.GLOBAL)]
        assert ids == ["access_application"]

    def test_by_plugin_type(self, registry: VerbRegistry) -> None:
        assert [v.id for v in registry.query(plugin_type="API_KEY")] == ["API_KEY:fetch"]

    def test_by_credential_type(self, registry: VerbRegistry) -> None:
        assert [v.id for v in registry.query(credential_type="COOKIE")] == ["COOKIE:jar"]

    def test_search_is_case_insensitive(self, registry: VerbRegistry) -> None:
        ids = {v.id for v in registry.query(search="PAGE")}
        assert ids == {"API_KEY:fetch", "COOKIE:jar"}

    def test_tags_intersect(self, registry: VerbRegistry) -> None:
        assert [v.id for v in registry.query(tags=["cookie", "nope"])] == ["COOKIE:jar"]

    def test_filters_combine(self, registry: VerbRegistry) -> None:
        assert registry.query(plugin_type="API_KEY", tags=["cookie"]) == []


class TestResolve:
    def test_fills_defaults(self, registry: VerbRegistry) -> None:
        registry.register(_fetch_verb())
        resolution = registry.resolve("fetch", {"url": "/users"})
        assert resolution is not None
        assert resolution.operation == "GET"
        assert resolution.parameters == {"url": "/users", "page": 1}

    def test_supplied_values_win(self, registry: VerbRegistry) -> None:
        registry.register(_fetch_verb())
        resolution = registry.resolve("fetch", {"url": "/users", "page": 4})
        assert resolution is not None
        assert resolution.parameters["page"] == 4

    def test_unknown_verb(self, registry: VerbRegistry) -> None:
        assert registry.resolve("nope", {}) is None
