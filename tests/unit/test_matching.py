# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for field lookup and glob matching."""

from __future__ import annotations

import pytest

from credproxy.policies.matching import MISSING, as_text, glob_match, lookup, match_any

CONTEXT = {
    "operation": "GET",
    "parameters": {"url": "https://api.example.com/v1/users", "nested": {"flag": True}},
    "credential": {"id": "cred-1", "type": "API_KEY"},
    "empty": None,
}


class TestLookup:
    def test_top_level_field(self) -> None:
        assert lookup(CONTEXT, "operation") == "GET"

    def test_dot_path(self) -> None:
        assert lookup(CONTEXT, "parameters.nested.flag") is True
        assert lookup(CONTEXT, "credential.type") == "API_KEY"

    def test_absent_segment_is_missing(self) -> None:
        assert lookup(CONTEXT, "parameters.method") is MISSING

    def test_path_through_scalar_is_missing(self) -> None:
        assert lookup(CONTEXT, "operation.name") is MISSING

    def test_none_value_is_missing(self) -> None:
        assert lookup(CONTEXT, "empty") is MISSING


class TestGlobMatch:
    @pytest.mark.parametrize(
        ("value", "pattern", "expected"),
        [
            ("GET", "GET", True),
            ("GET", "POST", False),
            ("https://api.example.com/v1/users", "https://api.example.com/*", True),
            ("https://evil.com/?x=https://api.example.com/", "https://api.example.com/*", False),
            ("read_users", "*_users", True),
            ("a.b", "a?b", False),
            ("a?b", "a?b", True),
            ("abc", "a.c", False),
            ("anything at all", "*", True),
        ],
    )
    def test_only_star_is_special(self, value: str, pattern: str, expected: bool) -> None:
        assert glob_match(value, pattern) is expected

    def test_case_insensitive(self) -> None:
        assert not glob_match("get", "GET")
        assert glob_match("get", "GET", case_sensitive=False)


class TestMatchAny:
    def test_returns_matching_pattern(self) -> None:
        assert match_any("DELETE", ["GET", "DEL*"]) == "DEL*"

    def test_no_match(self) -> None:
        assert match_any("PATCH", ["GET", "POST"]) is None

    def test_list_value_matches_any_element(self) -> None:
        assert match_any(["read", "admin"], ["admin"]) == "admin"

    def test_non_string_values_are_compared_as_text(self) -> None:
        assert match_any(42, ["42"]) == "42"
        assert as_text(False) == "false"
        assert match_any(True, ["true"]) == "true"
