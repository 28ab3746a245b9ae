# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Field lookup and glob matching used by the list-based evaluators."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

MISSING = object()


def lookup(context: dict[str, Any], path: str) -> Any:
    """Resolve a dot-separated *path* against nested mappings.

    Returns :data:`MISSING` when any segment is absent or a non-mapping is
    reached before the path is exhausted.
    """
    value: Any = context
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    if value is None:
        return MISSING
    return value


@lru_cache(maxsize=1024)
def _compile(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    # Only "*" is special; every other character matches itself.
    body = ".*".join(re.escape(chunk) for chunk in pattern.split("*"))
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(body, flags | re.DOTALL)


def glob_match(value: str, pattern: str, *, case_sensitive: bool = True) -> bool:
    """Return ``True`` if *value* matches *pattern* in full."""
    return _compile(pattern, case_sensitive).fullmatch(value) is not None


def as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def match_any(value: Any, patterns: list[str], *, case_sensitive: bool = True) -> str | None:
    """Return the first pattern matching *value*, or ``None``.

    List values match if any element matches.
    """
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        text = as_text(candidate)
        for pattern in patterns:
            if glob_match(text, pattern, case_sensitive=case_sensitive):
                return pattern
    return None
