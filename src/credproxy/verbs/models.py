# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Verb models: human-readable actions bound to plugin operations."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from credproxy.core.constants import VerbScope


class VerbParameter(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    type: Literal["string", "number", "boolean", "object", "array"] = "string"
    required: bool = False
    default_value: Any = None
    options: list[Any] | None = None


class Verb(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    scope: VerbScope = VerbScope.GLOBAL
    operation: str
    parameters: list[VerbParameter] = Field(default_factory=list)
    plugin_type: str | None = None
    credential_type: str | None = None
    tags: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    is_default: bool = False


class VerbResolution(BaseModel):
    """The operation a verb maps to, with its parameters filled in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    verb_id: str
    operation: str
    parameters: dict[str, Any] = Field(default_factory=dict)
