"""Declarative policy models.

A ``Policy`` bundles ``TypePolicy`` entries that bind a type-name pattern to
required fields, field-level policies, rule-based predicates, codecs and a
classification label. Documents use the same shape, so YAML keys map
directly onto these models (``policies``, ``field.name``, ``not``, ...).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_POLICY_MODEL_CONFIG = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class StringMatcher(BaseModel):
    """Flexible string matching: exact, glob pattern, contains, or one-of.

    A plain string is accepted in place of the mapping form: it becomes a
    ``pattern`` when it contains ``*`` and an ``exact`` match otherwise.
    """

    model_config = _POLICY_MODEL_CONFIG

    exact: str = ""
    pattern: str = ""
    contains: str = Field(default="", description="Case-insensitive substring")
    one_of: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def from_plain_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            key = "pattern" if "*" in data else "exact"
            return {key: data}
        return data


class When(BaseModel):
    """Boolean condition tree evaluated per field."""

    model_config = _POLICY_MODEL_CONFIG

    field_name: StringMatcher | None = Field(default=None, alias="field.name")
    field_type: StringMatcher | None = Field(default=None, alias="field.type")
    type_name: StringMatcher | None = Field(default=None, alias="type.name")
    not_: When | None = Field(default=None, alias="not")
    all_: list[When] = Field(default_factory=list, alias="all")
    any_: list[When] = Field(default_factory=list, alias="any")
    has_tag: list[str] = Field(default_factory=list)


class Rule(BaseModel):
    """A conditional requirement over fields."""

    model_config = _POLICY_MODEL_CONFIG

    when: When | None = None
    require: dict[str, str] = Field(
        default_factory=dict,
        description="Tags that must exist; '{any}' accepts any value",
    )
    forbid: list[str] = Field(default_factory=list)
    apply: dict[str, str] = Field(default_factory=dict)


class FieldPolicy(BaseModel):
    """Legacy field-level policy for fields matching a name pattern."""

    model_config = _POLICY_MODEL_CONFIG

    match: str = ""
    type: str = Field(default="", description="Required field type, if any")
    require: dict[str, str] = Field(default_factory=dict)
    apply: dict[str, str] = Field(
        default_factory=dict,
        description="Tags to set; values may use {snake}, {lower}, {upper}",
    )


class TypePolicy(BaseModel):
    """Requirements and field policies for types matching a pattern."""

    model_config = _POLICY_MODEL_CONFIG

    match: str = ""
    classification: str = ""
    ensure: dict[str, str] = Field(
        default_factory=dict,
        description="Required fields: name -> type",
    )
    fields: list[FieldPolicy] = Field(default_factory=list)
    rules: list[Rule] = Field(default_factory=list)
    codecs: list[str] = Field(default_factory=list)


class Convention(BaseModel):
    """A method shape a type may satisfy (e.g., a ``defaults`` factory)."""

    model_config = _POLICY_MODEL_CONFIG

    name: str
    method: str
    params: list[str] = Field(default_factory=list)
    returns: list[str] = Field(
        default_factory=list,
        description="Return types; '@self' means the owning type",
    )


class Policy(BaseModel):
    """A named bundle of type policies and conventions."""

    model_config = _POLICY_MODEL_CONFIG

    name: str = ""
    type_policies: list[TypePolicy] = Field(default_factory=list, alias="policies")
    conventions: list[Convention] = Field(default_factory=list)


__all__ = [
    "Convention",
    "FieldPolicy",
    "Policy",
    "Rule",
    "StringMatcher",
    "TypePolicy",
    "When",
]
