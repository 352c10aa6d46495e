"""Metadata models for extracted record types.

This module contains the immutable value objects produced by the extraction
pipeline: per-field metadata, relationship edges and the per-type metadata
record stored in the cache.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

FieldKind = Literal["scalar", "pointer", "collection", "record", "map", "interface"]

RelationshipKind = Literal["reference", "collection", "embedding", "map"]


class FieldMetadata(BaseModel):
    """One exported field of a record type."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str = Field(description="Rendered static type (e.g., 'list[Order]')")
    annotation: Any = Field(
        default=None,
        exclude=True,
        repr=False,
        description="Static type object used for kind classification",
    )
    kind: FieldKind
    position: tuple[int, ...] = Field(
        description="Index chain into the owning record"
    )
    tags: Mapping[str, str] = Field(default_factory=dict)
    embedded: bool = False

    @field_validator("tags", mode="after")
    @classmethod
    def freeze_tags(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @field_serializer("tags")
    def dump_tags(self, tags: Mapping[str, str]) -> dict[str, str]:
        return dict(tags)


class TypeRelationship(BaseModel):
    """A directed edge between two record types."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_type: str = Field(alias="from")
    to_type: str = Field(alias="to")
    field: str
    kind: RelationshipKind
    to_domain: str


class Metadata(BaseModel):
    """Structural metadata for a single record type."""

    model_config = ConfigDict(frozen=True)

    type_name: str
    domain: str
    fqn: str = Field(description="Domain-qualified name used as the cache key")
    fields: tuple[FieldMetadata, ...] = ()
    relationships: tuple[TypeRelationship, ...] = ()
    conventions: tuple[str, ...] = ()
    classification: str | None = None
    codecs: tuple[str, ...] = ()
    warnings: tuple[str, ...] = Field(
        default=(),
        description="Policy violations downgraded under non-strict mode",
    )

    def field(self, name: str) -> FieldMetadata | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None


def placeholder_for(type_name: str, domain: str, fqn: str) -> Metadata:
    """Return an empty Metadata used to break traversal cycles.

    Placeholders carry no fields or relationships and are never cached.
    """
    return Metadata(type_name=type_name, domain=domain, fqn=fqn)


__all__ = [
    "FieldKind",
    "FieldMetadata",
    "Metadata",
    "RelationshipKind",
    "TypeRelationship",
    "placeholder_for",
]
