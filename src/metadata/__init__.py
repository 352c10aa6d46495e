"""Extracted metadata value objects."""

from metadata.models import (
    FieldKind,
    FieldMetadata,
    Metadata,
    RelationshipKind,
    TypeRelationship,
    placeholder_for,
)
from metadata.serialize import dump_schema, schema_to_dict

__all__ = [
    "FieldKind",
    "FieldMetadata",
    "Metadata",
    "RelationshipKind",
    "TypeRelationship",
    "dump_schema",
    "placeholder_for",
    "schema_to_dict",
]
