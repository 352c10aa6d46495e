"""Record type introspection."""

from descriptors.adapter import (
    FieldDescriptor,
    RecordDescriptor,
    UnsupportedTypeKind,
    classify_kind,
    describe,
    field_value,
    is_record,
    qualified_name,
    resolve_record,
    type_string,
)
from descriptors.tags import BASELINE_TAGS, Embedded, TagRegistry, Tags

__all__ = [
    "BASELINE_TAGS",
    "Embedded",
    "FieldDescriptor",
    "RecordDescriptor",
    "TagRegistry",
    "Tags",
    "UnsupportedTypeKind",
    "classify_kind",
    "describe",
    "field_value",
    "is_record",
    "qualified_name",
    "resolve_record",
    "type_string",
]
