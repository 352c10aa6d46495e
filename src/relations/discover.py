"""Relationship discovery between record types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from descriptors.adapter import (
    element_type,
    is_collection_type,
    is_mapping_type,
    is_record,
    map_value_type,
    split_annotated,
    unwrap_optional,
)
from metadata.models import TypeRelationship

if TYPE_CHECKING:
    from descriptors.adapter import FieldDescriptor, RecordDescriptor
    from metadata.models import RelationshipKind
    from relations.domains import DomainPolicy

_EXTERNAL_DOMAINS = frozenset({"", "builtins"})


@dataclass(frozen=True)
class Edge:
    """A discovered relationship plus the target class that produced it."""

    relationship: TypeRelationship
    target: type


def _record_or_optional_record(tp: Any) -> type | None:
    tp, _extras = split_annotated(tp)
    inner, _optional = unwrap_optional(tp)
    return inner if is_record(inner) else None


def _classify_target(field: FieldDescriptor) -> tuple[type, RelationshipKind] | None:
    """Unwrap exactly one level and return (target, kind) for record targets."""
    annotation = field.annotation

    if is_record(annotation):
        return annotation, "embedding" if field.embedded else "reference"

    inner, optional = unwrap_optional(annotation)
    if optional:
        inner, _extras = split_annotated(inner)
        if is_record(inner):
            return inner, "reference"
        return None

    if is_mapping_type(annotation):
        value = map_value_type(annotation)
        target = _record_or_optional_record(value) if value is not None else None
        return (target, "map") if target is not None else None

    if is_collection_type(annotation):
        element = element_type(annotation)
        target = _record_or_optional_record(element) if element is not None else None
        return (target, "collection") if target is not None else None

    return None


def discover(descriptor: RecordDescriptor, domains: DomainPolicy) -> list[Edge]:
    """Return edges from ``descriptor`` to in-domain record types.

    Fields typed as scalars, or collections and maps of scalars, never
    produce an edge; neither do targets rejected by ``domains``.
    """
    edges: list[Edge] = []
    for field in descriptor.fields:
        classified = _classify_target(field)
        if classified is None:
            continue
        target, kind = classified
        target_domain = target.__module__
        if target_domain in _EXTERNAL_DOMAINS:
            continue
        if not domains.accepts(descriptor.domain, target_domain):
            continue
        edges.append(
            Edge(
                relationship=TypeRelationship(
                    from_type=descriptor.type_name,
                    to_type=target.__name__,
                    field=field.name,
                    kind=kind,
                    to_domain=target_domain,
                ),
                target=target,
            )
        )
    return edges


__all__ = ["Edge", "discover"]
