"""Type descriptor adapter.

Turns a record class (a dataclass or a pydantic model) into a
``RecordDescriptor``: exported fields in declaration order, their static
types, their classified kinds and the annotation values selected by the
active key set.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import inspect
import logging
import types
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ForwardRef,
    Literal,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from pydantic import BaseModel, PydanticUndefinedAnnotation

from descriptors.tags import Embedded, Tags

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from metadata.models import FieldKind

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)


class UnsupportedTypeKind(TypeError):
    """Raised when a non-record type is passed to inspection."""


@dataclass
class FieldDescriptor:
    """Working view of one exported field.

    A fresh instance is built for every extraction, so policy application may
    mutate ``tags`` freely before the metadata is frozen.
    """

    name: str
    annotation: Any
    type: str
    kind: FieldKind
    position: tuple[int, ...]
    tags: dict[str, str] = field(default_factory=dict)
    embedded: bool = False


@dataclass(frozen=True)
class RecordDescriptor:
    cls: type
    type_name: str
    domain: str
    fqn: str
    fields: tuple[FieldDescriptor, ...]


def is_record(tp: Any) -> bool:
    """Return True for dataclass and pydantic model classes."""
    if get_origin(tp) is not None or not isinstance(tp, type):
        return False
    if dataclasses.is_dataclass(tp):
        return True
    return issubclass(tp, BaseModel) and tp is not BaseModel


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def split_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    """Strip ``Annotated`` and return the inner type plus its extras."""
    if get_origin(tp) is Annotated:
        inner, *extras = get_args(tp)
        return inner, tuple(extras)
    return tp, ()


def is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Unwrap one level of ``X | None``; returns (inner, was_optional)."""
    if is_union(tp):
        args = get_args(tp)
        non_none = [arg for arg in args if arg is not _NONE_TYPE]
        if len(args) == 2 and len(non_none) == 1:
            inner, _extras = split_annotated(non_none[0])
            return inner, True
    return tp, False


def resolve_record(tp: Any) -> type:
    """Normalize a type descriptor down to its record class.

    ``Annotated`` wrappers and one level of ``Optional`` are removed, which
    mirrors pointer-to-record normalization.

    Raises:
        UnsupportedTypeKind: If the normalized type is not a record class.
    """
    inner, _extras = split_annotated(tp)
    inner, _optional = unwrap_optional(inner)
    if not is_record(inner):
        msg = f"only record types are supported, got {type_string(tp)}"
        raise UnsupportedTypeKind(msg)
    return inner


def _container_class(tp: Any) -> type | None:
    origin = get_origin(tp)
    candidate = origin if origin is not None else tp
    return candidate if isinstance(candidate, type) else None


def is_mapping_type(tp: Any) -> bool:
    cls = _container_class(tp)
    return cls is not None and issubclass(cls, collections.abc.Mapping)


def is_collection_type(tp: Any) -> bool:
    cls = _container_class(tp)
    if cls is None or is_record(cls):
        return False
    if issubclass(cls, (str, bytes, bytearray, collections.abc.Mapping)):
        return False
    return issubclass(cls, collections.abc.Iterable)


def element_type(tp: Any) -> Any | None:
    """Return the element type of a parametrized collection, if any."""
    args = [arg for arg in get_args(tp) if arg is not Ellipsis]
    if not args:
        return None
    if _container_class(tp) is tuple:
        # Fixed-shape tuples only have an element type when homogeneous.
        return args[0] if all(arg == args[0] for arg in args) else None
    return args[0]


def map_value_type(tp: Any) -> Any | None:
    args = get_args(tp)
    if len(args) != 2:
        return None
    return args[1]


def classify_kind(tp: Any) -> FieldKind:
    """Classify a field's static type into a field kind."""
    tp, _extras = split_annotated(tp)
    _inner, optional = unwrap_optional(tp)
    if optional:
        return "pointer"
    if tp is Any or tp is object or isinstance(tp, TypeVar) or is_union(tp):
        return "interface"
    if is_record(tp):
        return "record"
    if is_mapping_type(tp):
        return "map"
    if is_collection_type(tp):
        return "collection"
    cls = _container_class(tp)
    if cls is not None and (
        getattr(cls, "_is_protocol", False) or inspect.isabstract(cls)
    ):
        return "interface"
    return "scalar"


def type_string(tp: Any) -> str:
    """Render a static type deterministically (e.g., 'dict[str, Order]')."""
    if tp is None or tp is _NONE_TYPE:
        return "None"
    if tp is Any:
        return "Any"
    if tp is Ellipsis:
        return "..."
    if isinstance(tp, str):
        return tp
    if isinstance(tp, ForwardRef):
        return tp.__forward_arg__
    if isinstance(tp, TypeVar):
        return tp.__name__
    if isinstance(tp, list):
        return "[" + ", ".join(type_string(arg) for arg in tp) + "]"

    origin = get_origin(tp)
    if origin is Annotated:
        return type_string(get_args(tp)[0])
    if is_union(tp):
        return " | ".join(type_string(arg) for arg in get_args(tp))
    if origin is Literal:
        return "Literal[" + ", ".join(repr(arg) for arg in get_args(tp)) + "]"
    if origin is not None:
        name = getattr(origin, "__qualname__", None) or repr(origin)
        args = get_args(tp)
        if not args:
            return name
        return f"{name}[{', '.join(type_string(arg) for arg in args)}]"
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def _resolve_hints(cls: type) -> dict[str, Any]:
    """Resolve forward references of a record's field annotations.

    Pydantic resolves annotations itself, so only an incomplete model needs a
    rebuild; dataclasses go through ``get_type_hints``.
    """
    if not dataclasses.is_dataclass(cls):
        if not getattr(cls, "__pydantic_complete__", True):
            try:
                cls.model_rebuild()
            except PydanticUndefinedAnnotation as exc:
                logger.debug("Could not rebuild %s: %s", cls, exc)
        return {}
    try:
        return get_type_hints(cls, include_extras=True)
    except (NameError, TypeError, AttributeError) as exc:
        logger.debug("Falling back to raw annotations for %s: %s", cls, exc)
        return {}


def _declared_fields(
    cls: type,
) -> Iterator[tuple[str, Any, Mapping[str, Any], tuple[Any, ...]]]:
    """Yield (name, raw annotation, declared tags, extra markers) in order."""
    if dataclasses.is_dataclass(cls):
        for dc_field in dataclasses.fields(cls):
            yield dc_field.name, dc_field.type, dc_field.metadata, ()
        return

    for name, info in cls.model_fields.items():
        extra = info.json_schema_extra
        declared = extra if isinstance(extra, dict) else {}
        yield name, info.annotation, declared, tuple(info.metadata)


def describe(cls: type, tag_keys: frozenset[str]) -> RecordDescriptor:
    """Build the descriptor for a record class.

    Only keys in ``tag_keys`` are kept; every other annotation key is dropped.
    Fields whose names start with an underscore are not exported.
    """
    if not is_record(cls):
        msg = f"only record types are supported, got {type_string(cls)}"
        raise UnsupportedTypeKind(msg)

    hints = _resolve_hints(cls)
    fields: list[FieldDescriptor] = []
    for index, (name, raw, declared, markers) in enumerate(_declared_fields(cls)):
        if name.startswith("_"):
            continue

        annotation = hints.get(name, raw)
        inner, extras = split_annotated(annotation)

        # Empty values count as absent.
        values: dict[str, str] = {
            key: str(value)
            for key, value in declared.items()
            if key in tag_keys and str(value)
        }
        embedded = False
        for marker in (*markers, *extras):
            if isinstance(marker, Tags):
                values.update(
                    (key, value)
                    for key, value in marker.values.items()
                    if key in tag_keys and value
                )
            elif isinstance(marker, Embedded) or marker is Embedded:
                embedded = True

        fields.append(
            FieldDescriptor(
                name=name,
                annotation=inner,
                type=type_string(inner),
                kind=classify_kind(inner),
                position=(index,),
                tags=values,
                embedded=embedded,
            )
        )

    return RecordDescriptor(
        cls=cls,
        type_name=cls.__name__,
        domain=cls.__module__,
        fqn=qualified_name(cls),
        fields=tuple(fields),
    )


def field_value(instance: object, position: tuple[int, ...]) -> Any:
    """Read a field value by following a position chain from ``instance``."""
    current: Any = instance
    for index in position:
        names = [name for name, *_rest in _declared_fields(type(current))]
        current = getattr(current, names[index])
    return current


__all__ = [
    "FieldDescriptor",
    "RecordDescriptor",
    "UnsupportedTypeKind",
    "classify_kind",
    "describe",
    "element_type",
    "field_value",
    "is_collection_type",
    "is_mapping_type",
    "is_record",
    "is_union",
    "map_value_type",
    "qualified_name",
    "resolve_record",
    "split_annotated",
    "type_string",
    "unwrap_optional",
]
