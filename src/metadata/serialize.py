"""Deterministic JSON rendering of cached metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from collections.abc import Mapping

    from metadata.models import Metadata


def schema_to_dict(schema: Mapping[str, Metadata]) -> dict[str, Any]:
    return {
        fqn: metadata.model_dump(by_alias=True)
        for fqn, metadata in sorted(schema.items())
    }


def dump_schema(schema: Mapping[str, Metadata]) -> bytes:
    """Render a schema snapshot as sorted, indented JSON bytes."""
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(schema_to_dict(schema), option=opts)


__all__ = ["dump_schema", "schema_to_dict"]
