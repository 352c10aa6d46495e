"""Shared utilities for typelens."""

from __future__ import annotations

import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def to_snake(name: str) -> str:
    """Convert an identifier to snake_case.

    Examples:
        >>> to_snake("UserID")
        'user_id'
        >>> to_snake("HTTPServer")
        'http_server'
        >>> to_snake("created_at")
        'created_at'
    """
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.replace("-", "_").lower()


def domain_root(domain: str, segments: int) -> str:
    """Truncate a dotted domain path to its first ``segments`` parts.

    Args:
        domain: Dotted module path (e.g., "acme.shop.core.users")
        segments: Number of leading segments that identify the codebase

    Returns:
        The truncated path (e.g., "acme.shop.core"), or the whole path when
        it is shorter than ``segments``.

    Examples:
        >>> domain_root("acme.shop.core.users", 3)
        'acme.shop.core'
        >>> domain_root("acme.shop", 3)
        'acme.shop'
        >>> domain_root("", 3)
        ''
    """
    if segments < 1:
        msg = f"segments must be >= 1, got {segments}"
        raise ValueError(msg)
    parts = [part for part in domain.split(".") if part]
    return ".".join(parts[:segments])


__all__ = ["domain_root", "to_snake"]
