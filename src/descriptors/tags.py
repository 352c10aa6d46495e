"""Field annotation markers and the annotation-key registry."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

# Keys extracted for every field regardless of registration.
BASELINE_TAGS: tuple[str, ...] = (
    "json",
    "validate",
    "db",
    "scope",
    "encrypt",
    "redact",
    "desc",
    "example",
)


class Tags:
    """Key/value annotations attached to a field through ``Annotated``.

    Example:
        email: Annotated[str, Tags(json="email", validate="required,email")]
    """

    __slots__ = ("values",)

    def __init__(self, **values: object) -> None:
        self.values = {key: str(value) for key, value in values.items()}

    def __repr__(self) -> str:
        return f"Tags({self.values!r})"


class Embedded:
    """Marks a record-typed field as embedded in its owner."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "Embedded()"


class TagRegistry:
    """Thread-safe set of annotation keys extracted beyond the baseline."""

    def __init__(
        self,
        baseline: Iterable[str] = BASELINE_TAGS,
        registered: Iterable[str] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._baseline = frozenset(baseline)
        self._registered: set[str] = set(registered)

    def register(self, key: str) -> bool:
        """Add a key; returns False when it was already known."""
        if not key:
            msg = "annotation key must be a non-empty string"
            raise ValueError(msg)
        with self._lock:
            if key in self._baseline or key in self._registered:
                return False
            self._registered.add(key)
        logger.debug("Registered annotation key %r", key)
        return True

    def keys(self) -> frozenset[str]:
        with self._lock:
            return self._baseline | self._registered

    def registered(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._registered)


__all__ = ["BASELINE_TAGS", "Embedded", "TagRegistry", "Tags"]
