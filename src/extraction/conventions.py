"""Convention detection over method shapes and registered capabilities."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, get_args, get_origin, get_type_hints

from descriptors.adapter import type_string

if TYPE_CHECKING:
    from collections.abc import Iterable

    from policy.models import Convention

logger = logging.getLogger(__name__)

SELF_TOKEN = "@self"

CapabilityCheck = Callable[[type], bool]

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def _unwrap_method(cls: type, name: str) -> tuple[Callable[..., Any], int] | None:
    """Return (function, receiver parameter count) for a method on ``cls``."""
    raw = inspect.getattr_static(cls, name, None)
    if isinstance(raw, staticmethod):
        return raw.__func__, 0
    if isinstance(raw, classmethod):
        return raw.__func__, 1
    if inspect.isfunction(raw):
        return raw, 1
    return None


def _return_candidates(annotation: Any) -> list[list[str]]:
    if annotation in (inspect.Signature.empty, None, type(None)):
        return [[]]
    rendered = [type_string(annotation)]
    args = get_args(annotation)
    if get_origin(annotation) is tuple and args and Ellipsis not in args:
        return [rendered, [type_string(arg) for arg in args]]
    return [rendered]


def _method_shape(
    func: Callable[..., Any], receivers: int
) -> tuple[list[str], list[list[str]]] | None:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None
    try:
        hints = get_type_hints(func)
    except (NameError, TypeError):
        hints = {}

    parameters = list(signature.parameters.values())[receivers:]
    if any(param.kind in _VARIADIC for param in parameters):
        return None
    params = [
        "Any"
        if param.annotation is inspect.Parameter.empty and param.name not in hints
        else type_string(hints.get(param.name, param.annotation))
        for param in parameters
    ]
    returns = _return_candidates(hints.get("return", signature.return_annotation))
    return params, returns


def _returns_match(expected: list[str], actual: list[str], cls: type) -> bool:
    if len(expected) != len(actual):
        return False
    for want, got in zip(expected, actual, strict=True):
        if want == SELF_TOKEN:
            if got not in {cls.__qualname__, cls.__name__, "Self"}:
                return False
        elif want != got:
            return False
    return True


def satisfies(cls: type, convention: Convention) -> bool:
    """Check whether ``cls`` exposes a method with the convention's shape.

    Instance methods, classmethods and staticmethods are all considered; the
    ``@self`` return token accepts the class itself or ``typing.Self``.
    """
    method = _unwrap_method(cls, convention.method)
    if method is None:
        return False
    shape = _method_shape(*method)
    if shape is None:
        return False
    params, return_candidates = shape
    if params != convention.params:
        return False
    return any(
        _returns_match(convention.returns, candidate, cls)
        for candidate in return_candidates
    )


def detect_conventions(
    cls: type,
    conventions: Iterable[Convention],
    capabilities: Mapping[str, CapabilityCheck],
) -> list[str]:
    """Names of conventions and capabilities ``cls`` satisfies, in order."""
    detected: list[str] = []
    for convention in conventions:
        if convention.name not in detected and satisfies(cls, convention):
            detected.append(convention.name)

    for name, check in capabilities.items():
        if name in detected:
            continue
        try:
            matched = bool(check(cls))
        except Exception:  # noqa: BLE001
            logger.warning("Capability check %r failed for %s", name, cls, exc_info=True)
            continue
        if matched:
            detected.append(name)
    return detected


__all__ = ["SELF_TOKEN", "CapabilityCheck", "detect_conventions", "satisfies"]
