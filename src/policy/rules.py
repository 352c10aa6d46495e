"""Pattern matching and rule condition evaluation."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from descriptors.adapter import FieldDescriptor
    from policy.models import StringMatcher, When


def type_matches(pattern: str, type_name: str) -> bool:
    """Match a type name against a type-level pattern.

    Supported forms are exact, ``*``, ``*suffix`` and ``prefix*``. Matching is
    case-sensitive and there is no contains form at the type level.
    """
    if pattern == "*":
        return True
    if pattern.startswith("*"):
        return type_name.endswith(pattern[1:])
    if pattern.endswith("*"):
        return type_name.startswith(pattern[:-1])
    return pattern == type_name


def field_matches(pattern: str, field_name: str) -> bool:
    """Match a field name against a field-policy pattern.

    Adds the ``*contains*`` form and falls back to shell-style globbing.
    """
    if pattern in {field_name, "*"}:
        return True
    if len(pattern) > 1 and pattern.startswith("*") and pattern.endswith("*"):
        return pattern[1:-1] in field_name
    if pattern.startswith("*"):
        return field_name.endswith(pattern[1:])
    if pattern.endswith("*"):
        return field_name.startswith(pattern[:-1])
    return fnmatchcase(field_name, pattern)


def matcher_matches(matcher: StringMatcher | None, value: str) -> bool:
    if matcher is None:
        return True
    if matcher.exact:
        return value == matcher.exact
    if matcher.pattern:
        return fnmatchcase(value, matcher.pattern)
    if matcher.contains:
        return matcher.contains.lower() in value.lower()
    if matcher.one_of:
        return value in matcher.one_of
    return True


def evaluate(
    when: When | None,
    *,
    type_name: str,
    field: FieldDescriptor | None = None,
) -> bool:
    """Evaluate a condition tree; an absent condition always matches.

    Logical operators take precedence: a node with ``all`` is decided by its
    children alone, then ``any``, then ``not``. Otherwise every present
    matcher must hold.
    """
    if when is None:
        return True

    if when.all_:
        return all(
            evaluate(child, type_name=type_name, field=field) for child in when.all_
        )
    if when.any_:
        return any(
            evaluate(child, type_name=type_name, field=field) for child in when.any_
        )
    if when.not_ is not None:
        return not evaluate(when.not_, type_name=type_name, field=field)

    if field is not None:
        if not matcher_matches(when.field_name, field.name):
            return False
        if not matcher_matches(when.field_type, field.type):
            return False
        if any(tag not in field.tags for tag in when.has_tag):
            return False

    return matcher_matches(when.type_name, type_name)


__all__ = ["evaluate", "field_matches", "matcher_matches", "type_matches"]
