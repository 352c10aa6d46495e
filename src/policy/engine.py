"""Policy engine: matches type policies and mutates working metadata.

The engine never raises for policy violations; it records them in a
``PolicyResult`` and leaves the strict/non-strict decision to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from policy.rules import evaluate, field_matches, type_matches
from utils import to_snake

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from descriptors.adapter import FieldDescriptor
    from policy.models import FieldPolicy, Policy, Rule, TypePolicy

logger = logging.getLogger(__name__)

ANY_VALUE = "{any}"

VALID_CODECS: frozenset[str] = frozenset(
    {"json", "xml", "yaml", "toml", "msgpack", "bson", "protobuf", "csv"}
)


class PolicyViolationError(Exception):
    """Raised in strict mode when policy validation fails for a type."""

    def __init__(self, type_name: str, errors: Sequence[str]) -> None:
        self.type_name = type_name
        self.errors = list(errors)
        super().__init__("Policy violations: " + "; ".join(self.errors))


@dataclass
class PolicyMetrics:
    """What a single type policy changed."""

    fields_modified: int = 0
    tags_applied: int = 0
    affected_fields: list[str] = field(default_factory=list)


@dataclass
class PolicyResult:
    applied: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    classification: str | None = None
    codecs: list[str] = field(default_factory=list)
    metrics: dict[str, PolicyMetrics] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def expand_template(value: str, field_name: str) -> str:
    """Expand ``{snake}``, ``{lower}`` and ``{upper}`` against a field name."""
    if "{" not in value:
        return value
    return (
        value.replace("{snake}", to_snake(field_name))
        .replace("{lower}", field_name.lower())
        .replace("{upper}", field_name.upper())
    )


def _check_required_tags(
    type_name: str,
    target: FieldDescriptor,
    required: Mapping[str, str],
    errors: list[str],
) -> None:
    for tag, expected in required.items():
        actual = target.tags.get(tag)
        if actual is None:
            errors.append(
                f"Field {type_name}.{target.name}: missing required tag '{tag}'"
            )
        elif expected != ANY_VALUE and actual != expected:
            errors.append(
                f"Field {type_name}.{target.name}: tag '{tag}' must be "
                f"'{expected}', got '{actual}'"
            )


def _apply_tags(
    target: FieldDescriptor, tags: Mapping[str, str], metrics: PolicyMetrics
) -> None:
    changed = False
    for tag, template in tags.items():
        value = expand_template(template, target.name)
        if target.tags.get(tag) != value:
            changed = True
        target.tags[tag] = value
        metrics.tags_applied += 1
    if changed:
        metrics.fields_modified += 1
        if target.name not in metrics.affected_fields:
            metrics.affected_fields.append(target.name)


class PolicyEngine:
    """Applies an immutable snapshot of policies to working field metadata."""

    def __init__(
        self,
        policies: Iterable[Policy],
        *,
        valid_codecs: Iterable[str] = VALID_CODECS,
    ) -> None:
        self._policies: tuple[Policy, ...] = tuple(policies)
        self._valid_codecs = frozenset(valid_codecs)

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._policies

    def matching(self, type_name: str) -> list[tuple[Policy, TypePolicy]]:
        """Type policies matching ``type_name`` in evaluation order."""
        return [
            (policy, type_policy)
            for policy in self._policies
            for type_policy in policy.type_policies
            if type_matches(type_policy.match, type_name)
        ]

    def apply(self, type_name: str, fields: Sequence[FieldDescriptor]) -> PolicyResult:
        """Apply every matching type policy, mutating ``fields`` in place.

        Policies run in policy-list order then inner-list order, so a later
        classification overrides an earlier one.
        """
        result = PolicyResult()
        for policy, type_policy in self.matching(type_name):
            key = f"{policy.name}.{type_policy.match}"
            metrics = result.metrics.setdefault(key, PolicyMetrics())
            self._apply_type_policy(type_name, fields, type_policy, result, metrics)
            result.applied.append(key)
            logger.debug(
                "Applied policy %s to %s (%d tags)",
                key,
                type_name,
                metrics.tags_applied,
            )
        return result

    def _apply_type_policy(
        self,
        type_name: str,
        fields: Sequence[FieldDescriptor],
        type_policy: TypePolicy,
        result: PolicyResult,
        metrics: PolicyMetrics,
    ) -> None:
        if type_policy.classification:
            result.classification = type_policy.classification

        for codec in type_policy.codecs:
            if codec not in self._valid_codecs:
                result.warnings.append(f"Invalid codec '{codec}' for type {type_name}")
            elif codec not in result.codecs:
                result.codecs.append(codec)

        by_name = {target.name: target for target in fields}
        for field_name, field_type in type_policy.ensure.items():
            target = by_name.get(field_name)
            if target is None:
                result.errors.append(
                    f"Type {type_name}: missing required field {field_name} "
                    f"({field_type})"
                )
            elif target.type != field_type:
                result.errors.append(
                    f"Type {type_name}: required field {field_name} must be type "
                    f"{field_type}, got {target.type}"
                )

        for field_policy in type_policy.fields:
            self._apply_field_policy(type_name, fields, field_policy, result, metrics)

        if type_policy.rules:
            self._apply_rules(type_name, fields, type_policy.rules, result, metrics)

    def _apply_field_policy(
        self,
        type_name: str,
        fields: Sequence[FieldDescriptor],
        field_policy: FieldPolicy,
        result: PolicyResult,
        metrics: PolicyMetrics,
    ) -> None:
        for target in fields:
            if not field_matches(field_policy.match, target.name):
                continue
            if field_policy.type and target.type != field_policy.type:
                result.errors.append(
                    f"Field {type_name}.{target.name}: must be type "
                    f"{field_policy.type}, got {target.type}"
                )
                continue
            _check_required_tags(type_name, target, field_policy.require, result.errors)
            _apply_tags(target, field_policy.apply, metrics)

    def _apply_rules(
        self,
        type_name: str,
        fields: Sequence[FieldDescriptor],
        rules: Sequence[Rule],
        result: PolicyResult,
        metrics: PolicyMetrics,
    ) -> None:
        for target in fields:
            for rule in rules:
                if not evaluate(rule.when, type_name=type_name, field=target):
                    continue
                _check_required_tags(type_name, target, rule.require, result.errors)
                for tag in rule.forbid:
                    if tag in target.tags:
                        result.errors.append(
                            f"Field {type_name}.{target.name}: forbidden tag '{tag}'"
                        )
                _apply_tags(target, rule.apply, metrics)


__all__ = [
    "ANY_VALUE",
    "VALID_CODECS",
    "PolicyEngine",
    "PolicyMetrics",
    "PolicyResult",
    "PolicyViolationError",
    "expand_template",
]
