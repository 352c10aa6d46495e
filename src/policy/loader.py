"""Loading and validation of YAML policy documents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Any

import yaml
from pydantic import ValidationError

from policy.models import Policy

logger = logging.getLogger(__name__)

POLICY_SUFFIXES = frozenset({".yaml", ".yml"})


class PolicyDocumentError(ValueError):
    """Raised when a policy document cannot be parsed or is malformed."""


def validate_policy(policy: Policy) -> None:
    """Check that a policy is well-formed.

    Raises:
        PolicyDocumentError: On a missing name, no type policies, a type or
            field policy without a match pattern, or a field policy with
            neither ``require`` nor ``apply`` entries.
    """
    if not policy.name:
        msg = "policy must have a name"
        raise PolicyDocumentError(msg)
    if not policy.type_policies:
        msg = f"policy '{policy.name}' must have at least one type policy"
        raise PolicyDocumentError(msg)

    for i, type_policy in enumerate(policy.type_policies):
        if not type_policy.match:
            msg = f"type policy {i} must have a match pattern"
            raise PolicyDocumentError(msg)
        for j, field_policy in enumerate(type_policy.fields):
            if not field_policy.match:
                msg = f"field policy {i}.{j} must have a match pattern"
                raise PolicyDocumentError(msg)
            if not field_policy.require and not field_policy.apply:
                msg = f"field policy {i}.{j} must have either require or apply rules"
                raise PolicyDocumentError(msg)


def parse_policy(data: Any) -> Policy:
    """Build and validate a Policy from already-decoded document data."""
    if not isinstance(data, dict):
        msg = f"policy document must be a mapping, got {type(data).__name__}"
        raise PolicyDocumentError(msg)
    try:
        policy = Policy.model_validate(data)
    except ValidationError as exc:
        msg = f"invalid policy document: {exc}"
        raise PolicyDocumentError(msg) from exc
    validate_policy(policy)
    return policy


def load_policy(document: str | IO[str]) -> Policy:
    """Load a policy from YAML text or a text stream."""
    try:
        data = yaml.safe_load(document)
    except yaml.YAMLError as exc:
        msg = f"failed to decode policy: {exc}"
        raise PolicyDocumentError(msg) from exc
    return parse_policy(data)


def load_policy_file(path: str | Path) -> Policy:
    policy_path = Path(path)
    try:
        with policy_path.open(encoding="utf-8") as handle:
            return load_policy(handle)
    except OSError as exc:
        msg = f"failed to open policy file {policy_path}: {exc}"
        raise PolicyDocumentError(msg) from exc
    except PolicyDocumentError as exc:
        msg = f"invalid policy in {policy_path}: {exc}"
        raise PolicyDocumentError(msg) from exc


def load_policy_dir(directory: str | Path) -> list[Policy]:
    """Load every ``*.yaml``/``*.yml`` policy in a directory, sorted by name.

    Individually invalid files are logged and skipped; an unreadable
    directory raises.
    """
    dir_path = Path(directory)
    if not dir_path.is_dir():
        msg = f"failed to read policy directory: {dir_path}"
        raise PolicyDocumentError(msg)

    policies: list[Policy] = []
    for entry in sorted(dir_path.iterdir()):
        if not entry.is_file() or entry.suffix not in POLICY_SUFFIXES:
            continue
        try:
            policies.append(load_policy_file(entry))
        except PolicyDocumentError as exc:
            logger.warning("Skipping policy file %s: %s", entry, exc)
    return policies


def dump_policy(policy: Policy) -> str:
    """Render a policy as a YAML document."""
    data = policy.model_dump(by_alias=True, exclude_defaults=True)
    return yaml.safe_dump(data, sort_keys=False)


__all__ = [
    "PolicyDocumentError",
    "dump_policy",
    "load_policy",
    "load_policy_dir",
    "load_policy_file",
    "parse_policy",
    "validate_policy",
]
