"""Declarative policies and the rule engine."""

from policy.engine import (
    PolicyEngine,
    PolicyResult,
    PolicyViolationError,
    expand_template,
)
from policy.loader import (
    PolicyDocumentError,
    dump_policy,
    load_policy,
    load_policy_dir,
    load_policy_file,
    validate_policy,
)
from policy.models import (
    Convention,
    FieldPolicy,
    Policy,
    Rule,
    StringMatcher,
    TypePolicy,
    When,
)

__all__ = [
    "Convention",
    "FieldPolicy",
    "Policy",
    "PolicyDocumentError",
    "PolicyEngine",
    "PolicyResult",
    "PolicyViolationError",
    "Rule",
    "StringMatcher",
    "TypePolicy",
    "When",
    "dump_policy",
    "expand_template",
    "load_policy",
    "load_policy_dir",
    "load_policy_file",
    "validate_policy",
]
