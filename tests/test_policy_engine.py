from __future__ import annotations

from typing import Any

import pytest

from descriptors.adapter import FieldDescriptor
from policy.engine import (
    PolicyEngine,
    PolicyViolationError,
    expand_template,
)
from policy.models import Policy


def _field(name: str, type_: str = "str", **tags: str) -> FieldDescriptor:
    return FieldDescriptor(
        name=name,
        annotation=str,
        type=type_,
        kind="scalar",
        position=(0,),
        tags=dict(tags),
    )


def _policy(name: str, *type_policies: dict[str, Any]) -> Policy:
    return Policy.model_validate({"name": name, "policies": list(type_policies)})


def test_last_match_wins_classification() -> None:
    broad = _policy("broad", {"match": "*", "classification": "a"})
    narrow = _policy("narrow", {"match": "*Foo", "classification": "b"})

    assert PolicyEngine([broad, narrow]).apply("XFoo", []).classification == "b"
    assert PolicyEngine([narrow, broad]).apply("XFoo", []).classification == "a"
    assert PolicyEngine([broad, narrow]).apply("Bar", []).classification == "a"


def test_unmatched_type_is_untouched() -> None:
    fields = [_field("id", json="id")]
    engine = PolicyEngine([_policy("p", {"match": "Order", "classification": "x"})])

    result = engine.apply("User", fields)

    assert result.applied == []
    assert result.classification is None
    assert fields[0].tags == {"json": "id"}


def test_ensure_reports_missing_and_mistyped_fields() -> None:
    engine = PolicyEngine(
        [_policy("p", {"match": "User", "ensure": {"tenant_id": "str", "id": "int"}})]
    )

    result = engine.apply("User", [_field("id")])

    assert result.errors == [
        "Type User: missing required field tenant_id (str)",
        "Type User: required field id must be type int, got str",
    ]
    assert not result.ok


def test_field_policy_applies_templates() -> None:
    fields = [_field("CreatedAt", "datetime"), _field("id")]
    engine = PolicyEngine(
        [
            _policy(
                "naming",
                {
                    "match": "*",
                    "fields": [
                        {"match": "Created*", "apply": {"json": "{snake}", "db": "{lower}"}}
                    ],
                },
            )
        ]
    )

    result = engine.apply("User", fields)

    assert fields[0].tags == {"json": "created_at", "db": "createdat"}
    assert fields[1].tags == {}
    metrics = result.metrics["naming.*"]
    assert metrics.tags_applied == 2
    assert metrics.fields_modified == 1
    assert metrics.affected_fields == ["CreatedAt"]
    assert result.applied == ["naming.*"]


def test_field_policy_type_mismatch_skips_field() -> None:
    fields = [_field("id")]
    engine = PolicyEngine(
        [
            _policy(
                "p",
                {"match": "User", "fields": [{"match": "id", "type": "int", "apply": {"db": "id"}}]},
            )
        ]
    )

    result = engine.apply("User", fields)

    assert result.errors == ["Field User.id: must be type int, got str"]
    assert fields[0].tags == {}


def test_required_tag_checks() -> None:
    fields = [_field("email", encrypt="none"), _field("phone")]
    engine = PolicyEngine(
        [
            _policy(
                "pii",
                {
                    "match": "User",
                    "fields": [
                        {"match": "email", "require": {"encrypt": "pii"}},
                        {"match": "phone", "require": {"encrypt": "{any}"}},
                    ],
                },
            )
        ]
    )

    result = engine.apply("User", fields)

    assert result.errors == [
        "Field User.email: tag 'encrypt' must be 'pii', got 'none'",
        "Field User.phone: missing required tag 'encrypt'",
    ]


def test_any_value_accepts_every_value() -> None:
    engine = PolicyEngine(
        [
            _policy(
                "p",
                {"match": "*", "fields": [{"match": "*", "require": {"json": "{any}"}}]},
            )
        ]
    )

    assert engine.apply("User", [_field("id", json="whatever")]).ok


def test_rules_require_forbid_and_apply() -> None:
    fields = [
        _field("password_hash", json="password_hash"),
        _field("email", json="email"),
    ]
    engine = PolicyEngine(
        [
            _policy(
                "secrets",
                {
                    "match": "*",
                    "rules": [
                        {
                            "when": {"field.name": "*password*"},
                            "require": {"redact": "{any}"},
                            "forbid": ["json"],
                        },
                        {
                            "when": {"field.name": "email"},
                            "apply": {"scope": "{upper}"},
                        },
                    ],
                },
            )
        ]
    )

    result = engine.apply("User", fields)

    assert result.errors == [
        "Field User.password_hash: missing required tag 'redact'",
        "Field User.password_hash: forbidden tag 'json'",
    ]
    assert fields[1].tags["scope"] == "EMAIL"


def test_rule_conditions_see_type_name() -> None:
    fields = [_field("id")]
    engine = PolicyEngine(
        [
            _policy(
                "p",
                {
                    "match": "*",
                    "rules": [{"when": {"type.name": "*Request"}, "apply": {"validate": "required"}}],
                },
            )
        ]
    )

    engine.apply("User", fields)
    assert fields[0].tags == {}

    engine.apply("CreateUserRequest", fields)
    assert fields[0].tags == {"validate": "required"}


def test_codecs_are_deduplicated_and_validated() -> None:
    engine = PolicyEngine(
        [
            _policy("a", {"match": "*", "codecs": ["json", "bogus"]}),
            _policy("b", {"match": "User", "codecs": ["json", "yaml"]}),
        ]
    )

    result = engine.apply("User", [])

    assert result.codecs == ["json", "yaml"]
    assert result.warnings == ["Invalid codec 'bogus' for type User"]
    assert result.ok


def test_custom_codec_set() -> None:
    engine = PolicyEngine(
        [_policy("a", {"match": "*", "codecs": ["json", "avro"]})],
        valid_codecs={"avro"},
    )

    result = engine.apply("User", [])

    assert result.codecs == ["avro"]
    assert result.warnings == ["Invalid codec 'json' for type User"]


def test_matching_preserves_policy_order() -> None:
    first = _policy("first", {"match": "*"}, {"match": "User"})
    second = _policy("second", {"match": "Us*"})

    matched = PolicyEngine([first, second]).matching("User")

    assert [(p.name, tp.match) for p, tp in matched] == [
        ("first", "*"),
        ("first", "User"),
        ("second", "Us*"),
    ]


@pytest.mark.parametrize(
    ("template", "expected"),
    [
        ("{snake}", "user_id"),
        ("{lower}", "userid"),
        ("{upper}", "USERID"),
        ("col_{snake}", "col_user_id"),
        ("plain", "plain"),
    ],
)
def test_expand_template(template: str, expected: str) -> None:
    assert expand_template(template, "UserID") == expected


def test_violation_error_message() -> None:
    err = PolicyViolationError("User", ["a", "b"])

    assert str(err) == "Policy violations: a; b"
    assert err.type_name == "User"
    assert err.errors == ["a", "b"]
