from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from acme.shop.billing.invoices import Invoice
from acme.shop.core.users import User

from descriptors.adapter import FieldDescriptor, RecordDescriptor, UnsupportedTypeKind
from descriptors.tags import TagRegistry
from extraction.context import ExtractionContext, ExtractionState
from extraction.pipeline import ExtractionError, ExtractionPipeline
from policy.engine import PolicyViolationError
from policy.models import Policy
from relations.domains import ExactDomain, SharedRoot

REQUIRE_TENANT = Policy.model_validate(
    {
        "name": "tenancy",
        "policies": [
            {
                "match": "User",
                "classification": "confidential",
                "codecs": ["json"],
                "ensure": {"tenant_id": "str"},
            }
        ],
        "conventions": [{"name": "validatable", "method": "validate"}],
    }
)


def _pipeline(**kwargs: object) -> ExtractionPipeline:
    return ExtractionPipeline(tags=TagRegistry(), **kwargs)


def test_stages_run_in_order() -> None:
    assert _pipeline().stages == (
        "resolve-descriptor",
        "apply-policies",
        "detect-conventions",
        "extract-relationships",
        "validate",
    )


def test_run_produces_frozen_metadata() -> None:
    ctx = _pipeline().run(User, SharedRoot(3))

    assert ctx.state is ExtractionState.VALIDATED
    metadata = ctx.freeze()
    assert metadata.fqn == "acme.shop.core.users.User"
    assert [r.field for r in metadata.relationships] == ["profile", "orders"]
    assert [t.__name__ for t in ctx.targets] == ["Profile", "Order"]
    assert metadata.field("email").tags["encrypt"] == "pii"


def test_non_strict_violations_become_warnings(caplog: pytest.LogCaptureFixture) -> None:
    pipeline = _pipeline(policies=[REQUIRE_TENANT])

    with caplog.at_level(logging.WARNING, logger="extraction.pipeline"):
        metadata = pipeline.run(User, ExactDomain()).freeze()

    assert metadata.warnings == ("Type User: missing required field tenant_id (str)",)
    assert metadata.classification == "confidential"
    assert metadata.codecs == ("json",)
    assert "Policy violations" in caplog.text


def test_strict_violation_short_circuits() -> None:
    pipeline = _pipeline(policies=[REQUIRE_TENANT], strict=True)

    with (
        patch("extraction.pipeline.detect_conventions") as detect,
        pytest.raises(PolicyViolationError, match="missing required field tenant_id"),
    ):
        pipeline.run(User, ExactDomain())

    detect.assert_not_called()


def test_policy_conventions_are_detected() -> None:
    metadata = _pipeline(policies=[REQUIRE_TENANT]).run(Invoice, ExactDomain()).freeze()

    assert metadata.conventions == ("validatable",)
    assert metadata.classification is None


def test_capabilities_are_detected() -> None:
    pipeline = _pipeline(capabilities={"billable": lambda cls: cls is Invoice})

    assert pipeline.run(Invoice, ExactDomain()).conventions == ["billable"]
    assert pipeline.run(User, ExactDomain()).conventions == []


def test_unsupported_type_is_surfaced() -> None:
    with pytest.raises(UnsupportedTypeKind):
        _pipeline().run(int, ExactDomain())


def test_duplicate_field_names_fail_validation() -> None:
    duplicate = FieldDescriptor(
        name="id", annotation=str, type="str", kind="scalar", position=(0,)
    )
    descriptor = RecordDescriptor(
        cls=User,
        type_name="User",
        domain="acme.shop.core.users",
        fqn="acme.shop.core.users.User",
        fields=(duplicate, duplicate),
    )

    with (
        patch("extraction.pipeline.describe", return_value=descriptor),
        pytest.raises(ExtractionError, match="duplicate field name 'id'"),
    ):
        _pipeline().run(User, ExactDomain())


def test_policies_mutate_working_copy_only() -> None:
    policy = Policy.model_validate(
        {
            "name": "naming",
            "policies": [
                {"match": "User", "fields": [{"match": "id", "apply": {"db": "{snake}"}}]}
            ],
        }
    )

    with_policy = _pipeline(policies=[policy]).run(User, ExactDomain()).freeze()
    without = _pipeline().run(User, ExactDomain()).freeze()

    assert with_policy.field("id").tags["db"] == "id"
    assert "db" not in without.field("id").tags


def test_context_rejects_out_of_order_transitions() -> None:
    ctx = ExtractionContext(cls=User, domains=ExactDomain())

    with pytest.raises(RuntimeError, match="cannot move extraction"):
        ctx.advance(ExtractionState.VALIDATED)


def test_freeze_requires_validation() -> None:
    ctx = ExtractionContext(cls=User, domains=ExactDomain())

    with pytest.raises(RuntimeError, match="has not been validated"):
        ctx.freeze()
