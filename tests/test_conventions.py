from __future__ import annotations

import logging

import pytest
from acme.shop.billing.invoices import Invoice, Receipt
from acme.shop.core.users import User

from extraction.conventions import detect_conventions, satisfies
from policy.models import Convention


def _convention(name: str, method: str, params: list[str], returns: list[str]) -> Convention:
    return Convention(name=name, method=method, params=params, returns=returns)


VALIDATABLE = _convention("validatable", "validate", [], [])
CLONEABLE = _convention("cloneable", "clone", [], ["@self"])
PARSEABLE = _convention("parseable", "parse", ["str"], ["@self", "bool"])
BUILDABLE = _convention("buildable", "build", ["str", "float"], ["@self"])


def test_instance_method_shape() -> None:
    assert satisfies(Invoice, VALIDATABLE)
    assert not satisfies(Receipt, VALIDATABLE)
    assert not satisfies(User, VALIDATABLE)


def test_self_return_token() -> None:
    assert satisfies(Invoice, CLONEABLE)
    assert not satisfies(Invoice, _convention("c", "clone", [], ["Receipt"]))


def test_classmethod_with_multiple_returns() -> None:
    assert satisfies(Invoice, PARSEABLE)
    assert satisfies(
        Invoice, _convention("p", "parse", ["str"], ["tuple[Invoice, bool]"])
    )
    assert not satisfies(Invoice, _convention("p", "parse", [], ["@self", "bool"]))


def test_staticmethod_has_no_receiver() -> None:
    assert satisfies(Invoice, BUILDABLE)


def test_non_method_attribute_never_matches() -> None:
    assert not satisfies(Invoice, _convention("n", "number", [], ["str"]))


def test_detect_conventions_orders_policies_then_capabilities() -> None:
    detected = detect_conventions(
        Invoice,
        [CLONEABLE, VALIDATABLE, CLONEABLE],
        {"billable": lambda cls: hasattr(cls, "clone"), "never": lambda cls: False},
    )

    assert detected == ["cloneable", "validatable", "billable"]


def test_failing_capability_is_logged_and_skipped(
    caplog: pytest.LogCaptureFixture,
) -> None:
    def explode(cls: type) -> bool:
        msg = "boom"
        raise RuntimeError(msg)

    with caplog.at_level(logging.WARNING, logger="extraction.conventions"):
        detected = detect_conventions(Invoice, [VALIDATABLE], {"explosive": explode})

    assert detected == ["validatable"]
    assert "explosive" in caplog.text
