from __future__ import annotations

import pytest

from utils import domain_root, to_snake


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("UserID", "user_id"),
        ("HTTPServer", "http_server"),
        ("createdAt", "created_at"),
        ("created_at", "created_at"),
        ("Email", "email"),
        ("kebab-case", "kebab_case"),
    ],
)
def test_to_snake(name: str, expected: str) -> None:
    assert to_snake(name) == expected


def test_domain_root_truncates_to_segments() -> None:
    assert domain_root("acme.shop.core.users", 3) == "acme.shop.core"
    assert domain_root("acme.shop.core.users", 1) == "acme"


def test_domain_root_short_and_empty_paths() -> None:
    assert domain_root("acme.shop", 3) == "acme.shop"
    assert domain_root("", 3) == ""


def test_domain_root_rejects_zero_segments() -> None:
    with pytest.raises(ValueError, match="segments must be >= 1"):
        domain_root("acme.shop", 0)
