from __future__ import annotations

import orjson
import pytest
from pydantic import ValidationError

from metadata.models import FieldMetadata, Metadata, TypeRelationship, placeholder_for
from metadata.serialize import dump_schema, schema_to_dict


def _user() -> Metadata:
    return Metadata(
        type_name="User",
        domain="app.models",
        fqn="app.models.User",
        fields=(
            FieldMetadata(
                name="id",
                type="str",
                annotation=str,
                kind="scalar",
                position=(0,),
                tags={"json": "id"},
            ),
        ),
        relationships=(
            TypeRelationship(
                from_type="User",
                to_type="Profile",
                field="profile",
                kind="reference",
                to_domain="app.models",
            ),
        ),
    )


def test_field_lookup() -> None:
    user = _user()

    assert user.field("id").tags == {"json": "id"}
    assert user.field("missing") is None


def test_metadata_is_frozen() -> None:
    with pytest.raises(ValidationError):
        _user().type_name = "Other"


def test_relationship_accepts_wire_names() -> None:
    rel = TypeRelationship.model_validate(
        {
            "from": "A",
            "to": "B",
            "field": "b",
            "kind": "collection",
            "to_domain": "app",
        }
    )

    assert (rel.from_type, rel.to_type) == ("A", "B")


def test_unknown_kind_rejected() -> None:
    with pytest.raises(ValidationError):
        FieldMetadata(name="x", type="int", kind="pointer-ish", position=(0,))


def test_placeholder_is_empty() -> None:
    placeholder = placeholder_for("User", "app.models", "app.models.User")

    assert placeholder.fields == ()
    assert placeholder.relationships == ()
    assert placeholder.classification is None


def test_dump_schema_is_sorted_and_deterministic() -> None:
    user = _user()
    other = placeholder_for("Address", "app.models", "app.models.Address")
    schema = {user.fqn: user, other.fqn: other}

    dumped = dump_schema(schema)

    assert dumped == dump_schema(dict(reversed(list(schema.items()))))
    assert list(orjson.loads(dumped)) == ["app.models.Address", "app.models.User"]
    assert list(schema_to_dict(schema)) == ["app.models.Address", "app.models.User"]
    assert orjson.loads(dumped)["app.models.User"]["fields"][0]["position"] == [0]
