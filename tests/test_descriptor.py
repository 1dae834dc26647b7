"""Unit tests for type classification and field bindings."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

import annotated_types as at
import pytest

from strictconf import Float32, Int64, Uint16, field
from strictconf.descriptor import Kind, describe


@dc.dataclass
class Endpoint:
    host: str = field("host")
    port: Uint16 = field("port", env="ENDPOINT_PORT")
    _cache: dict[str, str] = dc.field(default_factory=dict)


class Color:
    def __init__(self, name: str) -> None:
        self.name = name

    @classmethod
    def unmarshal_text(cls, text: str) -> Color:
        return cls(text)


@pytest.mark.parametrize(
    ("annotation", "kind", "name"),
    [
        (str, Kind.STRING, "str"),
        (bool, Kind.BOOL, "bool"),
        (Uint16, Kind.INT, "uint16"),
        (Int64, Kind.INT, "int64"),
        (float, Kind.FLOAT, "float64"),
        (Float32, Kind.FLOAT, "float32"),
        (dt.timedelta, Kind.DURATION, "duration"),
        (list[str], Kind.SEQUENCE, "list[str]"),
        (tuple[str, ...], Kind.SEQUENCE, "tuple[str, ...]"),
        (tuple[str, Uint16], Kind.ARRAY, "tuple[str, uint16]"),
        (dict[str, Int64], Kind.MAPPING, "dict[str, int64]"),
        (Endpoint | None, Kind.OPTIONAL, "Endpoint | None"),
        (Endpoint, Kind.STRUCT, "Endpoint"),
        (Color, Kind.CUSTOM, "Color"),
        (int, Kind.UNSUPPORTED, "int"),
        (typ.Any, Kind.UNSUPPORTED, "Any"),
        (int | str, Kind.UNSUPPORTED, "int | str"),
    ],
)
def test_describe_classifies_annotations(
    annotation: object, kind: Kind, name: str
) -> None:
    """Each supported annotation maps onto one kind with a readable name."""
    desc = describe(annotation)
    assert desc.kind is kind, f"expected {kind} for {annotation!r}, got {desc.kind}"
    assert desc.name == name, f"expected name {name!r}, got {desc.name!r}"


def test_struct_fields_carry_bindings_in_order() -> None:
    """Field specs expose yaml and env tags and the exported flag."""
    specs = describe(Endpoint).fields
    summary = [(s.name, s.yaml_tag, s.env_tag, s.exported) for s in specs]
    assert summary == [
        ("host", "host", None, True),
        ("port", "port", "ENDPOINT_PORT", True),
        ("_cache", "", None, False),
    ], f"unexpected field specs {summary!r}"
    assert describe(Endpoint).exported_fields == specs[:2], (
        "exported_fields should drop underscore-prefixed fields"
    )


def test_annotated_constraints_are_preserved() -> None:
    """Extra Annotated metadata survives alongside the integer width."""
    desc = describe(typ.Annotated[Uint16, at.Ge(1)])
    assert desc.kind is Kind.INT, "constrained Uint16 is still an integer"
    assert desc.int_width is not None, "width marker should be kept"
    assert desc.int_width.max_value == 65535, "width should be uint16"
    assert desc.constraints == (at.Ge(1),), f"unexpected {desc.constraints!r}"


def test_custom_decoder_capabilities_are_detected() -> None:
    """unmarshal_text makes a type an opaque custom decoder."""
    desc = describe(Color)
    assert desc.text_unmarshaler, "unmarshal_text should be detected"
    assert not desc.yaml_unmarshaler, "Color has no unmarshal_yaml"


def test_zero_values() -> None:
    """Zero values stand in for fields the document does not supply."""
    assert describe(str).zero() == "", "str zero is empty"
    assert describe(Uint16).zero() == 0, "int zero is 0"
    assert describe(dt.timedelta).zero() == dt.timedelta(0), "duration zero is 0"
    assert describe(list[str]).zero() == [], "list zero is empty"
    assert describe(tuple[str, Uint16]).zero() == ("", 0), "array zero per item"
    assert describe(Endpoint | None).zero() is None, "optional zero is None"
    assert describe(Endpoint).zero() == Endpoint("", 0), "struct zero per field"


def test_int_hint_names_width_aliases() -> None:
    """Plain int is rejected with a hint towards fixed-width aliases."""
    assert "Int32 or Int64" in describe(int).hint, "hint should suggest aliases"


def test_field_helper_merges_metadata() -> None:
    """field() keeps user metadata and adds the tags."""
    declared = field("level", env="LOG_LEVEL", default="info", metadata={"doc": "x"})
    assert declared.default == "info", "default should be forwarded"
    assert dict(declared.metadata) == {
        "doc": "x",
        "yaml": "level",
        "env": "LOG_LEVEL",
    }, "metadata should merge doc, yaml and env keys"
