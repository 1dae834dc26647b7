"""Unit tests for the literal and completeness rules on documents."""

from __future__ import annotations

import dataclasses as dc
from textwrap import dedent

import pytest

from strictconf import (
    ErrorKind,
    MalformedLiteralError,
    MissingFieldError,
    TagUsageError,
    Uint16,
    field,
)
from strictconf.nodes import compose
from strictconf.values import validate_values


@dc.dataclass
class Server:
    host: str = field("host")
    port: Uint16 = field("port")


@dc.dataclass
class Settings:
    enabled: bool = field("enabled")
    maybe: bool | None = field("maybe")
    name: str = field("name")
    port: Uint16 = field("port")
    tags: list[str] = field("tags")
    labels: dict[str, str] = field("labels")
    server: Server | None = field("server")


VALID = dedent(
    """\
    enabled: true
    maybe: null
    name: demo
    port: 80
    tags: null
    labels: {}
    server: null
    """
)


def _check(source: str) -> None:
    validate_values(Settings, compose(source))


def test_valid_document_passes() -> None:
    """Canonical literals and nulls on nullable types are accepted."""
    _check(VALID)
    _check(VALID.replace("name: demo", 'name: "null"'))
    _check(VALID.replace("name: demo", "name: 'null'"))
    _check(VALID.replace("maybe: null", "maybe: false"))
    _check(VALID.replace("maybe: null", "maybe:"))


@pytest.mark.parametrize(
    ("old", "new", "kind", "path", "position"),
    [
        ("enabled: true", "enabled: yes", ErrorKind.BAD_BOOL_LITERAL, "Settings.enabled", (1, 10)),
        ("enabled: true", "enabled: True", ErrorKind.BAD_BOOL_LITERAL, "Settings.enabled", (1, 10)),
        ("enabled: true", "enabled: on", ErrorKind.BAD_BOOL_LITERAL, "Settings.enabled", (1, 10)),
        ("maybe: null", "maybe: no", ErrorKind.BAD_BOOL_LITERAL, "Settings.maybe", (2, 8)),
        ("maybe: null", "maybe: ~", ErrorKind.BAD_NULL_LITERAL, "Settings.maybe", (2, 8)),
        ("maybe: null", "maybe: Null", ErrorKind.BAD_NULL_LITERAL, "Settings.maybe", (2, 8)),
        ("maybe: null", "maybe: NULL", ErrorKind.BAD_NULL_LITERAL, "Settings.maybe", (2, 8)),
        ("name: demo", "name: null", ErrorKind.NULL_ON_NON_NULLABLE, "Settings.name", (3, 7)),
        ("port: 80", "port: null", ErrorKind.NULL_ON_NON_NULLABLE, "Settings.port", (4, 7)),
        ("tags: null", "tags: [a, ~]", ErrorKind.BAD_NULL_LITERAL, "Settings.tags[1]", (5, 11)),
        ("labels: {}", "labels: {~: x}", ErrorKind.BAD_NULL_LITERAL, 'Settings.labels["~"]', (6, 10)),
        ("labels: {}", "labels: {a: null}", ErrorKind.NULL_ON_NON_NULLABLE, 'Settings.labels["a"]', (6, 13)),
    ],
)
def test_literal_rules(
    old: str,
    new: str,
    kind: ErrorKind,
    path: str,
    position: tuple[int, int],
) -> None:
    """Boolean and null spellings are restricted to true, false and null."""
    with pytest.raises(MalformedLiteralError) as excinfo:
        _check(VALID.replace(old, new))
    error = excinfo.value
    assert error.kind is kind, f"expected {kind}, got {error.kind}"
    assert error.path == path, f"expected path {path!r}, got {error.path!r}"
    assert error.position == position, (
        f"expected position {position}, got {error.position}"
    )


def test_bool_message_names_tag_and_path() -> None:
    """Messages lead with position, then the yaml tag and the field path."""
    with pytest.raises(MalformedLiteralError) as excinfo:
        _check(VALID.replace("enabled: true", "enabled: yes"))
    assert str(excinfo.value) == (
        "at 1:10: 'enabled' (Settings.enabled): must be either false or true, "
        "other variants of boolean literals of YAML are not supported"
    ), f"unexpected message {excinfo.value}"


def test_explicit_tags_are_rejected() -> None:
    """Any explicit tag is reported, even a redundant one."""
    with pytest.raises(TagUsageError) as excinfo:
        _check(VALID.replace("name: demo", "name: !!str demo"))
    assert excinfo.value.kind is ErrorKind.TAG_USED, "kind should be TAG_USED"
    assert excinfo.value.yaml_tag == "name", "error names the yaml tag"
    assert "avoid using YAML tags" in str(excinfo.value), "message names the rule"


def test_missing_field_is_reported_at_enclosing_mapping() -> None:
    """A declared key absent from the document is a MissingFieldError."""
    with pytest.raises(MissingFieldError) as excinfo:
        _check(VALID.replace("port: 80\n", ""))
    assert str(excinfo.value) == (
        "at 1:1: Settings.port (as 'port'): missing field in config file"
    ), f"unexpected message {excinfo.value}"


def test_missing_field_inside_optional_struct() -> None:
    """Present optional structs are checked for completeness too."""
    with pytest.raises(MissingFieldError) as excinfo:
        _check(VALID.replace("server: null", "server:\n  host: h"))
    assert excinfo.value.path == "Settings.server.port", "nested path expected"
    assert excinfo.value.position == (8, 3), "positioned at the server mapping"
