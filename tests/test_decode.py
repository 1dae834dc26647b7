"""Unit tests for strict decoding of node trees into dataclasses."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import math
from textwrap import dedent

import pytest

from strictconf import (
    Float32,
    Int8,
    MalformedDocumentError,
    Node,
    Uint8,
    Uint16,
    field,
)
from strictconf.decode import decode
from strictconf.nodes import NodeKind, compose


class Level:
    def __init__(self, name: str) -> None:
        self.name = name

    @classmethod
    def unmarshal_text(cls, text: str) -> Level:
        if text not in {"debug", "info"}:
            msg = f"unknown level {text!r}"
            raise ValueError(msg)
        return cls(text)


class Pair:
    def __init__(self, left: str, right: str) -> None:
        self.left = left
        self.right = right

    @classmethod
    def unmarshal_yaml(cls, node: Node) -> Pair:
        if node.kind is not NodeKind.SEQUENCE or len(node.content) != 2:
            msg = "expected two items"
            raise ValueError(msg)
        return cls(node.content[0].value, node.content[1].value)


@dc.dataclass
class Server:
    host: str = field("host")
    port: Uint16 = field("port")


@dc.dataclass
class Config:
    name: str = field("name")
    server: Server = field("server")
    backup: Server | None = field("backup")
    replicas: list[Server] = field("replicas")
    bounds: tuple[Int8, Int8] = field("bounds")
    labels: dict[str, str] = field("labels")
    flags: dict[Uint8, bool] = field("flags")
    ratio: Float32 = field("ratio")
    timeout: dt.timedelta = field("timeout")
    level: Level = field("level")
    pair: Pair = field("pair")
    note: str | None = field("note")


@dc.dataclass
class WithDefaults:
    name: str = field("name")
    retries: Uint8 = field("retries", default=3)
    tags: list[str] = field("tags", default_factory=list)


FULL_DOCUMENT = dedent(
    """\
    name: demo
    server:
      host: localhost
      port: 8080
    backup: null
    replicas:
      - host: a
        port: 1
      - host: b
        port: 0x10
    bounds: [-128, 127]
    labels:
      team: core
    flags:
      1: true
      2: off
    ratio: 0.5
    timeout: 1m30s
    level: info
    pair: [x, y]
    note: "null"
    """
)


def test_decode_builds_the_full_type_graph() -> None:
    """Every supported construct decodes into its Python value."""
    config = decode(compose(FULL_DOCUMENT), Config)
    assert config.name == "demo", "str field"
    assert config.server == Server("localhost", 8080), "nested struct"
    assert config.backup is None, "null optional"
    assert config.replicas == [Server("a", 1), Server("b", 16)], "list of structs"
    assert config.bounds == (-128, 127), "fixed array"
    assert config.labels == {"team": "core"}, "string mapping"
    assert config.flags == {1: True, 2: False}, "typed keys and YAML 1.1 booleans"
    assert config.ratio == 0.5, "float32"
    assert config.timeout == dt.timedelta(seconds=90), "duration literal"
    assert config.level.name == "info", "text decoder"
    assert (config.pair.left, config.pair.right) == ("x", "y"), "node decoder"
    assert config.note == "null", "quoted null is a string"


def test_missing_fields_use_defaults_or_zero_values() -> None:
    """Decoding leaves completeness checks to the value validator."""
    config = decode(compose("name: demo\n"), WithDefaults)
    assert config == WithDefaults("demo", 3, []), f"unexpected {config!r}"


@pytest.mark.parametrize(
    ("source", "fragment", "position"),
    [
        ("name: demo\nextra: 1\n", "field 'extra' not found in type WithDefaults", (2, 1)),
        ("name: a\nname: b\n", "mapping key 'name' already defined", (2, 1)),
        ("name: demo\nretries: 256\n", "overflows uint8", (2, 10)),
        ("name: demo\nretries: -1\n", "overflows uint8", (2, 10)),
        ("name: demo\nretries: '3'\n", "cannot decode string '3' into uint8", (2, 10)),
        ("name: demo\nretries: 1.5\n", "cannot decode '1.5' into uint8", (2, 10)),
        ("name: demo\ntags: value\n", "cannot decode scalar into list[str]", (2, 7)),
        ("name: [a]\n", "cannot decode sequence into str", (1, 7)),
    ],
)
def test_decode_rejects_mismatches(
    source: str, fragment: str, position: tuple[int, int]
) -> None:
    """Unknown keys, duplicates and type mismatches are malformed documents."""
    with pytest.raises(MalformedDocumentError) as excinfo:
        decode(compose(source), WithDefaults)
    assert fragment in str(excinfo.value), f"unexpected message {excinfo.value}"
    assert excinfo.value.position == position, (
        f"expected position {position}, got {excinfo.value.position}"
    )


def test_decode_rejects_non_mapping_root() -> None:
    """The document root must be a mapping."""
    with pytest.raises(MalformedDocumentError, match="expected a mapping"):
        decode(compose("- a\n- b\n"), WithDefaults)


def test_fixed_arrays_require_exact_length() -> None:
    """Arrays report the expected and actual element counts."""
    source = FULL_DOCUMENT.replace("bounds: [-128, 127]", "bounds: [1]")
    with pytest.raises(
        MalformedDocumentError, match="invalid array: want 2 elements but got 1"
    ) as excinfo:
        decode(compose(source), Config)
    assert excinfo.value.path == "Config.bounds", "path names the array field"


def test_custom_decoder_errors_are_malformed_documents() -> None:
    """Exceptions from unmarshal_text are wrapped with position and path."""
    source = FULL_DOCUMENT.replace("level: info", "level: loud")
    with pytest.raises(MalformedDocumentError, match="unknown level 'loud'") as excinfo:
        decode(compose(source), Config)
    assert excinfo.value.path == "Config.level", "path names the custom field"
    assert excinfo.value.line == 19, "line points at the offending value"
    assert isinstance(excinfo.value.__cause__, ValueError), "cause is chained"


def test_float32_overflow_and_special_values() -> None:
    """float32 rejects out-of-range literals but accepts infinities."""
    overflow = FULL_DOCUMENT.replace("ratio: 0.5", "ratio: 1e39")
    with pytest.raises(MalformedDocumentError, match="overflows float32"):
        decode(compose(overflow), Config)
    infinite = FULL_DOCUMENT.replace("ratio: 0.5", "ratio: -.inf")
    assert decode(compose(infinite), Config).ratio == -math.inf, "-.inf parses"


def test_invalid_duration_is_malformed() -> None:
    """Durations need a unit suffix."""
    source = FULL_DOCUMENT.replace("timeout: 1m30s", "timeout: 90")
    with pytest.raises(MalformedDocumentError, match="invalid duration '90'"):
        decode(compose(source), Config)


def test_map_keys_are_decoded_with_their_type() -> None:
    """Keys that do not fit the key type are rejected."""
    source = FULL_DOCUMENT.replace("  1: true", "  x: true")
    with pytest.raises(MalformedDocumentError) as excinfo:
        decode(compose(source), Config)
    assert excinfo.value.path == 'Config.flags["x"]', (
        f"unexpected path {excinfo.value.path!r}"
    )
