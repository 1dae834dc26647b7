"""Strictly decode a composed node tree into a configuration instance."""

from __future__ import annotations

import logging
import typing as typ

from .descriptor import Kind, TypeDescriptor, describe, index_path, key_path
from .errors import ErrorKind, MalformedDocumentError
from .nodes import Node, NodeKind
from .scalars import YAML_BOOLS, parse_duration, parse_yaml_float, parse_yaml_int

logger = logging.getLogger(__name__)

T = typ.TypeVar("T")


def _malformed(
    node: Node, path: str, problem: str, cause: Exception | None = None
) -> typ.NoReturn:
    msg = (
        f"at {node.line}:{node.column}: "
        f"{ErrorKind.MALFORMED_DOCUMENT.value}: {path}: {problem}"
    )
    error = MalformedDocumentError(
        msg, path=path, line=node.line, column=node.column
    )
    if cause is None:
        raise error
    raise error from cause


def decode(root: Node, config_type: type[T]) -> T:
    """Build an instance of ``config_type`` from the document ``root``.

    Unknown and duplicate keys are rejected. Fields the document omits take
    their dataclass default or the zero value of their type; reporting them is
    left to :func:`strictconf.values.validate_values`.

    Raises
    ------
    MalformedDocumentError
        If a node cannot be decoded into the type it is bound to.
    """
    desc = describe(config_type)
    if root.kind is not NodeKind.MAPPING:
        _malformed(root, desc.name, f"expected a mapping, got a {root.kind.value}")
    value = _decode(root, desc, desc.name)
    logger.debug("Decoded document into %s", desc.name)
    return typ.cast("T", value)


def _decode(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    if node.is_null and desc.kind not in {Kind.STRING, Kind.STRUCT}:
        return None if desc.kind is Kind.OPTIONAL else desc.zero()

    match desc.kind:
        case Kind.OPTIONAL:
            return _decode(node, typ.cast("TypeDescriptor", desc.elem), path)
        case Kind.STRUCT:
            return _decode_struct(node, desc, path)
        case Kind.CUSTOM:
            return _decode_custom(node, desc, path)
        case Kind.SEQUENCE:
            return _decode_sequence(node, desc, path)
        case Kind.ARRAY:
            return _decode_array(node, desc, path)
        case Kind.MAPPING:
            return _decode_mapping(node, desc, path)
        case _:
            return _decode_scalar(node, desc, path)


def _decode_struct(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    # An empty value decodes like an empty mapping.
    if node.kind is not NodeKind.MAPPING and not node.is_null:
        _malformed(node, path, f"cannot decode {node.kind.value} into {desc.name}")

    by_tag = {spec.yaml_tag: spec for spec in desc.exported_fields}
    values: dict[str, typ.Any] = {}
    for key_node, value_node in node.pairs():
        if key_node.kind is not NodeKind.SCALAR:
            _malformed(key_node, path, "mapping keys must be scalars")
        spec = by_tag.get(key_node.value)
        if spec is None:
            _malformed(
                key_node,
                path,
                f"field {key_node.value!r} not found in type {desc.name}",
            )
        if spec.name in values:
            _malformed(
                key_node, path, f"mapping key {key_node.value!r} already defined"
            )
        values[spec.name] = _decode(value_node, spec.type, f"{path}.{spec.name}")

    kwargs: dict[str, typ.Any] = {}
    try:
        for spec in desc.fields:
            if not spec.init:
                continue
            if spec.name in values:
                kwargs[spec.name] = values[spec.name]
            elif not spec.has_default:
                kwargs[spec.name] = spec.type.zero()
        instance = desc.origin(**kwargs)
    except (TypeError, ValueError) as exc:
        _malformed(node, path, f"cannot construct {desc.name}: {exc}", exc)
    for spec in desc.fields:
        if not spec.init and spec.name in values:
            object.__setattr__(instance, spec.name, values[spec.name])
    return instance


def _decode_custom(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    try:
        if desc.yaml_unmarshaler:
            return desc.origin.unmarshal_yaml(node)
        if node.kind is not NodeKind.SCALAR:
            _malformed(
                node, path, f"cannot decode {node.kind.value} into {desc.name}"
            )
        return desc.origin.unmarshal_text(node.value)
    except (TypeError, ValueError) as exc:
        if isinstance(exc, MalformedDocumentError):
            raise
        _malformed(node, path, f"cannot decode into {desc.name}: {exc}", exc)


def _decode_sequence(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    if node.kind is not NodeKind.SEQUENCE:
        _malformed(node, path, f"cannot decode {node.kind.value} into {desc.name}")
    elem = typ.cast("TypeDescriptor", desc.elem)
    items = [
        _decode(child, elem, index_path(path, index))
        for index, child in enumerate(node.content)
    ]
    return tuple(items) if desc.origin is tuple else items


def _decode_array(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    if node.kind is not NodeKind.SEQUENCE:
        _malformed(node, path, f"cannot decode {node.kind.value} into {desc.name}")
    if len(node.content) != len(desc.items):
        _malformed(
            node,
            path,
            f"invalid array: want {len(desc.items)} elements "
            f"but got {len(node.content)}",
        )
    return tuple(
        _decode(child, item, index_path(path, index))
        for index, (child, item) in enumerate(
            zip(node.content, desc.items, strict=True)
        )
    )


def _decode_mapping(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    if node.kind is not NodeKind.MAPPING:
        _malformed(node, path, f"cannot decode {node.kind.value} into {desc.name}")
    key_desc = typ.cast("TypeDescriptor", desc.key)
    value_desc = typ.cast("TypeDescriptor", desc.elem)
    result: dict[typ.Any, typ.Any] = {}
    for key_node, value_node in node.pairs():
        if key_node.kind is not NodeKind.SCALAR:
            _malformed(key_node, path, "mapping keys must be scalars")
        entry_path = key_path(path, key_node.value)
        key = _decode(key_node, key_desc, entry_path)
        if key in result:
            _malformed(
                key_node, path, f"mapping key {key_node.value!r} already defined"
            )
        result[key] = _decode(value_node, value_desc, entry_path)
    return result


def _decode_scalar(node: Node, desc: TypeDescriptor, path: str) -> typ.Any:
    if node.kind is not NodeKind.SCALAR:
        _malformed(node, path, f"cannot decode {node.kind.value} into {desc.name}")
    text = node.value
    if desc.kind is Kind.STRING:
        return "" if node.is_null else text
    if desc.kind is Kind.DURATION:
        try:
            return parse_duration(text)
        except ValueError as exc:
            _malformed(node, path, str(exc), exc)
    if node.is_quoted and node.tag is None:
        _malformed(node, path, f"cannot decode string {text!r} into {desc.name}")

    match desc.kind:
        case Kind.BOOL:
            if text in YAML_BOOLS:
                return YAML_BOOLS[text]
        case Kind.INT:
            number = parse_yaml_int(text)
            width = desc.int_width
            if number is not None and width is not None:
                if not width.contains(number):
                    _malformed(
                        node, path, f"value {text} overflows {desc.name}"
                    )
                return number
        case Kind.FLOAT:
            real = parse_yaml_float(text)
            if real is None and (whole := parse_yaml_int(text)) is not None:
                real = float(whole)
            if real is not None:
                width = desc.float_width
                if width is not None and not width.contains(real):
                    _malformed(
                        node, path, f"value {text} overflows {desc.name}"
                    )
                return real
    _malformed(node, path, f"cannot decode {text!r} into {desc.name}")


__all__ = ["decode"]
