"""Content rules a successful decode cannot express on its own.

The decoder accepts YAML 1.1 boolean spellings, every null spelling and
silently fills in missing keys. This pass walks the type and the node tree
together and rejects all of those, as well as explicit YAML tags.
"""

from __future__ import annotations

import logging
import typing as typ

from .descriptor import (
    NULLABLE_KINDS,
    Kind,
    TypeDescriptor,
    describe,
    index_path,
    key_path,
)
from .errors import (
    ConfigError,
    ErrorKind,
    MalformedLiteralError,
    MissingFieldError,
    TagUsageError,
)
from .nodes import Node, NodeKind

logger = logging.getLogger(__name__)


def validate_values(config_type: typ.Any, root: Node) -> None:
    """Check the document ``root`` against the literal rules of ``config_type``.

    Raises
    ------
    MissingFieldError
        If a declared yaml tag is absent from its mapping.
    TagUsageError
        If any checked node carries an explicit YAML tag.
    MalformedLiteralError
        For non-canonical boolean or null spellings and for null assigned to
        a type that cannot hold it.
    """
    desc = describe(config_type)
    _validate(desc, root, path=desc.name, yaml_tag="")
    logger.debug("Document values of %s passed validation", desc.name)


def _validate(desc: TypeDescriptor, node: Node, *, path: str, yaml_tag: str) -> None:
    if failure := _check_literal(desc, node):
        error_type, kind, detail = failure
        where = f"{yaml_tag!r} ({path})" if yaml_tag else path
        message = f"{detail}: {kind.value}" if detail else kind.value
        msg = f"at {node.line}:{node.column}: {where}: {message}"
        raise error_type(
            msg,
            kind=kind,
            path=path,
            line=node.line,
            column=node.column,
            yaml_tag=yaml_tag or None,
        )

    match desc.kind:
        case Kind.OPTIONAL:
            if not node.is_null:
                _validate(
                    typ.cast("TypeDescriptor", desc.elem),
                    node,
                    path=path,
                    yaml_tag=yaml_tag,
                )
        case Kind.STRUCT:
            _validate_struct(desc, node, path=path)
        case Kind.SEQUENCE:
            elem = typ.cast("TypeDescriptor", desc.elem)
            for index, child in enumerate(_children(node, NodeKind.SEQUENCE)):
                _validate(
                    elem, child, path=index_path(path, index), yaml_tag=yaml_tag
                )
        case Kind.ARRAY:
            children = _children(node, NodeKind.SEQUENCE)
            for index, (item, child) in enumerate(zip(desc.items, children)):
                _validate(
                    item, child, path=index_path(path, index), yaml_tag=yaml_tag
                )
        case Kind.MAPPING:
            key_desc = typ.cast("TypeDescriptor", desc.key)
            value_desc = typ.cast("TypeDescriptor", desc.elem)
            for key_node, value_node in node.pairs():
                entry_path = key_path(path, key_node.value)
                _validate(key_desc, key_node, path=entry_path, yaml_tag=yaml_tag)
                _validate(value_desc, value_node, path=entry_path, yaml_tag=yaml_tag)


def _validate_struct(desc: TypeDescriptor, node: Node, *, path: str) -> None:
    # An empty value stands for a mapping without keys.
    if node.kind is not NodeKind.MAPPING and not node.is_null:
        return
    for spec in desc.exported_fields:
        field_path = f"{path}.{spec.name}"
        child = node.find_value(spec.yaml_tag)
        if child is None:
            msg = (
                f"at {node.line}:{node.column}: {field_path} "
                f"(as {spec.yaml_tag!r}): {ErrorKind.MISSING_FIELD.value}"
            )
            raise MissingFieldError(
                msg,
                path=field_path,
                line=node.line,
                column=node.column,
                yaml_tag=spec.yaml_tag,
            )
        _validate(spec.type, child, path=field_path, yaml_tag=spec.yaml_tag)


def _children(node: Node, kind: NodeKind) -> tuple[Node, ...]:
    return node.content if node.kind is kind else ()


def _check_literal(
    desc: TypeDescriptor, node: Node
) -> tuple[type[ConfigError], ErrorKind, str] | None:
    """Return the first literal rule ``node`` breaks, or ``None``."""
    if node.tag is not None:
        return TagUsageError, ErrorKind.TAG_USED, f"tag {node.tag!r}"
    if node.kind is not NodeKind.SCALAR:
        return None

    value = node.value
    if desc.kind is Kind.STRING and value == "null":
        if node.is_quoted:
            return None
        return MalformedLiteralError, ErrorKind.NULL_ON_NON_NULLABLE, ""
    if value == "~" or value.lower() == "null":
        if value != "null":
            return MalformedLiteralError, ErrorKind.BAD_NULL_LITERAL, ""
        if desc.kind not in NULLABLE_KINDS:
            return MalformedLiteralError, ErrorKind.NULL_ON_NON_NULLABLE, ""
        return None
    if desc.kind is Kind.OPTIONAL and node.is_null:
        return None
    if desc.unwrap().kind is Kind.BOOL and value not in {"true", "false"}:
        return MalformedLiteralError, ErrorKind.BAD_BOOL_LITERAL, ""
    return None


__all__ = ["validate_values"]
