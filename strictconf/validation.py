"""Post-load validation: ``validate()`` hooks and pydantic constraints.

Hooks run top-down over the loaded value, so a parent sees its own state
before any child is checked. Semantic constraints are the extra
``typing.Annotated`` metadata on field types (``annotated_types.Ge(1)``,
``pydantic.Field(max_length=8)``, ...). They are checked by a pydantic model
mirroring each dataclass, and the first violation is traced back to the
document node that produced the offending value.

Examples
--------
>>> import dataclasses as dc
>>> import typing as typ
>>> import annotated_types as at
>>> from strictconf import field
>>> from strictconf.nodes import compose
>>> from strictconf.scalars import Uint16
>>> from strictconf.validation import locate
>>> @dc.dataclass
... class Server:
...     port: typ.Annotated[Uint16, at.Ge(1)] = field("port")
>>> @dc.dataclass
... class Config:
...     servers: list[Server] = field("servers")
>>> root = compose("servers:\\n  - port: 80\\n  - port: 0\\n")
>>> locate("Config.servers[1].port", Config, root)
(3, 11, 'port')
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import re
import typing as typ

import pydantic

from .descriptor import Kind, TypeDescriptor, describe, index_path, key_path
from .errors import ErrorKind, SelfValidationError, SemanticValidationError
from .nodes import Node, NodeKind

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(
    r"\.(?P<field>[^.\[]+)|\[(?P<index>\d+)\]|\[(?P<key>\"(?:[^\"\\]|\\.)*\")\]"
)
_PYDANTIC_KEY_LOC = "[key]"
_MODELS: dict[type, type[pydantic.BaseModel]] = {}


def invoke_validate_recursively(
    value: typ.Any, config_type: typ.Any, node: Node
) -> None:
    """Call ``validate()`` on ``value`` and every nested value defining it.

    Raises
    ------
    SelfValidationError
        Positioned at the node of the first value whose hook raised. The
        hook's exception is chained as ``__cause__``.
    """
    _invoke(value, describe(config_type), node)


def _invoke(value: typ.Any, desc: TypeDescriptor, node: Node) -> None:
    if value is None:
        return
    target = desc.unwrap()
    if target.has_validate:
        try:
            value.validate()
        except Exception as exc:  # noqa: BLE001 - hooks may raise anything
            msg = (
                f"at {node.line}:{node.column}: "
                f"{ErrorKind.SELF_VALIDATION.value}: {exc}"
            )
            raise SelfValidationError(
                msg, line=node.line, column=node.column
            ) from exc

    match target.kind:
        case Kind.STRUCT:
            for spec in target.exported_fields:
                child = node.find_value(spec.yaml_tag) or node
                _invoke(getattr(value, spec.name), spec.type, child)
        case Kind.SEQUENCE:
            elem = typ.cast("TypeDescriptor", target.elem)
            for item, child in zip(value, _children(node), strict=False):
                _invoke(item, elem, child)
        case Kind.ARRAY:
            for item, item_desc, child in zip(
                value, target.items, _children(node), strict=False
            ):
                _invoke(item, item_desc, child)
        case Kind.MAPPING:
            key_desc = typ.cast("TypeDescriptor", target.key)
            value_desc = typ.cast("TypeDescriptor", target.elem)
            for (key, item), (key_node, value_node) in zip(
                value.items(), node.pairs(), strict=False
            ):
                _invoke(key, key_desc, key_node)
                _invoke(item, value_desc, value_node)


def _children(node: Node) -> tuple[Node, ...]:
    return node.content if node.kind is NodeKind.SEQUENCE else ()


def validate_semantics(instance: typ.Any, config_type: typ.Any, root: Node) -> None:
    """Check the constraints declared on field annotations.

    Parameters
    ----------
    instance : Any
        The loaded configuration.
    config_type : Any
        Its dataclass type.
    root : Node
        The document the instance was loaded from, used to position errors.

    Raises
    ------
    SemanticValidationError
        For the first violated constraint. ``exc.rule`` holds the pydantic
        error type, for example ``"greater_than_equal"``.
    """
    desc = describe(config_type)
    model = mirror_model(desc)
    try:
        model.model_validate(_dump(instance, desc))
    except pydantic.ValidationError as exc:
        error = exc.errors()[0]
        namespace = render_namespace(desc, error["loc"])
        line, column, yaml_tag = locate(namespace, config_type, root)
        rule = error["type"]
        subject = f"{yaml_tag!r} " if yaml_tag else ""
        msg = (
            f"at {line}:{column}: {subject}"
            f"{ErrorKind.VALIDATION_RULE.value}: {rule!r}"
        )
        raise SemanticValidationError(
            msg,
            path=namespace,
            line=line,
            column=column,
            yaml_tag=yaml_tag or None,
            rule=rule,
        ) from exc
    logger.debug("Semantic constraints of %s satisfied", desc.name)


def mirror_model(desc: TypeDescriptor) -> type[pydantic.BaseModel]:
    """Return the cached pydantic model mirroring the dataclass ``desc``.

    Model fields are named positionally and aliased to the dataclass field
    names, so dataclass fields that shadow ``BaseModel`` attributes are safe.
    """
    cls = desc.origin
    if cls in _MODELS:
        return _MODELS[cls]
    definitions: dict[str, typ.Any] = {
        f"f{index}": (
            _mirror_annotation(spec.type),
            pydantic.Field(alias=spec.name),
        )
        for index, spec in enumerate(desc.exported_fields)
    }
    model = pydantic.create_model(desc.name, **definitions)
    _MODELS[cls] = model
    return model


def _mirror_annotation(desc: TypeDescriptor) -> typ.Any:
    annotation: typ.Any
    match desc.kind:
        case Kind.STRUCT:
            annotation = mirror_model(desc)
        case Kind.OPTIONAL:
            inner = _mirror_annotation(typ.cast("TypeDescriptor", desc.elem))
            annotation = inner | None
        case Kind.SEQUENCE:
            elem = _mirror_annotation(typ.cast("TypeDescriptor", desc.elem))
            annotation = tuple[elem, ...] if desc.origin is tuple else list[elem]
        case Kind.ARRAY:
            annotation = tuple[tuple(_mirror_annotation(i) for i in desc.items)]
        case Kind.MAPPING:
            annotation = dict[
                _mirror_annotation(typ.cast("TypeDescriptor", desc.key)),
                _mirror_annotation(typ.cast("TypeDescriptor", desc.elem)),
            ]
        case Kind.STRING:
            annotation = str
        case Kind.BOOL:
            annotation = bool
        case Kind.INT:
            annotation = int
        case Kind.FLOAT:
            annotation = float
        case Kind.DURATION:
            annotation = dt.timedelta
        case _:
            annotation = typ.Any
    if desc.constraints:
        annotation = typ.Annotated[(annotation, *desc.constraints)]
    return annotation


def _dump(value: typ.Any, desc: TypeDescriptor) -> typ.Any:
    """Convert a loaded value into plain data keyed by dataclass field name."""
    if value is None:
        return None
    target = desc.unwrap()
    match target.kind:
        case Kind.STRUCT:
            return {
                spec.name: _dump(getattr(value, spec.name), spec.type)
                for spec in target.exported_fields
            }
        case Kind.SEQUENCE:
            elem = typ.cast("TypeDescriptor", target.elem)
            return [_dump(item, elem) for item in value]
        case Kind.ARRAY:
            return tuple(
                _dump(item, item_desc)
                for item, item_desc in zip(value, target.items, strict=True)
            )
        case Kind.MAPPING:
            key_desc = typ.cast("TypeDescriptor", target.key)
            value_desc = typ.cast("TypeDescriptor", target.elem)
            return {
                _dump(key, key_desc): _dump(item, value_desc)
                for key, item in value.items()
            }
    return value


def render_namespace(desc: TypeDescriptor, loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as ``Config.servers[0]["key"]``.

    Rendering stops at the first segment the type graph cannot follow.
    """
    path = desc.name
    current = desc
    for item in loc:
        current = current.unwrap()
        if current.kind is Kind.STRUCT and isinstance(item, str):
            spec = current.field_named(item)
            if spec is None:
                break
            path = f"{path}.{item}"
            current = spec.type
        elif current.kind is Kind.SEQUENCE and isinstance(item, int):
            path = index_path(path, item)
            current = typ.cast("TypeDescriptor", current.elem)
        elif current.kind is Kind.ARRAY and isinstance(item, int):
            if item >= len(current.items):
                break
            path = index_path(path, item)
            current = current.items[item]
        elif current.kind is Kind.MAPPING and item != _PYDANTIC_KEY_LOC:
            path = key_path(path, str(item))
            current = typ.cast("TypeDescriptor", current.elem)
        else:
            break
    return path


def locate(
    namespace: str, config_type: typ.Any, root: Node
) -> tuple[int, int, str]:
    """Find the document node a rendered namespace refers to.

    Parameters
    ----------
    namespace : str
        A path such as ``Config.servers[0].port``. The leading type name is
        skipped.
    config_type : Any
        The dataclass the document was loaded into.
    root : Node
        The document's root node.

    Returns
    -------
    tuple[int, int, str]
        Line, column and yaml tag of the deepest node that could be resolved.
        The tag is that of the last struct field named on the way, even when
        its key is absent from the document, or ``""``.
    """
    current = describe(config_type)
    node = root
    yaml_tag = ""
    position = next(
        (index for index, char in enumerate(namespace) if char in ".["),
        len(namespace),
    )
    while position < len(namespace):
        match = _SEGMENT_RE.match(namespace, position)
        if match is None:
            break
        position = match.end()
        current = current.unwrap()

        if (name := match["field"]) is not None:
            spec = current.field_named(name) if current.kind is Kind.STRUCT else None
            if spec is None:
                break
            yaml_tag = spec.yaml_tag
            child = node.find_value(spec.yaml_tag)
            if child is None:
                break
            node, current = child, spec.type
        elif (index := match["index"]) is not None:
            offset = int(index)
            if node.kind is not NodeKind.SEQUENCE or offset >= len(node.content):
                break
            node = node.content[offset]
            if current.kind is Kind.ARRAY and offset < len(current.items):
                current = current.items[offset]
            else:
                current = current.elem or current
        else:
            child = node.find_value(json.loads(match["key"]))
            if child is None:
                break
            node = child
            current = current.elem or current
    return node.line, node.column, yaml_tag


__all__ = [
    "invoke_validate_recursively",
    "locate",
    "mirror_model",
    "render_namespace",
    "validate_semantics",
]
