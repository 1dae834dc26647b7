"""Structural rules every destination configuration type must satisfy.

The checks run once per type before any document is read, so a badly shaped
dataclass fails the same way regardless of the YAML it is paired with.
Successful checks are cached.
"""

from __future__ import annotations

import logging
import typing as typ

from ._constants import ENV_VAR_RE
from .descriptor import PRIMITIVE_KINDS, FieldSpec, Kind, TypeDescriptor, describe
from .errors import ErrorKind, ShapeError

logger = logging.getLogger(__name__)

_MAP_KEY_KINDS = frozenset({Kind.STRING, Kind.BOOL, Kind.INT, Kind.FLOAT})
_VALID_TYPES: set[typ.Any] = set()


def _fail(path: str, kind: ErrorKind, detail: str = "") -> typ.NoReturn:
    msg = f"at {path}: {kind.value}"
    if detail:
        msg = f"{msg}: {detail}"
    raise ShapeError(msg, kind=kind, path=path)


def validate_type(config_type: typ.Any) -> None:
    """Check ``config_type`` against the structural rules.

    Parameters
    ----------
    config_type : Any
        The dataclass configuration documents are loaded into.

    Raises
    ------
    ShapeError
        For the first violation found, depth-first with fields in declaration
        order. ``exc.path`` names the offending field.
    """
    try:
        if config_type in _VALID_TYPES:
            return
    except TypeError:
        pass

    root = describe(config_type)
    if root.kind is not Kind.STRUCT:
        _fail(root.name, ErrorKind.ILLEGAL_ROOT_TYPE)

    _ShapeChecker([root.origin]).check_struct(root.name, root)
    logger.debug("Type %s passed shape validation", root.name)
    try:
        _VALID_TYPES.add(config_type)
    except TypeError:
        pass


class _ShapeChecker:
    """Walk a struct graph while tracking the structs being visited."""

    def __init__(self, stack: list[typ.Any]) -> None:
        self.stack = stack

    def check_struct(self, path: str, desc: TypeDescriptor) -> None:
        exported = 0
        tags: dict[str, str] = {}
        for spec in desc.fields:
            field_path = f"{path}.{spec.name}"
            if spec.exported and not spec.yaml_tag:
                _fail(field_path, ErrorKind.MISSING_YAML_TAG)
            if spec.yaml_tag and not spec.exported:
                _fail(field_path, ErrorKind.YAML_TAG_ON_UNEXPORTED)
            self._check_env_tag(field_path, spec)
            if not spec.exported:
                continue
            exported += 1

            if previous := tags.get(spec.yaml_tag):
                msg = (
                    f"at {field_path}: yaml tag {spec.yaml_tag!r} previously "
                    f"defined on field {previous}: "
                    f"{ErrorKind.YAML_TAG_REDEFINED.value}"
                )
                raise ShapeError(
                    msg, kind=ErrorKind.YAML_TAG_REDEFINED, path=field_path
                )
            tags[spec.yaml_tag] = field_path

            self._check_field_type(field_path, spec.type)

        if exported < 1:
            _fail(path, ErrorKind.NO_EXPORTED_FIELDS)

    def _check_env_tag(self, path: str, spec: FieldSpec) -> None:
        if spec.env_tag is None:
            return
        if not spec.exported:
            _fail(path, ErrorKind.ENV_TAG_ON_UNEXPORTED)
        if not ENV_VAR_RE.fullmatch(spec.env_tag):
            _fail(path, ErrorKind.INVALID_ENV_TAG)
        target = spec.type.unwrap()
        if target.kind not in PRIMITIVE_KINDS and target.kind is not Kind.CUSTOM:
            _fail(path, ErrorKind.ENV_ON_UNSUPPORTED_TYPE, spec.type.name)

    def _check_field_type(self, path: str, desc: TypeDescriptor) -> None:
        current = desc
        while True:
            if current.kind is Kind.OPTIONAL:
                elem = typ.cast("TypeDescriptor", current.elem)
                if elem.kind in {Kind.SEQUENCE, Kind.ARRAY, Kind.MAPPING}:
                    _fail(path, ErrorKind.UNSUPPORTED_POINTER, current.name)
                current = elem
                continue

            match current.kind:
                case Kind.STRUCT:
                    if current.origin in self.stack:
                        _fail(path, ErrorKind.RECURSIVE_TYPE, current.name)
                    self.stack.append(current.origin)
                    self.check_struct(path, current)
                    self.stack.pop()
                case Kind.CUSTOM:
                    _check_custom_decoder(path, current)
                case Kind.UNSUPPORTED:
                    detail = current.name
                    if current.hint:
                        detail = f"{detail}, {current.hint}"
                    _fail(path, ErrorKind.UNSUPPORTED_TYPE, detail)
                case Kind.SEQUENCE:
                    current = typ.cast("TypeDescriptor", current.elem)
                    continue
                case Kind.ARRAY:
                    for item in current.items:
                        self._check_field_type(path, item)
                case Kind.MAPPING:
                    value = typ.cast("TypeDescriptor", current.elem)
                    _check_map_key(path, typ.cast("TypeDescriptor", current.key))
                    if value.kind is Kind.STRUCT:
                        _fail(
                            path,
                            ErrorKind.UNSUPPORTED_TYPE,
                            f"{value.name}, use {value.name} | None "
                            "as map value",
                        )
                    current = value
                    continue
            return


def _check_map_key(path: str, key: TypeDescriptor) -> None:
    if key.kind in _MAP_KEY_KINDS:
        return
    if key.kind is Kind.CUSTOM and key.text_unmarshaler:
        return
    detail = f"{key.name}, map keys must be str, bool, numbers or text decoders"
    _fail(path, ErrorKind.UNSUPPORTED_TYPE, detail)


def _check_custom_decoder(path: str, desc: TypeDescriptor) -> None:
    """Reject yaml and env tags inside a type that decodes itself."""
    if desc.kind is not Kind.CUSTOM or desc.origin is None:
        return
    if not hasattr(desc.origin, "__dataclass_fields__"):
        return
    capability = "unmarshal_text" if desc.text_unmarshaler else "unmarshal_yaml"
    for spec in desc.fields:
        for tag_name, tag in (("yaml", spec.yaml_tag), ("env", spec.env_tag)):
            if not tag:
                continue
            msg = (
                f"at {path}: type implements {capability} but field "
                f"{spec.name} contains tag {tag_name!r} ({tag!r}): "
                f"{ErrorKind.TAG_ON_CUSTOM_DECODER.value}"
            )
            raise ShapeError(msg, kind=ErrorKind.TAG_ON_CUSTOM_DECODER, path=path)


__all__ = ["validate_type"]
