"""Classify configuration annotations into cached type descriptors.

Every traversal in strictconf (shape validation, decoding, value validation,
the env overlay and post-load validation) is driven by the
:class:`TypeDescriptor` built here instead of by live introspection. A
descriptor is computed once per annotation and records the kind of the type,
its display name, element descriptors, numeric width, custom-decode
capabilities and any extra ``typing.Annotated`` constraints.

Dataclass fields bind to document keys and environment variables through
field metadata, most conveniently written with :func:`field`.

Examples
--------
>>> import dataclasses as dc
>>> from strictconf.descriptor import Kind, describe, field
>>> from strictconf.scalars import Uint16
>>> @dc.dataclass
... class Server:
...     port: Uint16 = field("port", env="SERVER_PORT")
>>> desc = describe(Server)
>>> desc.kind is Kind.STRUCT
True
>>> [(spec.name, spec.yaml_tag, spec.env_tag) for spec in desc.fields]
[('port', 'port', 'SERVER_PORT')]
>>> desc.fields[0].type.name
'uint16'
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import ctypes
import dataclasses as dc
import datetime as dt
import enum
import inspect
import json
import queue
import types
import typing as typ

from ._constants import ENV_TAG_KEY, YAML_TAG_KEY
from .errors import ErrorKind, ShapeError
from .scalars import FloatWidth, IntWidth

_CHANNEL_TYPES: tuple[type, ...] = (queue.Queue, queue.SimpleQueue, asyncio.Queue)
_RAW_MEMORY_TYPES: tuple[type, ...] = (
    memoryview,
    bytearray,
    ctypes.c_void_p,
    ctypes.c_char_p,
)
_FUNCTION_TYPES: tuple[type, ...] = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.LambdaType,
)
_WIDTH_HINT = (
    "use an integer type with specified width, "
    "such as Int32 or Int64 instead of int"
)


class Kind(enum.Enum):
    """Structural classification of a configuration type."""

    STRUCT = "struct"
    OPTIONAL = "optional"
    SEQUENCE = "sequence"
    ARRAY = "array"
    MAPPING = "mapping"
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DURATION = "duration"
    CUSTOM = "custom"
    UNSUPPORTED = "unsupported"


PRIMITIVE_KINDS = frozenset(
    {Kind.STRING, Kind.BOOL, Kind.INT, Kind.FLOAT, Kind.DURATION}
)
NULLABLE_KINDS = frozenset({Kind.OPTIONAL, Kind.SEQUENCE, Kind.MAPPING})


class TextUnmarshaler(typ.Protocol):
    """Types that build themselves from raw scalar text."""

    @classmethod
    def unmarshal_text(cls, text: str) -> typ.Self: ...


class YAMLUnmarshaler(typ.Protocol):
    """Types that build themselves from a composed YAML node."""

    @classmethod
    def unmarshal_yaml(cls, node: typ.Any) -> typ.Self: ...


class Validator(typ.Protocol):
    """Types that check their own state after loading."""

    def validate(self) -> None: ...


def field(yaml: str, *, env: str | None = None, **kwargs: typ.Any) -> typ.Any:
    """Declare a dataclass field bound to a document key.

    Parameters
    ----------
    yaml : str
        Key of the field in the YAML document.
    env : str or None, optional
        Name of the environment variable that overrides the field when set.
    **kwargs
        Forwarded to :func:`dataclasses.field` (``default``,
        ``default_factory``, ``metadata`` and so on).

    Returns
    -------
    typing.Any
        The :class:`dataclasses.Field` describing the field.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[YAML_TAG_KEY] = yaml
    if env is not None:
        metadata[ENV_TAG_KEY] = env
    return dc.field(metadata=metadata, **kwargs)


@dc.dataclass(frozen=True, slots=True)
class FieldSpec:
    """A dataclass field together with its document and env bindings."""

    name: str
    annotation: typ.Any
    yaml_tag: str
    env_tag: str | None
    init: bool = True
    has_default: bool = False

    @property
    def exported(self) -> bool:
        return not self.name.startswith("_")

    @property
    def type(self) -> TypeDescriptor:
        return describe(self.annotation)


@dc.dataclass(slots=True, eq=False)
class TypeDescriptor:
    """Cached classification of one configuration annotation."""

    kind: Kind
    name: str
    annotation: typ.Any
    origin: typ.Any = None
    elem: TypeDescriptor | None = None
    key: TypeDescriptor | None = None
    items: tuple[TypeDescriptor, ...] = ()
    int_width: IntWidth | None = None
    float_width: FloatWidth | None = None
    text_unmarshaler: bool = False
    yaml_unmarshaler: bool = False
    has_validate: bool = False
    constraints: tuple[typ.Any, ...] = ()
    hint: str = ""
    _fields: tuple[FieldSpec, ...] | None = None

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        """Return the dataclass fields in declaration order."""
        if self._fields is None:
            self._fields = _struct_fields(self.origin)
        return self._fields

    @property
    def exported_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.exported)

    def field_named(self, name: str) -> FieldSpec | None:
        """Return the field called ``name`` or ``None``."""
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def unwrap(self) -> TypeDescriptor:
        """Strip optional wrappers."""
        desc = self
        while desc.kind is Kind.OPTIONAL and desc.elem is not None:
            desc = desc.elem
        return desc

    def zero(self) -> typ.Any:
        """Return the zero value used when the document supplies nothing."""
        match self.kind:
            case Kind.STRING:
                return ""
            case Kind.BOOL:
                return False
            case Kind.INT:
                return 0
            case Kind.FLOAT:
                return 0.0
            case Kind.DURATION:
                return dt.timedelta(0)
            case Kind.SEQUENCE:
                return () if self.origin is tuple else []
            case Kind.ARRAY:
                return tuple(item.zero() for item in self.items)
            case Kind.MAPPING:
                return {}
            case Kind.STRUCT:
                return self.origin(
                    **{
                        spec.name: spec.type.zero()
                        for spec in self.fields
                        if spec.init and not spec.has_default
                    }
                )
            case _:
                return None


_CACHE: dict[typ.Any, TypeDescriptor] = {}


def describe(annotation: typ.Any) -> TypeDescriptor:
    """Return the cached :class:`TypeDescriptor` for ``annotation``."""
    try:
        return _CACHE[annotation]
    except KeyError:
        pass
    except TypeError:  # unhashable Annotated metadata
        return _classify(annotation)
    desc = _classify(annotation)
    _CACHE[annotation] = desc
    return desc


def index_path(path: str, index: int) -> str:
    """Extend a logical path with a sequence index."""
    return f"{path}[{index}]"


def key_path(path: str, key: str) -> str:
    """Extend a logical path with a quoted mapping key."""
    return f"{path}[{json.dumps(key, ensure_ascii=False)}]"


def _classify(tp: typ.Any) -> TypeDescriptor:
    origin = typ.get_origin(tp)
    args = typ.get_args(tp)

    if origin is typ.Annotated:
        return _classify_annotated(tp, args[0], args[1:])
    if origin in {typ.Union, types.UnionType}:
        return _classify_union(tp, args)
    if origin is list:
        if not args:
            return _unsupported(tp, "list", "declare the element type")
        elem = describe(args[0])
        return TypeDescriptor(
            Kind.SEQUENCE, f"list[{elem.name}]", tp, origin=list, elem=elem
        )
    if origin is tuple:
        return _classify_tuple(tp, args)
    if origin is dict:
        if len(args) != 2:
            return _unsupported(tp, "dict", "declare key and value types")
        key, value = describe(args[0]), describe(args[1])
        return TypeDescriptor(
            Kind.MAPPING,
            f"dict[{key.name}, {value.name}]",
            tp,
            origin=dict,
            key=key,
            elem=value,
        )
    if origin is cabc.Callable:
        return _unsupported(tp, "function")
    if origin is not None:
        return _unsupported(tp, _type_name(origin))
    return _classify_plain(tp)


def _classify_annotated(
    tp: typ.Any, base: typ.Any, metadata: tuple[typ.Any, ...]
) -> TypeDescriptor:
    widths = [m for m in metadata if isinstance(m, IntWidth | FloatWidth)]
    constraints = tuple(
        m for m in metadata if not isinstance(m, IntWidth | FloatWidth)
    )
    if widths:
        width = widths[-1]
        if isinstance(width, IntWidth) and base is int:
            return TypeDescriptor(
                Kind.INT, width.name, tp, int_width=width, constraints=constraints
            )
        if isinstance(width, FloatWidth) and base is float:
            return TypeDescriptor(
                Kind.FLOAT,
                width.name,
                tp,
                float_width=width,
                constraints=constraints,
            )
        return _unsupported(
            tp, _type_name(base), f"{width.name} width on a non-numeric type"
        )
    inner = describe(base)
    return dc.replace(
        inner, annotation=tp, constraints=inner.constraints + constraints
    )


def _classify_union(tp: typ.Any, args: tuple[typ.Any, ...]) -> TypeDescriptor:
    present = [arg for arg in args if arg is not type(None)]
    if len(present) != 1 or len(present) == len(args):
        names = " | ".join(_type_name(arg) for arg in args)
        return _unsupported(tp, names, "only T | None unions are supported")
    elem = describe(present[0])
    return TypeDescriptor(Kind.OPTIONAL, f"{elem.name} | None", tp, elem=elem)


def _classify_tuple(tp: typ.Any, args: tuple[typ.Any, ...]) -> TypeDescriptor:
    if len(args) == 2 and args[1] is Ellipsis:
        elem = describe(args[0])
        return TypeDescriptor(
            Kind.SEQUENCE, f"tuple[{elem.name}, ...]", tp, origin=tuple, elem=elem
        )
    if not args:
        return _unsupported(tp, "tuple", "declare the element types")
    items = tuple(describe(arg) for arg in args)
    names = ", ".join(item.name for item in items)
    return TypeDescriptor(
        Kind.ARRAY, f"tuple[{names}]", tp, origin=tuple, items=items
    )


def _classify_plain(tp: typ.Any) -> TypeDescriptor:
    if tp is bool:
        return TypeDescriptor(Kind.BOOL, "bool", tp)
    if tp is int:
        return _unsupported(tp, "int", _WIDTH_HINT)
    if tp is float:
        return TypeDescriptor(Kind.FLOAT, "float64", tp, float_width=FloatWidth(64))
    if tp is str:
        return TypeDescriptor(Kind.STRING, "str", tp)
    if tp is dt.timedelta:
        return TypeDescriptor(Kind.DURATION, "duration", tp)
    if tp is typ.Any or tp is object:
        return _unsupported(tp, "Any", "interface types are not supported")
    if not isinstance(tp, type):
        return _unsupported(tp, _type_name(tp))

    text = callable(getattr(tp, "unmarshal_text", None))
    node = callable(getattr(tp, "unmarshal_yaml", None))
    has_validate = callable(getattr(tp, "validate", None))
    if text or node:
        return TypeDescriptor(
            Kind.CUSTOM,
            tp.__name__,
            tp,
            origin=tp,
            text_unmarshaler=text,
            yaml_unmarshaler=node,
            has_validate=has_validate,
        )
    if dc.is_dataclass(tp):
        return TypeDescriptor(
            Kind.STRUCT, tp.__name__, tp, origin=tp, has_validate=has_validate
        )
    if issubclass(tp, _CHANNEL_TYPES):
        return _unsupported(tp, tp.__name__, "channel types are not supported")
    if issubclass(tp, _RAW_MEMORY_TYPES):
        return _unsupported(tp, tp.__name__, "raw memory types are not supported")
    if tp in _FUNCTION_TYPES:
        return _unsupported(tp, tp.__name__, "function types are not supported")
    if getattr(tp, "_is_protocol", False) or inspect.isabstract(tp):
        return _unsupported(tp, tp.__name__, "interface types are not supported")
    return _unsupported(tp, tp.__name__)


def _unsupported(tp: typ.Any, name: str, hint: str = "") -> TypeDescriptor:
    return TypeDescriptor(Kind.UNSUPPORTED, name, tp, hint=hint)


def _type_name(tp: typ.Any) -> str:
    if tp is type(None):
        return "None"
    return getattr(tp, "__name__", None) or repr(tp)


def _struct_fields(cls: type) -> tuple[FieldSpec, ...]:
    try:
        hints = typ.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exc:
        msg = f"at {cls.__name__}: cannot resolve field annotations: {exc}"
        raise ShapeError(
            msg, kind=ErrorKind.UNSUPPORTED_TYPE, path=cls.__name__
        ) from exc

    specs: list[FieldSpec] = []
    for item in dc.fields(cls):
        has_default = (
            item.default is not dc.MISSING or item.default_factory is not dc.MISSING
        )
        env_tag = item.metadata.get(ENV_TAG_KEY)
        specs.append(
            FieldSpec(
                name=item.name,
                annotation=hints.get(item.name, item.type),
                yaml_tag=str(item.metadata.get(YAML_TAG_KEY, "") or ""),
                env_tag=None if env_tag is None else str(env_tag),
                init=item.init,
                has_default=has_default,
            )
        )
    return tuple(specs)


__all__ = [
    "NULLABLE_KINDS",
    "PRIMITIVE_KINDS",
    "FieldSpec",
    "Kind",
    "TextUnmarshaler",
    "TypeDescriptor",
    "Validator",
    "YAMLUnmarshaler",
    "describe",
    "field",
    "index_path",
    "key_path",
]
