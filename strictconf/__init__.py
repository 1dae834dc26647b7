"""Strict, position-aware loading of typed configuration from YAML.

strictconf loads a tree of dataclasses from a restricted YAML dialect. The
destination type is checked against a closed set of structural rules before
any document is read, unknown and missing keys are rejected, only ``true``,
``false`` and ``null`` are accepted as boolean and null literals, and bound
environment variables override document values. Every failure names the
1-based line and column and the logical field path responsible.

Examples
--------
>>> import dataclasses as dc
>>> import datetime as dt
>>> from strictconf import Uint16, field, load
>>> @dc.dataclass
... class Server:
...     host: str = field("host")
...     port: Uint16 = field("port", env="SERVER_PORT")
...     timeout: dt.timedelta = field("timeout")
>>> @dc.dataclass
... class Config:
...     server: Server = field("server")
>>> source = "server:\\n  host: localhost\\n  port: 8080\\n  timeout: 30s\\n"
>>> load(source, Config, environ={}).server.timeout
datetime.timedelta(seconds=30)
"""

from .descriptor import TextUnmarshaler, Validator, YAMLUnmarshaler, field
from .errors import (
    ConfigError,
    EmptyDocumentError,
    ErrorKind,
    InvalidEnvVarError,
    MalformedDocumentError,
    MalformedLiteralError,
    MissingFieldError,
    SelfValidationError,
    SemanticValidationError,
    ShapeError,
    TagUsageError,
)
from .loader import load, load_file, validate_type
from .nodes import Node, NodeKind, NodeStyle
from .scalars import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    Uint8,
    Uint16,
    Uint32,
    Uint64,
)

__all__ = [
    "ConfigError",
    "EmptyDocumentError",
    "ErrorKind",
    "Float32",
    "Float64",
    "InvalidEnvVarError",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "MalformedDocumentError",
    "MalformedLiteralError",
    "MissingFieldError",
    "Node",
    "NodeKind",
    "NodeStyle",
    "SelfValidationError",
    "SemanticValidationError",
    "ShapeError",
    "TagUsageError",
    "TextUnmarshaler",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "Validator",
    "YAMLUnmarshaler",
    "field",
    "load",
    "load_file",
    "validate_type",
]
