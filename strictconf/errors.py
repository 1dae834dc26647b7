"""Exceptions raised while checking configuration types and loading documents.

Every failure carries an :class:`ErrorKind` plus whatever structured context
applies (logical path, 1-based line/column, yaml tag, environment variable,
expected type, validation rule) so callers can branch on ``exc.kind`` instead
of parsing messages.

Examples
--------
>>> from strictconf.errors import ErrorKind, MissingFieldError
>>> exc = MissingFieldError(
...     "at 1:1: Config.port (as 'port'): missing field in config file",
...     kind=ErrorKind.MISSING_FIELD,
...     path="Config.port",
...     yaml_tag="port",
...     line=1,
...     column=1,
... )
>>> exc.position
(1, 1)
"""

from __future__ import annotations

import enum

from ._constants import ENV_VAR_PATTERN


class ErrorKind(enum.Enum):
    """Closed set of violations reported by strictconf."""

    ILLEGAL_ROOT_TYPE = (
        "root type must be a dataclass and must not implement "
        "unmarshal_text or unmarshal_yaml"
    )
    MISSING_YAML_TAG = "missing yaml tag"
    YAML_TAG_ON_UNEXPORTED = "yaml tag on unexported field"
    YAML_TAG_REDEFINED = "a yaml tag must be unique"
    ENV_TAG_ON_UNEXPORTED = "env tag on unexported field"
    INVALID_ENV_TAG = (
        f"invalid env tag: must match the POSIX env var regexp: {ENV_VAR_PATTERN}"
    )
    ENV_ON_UNSUPPORTED_TYPE = "env var on unsupported type"
    TAG_ON_CUSTOM_DECODER = (
        "implementations of unmarshal_text or unmarshal_yaml "
        "must not contain yaml and env tags"
    )
    NO_EXPORTED_FIELDS = "no exported fields"
    RECURSIVE_TYPE = "recursive type"
    UNSUPPORTED_TYPE = "unsupported type"
    UNSUPPORTED_POINTER = "unsupported optional type"
    EMPTY_DOCUMENT = "empty file"
    MALFORMED_DOCUMENT = "malformed YAML"
    MISSING_FIELD = "missing field in config file"
    TAG_USED = "avoid using YAML tags"
    BAD_BOOL_LITERAL = (
        "must be either false or true, "
        "other variants of boolean literals of YAML are not supported"
    )
    BAD_NULL_LITERAL = "must be null, any other variants of null are not supported"
    NULL_ON_NON_NULLABLE = "cannot assign null to non-nullable type"
    INVALID_ENV_VAR = "invalid env var"
    SELF_VALIDATION = "validation"
    VALIDATION_RULE = "violates validation rule"


class ConfigError(ValueError):
    """Base class for every error raised by strictconf."""

    default_kind = ErrorKind.MALFORMED_DOCUMENT

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
        yaml_tag: str | None = None,
        env_var: str | None = None,
        expected: str | None = None,
        rule: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind or self.default_kind
        self.path = path
        self.line = line
        self.column = column
        self.yaml_tag = yaml_tag
        self.env_var = env_var
        self.expected = expected
        self.rule = rule

    @property
    def position(self) -> tuple[int, int] | None:
        """Return ``(line, column)`` when the error points into the document."""
        if self.line is None or self.column is None:
            return None
        return self.line, self.column


class ShapeError(ConfigError, TypeError):
    """Raised when a destination type violates the structural rules."""

    default_kind = ErrorKind.UNSUPPORTED_TYPE


class EmptyDocumentError(ConfigError):
    """Raised when the source holds no YAML document at all."""

    default_kind = ErrorKind.EMPTY_DOCUMENT


class MalformedDocumentError(ConfigError):
    """Raised when the document cannot be parsed or decoded into the type."""

    default_kind = ErrorKind.MALFORMED_DOCUMENT


class MissingFieldError(ConfigError):
    """Raised when the document lacks a key declared by the type."""

    default_kind = ErrorKind.MISSING_FIELD


class MalformedLiteralError(ConfigError):
    """Raised for unsupported boolean or null spellings and misplaced nulls."""

    default_kind = ErrorKind.BAD_BOOL_LITERAL


class TagUsageError(ConfigError):
    """Raised when a node carries an explicit YAML tag."""

    default_kind = ErrorKind.TAG_USED


class InvalidEnvVarError(ConfigError):
    """Raised when a bound environment variable is set but cannot be parsed."""

    default_kind = ErrorKind.INVALID_ENV_VAR


class SelfValidationError(ConfigError):
    """Raised when a ``validate()`` hook rejects its value."""

    default_kind = ErrorKind.SELF_VALIDATION


class SemanticValidationError(ConfigError):
    """Raised when a pydantic constraint attached to a field is violated."""

    default_kind = ErrorKind.VALIDATION_RULE


__all__ = [
    "ConfigError",
    "EmptyDocumentError",
    "ErrorKind",
    "InvalidEnvVarError",
    "MalformedDocumentError",
    "MalformedLiteralError",
    "MissingFieldError",
    "SelfValidationError",
    "SemanticValidationError",
    "ShapeError",
    "TagUsageError",
]
