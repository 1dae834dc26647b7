"""Load strictly validated configuration dataclasses from YAML."""

from __future__ import annotations

import collections.abc as cabc
import logging
import os
import typing as typ
from pathlib import Path

from .decode import decode
from .env import overlay_env
from .errors import EmptyDocumentError, ErrorKind
from .nodes import compose
from .shape import validate_type
from .validation import invoke_validate_recursively, validate_semantics
from .values import validate_values

logger = logging.getLogger(__name__)

T = typ.TypeVar("T")


def load(
    source: str | bytes,
    config_type: type[T],
    *,
    environ: cabc.Mapping[str, str] | None = None,
) -> T:
    """Load ``source`` into a new instance of ``config_type``.

    The type is checked first, then the document is composed, decoded,
    checked for literal and completeness rules, overlaid with bound
    environment variables, and finally validated by ``validate()`` hooks and
    ``Annotated`` constraints. The first failure is raised.

    Parameters
    ----------
    source : str or bytes
        YAML text holding exactly one document.
    config_type : type[T]
        The dataclass describing the configuration.
    environ : Mapping[str, str] or None, optional
        Environment used for ``env`` bindings. Defaults to :data:`os.environ`.

    Returns
    -------
    T
        The loaded configuration.

    Raises
    ------
    ShapeError
        If ``config_type`` breaks a structural rule.
    EmptyDocumentError
        If ``source`` is empty.
    MalformedDocumentError
        If the document is not valid YAML or does not fit the type.
    MissingFieldError
        If a declared field is absent from the document.
    TagUsageError
        If the document uses explicit YAML tags.
    MalformedLiteralError
        For unsupported boolean or null literals, or misplaced nulls.
    InvalidEnvVarError
        If a bound environment variable cannot be parsed.
    SelfValidationError
        If a ``validate()`` hook raises.
    SemanticValidationError
        If an ``Annotated`` constraint is violated.

    Examples
    --------
    >>> import dataclasses as dc
    >>> from strictconf import Uint16, field, load
    >>> @dc.dataclass
    ... class Config:
    ...     port: Uint16 = field("port", env="PORT")
    >>> load("port: 8080\\n", Config, environ={}).port
    8080
    >>> load("port: 8080\\n", Config, environ={"PORT": "9090"}).port
    9090
    """
    if len(source) == 0:
        raise EmptyDocumentError(ErrorKind.EMPTY_DOCUMENT.value)

    validate_type(config_type)
    root = compose(source)
    config = decode(root, config_type)
    validate_values(config_type, root)
    overlay_env(config, environ)
    invoke_validate_recursively(config, config_type, root)
    validate_semantics(config, config_type, root)
    logger.debug("Loaded %s", getattr(config_type, "__name__", config_type))
    return config


def load_file(
    path: str | os.PathLike[str],
    config_type: type[T],
    *,
    environ: cabc.Mapping[str, str] | None = None,
) -> T:
    """Read the YAML file at ``path`` and :func:`load` it into ``config_type``.

    Raises
    ------
    FileNotFoundError
        If no file exists at ``path``.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file '{config_path}' not found."
        raise FileNotFoundError(msg)
    logger.debug("Reading configuration from %s", config_path)
    return load(
        config_path.read_text(encoding="utf-8"), config_type, environ=environ
    )


__all__ = ["load", "load_file", "validate_type"]
