"""Override loaded configuration values from bound environment variables.

Fields declared with ``field("key", env="VAR")`` take the value of ``VAR``
when it is set. Unset variables leave the document's value untouched. An
optional field set to the literal ``null`` is cleared.
"""

from __future__ import annotations

import collections.abc as cabc
import logging
import os
import typing as typ

from ._constants import ENV_NULL
from .descriptor import Kind, TypeDescriptor, describe, index_path, key_path
from .errors import InvalidEnvVarError
from .nodes import compose
from .scalars import parse_duration, parse_env_bool, parse_env_float, parse_env_int

logger = logging.getLogger(__name__)

T = typ.TypeVar("T")


def overlay_env(
    instance: T, environ: cabc.Mapping[str, str] | None = None
) -> T:
    """Apply environment overrides to ``instance`` in place.

    Parameters
    ----------
    instance : T
        A decoded configuration dataclass.
    environ : Mapping[str, str] or None, optional
        Variables to read. Defaults to :data:`os.environ`.

    Returns
    -------
    T
        ``instance``, for chaining.

    Raises
    ------
    InvalidEnvVarError
        If a bound variable is set but cannot be parsed into its field's type.
    """
    desc = describe(type(instance))
    _EnvOverlay(os.environ if environ is None else environ).apply(
        instance, desc, desc.name, None
    )
    return instance


class _EnvOverlay:
    """Walk a value alongside its descriptor and apply set variables."""

    def __init__(self, environ: cabc.Mapping[str, str]) -> None:
        self.environ = environ

    def apply(
        self,
        value: typ.Any,
        desc: TypeDescriptor,
        path: str,
        env_var: str | None,
    ) -> typ.Any:
        raw = self.environ.get(env_var) if env_var else None

        if desc.kind is Kind.OPTIONAL:
            elem = typ.cast("TypeDescriptor", desc.elem)
            if raw is not None:
                if raw == ENV_NULL:
                    logger.debug("Cleared %s from %s", path, env_var)
                    return None
                if value is None:
                    value = elem.zero()
            elif value is None:
                return None
            return self.apply(value, elem, path, env_var)

        match desc.kind:
            case Kind.CUSTOM:
                if raw is None:
                    return value
                return self._decode_custom(raw, desc, path, env_var)
            case Kind.STRING | Kind.BOOL | Kind.INT | Kind.FLOAT | Kind.DURATION:
                if raw is None:
                    return value
                return self._parse(raw, desc, path, env_var)
            case Kind.STRUCT:
                if value is not None:
                    self._apply_struct(value, desc, path)
                return value
            case Kind.SEQUENCE:
                elem = typ.cast("TypeDescriptor", desc.elem)
                items = [
                    self.apply(item, elem, index_path(path, index), None)
                    for index, item in enumerate(value)
                ]
                if isinstance(value, list):
                    value[:] = items
                    return value
                return tuple(items)
            case Kind.ARRAY:
                return tuple(
                    self.apply(item, item_desc, index_path(path, index), None)
                    for index, (item, item_desc) in enumerate(
                        zip(value, desc.items, strict=True)
                    )
                )
            case Kind.MAPPING:
                value_desc = typ.cast("TypeDescriptor", desc.elem)
                if value_desc.kind is Kind.OPTIONAL:
                    for key, item in value.items():
                        value[key] = self.apply(
                            item, value_desc, key_path(path, str(key)), None
                        )
                return value
        return value

    def _apply_struct(self, value: typ.Any, desc: TypeDescriptor, path: str) -> None:
        for spec in desc.exported_fields:
            current = getattr(value, spec.name)
            updated = self.apply(
                current, spec.type, f"{path}.{spec.name}", spec.env_tag
            )
            if updated is not current:
                object.__setattr__(value, spec.name, updated)

    def _parse(
        self, raw: str, desc: TypeDescriptor, path: str, env_var: str | None
    ) -> typ.Any:
        try:
            match desc.kind:
                case Kind.BOOL:
                    parsed: typ.Any = parse_env_bool(raw)
                case Kind.INT:
                    width = desc.int_width
                    if width is None:
                        msg = f"{desc.name} has no declared width"
                        raise ValueError(msg)
                    parsed = parse_env_int(raw, width)
                case Kind.FLOAT:
                    float_width = desc.float_width
                    if float_width is None:
                        msg = f"{desc.name} has no declared width"
                        raise ValueError(msg)
                    parsed = parse_env_float(raw, float_width)
                case Kind.DURATION:
                    parsed = parse_duration(raw)
                case _:
                    parsed = raw
        except ValueError as exc:
            _invalid(path, env_var, desc, exc)
        logger.debug("Applied %s to %s", env_var, path)
        return parsed

    def _decode_custom(
        self, raw: str, desc: TypeDescriptor, path: str, env_var: str | None
    ) -> typ.Any:
        try:
            if desc.text_unmarshaler:
                parsed = desc.origin.unmarshal_text(raw)
            else:
                parsed = desc.origin.unmarshal_yaml(compose(raw))
        except (TypeError, ValueError) as exc:
            _invalid(path, env_var, desc, exc)
        logger.debug("Applied %s to %s", env_var, path)
        return parsed


def _invalid(
    path: str, env_var: str | None, desc: TypeDescriptor, exc: Exception
) -> typ.NoReturn:
    msg = f"at {path}: invalid env var {env_var}: expected {desc.name}: {exc}"
    raise InvalidEnvVarError(
        msg, path=path, env_var=env_var, expected=desc.name
    ) from exc


__all__ = ["overlay_env"]
