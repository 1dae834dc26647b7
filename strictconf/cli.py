"""Cyclopts CLI entrypoint for checking configuration files.

The ``strictconf`` console script loads a YAML file into a dataclass named on
the command line and reports whether it passes every check. It is useful in
CI to validate configuration before a deploy.

Examples
--------
Check ``config.yaml`` against ``myapp.settings:Config``:

>>> from strictconf.cli import app
>>> app(
...     ["check", "config.yaml", "--type", "myapp.settings:Config"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import importlib
import logging
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .errors import ConfigError
from .loader import load_file

app = App(name="strictconf", config=cyclopts.config.Env("STRICTCONF_", command=False))  # type: ignore[unknown-argument]


def resolve_type(reference: str) -> type:
    """Import the class named by ``module:QualifiedName``.

    Raises
    ------
    ValueError
        If ``reference`` lacks the ``:`` separator or names no class.
    """
    module_name, sep, qualname = reference.partition(":")
    if not sep or not module_name or not qualname:
        msg = f"Type reference '{reference}' must look like 'package.module:Class'."
        raise ValueError(msg)
    target: typ.Any = importlib.import_module(module_name)
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            msg = f"Module '{module_name}' has no attribute '{qualname}'."
            raise ValueError(msg) from exc
    if not isinstance(target, type):
        msg = f"'{reference}' does not name a class."
        raise ValueError(msg)
    return target


@app.command(help="Load a YAML file into a configuration dataclass and report errors.")
def check(
    config: typ.Annotated[Path, Parameter(help="Path to the YAML file")],
    *,
    type_: typ.Annotated[
        str,
        Parameter(
            name="--type",
            help="Dataclass to load into, as package.module:Class",
            env_var="STRICTCONF_TYPE",
        ),
    ],
    verbose: typ.Annotated[
        bool, Parameter(help="Log each loading stage", env_var="STRICTCONF_VERBOSE")
    ] = False,
) -> None:
    """Validate ``config`` against the dataclass named by ``type_``.

    Parameters
    ----------
    config : Path
        YAML file to load.
    type_ : str
        ``package.module:Class`` reference of the configuration dataclass
        (overridable via ``STRICTCONF_TYPE``).
    verbose : bool, optional
        Emit debug logging for every loading stage.

    Returns
    -------
    None
        Prints ``ok: <path>`` when the file loads cleanly.

    Raises
    ------
    SystemExit
        With status 1 after printing ``error: <message>`` when the type cannot
        be imported or the file fails to load.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    try:
        config_type = resolve_type(type_)
        load_file(config, config_type)
    except (ConfigError, FileNotFoundError, ImportError, ValueError) as exc:
        print(f"error: {exc}")
        raise SystemExit(1) from exc
    print(f"ok: {config}")


def main() -> None:
    """Invoke the Cyclopts application behind the ``strictconf`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
