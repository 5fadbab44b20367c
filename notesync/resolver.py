"""
Root directory resolution for notesync.

Turns configured root specifications into directory strings, then drops the
ones that do not exist. The two stages are separate so that evaluating
expressions is never repeated just to re-check existence.

Expressions are evaluated by a small interpreter over an allow-list of
functions; nothing is ever passed to ``eval``.
"""

import glob
import os
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Union

import structlog
from pydantic import TypeAdapter, ValidationError

from .models import CallSpec, ListSpec, LiteralSpec, PathSpec
from .utils import ConfigError

logger = structlog.get_logger(__name__)

RootSpec = Union[str, PathSpec]

_SPEC_ADAPTER = TypeAdapter(RootSpec)


def _fn_expanduser(path: str) -> str:
    return os.path.expanduser(path)


def _fn_getenv(name: str, default: str | None = None) -> str | None:
    return os.environ.get(name, default)


def _fn_join(*parts: str) -> str:
    if not parts:
        raise ConfigError("join() needs at least one argument")
    return os.path.join(*parts)


def _fn_glob(pattern: str) -> list[str]:
    return sorted(p for p in glob.glob(os.path.expanduser(pattern)) if os.path.isdir(p))


def _fn_subdirs(path: str) -> list[str]:
    path = os.path.expanduser(path)
    try:
        with os.scandir(path) as entries:
            return sorted(entry.path for entry in entries if entry.is_dir())
    except OSError:
        return []


# Functions callable from a "call" expression
ALLOWED_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "expanduser": _fn_expanduser,
    "getenv": _fn_getenv,
    "join": _fn_join,
    "glob": _fn_glob,
    "subdirs": _fn_subdirs,
}


def coerce_spec(spec: Any) -> RootSpec:
    """Validate a raw spec (string, dict or model) into a RootSpec."""
    if isinstance(spec, (str, LiteralSpec, ListSpec, CallSpec)):
        return spec
    try:
        return _SPEC_ADAPTER.validate_python(spec)
    except ValidationError as e:
        raise ConfigError(f"Invalid directory specification {spec!r}: {e}") from e


def _evaluate_argument(arg: RootSpec) -> str:
    value = evaluate_spec(arg)
    if not isinstance(value, str):
        raise ConfigError(f"Function arguments must evaluate to strings, got {value!r}")
    return value


def evaluate_spec(spec: RootSpec) -> str | list[str]:
    """Evaluate one spec to a string or a list of strings.

    Raises:
        ConfigError: If the expression names an unknown function, the call
            fails, or the result is neither a string nor a list of strings
    """
    if isinstance(spec, str):
        return os.path.expanduser(spec)

    if isinstance(spec, LiteralSpec):
        return os.path.expanduser(spec.value)

    if isinstance(spec, ListSpec):
        items: list[str] = []
        for item in spec.items:
            value = evaluate_spec(item)
            if not isinstance(value, str):
                raise ConfigError(f"List items must evaluate to strings, got {value!r}")
            items.append(value)
        return items

    if isinstance(spec, CallSpec):
        func = ALLOWED_FUNCTIONS.get(spec.function)
        if func is None:
            allowed = ", ".join(sorted(ALLOWED_FUNCTIONS))
            raise ConfigError(f"Unknown function '{spec.function}'. Allowed: {allowed}")
        args = [_evaluate_argument(arg) for arg in spec.args]
        try:
            result = func(*args)
        except TypeError as e:
            raise ConfigError(f"Bad arguments for {spec.function}(): {e}") from e
        if isinstance(result, str):
            return result
        if isinstance(result, list) and all(isinstance(item, str) for item in result):
            return result
        raise ConfigError(
            f"{spec.function}() must evaluate to a string or list of strings, got {result!r}"
        )

    raise ConfigError(f"Unsupported directory specification: {spec!r}")


def resolve_directories(specs: Sequence[Any]) -> list[str]:
    """Evaluate every root spec, in order, into a flat list of directory strings.

    Duplicates are kept; nothing is checked against the filesystem.
    """
    directories: list[str] = []
    for raw_spec in specs:
        value = evaluate_spec(coerce_spec(raw_spec))
        if isinstance(value, str):
            directories.append(value)
        else:
            directories.extend(value)
    return directories


def filter_existing(paths: Iterable[str]) -> list[str]:
    """Keep only readable, existing directories, preserving order."""
    existing = []
    for path in paths:
        if path and os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK):
            existing.append(path)
        else:
            logger.debug("root_dropped", path=path)
    return existing
