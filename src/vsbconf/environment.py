"""Environment sources consumed by the configuration builders."""
from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from dotenv import dotenv_values

from .errors import InvalidFormatError


class EnvironmentSource(Protocol):
    """Read-only lookup from variable name to an optional string."""

    def get(self, name: str, /) -> str | None:
        """Return the raw value for *name* or ``None`` when unset."""


def resolve_environment(env: Mapping[str, str] | None = None) -> EnvironmentSource:
    """Return *env* as an environment source, defaulting to ``os.environ``.

    The process environment is copied so a build observes one consistent view
    even if another thread mutates ``os.environ`` meanwhile.
    """
    return dict(os.environ if env is None else env)


def read_env_file(path: Path) -> dict[str, str]:
    """Parse a dotenv-style file with python-dotenv.

    Keys declared without a value (``KEY`` on its own line) are dropped so
    they cannot shadow the process environment with ``None``. Variable
    references such as ``${HOME}`` are expanded the way dotenv does.
    """
    if not path.is_file():
        raise InvalidFormatError(f"Cannot read environment file {path}: not a regular file")
    try:
        values = dotenv_values(path, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidFormatError(f"Cannot read environment file {path}: {exc}") from exc
    return {key: value for key, value in values.items() if value is not None}


__all__ = ["EnvironmentSource", "read_env_file", "resolve_environment"]
