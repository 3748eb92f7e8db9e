"""Secret provisioning for local mode and multi-node peer authentication.

The local-mode API key is resolved through a fixed precedence chain:

1. ``VSB_LOCAL_API_KEY`` from the environment.
2. When ``VSB_LOCAL_API_KEY_STRICT`` is set, stop and fail.
3. ``<data_path>/.api-key`` persisted by an earlier run.
4. A freshly generated key, persisted to the same file.

A generated key is only accepted once it has been written to disk, otherwise
clients would lose access on the next restart.
"""
from __future__ import annotations

import base64
import logging
import os
import secrets
import socket
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .constants import API_KEY_FILENAME, MIN_API_KEY_LENGTH
from .errors import InvalidFormatError, MissingRequiredError, PersistenceError

LOGGER = logging.getLogger(__name__)

API_KEY_VAR = "VSB_LOCAL_API_KEY"
API_KEY_STRICT_VAR = "VSB_LOCAL_API_KEY_STRICT"

_GENERATE_HINT = (
    "Generate a secure API key using one of these methods:\n\n"
    "  vsbconf generate-key\n"
    "  openssl rand -base64 32\n\n"
    "Then set it in your environment:\n"
    f'  export {API_KEY_VAR}="<generated-key>"\n\n'
    "Or add to your .env file:\n"
    f"  {API_KEY_VAR}=<generated-key>"
)


class SecretOrigin(Enum):
    """Where a resolved secret came from. Used for logging only."""

    ENVIRONMENT = "environment"
    PERSISTED_FILE = "persisted-file"
    GENERATED = "generated"


@dataclass(frozen=True)
class SecretRecord:
    """A resolved secret together with its origin."""

    value: str = field(repr=False)
    origin: SecretOrigin


def api_key_path(data_path: Path) -> Path:
    """Return the location of the persisted API key under *data_path*."""
    return data_path / API_KEY_FILENAME


def generate_api_key() -> str:
    """Return a new base64-encoded API key built from 32 random bytes."""
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def generate_node_id(hostname: str | None = None) -> str:
    """Return ``<hostname>-<8 hex chars>`` for orchestration node identity."""
    host = hostname or socket.gethostname() or "unknown"
    return f"{host}-{secrets.token_hex(4)}"


def generate_shared_secret() -> str:
    """Return a 64-character hex secret for peer authentication."""
    return secrets.token_hex(32)


def resolve_api_key(
    env_value: str | None,
    *,
    data_path: Path,
    strict: bool = False,
    logger: logging.Logger | None = None,
) -> SecretRecord:
    """Resolve the local-mode API key following the documented precedence."""
    log = logger or LOGGER

    if env_value is not None and env_value.strip():
        record = SecretRecord(value=env_value.strip(), origin=SecretOrigin.ENVIRONMENT)
    elif strict:
        raise MissingRequiredError(
            f"{API_KEY_VAR} is required (strict mode).\n\n"
            f"{API_KEY_STRICT_VAR}=true requires explicit API key configuration.\n"
            f"{_GENERATE_HINT}",
            variable=API_KEY_VAR,
        )
    else:
        record = _load_persisted_key(api_key_path(data_path), log) or _generate_and_persist(
            data_path, log
        )

    if len(record.value) < MIN_API_KEY_LENGTH:
        raise InvalidFormatError(
            f"{API_KEY_VAR} must be at least {MIN_API_KEY_LENGTH} characters "
            f"(current: {len(record.value)}). Generate with: openssl rand -base64 32",
            variable=API_KEY_VAR,
        )

    log.info("Local API key loaded from %s", record.origin.value)
    return record


def _load_persisted_key(path: Path, log: logging.Logger) -> SecretRecord | None:
    try:
        if not path.exists():
            return None
        content = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        log.debug("Could not read API key from %s: %s", path, exc)
        return None
    if len(content) < MIN_API_KEY_LENGTH:
        log.debug(
            "Ignoring persisted API key in %s: shorter than %d characters",
            path,
            MIN_API_KEY_LENGTH,
        )
        return None
    return SecretRecord(value=content, origin=SecretOrigin.PERSISTED_FILE)


def _generate_and_persist(data_path: Path, log: logging.Logger) -> SecretRecord:
    value = generate_api_key()
    path = api_key_path(data_path)
    try:
        created = not data_path.exists()
        data_path.mkdir(mode=0o700, parents=True, exist_ok=True)
        if created:
            os.chmod(data_path, 0o700)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(value)
        os.chmod(path, 0o600)
    except OSError as exc:
        raise PersistenceError(
            "Cannot persist auto-generated API key.\n\n"
            f"Failed to write to {path}: {exc}\n\n"
            f"Please configure {API_KEY_VAR} manually.\n"
            f"{_GENERATE_HINT}",
            variable=API_KEY_VAR,
        ) from exc

    log.warning(
        "Auto-generated API key (first-time setup) saved to %s. It will be reused on "
        "restarts; view it with: cat %s. For production, set %s explicitly and use "
        "%s=true to enforce explicit configuration.",
        path,
        path,
        API_KEY_VAR,
        API_KEY_STRICT_VAR,
    )
    return SecretRecord(value=value, origin=SecretOrigin.GENERATED)


__all__ = [
    "API_KEY_STRICT_VAR",
    "API_KEY_VAR",
    "SecretOrigin",
    "SecretRecord",
    "api_key_path",
    "generate_api_key",
    "generate_node_id",
    "generate_shared_secret",
    "resolve_api_key",
]
