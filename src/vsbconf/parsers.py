"""Typed, default-aware conversions for raw environment values.

The boolean parser is forgiving (unrecognised text falls back to the default)
while the numeric parser is strict: a malformed non-empty value always raises.
"""
from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence

from .constants import BOOLEAN_FALSE_VALUES, BOOLEAN_TRUE_VALUES
from .errors import InvalidFormatError, InvalidNumericError, MissingRequiredError, NumericViolation
from .validators import is_valid_domain

RECIPIENT_DOMAINS_VAR = "VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS"

_DECIMAL_INTEGER = re.compile(r"[0-9]+")


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Interpret *value* as a boolean flag, returning *default* when unrecognised."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in BOOLEAN_TRUE_VALUES:
        return True
    if normalized in BOOLEAN_FALSE_VALUES:
        return False
    return default


def parse_number(value: str | None, default: int, *, name: str | None = None) -> int:
    """Return *value* as a non-negative integer or *default* when unset/empty."""
    if value is None or value == "":
        return default

    label = f"{name}=" if name else ""
    text = value.strip()
    if _DECIMAL_INTEGER.fullmatch(text):
        return int(text)

    # Whitespace-only text is deliberately rejected instead of being read as 0:
    # a value that is set but blank is treated as a typo.
    # float() also accepts digit separators and non-ASCII digits, neither of
    # which is numeric config text.
    if not text.isascii() or "_" in text:
        parsed = math.nan
    else:
        try:
            parsed = float(text)
        except ValueError:
            parsed = math.nan

    if not math.isfinite(parsed) or parsed < 0:
        raise InvalidNumericError(
            f'Invalid numeric value: {label}"{value}" (must be a non-negative finite number)',
            reason=NumericViolation.NOT_FINITE_OR_NEGATIVE,
            variable=name,
        )
    if not parsed.is_integer():
        raise InvalidNumericError(
            f'Invalid numeric value: {label}"{value}" (must be an integer)',
            reason=NumericViolation.NOT_INTEGER,
            variable=name,
        )
    return int(parsed)


def parse_string(value: str | None, default: str) -> str:
    """Return *value* verbatim, or *default* when unset or empty."""
    if value is None or value == "":
        return default
    return value


def parse_list(
    value: str | None,
    *,
    transform: Callable[[str], str] | None = None,
) -> list[str]:
    """Split a comma-separated value, trimming tokens and dropping empty ones."""
    if value is None:
        return []
    tokens = (token.strip() for token in value.split(","))
    items = [token for token in tokens if token]
    if transform is not None:
        items = [transform(item) for item in items]
    return items


def parse_recipient_domains(value: str | None) -> tuple[str, ...]:
    """Parse and validate the mandatory recipient-domain allow-list.

    Domains are lowercased. Every invalid entry is reported in a single error
    so operators can fix the list in one pass.
    """
    if value is None or not value.strip():
        raise MissingRequiredError(
            f"{RECIPIENT_DOMAINS_VAR} is required. Specify comma-separated domains "
            '(e.g., "example.com,example.org")',
            variable=RECIPIENT_DOMAINS_VAR,
        )

    domains = parse_list(value, transform=str.lower)
    if not domains:
        raise MissingRequiredError(
            f"{RECIPIENT_DOMAINS_VAR} must contain at least one valid domain",
            variable=RECIPIENT_DOMAINS_VAR,
        )

    invalid = [domain for domain in domains if not is_valid_domain(domain)]
    if invalid:
        raise InvalidFormatError(
            f"Invalid domain format in {RECIPIENT_DOMAINS_VAR}: {', '.join(invalid)}",
            variable=RECIPIENT_DOMAINS_VAR,
        )
    return tuple(domains)


def parse_disabled_commands(
    value: str | None,
    default: Sequence[str] = (),
) -> tuple[str, ...]:
    """Parse SMTP command names to disable, uppercased."""
    if value is None or not value.strip():
        return tuple(default)
    commands = parse_list(value, transform=str.upper)
    return tuple(commands) if commands else tuple(default)


__all__ = [
    "RECIPIENT_DOMAINS_VAR",
    "parse_bool",
    "parse_disabled_commands",
    "parse_list",
    "parse_number",
    "parse_recipient_domains",
    "parse_string",
]
