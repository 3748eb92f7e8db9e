"""Exception taxonomy for configuration builds.

Every failure raised while assembling the gateway configuration derives from
:class:`ConfigError`. Callers that only need "did the build fail" catch the
base class; the subclasses let the CLI and tests tell the four failure kinds
apart:

* :class:`MissingRequiredError` - a mandatory value is absent.
* :class:`InvalidFormatError` - a value is present but malformed.
* :class:`CrossFieldConflictError` - values are individually valid but
  contradict each other.
* :class:`PersistenceError` - the data directory or secret file could not be
  written.
"""
from __future__ import annotations

from enum import Enum


class ConfigError(RuntimeError):
    """Raised when configuration parsing fails."""

    def __init__(self, message: str, *, variable: str | None = None) -> None:
        super().__init__(message)
        self.variable = variable


class MissingRequiredError(ConfigError):
    """A mandatory configuration value was not supplied."""


class InvalidFormatError(ConfigError):
    """A configuration value could not be parsed or failed validation."""


class NumericViolation(Enum):
    """Which constraint a numeric value violated."""

    NOT_FINITE_OR_NEGATIVE = "not-finite-or-negative"
    NOT_INTEGER = "not-integer"


class InvalidNumericError(InvalidFormatError):
    """A numeric configuration value is malformed."""

    def __init__(
        self,
        message: str,
        *,
        reason: NumericViolation,
        variable: str | None = None,
    ) -> None:
        super().__init__(message, variable=variable)
        self.reason = reason


class CrossFieldConflictError(ConfigError):
    """Two or more values are inconsistent with each other."""


class PersistenceError(ConfigError):
    """Configuration state could not be written to disk."""


__all__ = [
    "ConfigError",
    "CrossFieldConflictError",
    "InvalidFormatError",
    "InvalidNumericError",
    "MissingRequiredError",
    "NumericViolation",
    "PersistenceError",
]
