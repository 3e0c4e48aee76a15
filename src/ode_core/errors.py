# src/ode_core/errors.py
"""Error types and raise helpers for ode_core.

Two families of failure live here:

- programmer errors on states (out-of-range index, bad arity). These are
  raised and never caught inside the package.
- configuration errors on options and option sets. These are typed,
  recoverable and always name the offending option.
"""

from __future__ import annotations

from enum import StrEnum
from typing import NoReturn


class ErrorCode(StrEnum):
    """Machine-readable classification for ode_core failures."""

    STATE_INDEX = "state_index"
    STATE_SHAPE = "state_shape"
    INVALID_NORM = "invalid_norm"
    MISSING_OPTION = "missing_option"
    OPTION_KIND_MISMATCH = "option_kind_mismatch"
    UNKNOWN_OPTION = "unknown_option"
    INVALID_OPTION_VALUE = "invalid_option_value"
    INVALID_STEP = "invalid_step"
    RETRIES_EXHAUSTED = "retries_exhausted"


class OdeCoreError(Exception):
    """Base exception for ode_core errors."""

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize an OdeCoreError.

        Args:
            message: Human-readable error message.
            code: Optional machine-readable error code classifying the error.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code


class StateIndexError(OdeCoreError, IndexError):
    """Raised when a state component is addressed outside ``[0, dof)``."""


class StateShapeError(OdeCoreError, ValueError):
    """Raised when a state has an unsupported arity or mismatched dof."""


class InvalidNormError(OdeCoreError, ValueError):
    """Raised when a norm selector carries an invalid exponent."""


class OptionConfigError(OdeCoreError, ValueError):
    """Base class for option and option-set configuration errors."""


class MissingOptionError(OptionConfigError):
    """Raised when a required option has neither a value nor a default."""

    def __init__(self, message: str, *, fields: tuple[str, ...]) -> None:
        super().__init__(message, code=ErrorCode.MISSING_OPTION)
        self.fields = fields


class OptionKindMismatchError(OptionConfigError):
    """Raised when a map entry holds a different option kind than its key."""

    def __init__(self, message: str, *, name: str, expected: str, got: str) -> None:
        super().__init__(message, code=ErrorCode.OPTION_KIND_MISMATCH)
        self.name = name
        self.expected = expected
        self.got = got


class UnknownOptionError(OptionConfigError, KeyError):
    """Raised when an option name is not a recognized canonical name."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message, code=ErrorCode.UNKNOWN_OPTION)
        self.name = name

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class OptionValueError(OptionConfigError):
    """Raised when an option payload or a cross-field constraint is invalid."""


class StepSizeError(OdeCoreError, ValueError):
    """Raised when a proposed step size is not a positive finite number."""


class RetriesExhaustedError(OdeCoreError, RuntimeError):
    """Raised when a stepper has used up its retry budget."""


def raise_state_index_error(*, index: object, dof: int) -> NoReturn:
    """Raise a standardized StateIndexError.

    Args:
        index: Offending index.
        dof: Number of components of the state.

    Raises:
        StateIndexError: Always.
    """
    msg = f"index out of bounds: the len is {dof} but the index is {index!r}"
    raise StateIndexError(msg, code=ErrorCode.STATE_INDEX)


def raise_state_shape_error(*, name: str, expected: str, got: object) -> NoReturn:
    """Raise a standardized StateShapeError.

    Args:
        name: Name of the object with the shape issue.
        expected: Human-readable expected shape description.
        got: Actual observed shape/value.

    Raises:
        StateShapeError: Always.
    """
    msg = f"{name} has an invalid shape/value. Expected {expected}. Got: {got!r}."
    raise StateShapeError(msg, code=ErrorCode.STATE_SHAPE)


def raise_invalid_norm(*, detail: str, got: object) -> NoReturn:
    """Raise a standardized InvalidNormError.

    Args:
        detail: What is wrong with the norm selector.
        got: Value received.

    Raises:
        InvalidNormError: Always.
    """
    msg = f"Invalid norm selector: {detail}. Got: {got!r}."
    raise InvalidNormError(msg, code=ErrorCode.INVALID_NORM)


def raise_missing_options(*, owner: str, fields: list[str]) -> NoReturn:
    """Raise a standardized MissingOptionError.

    Args:
        owner: Name of the option set (or lookup) that needs the values.
        fields: Canonical names of the missing options.

    Raises:
        MissingOptionError: Always.
    """
    names = tuple(sorted(set(fields)))
    msg = (
        f"{owner} is missing required option(s) {list(names)}; "
        "supply a value since no default exists."
    )
    raise MissingOptionError(msg, fields=names)


def raise_kind_mismatch(*, name: str, expected: str, got: str) -> NoReturn:
    """Raise a standardized OptionKindMismatchError.

    Args:
        name: Map key the entry was stored under.
        expected: Option kind the key belongs to.
        got: Option kind actually stored.

    Raises:
        OptionKindMismatchError: Always.
    """
    msg = (
        f"Option map entry '{name}' holds a '{got}' option; "
        f"expected a '{expected}' option."
    )
    raise OptionKindMismatchError(msg, name=name, expected=expected, got=got)


def raise_unknown_option(name: object, *, owner: str | None = None) -> NoReturn:
    """Raise a standardized UnknownOptionError.

    Args:
        name: Unrecognized option name.
        owner: Option set that does not recognize the name, if any.

    Raises:
        UnknownOptionError: Always.
    """
    msg = f"Unknown option name: {name!r}"
    if owner is not None:
        msg += f" (not a field of {owner})"
    raise UnknownOptionError(msg, name=str(name))


def raise_option_value_error(*, name: str, detail: str, got: object) -> NoReturn:
    """Raise a standardized OptionValueError.

    Args:
        name: Canonical option name (or field pair) being validated.
        detail: What the value must satisfy.
        got: Value received.

    Raises:
        OptionValueError: Always.
    """
    msg = f"Invalid value for option '{name}': {detail}. Got: {got!r}."
    raise OptionValueError(msg, code=ErrorCode.INVALID_OPTION_VALUE)


def raise_step_size_error(*, step: object) -> NoReturn:
    """Raise a standardized StepSizeError.

    Args:
        step: Offending step size.

    Raises:
        StepSizeError: Always.
    """
    msg = f"Step size must be a positive finite number. Got: {step!r}."
    raise StepSizeError(msg, code=ErrorCode.INVALID_STEP)


def raise_retries_exhausted(*, retries: int) -> NoReturn:
    """Raise a standardized RetriesExhaustedError.

    Args:
        retries: Retry budget that was used up.

    Raises:
        RetriesExhaustedError: Always.
    """
    msg = f"Step retry budget exhausted ({retries} retries allowed)"
    raise RetriesExhaustedError(msg, code=ErrorCode.RETRIES_EXHAUSTED)
