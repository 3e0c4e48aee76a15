# src/ode_core/options.py
"""Option value model and the dynamic option map.

Every tunable a solver understands is an :class:`Option`: a canonical name
plus a validated payload. The canonical names are stable strings and double
as keys of :class:`OptionMap`, the solver-agnostic exchange format that
configuration loaders build and :mod:`ode_core.option_sets` converts into
statically typed option sets.

Canonical names and payloads:

=========== ============================== =========
Name        Payload                        Default
=========== ============================== =========
Norm        NormKind                       (none)
Reltol      float >= 0                     1e-5
Abstol      float >= 0                     1e-8
Minstep     float > 0                      (none)
Maxstep     float > 0                      (none)
Initstep    float > 0                      (none)
Points      OutputPoints                   All
Retries     int >= 0                       0
=========== ============================== =========
"""

from __future__ import annotations

import math
import numbers
from collections.abc import Callable, Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Final

import numpy as np

from .errors import (
    raise_missing_options,
    raise_option_value_error,
    raise_unknown_option,
)
from .norms import NormKind


class OptionName(StrEnum):
    """Canonical option names."""

    NORM = "Norm"
    RELTOL = "Reltol"
    ABSTOL = "Abstol"
    MINSTEP = "Minstep"
    MAXSTEP = "Maxstep"
    INITSTEP = "Initstep"
    POINTS = "Points"
    RETRIES = "Retries"


def format_comma_delimited(parts: Iterable[object]) -> str:
    """Join the display forms of ``parts`` with ``", "``."""
    return ", ".join(str(part) for part in parts)


# -----------------------------------------------------------------------------
# Output points
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OutputPoints:
    """Which points a solver reports.

    ``All`` (``indices is None``): every point the stepper visited.
    ``Specified``: only the caller-requested points, given as positions into
    the caller's time sequence. An empty selection is legal and reports
    nothing.
    """

    indices: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if self.indices is None:
            return
        if isinstance(self.indices, str) or not isinstance(self.indices, Iterable):
            raise_option_value_error(
                name=OptionName.POINTS,
                detail="expected a sequence of indices",
                got=self.indices,
            )
        checked: list[int] = []
        for idx in self.indices:
            if (
                isinstance(idx, bool)
                or not isinstance(idx, numbers.Integral)
                or int(idx) < 0
            ):
                raise_option_value_error(
                    name=OptionName.POINTS,
                    detail="indices must be non-negative integers",
                    got=idx,
                )
            checked.append(int(idx))
        object.__setattr__(self, "indices", tuple(checked))

    @classmethod
    def all(cls) -> OutputPoints:
        """Report every visited point."""
        return cls(None)

    @classmethod
    def specified(cls, indices: Iterable[int]) -> OutputPoints:
        """Report only the given positions of the time sequence.

        Raises:
            OptionValueError: If an index is not a non-negative integer.
        """
        return cls(tuple(indices))

    @classmethod
    def parse(cls, value: object) -> OutputPoints:
        """Coerce ``"All"``, a sequence of indices or an OutputPoints.

        Raises:
            OptionValueError: If the value does not describe output points.
        """
        if isinstance(value, OutputPoints):
            return value
        if isinstance(value, str):
            if value.strip().lower() == "all":
                return cls.all()
            raise_option_value_error(
                name=OptionName.POINTS,
                detail="expected 'All' or a sequence of indices",
                got=value,
            )
        if isinstance(value, (list, tuple, range, np.ndarray)):
            return cls.specified(value)
        raise_option_value_error(
            name=OptionName.POINTS,
            detail="expected 'All' or a sequence of indices",
            got=value,
        )

    @property
    def is_all(self) -> bool:
        """Return True for the ``All`` policy."""
        return self.indices is None

    def includes(self, index: int) -> bool:
        """Return True if position ``index`` of the time sequence is reported."""
        return self.indices is None or index in self.indices

    def check_indices(self, n_times: int) -> None:
        """Validate the requested positions against a time sequence length.

        Raises:
            OptionValueError: If a requested index is negative or ``>= n_times``.
        """
        if self.indices is None:
            return
        bad = [idx for idx in self.indices if not 0 <= idx < n_times]
        if bad:
            raise_option_value_error(
                name=OptionName.POINTS,
                detail=f"indices must lie in [0, {n_times}) for {n_times} time points",
                got=bad,
            )

    def __str__(self) -> str:
        if self.indices is None:
            return "Points: All"
        return f"Points: [{format_comma_delimited(self.indices)}]"


# -----------------------------------------------------------------------------
# Payload coercion
# -----------------------------------------------------------------------------


def _real(name: OptionName, value: object) -> float:
    if isinstance(value, bool):
        raise_option_value_error(name=name, detail="expected a real number", got=value)
    if isinstance(value, numbers.Real):
        out = float(value)
    elif isinstance(value, str):
        try:
            out = float(value)
        except ValueError:
            raise_option_value_error(
                name=name, detail="expected a real number", got=value
            )
    else:
        raise_option_value_error(name=name, detail="expected a real number", got=value)
    if not math.isfinite(out):
        raise_option_value_error(name=name, detail="must be finite", got=value)
    return out


def _non_negative_real(name: OptionName) -> Callable[[object], float]:
    def coerce(value: object) -> float:
        out = _real(name, value)
        if out < 0.0:
            raise_option_value_error(name=name, detail="must be >= 0", got=value)
        return out

    return coerce


def _positive_real(name: OptionName) -> Callable[[object], float]:
    def coerce(value: object) -> float:
        out = _real(name, value)
        if out <= 0.0:
            raise_option_value_error(name=name, detail="must be > 0", got=value)
        return out

    return coerce


def _count(name: OptionName) -> Callable[[object], int]:
    def coerce(value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise_option_value_error(
                name=name, detail="expected a non-negative integer", got=value
            )
        if int(value) < 0:
            raise_option_value_error(name=name, detail="must be >= 0", got=value)
        return int(value)

    return coerce


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

_NO_DEFAULT: Final = object()


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """Static metadata of one option kind.

    Attributes:
        name: Canonical name.
        payload: Human-readable payload type.
        coerce: Validates and normalizes a raw payload.
        doc: One-line description.
        default: Default payload, or a sentinel when there is none.
    """

    name: OptionName
    payload: str
    coerce: Callable[[object], Any]
    doc: str
    default: Any = _NO_DEFAULT

    @property
    def has_default(self) -> bool:
        """Return True if the option declares a default."""
        return self.default is not _NO_DEFAULT


OPTION_REGISTRY: Final[Mapping[OptionName, OptionSpec]] = MappingProxyType(
    {
        OptionName.NORM: OptionSpec(
            OptionName.NORM,
            "NormKind",
            NormKind.parse,
            "norm used to measure the local error estimate",
        ),
        OptionName.RELTOL: OptionSpec(
            OptionName.RELTOL,
            "float",
            _non_negative_real(OptionName.RELTOL),
            "a step is accepted if E <= reltol * |y|",
            1e-5,
        ),
        OptionName.ABSTOL: OptionSpec(
            OptionName.ABSTOL,
            "float",
            _non_negative_real(OptionName.ABSTOL),
            "a step is accepted if E <= abstol",
            1e-8,
        ),
        OptionName.MINSTEP: OptionSpec(
            OptionName.MINSTEP,
            "float",
            _positive_real(OptionName.MINSTEP),
            "minimal integration step",
        ),
        OptionName.MAXSTEP: OptionSpec(
            OptionName.MAXSTEP,
            "float",
            _positive_real(OptionName.MAXSTEP),
            "maximal integration step",
        ),
        OptionName.INITSTEP: OptionSpec(
            OptionName.INITSTEP,
            "float",
            _positive_real(OptionName.INITSTEP),
            "initial integration step",
        ),
        OptionName.POINTS: OptionSpec(
            OptionName.POINTS,
            "OutputPoints",
            OutputPoints.parse,
            "which points are reported",
            OutputPoints.all(),
        ),
        OptionName.RETRIES: OptionSpec(
            OptionName.RETRIES,
            "int",
            _count(OptionName.RETRIES),
            "retries with a smaller step after F(t, y) fails",
            0,
        ),
    }
)


def option_spec(name: str) -> OptionSpec:
    """Return the registry entry for a canonical name.

    Raises:
        UnknownOptionError: If ``name`` is not a canonical option name.
    """
    try:
        return OPTION_REGISTRY[OptionName(name)]
    except ValueError:
        raise_unknown_option(name)


def default_for(name: str) -> Any:
    """Return the default payload of an option.

    Raises:
        UnknownOptionError: If ``name`` is not a canonical option name.
        MissingOptionError: If the option declares no default.
    """
    spec = option_spec(name)
    if not spec.has_default:
        raise_missing_options(owner=f"default lookup for '{name}'", fields=[name])
    return spec.default


# -----------------------------------------------------------------------------
# Option
# -----------------------------------------------------------------------------


class Option:
    """A single named option value.

    The payload is validated against the option's kind on construction and
    on every :meth:`set`.
    """

    __slots__ = ("_name", "_value")

    def __init__(self, name: str, value: object) -> None:
        """
        Initialize an Option.

        Args:
            name: Canonical option name.
            value: Raw payload; validated and normalized for this kind.

        Raises:
            UnknownOptionError: If ``name`` is not a canonical option name.
            OptionValueError: If ``value`` is not a valid payload.
            InvalidNormError: If a ``Norm`` payload is not a valid norm.
        """
        spec = option_spec(name)
        self._name = spec.name
        self._value = spec.coerce(value)

    @classmethod
    def default(cls, name: str) -> Option:
        """Return the option holding its default payload."""
        return cls(name, default_for(name))

    @classmethod
    def norm(cls, kind: NormKind | int | str) -> Option:
        return cls(OptionName.NORM, kind)

    @classmethod
    def reltol(cls, value: float) -> Option:
        return cls(OptionName.RELTOL, value)

    @classmethod
    def abstol(cls, value: float) -> Option:
        return cls(OptionName.ABSTOL, value)

    @classmethod
    def minstep(cls, value: float) -> Option:
        return cls(OptionName.MINSTEP, value)

    @classmethod
    def maxstep(cls, value: float) -> Option:
        return cls(OptionName.MAXSTEP, value)

    @classmethod
    def initstep(cls, value: float) -> Option:
        return cls(OptionName.INITSTEP, value)

    @classmethod
    def points(cls, value: OutputPoints | Iterable[int] | str) -> Option:
        return cls(OptionName.POINTS, value)

    @classmethod
    def retries(cls, value: int) -> Option:
        return cls(OptionName.RETRIES, value)

    @property
    def name(self) -> OptionName:
        """Canonical name of this option."""
        return self._name

    @property
    def spec(self) -> OptionSpec:
        """Registry entry of this option's kind."""
        return OPTION_REGISTRY[self._name]

    def get(self) -> Any:
        """Return the payload."""
        return self._value

    def set(self, value: object) -> None:
        """Replace the payload after validating it for this kind."""
        self._value = self.spec.coerce(value)

    def describe(self) -> str:
        """Return ``"Name: payload"``; ``Points`` already carries its label."""
        if self._name is OptionName.POINTS:
            return str(self._value)
        return f"{self._name}: {self._value}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Option):
            return NotImplemented
        return self._name == other._name and self._value == other._value

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"Option({self._name.value!r}, {self._value!r})"


# -----------------------------------------------------------------------------
# OptionMap
# -----------------------------------------------------------------------------


class OptionMap(MutableMapping[str, Option]):
    """Mapping from canonical name to :class:`Option`.

    Keys are not checked against the value's kind here; that happens when a
    map is converted into an option set.

    Entries are stored as copies, so later ``Option.set`` calls on the
    inserted object do not reach the map.
    """

    def __init__(self, options: Iterable[Option] = ()) -> None:
        self._entries: dict[str, Option] = {}
        for option in options:
            self.insert(option)

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, object]) -> OptionMap:
        """Build a map from ``{canonical name: raw payload}``.

        Raises:
            UnknownOptionError: If a name is not a canonical option name.
            OptionValueError: If a payload is invalid for its option.
        """
        out = cls()
        for name, raw in pairs.items():
            option = raw if isinstance(raw, Option) else Option(name, raw)
            out.insert(option, name=name)
        return out

    def insert(self, option: Option, name: str | None = None) -> Option | None:
        """Store ``option`` under ``name`` (default: its canonical name).

        Returns:
            The option previously stored under that key, or None.
        """
        key = str(option.name if name is None else name)
        previous = self._entries.get(key)
        self[key] = option
        return previous

    def remove(self, name: str) -> Option | None:
        """Remove and return the option stored under ``name``, or None."""
        return self._entries.pop(str(name), None)

    def to_dict(self) -> dict[str, Any]:
        """Return ``{key: payload}`` with plain payloads."""
        return {key: option.get() for key, option in self._entries.items()}

    def __getitem__(self, name: str) -> Option:
        return self._entries[str(name)]

    def __setitem__(self, name: str, option: Option) -> None:
        if not isinstance(option, Option):
            msg = (
                "OptionMap values must be Option instances, "
                f"got {type(option).__name__}"
            )
            raise TypeError(msg)
        self._entries[str(name)] = Option(option.name, option.get())

    def __delitem__(self, name: str) -> None:
        del self._entries[str(name)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"OptionMap({self._entries!r})"
