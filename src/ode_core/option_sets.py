# src/ode_core/option_sets.py
"""Statically typed option sets, one per solver family.

An option set is a frozen pydantic model whose fields carry the canonical
option name as their alias. A stepper reads the fields directly
(``opts.reltol``, ``opts.norm``); configuration code builds sets either with
the fluent :class:`OptionSetBuilder` or from an :class:`~ode_core.options.OptionMap`.

Conversion rules between maps and sets:

- map -> set: each field looks up its canonical name. An entry holding a
  different option kind raises OptionKindMismatchError. Absent entries take
  the field default, or raise MissingOptionError when there is none. Entries
  no field recognizes raise UnknownOptionError (``strict=True``) or emit a
  RuntimeWarning.
- set -> map: one entry per field holding a value; unset optional fields are
  skipped.

Direct construction (``AdaptiveOptions(reltol=...)``) is validated by
pydantic and reports failures as ``pydantic.ValidationError``; the builder and
map conversion report the typed ode_core errors instead.
"""

from __future__ import annotations

import math
import numbers
import warnings
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainValidator, model_validator

from .errors import (
    raise_kind_mismatch,
    raise_missing_options,
    raise_option_value_error,
    raise_retries_exhausted,
    raise_step_size_error,
    raise_unknown_option,
)
from .norms import NormKind
from .options import (
    OPTION_REGISTRY,
    Option,
    OptionMap,
    OptionName,
    OutputPoints,
    option_spec,
)

_CANONICAL_NAMES = frozenset(name.value for name in OptionName)


def _validated(name: OptionName) -> PlainValidator:
    return PlainValidator(OPTION_REGISTRY[name].coerce)


def _default(name: OptionName) -> Any:
    return OPTION_REGISTRY[name].default


Reltol = Annotated[float, _validated(OptionName.RELTOL)]
Abstol = Annotated[float, _validated(OptionName.ABSTOL)]
Minstep = Annotated[float, _validated(OptionName.MINSTEP)]
Maxstep = Annotated[float, _validated(OptionName.MAXSTEP)]
Initstep = Annotated[float, _validated(OptionName.INITSTEP)]
Norm = Annotated[NormKind, _validated(OptionName.NORM)]
Points = Annotated[OutputPoints, _validated(OptionName.POINTS)]
Retries = Annotated[int, _validated(OptionName.RETRIES)]


def check_step_bounds(
    minstep: float | None,
    maxstep: float | None,
    initstep: float | None,
) -> None:
    """Validate the ordering ``minstep <= initstep <= maxstep`` of set bounds.

    Raises:
        OptionValueError: If two set bounds are out of order.
    """
    if minstep is not None and maxstep is not None and minstep > maxstep:
        raise_option_value_error(
            name="Minstep/Maxstep",
            detail="Minstep must not exceed Maxstep",
            got=(minstep, maxstep),
        )
    if initstep is None:
        return
    if minstep is not None and initstep < minstep:
        raise_option_value_error(
            name="Initstep", detail=f"must be >= Minstep ({minstep})", got=initstep
        )
    if maxstep is not None and initstep > maxstep:
        raise_option_value_error(
            name="Initstep", detail=f"must be <= Maxstep ({maxstep})", got=initstep
        )


class OptionSet(BaseModel):
    """Options common to every solver family.

    Attributes:
        reltol: Relative tolerance (default 1e-5).
        abstol: Absolute tolerance (default 1e-8).
        minstep: Smallest step the solver may take, if bounded.
        maxstep: Largest step the solver may take, if bounded.
        initstep: First step to attempt, if fixed by the caller.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    reltol: Reltol = Field(default=_default(OptionName.RELTOL), alias="Reltol")
    abstol: Abstol = Field(default=_default(OptionName.ABSTOL), alias="Abstol")
    minstep: Minstep | None = Field(default=None, alias="Minstep")
    maxstep: Maxstep | None = Field(default=None, alias="Maxstep")
    initstep: Initstep | None = Field(default=None, alias="Initstep")

    @model_validator(mode="after")
    def validate_step_bounds(self) -> Self:
        check_step_bounds(self.minstep, self.maxstep, self.initstep)
        return self

    # ------------------------------------------------------------------
    # Field <-> canonical name
    # ------------------------------------------------------------------

    @classmethod
    def canonical_name(cls, field: str) -> str:
        """Return the canonical option name of a field."""
        info = cls.model_fields[field]
        return info.alias or field

    @classmethod
    def field_for(cls, name: str) -> str:
        """Return the field holding canonical option ``name``.

        Raises:
            UnknownOptionError: If this option set has no such field.
        """
        for field in cls.model_fields:
            if cls.canonical_name(field) == str(name):
                return field
        raise_unknown_option(name, owner=cls.__name__)

    @classmethod
    def required_options(cls) -> list[str]:
        """Canonical names of fields that have no default."""
        return [
            cls.canonical_name(field)
            for field, info in cls.model_fields.items()
            if info.is_required()
        ]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def builder(cls) -> OptionSetBuilder[Self]:
        """Return a fluent builder for this option set."""
        return OptionSetBuilder(cls)

    @classmethod
    def build(cls, values: Mapping[str, object]) -> Self:
        """Build an option set from ``{field name: raw payload}``.

        ``None`` means "not supplied": the field default applies.

        Raises:
            UnknownOptionError: If a key is not a field of this option set.
            MissingOptionError: If required fields are not supplied.
            OptionValueError: If a payload or the step bounds are invalid.
            InvalidNormError: If a norm payload is invalid.
        """
        for field in values:
            if field not in cls.model_fields:
                raise_unknown_option(field, owner=cls.__name__)

        supplied = {field: raw for field, raw in values.items() if raw is not None}
        missing = [
            cls.canonical_name(field)
            for field, info in cls.model_fields.items()
            if info.is_required() and field not in supplied
        ]
        if missing:
            raise_missing_options(owner=cls.__name__, fields=missing)

        coerced = {
            field: option_spec(cls.canonical_name(field)).coerce(raw)
            for field, raw in supplied.items()
        }
        check_step_bounds(
            coerced.get("minstep"), coerced.get("maxstep"), coerced.get("initstep")
        )
        return cls.model_validate(coerced)

    @classmethod
    def from_option_map(cls, options: OptionMap, *, strict: bool = False) -> Self:
        """Convert a dynamic option map into this option set.

        Args:
            options: Map from canonical name to Option.
            strict: Raise on entries this option set does not recognize
                instead of warning.

        Raises:
            OptionKindMismatchError: If an entry holds another option kind
                than its key names, whether or not this option set
                uses that entry.
            MissingOptionError: If required fields have no entry.
            UnknownOptionError: If ``strict`` and an entry is not recognized.
        """
        for key in sorted(options):
            option = options[key]
            if key in _CANONICAL_NAMES and option.name != key:
                raise_kind_mismatch(name=key, expected=key, got=option.name)

        values: dict[str, object] = {}
        recognized: set[str] = set()
        for field in cls.model_fields:
            name = cls.canonical_name(field)
            option = options.get(name)
            if option is None:
                continue
            recognized.add(name)
            values[field] = option.get()

        leftovers = sorted(key for key in options if key not in recognized)
        if leftovers:
            if strict:
                raise_unknown_option(leftovers[0], owner=cls.__name__)
            warnings.warn(
                f"{cls.__name__} ignores option(s) {leftovers}",
                RuntimeWarning,
                stacklevel=2,
            )
        return cls.build(values)

    def to_option_map(self) -> OptionMap:
        """Return one map entry per field holding a value."""
        out = OptionMap()
        for field in type(self).model_fields:
            value = getattr(self, field)
            if value is None:
                continue
            out.insert(Option(type(self).canonical_name(field), value))
        return out

    def option(self, name: str) -> Option | None:
        """Return a field as an Option by canonical name (None if unset).

        Raises:
            UnknownOptionError: If this option set has no such field.
        """
        value = getattr(self, type(self).field_for(name))
        if value is None:
            return None
        return Option(name, value)

    def with_options(self, **changes: object) -> Self:
        """Return a validated copy with some fields replaced."""
        values = {field: getattr(self, field) for field in type(self).model_fields}
        values.update(changes)
        return type(self).build(values)

    def describe(self) -> str:
        """Return the set fields as ``"Name: payload"`` lines."""
        return "\n".join(option.describe() for option in self.to_option_map().values())


class AdaptiveOptions(OptionSet):
    """Options for adaptive-step solvers.

    Attributes:
        norm: Norm applied to the scaled error estimate (required).
        points: Output point selection (default All).
        retries: Retries with a smaller step when F(t, y) fails (default 0).
    """

    norm: Norm = Field(alias="Norm")
    points: Points = Field(default=_default(OptionName.POINTS), alias="Points")
    retries: Retries = Field(default=_default(OptionName.RETRIES), alias="Retries")


class FixedStepOptions(OptionSet):
    """Options for fixed-step solvers; the step size is required.

    Attributes:
        initstep: Step size used for every step.
        points: Output point selection (default All).
    """

    initstep: Initstep = Field(alias="Initstep")
    points: Points = Field(default=_default(OptionName.POINTS), alias="Points")


S = TypeVar("S", bound=OptionSet)


class OptionSetBuilder(Generic[S]):
    """Fluent builder for an option set.

    Each field of the target is available as a setter method::

        AdaptiveOptions.builder().reltol(1e-6).norm(NormKind.INF_POS).build()
    """

    def __init__(self, target: type[S]) -> None:
        self._target = target
        self._values: dict[str, object] = {}

    def set(self, name: str, value: object) -> OptionSetBuilder[S]:
        """Set a field by field name or canonical option name."""
        fields = self._target.model_fields
        field = name if name in fields else self._target.field_for(name)
        self._values[field] = value
        return self

    def option(self, option: Option) -> OptionSetBuilder[S]:
        """Set the field matching ``option``'s canonical name."""
        return self.set(option.name, option.get())

    def build(self) -> S:
        """Build the option set.

        Raises:
            MissingOptionError: If required fields were not supplied.
            OptionValueError: If a payload or the step bounds are invalid.
        """
        return self._target.build(self._values)

    def __getattr__(self, name: str) -> Callable[[object], OptionSetBuilder[S]]:
        if name.startswith("_") or name not in self._target.model_fields:
            raise AttributeError(name)
        return lambda value: self.set(name, value)


# -----------------------------------------------------------------------------
# Stepper-facing helpers
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class RetryBudget:
    """Counts step retries against the ``Retries`` option.

    Attributes:
        retries: Number of retries allowed.
        used: Retries consumed so far.
    """

    retries: int
    used: int = 0

    @classmethod
    def from_options(cls, options: OptionSet) -> RetryBudget:
        """Budget from ``options.retries`` (0 for sets without the field)."""
        return cls(int(getattr(options, "retries", 0)))

    @property
    def remaining(self) -> int:
        """Retries still available."""
        return max(self.retries - self.used, 0)

    def consume(self) -> int:
        """Use one retry and return how many remain.

        Raises:
            RetriesExhaustedError: If no retries remain.
        """
        if self.used >= self.retries:
            raise_retries_exhausted(retries=self.retries)
        self.used += 1
        return self.remaining

    def reset(self) -> None:
        """Restore the full budget, e.g. after an accepted step."""
        self.used = 0


def clamp_step(step: float, options: OptionSet) -> float:
    """Clamp a proposed step into ``[minstep, maxstep]``; unset bounds are open.

    Raises:
        StepSizeError: If ``step`` is not a positive finite number.
    """
    if isinstance(step, bool) or not isinstance(step, numbers.Real):
        raise_step_size_error(step=step)
    if not math.isfinite(step) or step <= 0.0:
        raise_step_size_error(step=step)
    out = float(step)
    if options.minstep is not None:
        out = max(out, options.minstep)
    if options.maxstep is not None:
        out = min(out, options.maxstep)
    return out
