# src/ode_core/norms.py
"""Norm engine for ODE states.

A norm aggregates the magnitudes of a state's components into one real number.
Steppers use it on the local error estimate: after scaling each component by
``abstol + reltol * |y|`` a step is accepted when the norm is at most 1.

Conventions:
    - ``P(p)`` is the true p-norm, ``(sum |c|^p) ** (1/p)``. The root-free sum
      is available separately as :func:`sum_abs_powers`.
    - ``INF_POS`` is the largest component magnitude.
    - ``INF_NEG`` is the smallest component magnitude (fold seeded at +inf).
    - A state with no components has norm 0.0 under every kind.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING, ClassVar, Final, Literal

import numpy as np

from .errors import raise_invalid_norm, raise_state_shape_error

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .option_sets import OptionSet
    from .state import OdeState

NormVariant = Literal["p", "inf", "-inf"]

_INF_POS_ALIASES: Final[frozenset[str]] = frozenset({"inf", "+inf", "max"})
_INF_NEG_ALIASES: Final[frozenset[str]] = frozenset({"-inf", "min"})


@dataclass(frozen=True, slots=True)
class NormKind:
    """Selects the aggregation rule applied by :func:`pnorm`.

    Build instances with :meth:`p`, :meth:`parse`, or use the ``INF_POS`` /
    ``INF_NEG`` constants. ``exponent`` is only set for the ``P`` variant.
    """

    variant: NormVariant
    exponent: int | None = None

    INF_POS: ClassVar[NormKind]
    INF_NEG: ClassVar[NormKind]

    def __post_init__(self) -> None:
        if self.variant == "p":
            _check_exponent(self.exponent)
        elif self.variant in {"inf", "-inf"}:
            if self.exponent is not None:
                raise_invalid_norm(
                    detail="infinity norms take no exponent", got=self.exponent
                )
        else:
            raise_invalid_norm(detail="unknown norm variant", got=self.variant)

    @classmethod
    def p(cls, exponent: int) -> NormKind:
        """Return the ``P(exponent)`` norm selector.

        Raises:
            InvalidNormError: If ``exponent`` is not an integer >= 1.
        """
        return cls("p", exponent)

    @classmethod
    def default(cls) -> NormKind:
        """Return the Euclidean norm, ``P(2)``."""
        return cls("p", 2)

    @classmethod
    def parse(cls, value: object) -> NormKind:
        """Coerce a configuration value into a NormKind.

        Accepts a NormKind, a positive int, a string holding a positive int,
        ``"inf"``/``"+inf"``/``"max"`` or ``"-inf"``/``"min"``. Float infinities
        map to the infinity variants.

        Raises:
            InvalidNormError: If the value does not describe a norm.
        """
        if isinstance(value, NormKind):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _INF_POS_ALIASES:
                return cls.INF_POS
            if text in _INF_NEG_ALIASES:
                return cls.INF_NEG
            if text.startswith("p(") and text.endswith(")"):
                text = text[2:-1]
            try:
                exponent = int(text)
            except ValueError:
                raise_invalid_norm(detail="unrecognized norm name", got=value)
            return cls.p(exponent)
        if isinstance(value, float) and math.isinf(value):
            return cls.INF_POS if value > 0 else cls.INF_NEG
        if isinstance(value, float) and value.is_integer():
            return cls.p(int(value))
        return cls("p", value)  # type: ignore[arg-type]

    @property
    def is_p(self) -> bool:
        """Return True for the ``P(p)`` variant."""
        return self.variant == "p"

    def __str__(self) -> str:
        if self.variant == "p":
            return f"P({self.exponent})"
        return self.variant


NormKind.INF_POS = NormKind("inf")
NormKind.INF_NEG = NormKind("-inf")


def _check_exponent(exponent: object) -> None:
    if isinstance(exponent, bool) or not isinstance(exponent, (int, np.integer)):
        raise_invalid_norm(detail="p-norm exponent must be an integer", got=exponent)
    if int(exponent) < 1:  # type: ignore[call-overload]
        raise_invalid_norm(detail="p-norm exponent must be >= 1", got=exponent)


# -----------------------------------------------------------------------------
# Generic folds over OdeState.ode_iter()
# -----------------------------------------------------------------------------


def _power(mag: object, exponent: int) -> float:
    try:
        return math.pow(float(mag), exponent)  # type: ignore[arg-type]
    except OverflowError:
        return math.inf


def _nan_max(acc: float, mag: object) -> float:
    value = float(mag)  # type: ignore[arg-type]
    if math.isnan(acc) or math.isnan(value):
        return math.nan
    return value if value > acc else acc


def _nan_min(acc: float, mag: object) -> float:
    value = float(mag)  # type: ignore[arg-type]
    if math.isnan(acc) or math.isnan(value):
        return math.nan
    return value if value < acc else acc


def pnorm(state: OdeState, kind: NormKind) -> float:
    """Compute the norm of ``state`` selected by ``kind``.

    Works on any state through ``ode_iter``; representations may provide a
    faster equivalent in their own ``pnorm``.

    Args:
        state: State to measure.
        kind: Aggregation rule.

    Returns:
        Norm as a Python float (0.0 for an empty state).
    """
    if state.dof() == 0:
        return 0.0
    magnitudes = (abs(item) for item in state.ode_iter())
    if kind.variant == "inf":
        return reduce(_nan_max, magnitudes, 0.0)
    if kind.variant == "-inf":
        return reduce(_nan_min, magnitudes, math.inf)
    exponent = int(kind.exponent)  # type: ignore[arg-type]
    total = reduce(lambda acc, mag: acc + _power(mag, exponent), magnitudes, 0.0)
    return total ** (1.0 / exponent)


def sum_abs_powers(state: OdeState, p: int) -> float:
    """Return ``sum |c|^p`` over the components, without the final root.

    This is a monotone surrogate for the p-norm, cheaper when only
    comparisons between norms matter.

    Raises:
        InvalidNormError: If ``p`` is not an integer >= 1.
    """
    _check_exponent(p)
    exponent = int(p)
    return float(
        reduce(
            lambda acc, item: acc + _power(abs(item), exponent), state.ode_iter(), 0.0
        )
    )


def aggregate_magnitudes(
    values: NDArray[np.generic],
    kind: NormKind,
    *,
    mean: bool = False,
) -> float:
    """Vectorised norm of a 1-D array of components.

    Args:
        values: Components (real or complex).
        kind: Aggregation rule.
        mean: For ``P(p)``, average the powers before taking the root.

    Returns:
        Norm as a Python float (0.0 for an empty array).
    """
    mags = np.abs(np.asarray(values))
    if mags.size == 0:
        return 0.0
    if kind.variant == "inf":
        return float(np.max(mags))
    if kind.variant == "-inf":
        return float(np.min(mags))
    exponent = int(kind.exponent)  # type: ignore[arg-type]
    with np.errstate(over="ignore"):
        powers = mags.astype(np.float64, copy=False) ** exponent
    total = float(np.mean(powers)) if mean else float(np.sum(powers))
    return total ** (1.0 / exponent)


# -----------------------------------------------------------------------------
# Error norms for step acceptance
# -----------------------------------------------------------------------------


def scaled_error_norm(
    err: OdeState,
    y_new: OdeState,
    y_prev: OdeState,
    *,
    reltol: float,
    abstol: float,
    kind: NormKind,
) -> float:
    """Compute the tolerance-scaled norm of a local error estimate.

    Each error component is divided by
    ``abstol + reltol * max(|y_new_i|, |y_prev_i|)``. For ``P(p)`` the powers
    are averaged over the components before the root, so the acceptance
    threshold of 1.0 does not depend on the system size.

    Args:
        err: Local error estimate.
        y_new: Proposed next state.
        y_prev: Current state.
        reltol: Relative tolerance.
        abstol: Absolute tolerance.
        kind: Aggregation rule.

    Returns:
        Scaled error norm; ``inf`` if any ratio is not finite.

    Raises:
        StateShapeError: If the three states do not share the same dof.
    """
    dof = err.dof()
    for name, other in (("y_new", y_new), ("y_prev", y_prev)):
        if other.dof() != dof:
            raise_state_shape_error(
                name=name, expected=f"dof == {dof} (error estimate)", got=other.dof()
            )
    if dof == 0:
        return 0.0

    scale = np.maximum(np.abs(y_new.to_numpy()), np.abs(y_prev.to_numpy()))
    scale *= float(reltol)
    scale += float(abstol)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.abs(err.to_numpy()) / scale
    if not np.all(np.isfinite(ratio)):
        return math.inf

    v = aggregate_magnitudes(ratio, kind, mean=kind.is_p)
    if not math.isfinite(v):
        return math.inf
    return v


def error_norm_for(
    err: OdeState,
    y_new: OdeState,
    y_prev: OdeState,
    options: OptionSet,
) -> float:
    """Scaled error norm using ``reltol``, ``abstol`` and ``norm`` of an OptionSet.

    Option sets without a ``norm`` field use ``P(2)``.
    """
    kind = getattr(options, "norm", None) or NormKind.default()
    return scaled_error_norm(
        err,
        y_new,
        y_prev,
        reltol=options.reltol,
        abstol=options.abstol,
        kind=kind,
    )


def step_accepted(error_norm: float) -> bool:
    """Return True when a scaled error norm accepts the step."""
    return error_norm <= 1.0
