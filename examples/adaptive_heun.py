# ode_core/examples/adaptive_heun.py
"""Adaptive Heun/Euler stepper built on the ode_core substrate.

This example shows how an integrator consumes ode_core:

- the state is any OdeState (here a TupleState for a damped oscillator),
- the local error is the Heun - Euler difference, measured with
  error_norm_for() against the AdaptiveOptions tolerances,
- proposed steps are clamped with clamp_step(), and a RetryBudget bounds the
  retries after the right-hand side fails.

Run it directly to print the solution at the requested output times.
"""

from __future__ import annotations

import math
from collections.abc import Callable

from ode_core import (
    AdaptiveOptions,
    OdeState,
    OptionMap,
    RetryBudget,
    TupleState,
    clamp_step,
    error_norm_for,
    step_accepted,
)

RHS = Callable[[float, OdeState], OdeState]

_SAFETY = 0.9
_FAC_MIN = 0.2
_FAC_MAX = 5.0


def _axpy(y: OdeState, h: float, k: OdeState) -> OdeState:
    out = y.copy()
    for i in range(y.dof()):
        out.update(i, lambda yi: yi + k.get(i) * h)  # noqa: B023
    return out


def heun_euler_step(
    rhs: RHS, t: float, y: OdeState, h: float
) -> tuple[OdeState, OdeState]:
    """One Heun step and the Heun - Euler error estimate."""
    k1 = rhs(t, y)
    euler = _axpy(y, h, k1)
    k2 = rhs(t + h, euler)

    y_new = y.copy()
    err = y.copy()
    for i in range(y.dof()):
        incr = (k1.get(i) + k2.get(i)) * (0.5 * h)
        y_new.insert(i, y.get(i) + incr)
        err.insert(i, y.get(i) + incr - euler.get(i))
    return y_new, err


def integrate(
    rhs: RHS,
    times: list[float],
    y0: OdeState,
    options: AdaptiveOptions,
) -> list[tuple[float, OdeState]]:
    """Integrate from times[0] to times[-1], reporting per options.points."""
    options.points.check_indices(len(times))
    out: list[tuple[float, OdeState]] = []
    if options.points.includes(0):
        out.append((times[0], y0.copy()))

    t, y = times[0], y0.copy()
    h = options.initstep or (times[-1] - times[0]) / 100.0
    budget = RetryBudget.from_options(options)

    for idx, t_target in enumerate(times[1:], start=1):
        while t < t_target:
            h_try = min(clamp_step(h, options), t_target - t)
            try:
                y_new, err = heun_euler_step(rhs, t, y, h_try)
            except ArithmeticError:
                budget.consume()
                h = h_try * _FAC_MIN
                continue

            err_norm = error_norm_for(err, y_new, y, options)
            if err_norm == 0.0:
                fac = _FAC_MAX
            else:
                fac = min(_FAC_MAX, max(_FAC_MIN, _SAFETY * err_norm ** (-0.5)))

            if step_accepted(err_norm) or (
                options.minstep is not None and h_try <= options.minstep
            ):
                t = t_target if h_try >= t_target - t else t + h_try
                y = y_new
                budget.reset()
                if options.points.is_all and t < t_target:
                    out.append((t, y.copy()))
            h = h_try * fac

        if options.points.includes(idx):
            out.append((t, y.copy()))
    return out


def damped_oscillator(_t: float, y: OdeState) -> OdeState:
    """x'' + 0.1 x' + x = 0 as a first-order system."""
    x, v = y.get(0), y.get(1)
    return TupleState(v, -x - 0.1 * v)


def main() -> None:
    """Run the oscillator with options loaded from a plain mapping."""
    options = AdaptiveOptions.from_option_map(
        OptionMap.from_pairs(
            {
                "Norm": 2,
                "Reltol": 1e-6,
                "Abstol": 1e-9,
                "Maxstep": 0.5,
                "Points": [0, 5, 10],
                "Retries": 3,
            }
        )
    )
    times = [0.1 * i * math.pi for i in range(11)]
    for t, y in integrate(damped_oscillator, times, TupleState(1.0, 0.0), options):
        print(f"t={t:7.4f}  x={y.get(0): .6f}  v={y.get(1): .6f}")


if __name__ == "__main__":
    main()
