"""Global pytest configuration and shared fixtures for ode_core."""

from __future__ import annotations

import pytest

from ode_core.state import OdeState, ScalarState, TupleState, VectorState

# -----------------------------------------------------------------------------
# State fixtures
# -----------------------------------------------------------------------------


def _make_state(kind: str) -> OdeState:
    if kind == "vector":
        return VectorState([1.5, -2.0, 0.25, 4.0])
    if kind == "tuple":
        return TupleState(-3.0, 4.0, -1.0)
    return ScalarState(-2.5)


@pytest.fixture(params=["vector", "tuple", "scalar"])
def any_state(request: pytest.FixtureRequest) -> OdeState:
    """One instance of every state representation.

    Usage:
        def test_x(any_state):
            ...
    """
    return _make_state(request.param)


@pytest.fixture(params=list(range(2, 10)))
def tuple_state(request: pytest.FixtureRequest) -> TupleState:
    """TupleState of every supported arity, components 1.0, -2.0, 3.0, ..."""
    n = request.param
    return TupleState(*(float((-1) ** i * (i + 1)) for i in range(n)))
