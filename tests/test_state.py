# tests/test_state.py
"""Unit tests for ode_core.state.

This module verifies:
- dof consistency and index-ordered, non-mutating iteration.
- Indexed access (get / insert / update) and fatal out-of-range access.
- set_zero for every representation.
- Arity limits of TupleState and shape checks of VectorState.
- as_state dispatch.
"""

from __future__ import annotations

import numpy as np
import pytest

from ode_core.errors import ErrorCode, StateIndexError, StateShapeError
from ode_core.norms import NormKind
from ode_core.state import (
    OdeState,
    ScalarState,
    TupleState,
    VectorState,
    as_state,
)

# -------------------------------------------------------------------
# dof / iteration
# -------------------------------------------------------------------


def test_dof_is_stable_and_iter_yields_dof_items(any_state: OdeState) -> None:
    """Repeated dof() calls agree and ode_iter yields dof items in order."""
    dof = any_state.dof()
    assert dof > 0
    assert all(any_state.dof() == dof for _ in range(3))

    items = list(any_state.ode_iter())
    assert len(items) == dof
    assert items == [any_state.get(i) for i in range(dof)]
    assert len(any_state) == dof


def test_ode_iter_is_restartable_and_independent(any_state: OdeState) -> None:
    """Each ode_iter call starts from index 0 regardless of other iterators."""
    first = any_state.ode_iter()
    next(first)

    fresh = list(any_state.ode_iter())
    assert fresh == list(any_state)
    assert len(fresh) == any_state.dof()


def test_ode_iter_does_not_mutate(any_state: OdeState) -> None:
    """Consuming the iterator leaves the state unchanged."""
    before = any_state.copy()
    for _ in any_state.ode_iter():
        pass
    assert any_state == before


def test_tuple_state_dof_matches_arity(tuple_state: TupleState) -> None:
    """TupleState dof equals its arity for 2..9 components."""
    assert tuple_state.dof() == len(tuple_state.as_tuple())
    assert list(tuple_state) == list(tuple_state.as_tuple())


# -------------------------------------------------------------------
# Indexed access
# -------------------------------------------------------------------


def test_insert_and_get_roundtrip(any_state: OdeState) -> None:
    """insert writes exactly the addressed component."""
    last = any_state.dof() - 1
    others = [any_state.get(i) for i in range(last)]

    any_state.insert(last, 7.0)

    assert any_state.get(last) == 7.0
    assert any_state[last] == 7.0
    assert [any_state.get(i) for i in range(last)] == others


def test_update_applies_function_in_place() -> None:
    """update is the in-place read-modify-write of one component."""
    state = TupleState(1.0, 2.0, 3.0)
    out = state.update(1, lambda x: x * 10.0)

    assert out == 20.0
    assert state.as_tuple() == (1.0, 20.0, 3.0)


def test_setitem_alias() -> None:
    """Item assignment is insert."""
    state = VectorState([0.0, 0.0])
    state[1] = 3.5
    assert state.get(1) == 3.5
    assert np.allclose(state.data, [0.0, 3.5])


def test_tuple_out_of_range_index_is_fatal() -> None:
    """A dof=3 tuple state rejects index 5 and never wraps around."""
    state = TupleState(1.0, 2.0, 3.0)

    with pytest.raises(StateIndexError, match="the len is 3 but the index is 5"):
        state.get(5)
    with pytest.raises(StateIndexError):
        state.insert(5, 0.0)
    with pytest.raises(StateIndexError):
        state.update(5, lambda x: x)

    assert state.as_tuple() == (1.0, 2.0, 3.0)


def test_out_of_range_error_is_an_index_error() -> None:
    """StateIndexError is catchable as IndexError and carries its code."""
    with pytest.raises(IndexError) as excinfo:
        TupleState(1.0, 2.0).get(2)
    assert excinfo.value.code == ErrorCode.STATE_INDEX


@pytest.mark.parametrize("index", [-1, -3, 3, 100])
def test_vector_negative_and_large_indices_rejected(index: int) -> None:
    """VectorState does not use numpy's negative-index wrapping."""
    state = VectorState([1.0, 2.0, 3.0])
    with pytest.raises(StateIndexError):
        state.get(index)


@pytest.mark.parametrize("index", [True, 0.0, "0", None])
def test_non_integer_indices_rejected(index: object) -> None:
    """Booleans, floats and other non-integers are not indices."""
    with pytest.raises(StateIndexError):
        TupleState(1.0, 2.0).get(index)  # type: ignore[arg-type]


def test_numpy_integer_index_accepted() -> None:
    """numpy integer indices behave like Python ints."""
    state = VectorState([4.0, 5.0])
    assert state.get(np.int64(1)) == 5.0


def test_scalar_state_only_index_zero() -> None:
    """ScalarState has dof 1 and only index 0."""
    state = ScalarState(2.0)
    assert state.dof() == 1
    assert state.get(0) == 2.0

    state.insert(0, -1.0)
    assert state.value == -1.0
    assert float(state) == -1.0

    with pytest.raises(StateIndexError):
        state.get(1)
    with pytest.raises(StateIndexError):
        state.insert(1, 0.0)


# -------------------------------------------------------------------
# set_zero
# -------------------------------------------------------------------


@pytest.mark.parametrize("p", [1, 2, 3, 4])
def test_set_zero_then_pnorm_is_zero(any_state: OdeState, p: int) -> None:
    """After set_zero every P(p) norm is the additive identity."""
    any_state.set_zero()
    assert all(item == 0 for item in any_state.ode_iter())
    assert any_state.pnorm(NormKind.p(p)) == 0.0


def test_set_zero_keeps_dof(tuple_state: TupleState) -> None:
    """set_zero changes values, never the shape."""
    dof = tuple_state.dof()
    tuple_state.set_zero()
    assert tuple_state.dof() == dof
    assert tuple_state.as_tuple() == (0.0,) * dof


# -------------------------------------------------------------------
# Construction and shape
# -------------------------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 10])
def test_tuple_state_arity_limits(n: int) -> None:
    """TupleState supports 2 to 9 components only."""
    with pytest.raises(StateShapeError, match="between 2 and 9"):
        TupleState(*([1.0] * n))


def test_vector_state_rejects_2d() -> None:
    """VectorState is strictly one-dimensional."""
    with pytest.raises(StateShapeError, match="1-D"):
        VectorState(np.zeros((2, 2)))


def test_vector_state_copies_input_and_dtype() -> None:
    """Input is copied; real input is float64, complex input complex128."""
    src = np.array([1, 2, 3])
    state = VectorState(src)
    state.insert(0, 9.0)

    assert src[0] == 1
    assert state.data.dtype == np.float64
    assert VectorState([1 + 2j]).data.dtype == np.complex128


def test_vector_state_empty_and_zeros() -> None:
    """Empty vectors are legal; zeros builds a zero state."""
    assert VectorState([]).dof() == 0
    assert list(VectorState([]).ode_iter()) == []

    zeros = VectorState.zeros(4)
    assert zeros.dof() == 4
    assert np.allclose(zeros.to_numpy(), 0.0)


def test_copy_is_independent(any_state: OdeState) -> None:
    """copy() returns an equal but independent state."""
    clone = any_state.copy()
    assert clone == any_state

    clone.insert(0, 123.0)
    assert clone != any_state


def test_equality_is_per_type() -> None:
    """States of different representations never compare equal."""
    assert VectorState([1.0, 2.0]) == VectorState([1, 2])
    assert VectorState([1.0, 2.0]) != TupleState(1.0, 2.0)


def test_to_numpy_matches_components(any_state: OdeState) -> None:
    """to_numpy returns the components in index order."""
    arr = any_state.to_numpy()
    assert arr.shape == (any_state.dof(),)
    assert np.allclose(arr, list(any_state.ode_iter()))


# -------------------------------------------------------------------
# as_state
# -------------------------------------------------------------------


def test_as_state_dispatch() -> None:
    """as_state picks the representation matching the value."""
    assert isinstance(as_state(1.5), ScalarState)
    assert isinstance(as_state(np.float64(1.5)), ScalarState)
    assert isinstance(as_state((1.0, 2.0, 3.0)), TupleState)
    assert isinstance(as_state([1.0, 2.0]), VectorState)
    assert isinstance(as_state(np.ones(5)), VectorState)

    state = TupleState(1.0, 2.0)
    assert as_state(state) is state


@pytest.mark.parametrize("value", ["abc", {"a": 1}, True, (1.0,)])
def test_as_state_rejects_unsupported(value: object) -> None:
    """Values without a matching representation are rejected."""
    with pytest.raises(StateShapeError):
        as_state(value)
