# src/ode_core/state.py
"""State representations consumed by ODE steppers.

A stepper never looks inside a state directly. It only uses the capability
set defined by :class:`OdeState`:

- ``dof()``: number of independent scalar components.
- ``get(i)`` / ``insert(i, value)`` / ``update(i, func)``: indexed access.
- ``set_zero()``: reset every component to the additive identity.
- ``ode_iter()``: fresh, read-only iteration over components in index order.
- ``pnorm(kind)``: aggregate magnitude, see :mod:`ode_core.norms`.

Three concrete representations are provided: a dynamic-length numpy vector,
fixed-size tuples of 2 to 9 reals, and a bare scalar. Indices must lie in
``[0, dof)``; anything else (including negative indices) raises
:class:`~ode_core.errors.StateIndexError`, which is a programmer error and is
never caught by this package.
"""

from __future__ import annotations

import numbers
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, Final, Protocol, Self, cast

import numpy as np

from .errors import raise_state_index_error, raise_state_shape_error
from .norms import NormKind, aggregate_magnitudes, pnorm

if TYPE_CHECKING:
    from numpy.typing import DTypeLike

MIN_TUPLE_ARITY: Final[int] = 2
MAX_TUPLE_ARITY: Final[int] = 9


class RealLike(Protocol):
    """Capabilities a state component must support.

    Ordering, absolute value, an additive identity (``0``), addition and
    multiplication by a real coefficient. Python floats and numpy floating
    scalars qualify. Complex scalars are accepted by VectorState since norms
    only order their (real) magnitudes.
    """

    def __abs__(self) -> Any: ...

    def __lt__(self, other: Any) -> bool: ...

    def __add__(self, other: Any) -> Any: ...

    def __mul__(self, other: float) -> Any: ...


class OdeState(ABC):
    """Abstract capability set shared by every state representation."""

    __slots__ = ()

    @abstractmethod
    def dof(self) -> int:
        """Return the number of components (degree of freedom)."""

    @abstractmethod
    def _get(self, index: int) -> Any:
        """Read component ``index``; the index is already validated."""

    @abstractmethod
    def _insert(self, index: int, item: Any) -> None:
        """Write component ``index``; the index is already validated."""

    # ------------------------------------------------------------------
    # Indexed access
    # ------------------------------------------------------------------

    def _check_index(self, index: object) -> int:
        dof = self.dof()
        if (
            isinstance(index, bool)
            or not isinstance(index, (int, np.integer))
            or not 0 <= int(index) < dof
        ):
            raise_state_index_error(index=index, dof=dof)
        return int(cast("int", index))

    def get(self, index: int) -> Any:
        """Return component ``index``.

        Raises:
            StateIndexError: If ``index`` is not in ``[0, dof)``.
        """
        return self._get(self._check_index(index))

    def insert(self, index: int, item: Any) -> None:
        """Overwrite component ``index`` with ``item``.

        Raises:
            StateIndexError: If ``index`` is not in ``[0, dof)``.
        """
        self._insert(self._check_index(index), item)

    def update(self, index: int, func: Callable[[Any], Any]) -> Any:
        """Apply ``func`` to component ``index`` in place and return the result.

        Raises:
            StateIndexError: If ``index`` is not in ``[0, dof)``.
        """
        i = self._check_index(index)
        value = func(self._get(i))
        self._insert(i, value)
        return value

    def __getitem__(self, index: int) -> Any:
        return self.get(index)

    def __setitem__(self, index: int, item: Any) -> None:
        self.insert(index, item)

    # ------------------------------------------------------------------
    # Whole-state operations
    # ------------------------------------------------------------------

    def set_zero(self) -> None:
        """Set every component to the additive identity."""
        for i in range(self.dof()):
            self._insert(i, 0.0)

    def ode_iter(self) -> Iterator[Any]:
        """Yield the components in index order without mutating the state.

        Each call returns a new, independent iterator.
        """
        for i in range(self.dof()):
            yield self._get(i)

    def pnorm(self, kind: NormKind) -> float:
        """Return the norm of this state selected by ``kind``."""
        return pnorm(self, kind)

    def to_numpy(self) -> np.ndarray:
        """Return the components as a new 1-D numpy array."""
        return np.array(list(self.ode_iter()))

    @abstractmethod
    def copy(self) -> Self:
        """Return an independent copy of this state."""

    def __len__(self) -> int:
        return self.dof()

    def __iter__(self) -> Iterator[Any]:
        return self.ode_iter()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OdeState) or type(other) is not type(self):
            return NotImplemented
        return other.dof() == self.dof() and all(
            a == b for a, b in zip(self.ode_iter(), other.ode_iter(), strict=True)
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.ode_iter())!r})"


class VectorState(OdeState):
    """Dynamic-length state backed by a 1-D numpy array.

    ``dof`` is the array length. Real input is stored as float64, complex
    input as complex128. The array is copied on construction; use
    :attr:`data` to reach it without copying.
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        values: Sequence[Any] | np.ndarray,
        *,
        dtype: DTypeLike | None = None,
    ) -> None:
        """
        Initialize VectorState.

        Args:
            values: 1-D sequence or array of components.
            dtype: Optional dtype; defaults to float64 (complex128 for complex
                input).

        Raises:
            StateShapeError: If ``values`` is not one-dimensional.
        """
        arr = np.asarray(values)
        if dtype is None:
            dtype = np.complex128 if np.iscomplexobj(arr) else np.float64
        arr = np.array(arr, dtype=dtype, copy=True)
        if arr.ndim != 1:
            raise_state_shape_error(
                name="VectorState values", expected="a 1-D array", got=arr.shape
            )
        self._data = arr

    @classmethod
    def zeros(cls, dof: int, *, dtype: DTypeLike = np.float64) -> VectorState:
        """Return a state of ``dof`` zero components."""
        return cls(np.zeros(int(dof), dtype=dtype))

    @property
    def data(self) -> np.ndarray:
        """Underlying array (shared, not copied)."""
        return self._data

    def dof(self) -> int:
        return int(self._data.shape[0])

    def _get(self, index: int) -> Any:
        return self._data[index].item()

    def _insert(self, index: int, item: Any) -> None:
        self._data[index] = item

    def set_zero(self) -> None:
        self._data.fill(0)

    def pnorm(self, kind: NormKind) -> float:
        return aggregate_magnitudes(self._data, kind)

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()

    def copy(self) -> VectorState:
        return VectorState(self._data)


class TupleState(OdeState):
    """Fixed-size state of 2 to 9 real components.

    The arity is fixed at construction and is the state's ``dof``.
    """

    __slots__ = ("_items",)

    def __init__(self, *items: float) -> None:
        """
        Initialize TupleState.

        Args:
            *items: Components, between 2 and 9 of them.

        Raises:
            StateShapeError: If the number of components is outside 2..9.
        """
        if not MIN_TUPLE_ARITY <= len(items) <= MAX_TUPLE_ARITY:
            raise_state_shape_error(
                name="TupleState",
                expected=f"between {MIN_TUPLE_ARITY} and {MAX_TUPLE_ARITY} components",
                got=len(items),
            )
        self._items: list[Any] = list(items)

    @classmethod
    def from_tuple(cls, values: tuple[float, ...]) -> TupleState:
        """Build a TupleState from a plain tuple."""
        return cls(*values)

    def dof(self) -> int:
        return len(self._items)

    def _get(self, index: int) -> Any:
        return self._items[index]

    def _insert(self, index: int, item: Any) -> None:
        self._items[index] = item

    def as_tuple(self) -> tuple[Any, ...]:
        """Return the components as a plain tuple."""
        return tuple(self._items)

    def copy(self) -> TupleState:
        return TupleState(*self._items)


class ScalarState(OdeState):
    """Single real component; the only valid index is 0."""

    __slots__ = ("value",)

    def __init__(self, value: float = 0.0) -> None:
        self.value = value

    def dof(self) -> int:
        return 1

    def _get(self, index: int) -> Any:  # noqa: ARG002
        return self.value

    def _insert(self, index: int, item: Any) -> None:  # noqa: ARG002
        self.value = item

    def set_zero(self) -> None:
        self.value = 0.0

    def copy(self) -> ScalarState:
        return ScalarState(self.value)

    def __float__(self) -> float:
        return float(self.value)


def as_state(value: object) -> OdeState:
    """Adapt a plain value to an OdeState.

    - OdeState instances are returned unchanged.
    - Real or complex numbers become :class:`ScalarState`.
    - Tuples of 2 to 9 items become :class:`TupleState`.
    - Lists and 1-D numpy arrays become :class:`VectorState`.

    Raises:
        StateShapeError: If no representation fits ``value``.
    """
    if isinstance(value, OdeState):
        return value
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        return ScalarState(value)  # type: ignore[arg-type]
    if isinstance(value, tuple):
        return TupleState(*value)
    if isinstance(value, (list, np.ndarray)):
        return VectorState(value)
    raise_state_shape_error(
        name="state value",
        expected="a number, a tuple of 2-9 reals, a list or a 1-D array",
        got=type(value).__name__,
    )
