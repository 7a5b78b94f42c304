# src/robust_lft/core/periodic_sequence.py

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Sequence, Tuple

import numpy as np
from scipy.linalg import block_diag

from robust_lft.core.errors import DimensionMismatchError
from robust_lft.core.horizon_period import HorizonPeriod

Array = np.ndarray


def as_matrix(value: Any) -> Array:
    """
    Coerce a scalar / 1-D / 2-D array_like into a 2-D float matrix.
    Scalars become (1, 1); 1-D inputs are read as a single row.
    """
    arr = np.asarray(value, dtype=float)
    if arr.ndim > 2:
        raise ValueError(f"expected a scalar, vector or matrix, got an array with shape {arr.shape}")
    return np.atleast_2d(arr)


class PeriodicMatrixSequence:
    """
    Finite ordered sequence of matrices indexed over a periodic horizon.

    One stored matrix per time step 0, ..., horizon + period - 1. The matrix
    effective at any later time step t is `at(t)`, which wraps t into the
    periodic tail.

    Instances are immutable: every operation returns a new sequence and the
    stored arrays are flagged read-only.

    Parameters
    ----------
    matrices       : a single matrix (scalar or ndarray), or a list/tuple with one
                     matrix per stored time step
    horizon_period : (horizon, period). If None, (0, len(matrices)).
                     A single matrix is broadcast over the whole horizon_period.
    """

    __slots__ = ("_matrices", "_hp")

    def __init__(self, matrices: Any, horizon_period: Any = None) -> None:
        if isinstance(matrices, PeriodicMatrixSequence):
            mats = list(matrices._matrices)
        elif isinstance(matrices, (list, tuple)):
            mats = [as_matrix(m) for m in matrices]
        else:
            mats = [as_matrix(matrices)]
        if not mats:
            raise ValueError("PeriodicMatrixSequence needs at least one matrix")

        if horizon_period is None:
            hp = HorizonPeriod(0, len(mats))
        else:
            hp = HorizonPeriod.coerce(horizon_period)
        if len(mats) == 1 and hp.length > 1:
            mats = mats * hp.length
        if len(mats) != hp.length:
            raise DimensionMismatchError(
                f"{len(mats)} matrices given for horizon_period {tuple(hp)} (expected {hp.length})"
            )

        frozen = []
        for m in mats:
            m = np.array(m, dtype=float, copy=True)
            m.setflags(write=False)
            frozen.append(m)
        self._matrices: Tuple[Array, ...] = tuple(frozen)
        self._hp = hp

    # ----------------
    # Accessors
    # ----------------

    @property
    def horizon_period(self) -> HorizonPeriod:
        return self._hp

    @property
    def matrices(self) -> Tuple[Array, ...]:
        return self._matrices

    @property
    def shapes(self) -> List[Tuple[int, int]]:
        return [m.shape for m in self._matrices]

    def __len__(self) -> int:
        return len(self._matrices)

    def __iter__(self) -> Iterator[Array]:
        return iter(self._matrices)

    def __getitem__(self, k: int) -> Array:
        return self._matrices[k]

    def at(self, t: int) -> Array:
        """Matrix effective at absolute time step t."""
        return self._matrices[self._hp.resolve(t)]

    # ----------------
    # Transformations
    # ----------------

    def match_horizon_period(self, horizon_period: Any) -> PeriodicMatrixSequence:
        """
        Resample to a refined horizon_period by repeating the periodic tail.

        Raises
        ------
        IncompatibleHorizonPeriodError if horizon_period is not a refinement of the current one.
        """
        new_hp = HorizonPeriod.coerce(horizon_period)
        if new_hp == self._hp:
            return self
        indices = self._hp.time_map(new_hp)
        return PeriodicMatrixSequence([self._matrices[i] for i in indices], new_hp)

    @staticmethod
    def reconcile(
        first: PeriodicMatrixSequence, second: PeriodicMatrixSequence
    ) -> Tuple[PeriodicMatrixSequence, PeriodicMatrixSequence]:
        """
        Bring two sequences to their common horizon_period (max horizon, lcm period).
        """
        hp = HorizonPeriod.reconcile(first.horizon_period, second.horizon_period)
        return first.match_horizon_period(hp), second.match_horizon_period(hp)

    def block_diagonal(self, *others: PeriodicMatrixSequence) -> PeriodicMatrixSequence:
        """
        Time-step-wise block-diagonal join with one or more other sequences.
        Operands are reconciled to a common horizon_period first.
        """
        seqs = [self, *others]
        hp = HorizonPeriod.reconcile(*(s.horizon_period for s in seqs))
        seqs = [s.match_horizon_period(hp) for s in seqs]
        joined = [block_diag(*(s[k] for s in seqs)) for k in range(hp.length)]
        return PeriodicMatrixSequence(joined, hp)

    def map(self, fn: Callable[[int, Array], Any]) -> PeriodicMatrixSequence:
        """Apply fn(k, matrix) to every stored matrix."""
        return PeriodicMatrixSequence([fn(k, m) for k, m in enumerate(self._matrices)], self._hp)

    def take(
        self,
        rows: Sequence[Sequence[int]] | None = None,
        cols: Sequence[Sequence[int]] | None = None,
    ) -> PeriodicMatrixSequence:
        """
        Select (and reorder) rows / columns at every stored time step.

        rows, cols : per-time-step index lists (length horizon + period), or None to keep all.
        """

        def _pick(k: int, m: Array) -> Array:
            out = m
            if rows is not None:
                out = out[np.asarray(rows[k], dtype=int), :]
            if cols is not None:
                out = out[:, np.asarray(cols[k], dtype=int)]
            return out

        return self.map(_pick)

    # ----------------
    # Comparison
    # ----------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PeriodicMatrixSequence):
            return NotImplemented
        if self._hp != other._hp:
            return False
        return all(
            a.shape == b.shape and np.array_equal(a, b) for a, b in zip(self._matrices, other._matrices)
        )

    def __hash__(self) -> int:  # pragma: no cover
        return hash((self._hp, tuple(m.shape for m in self._matrices)))

    def allclose(self, other: PeriodicMatrixSequence, *, atol: float = 1e-12) -> bool:
        """Floating-point tolerant comparison (same horizon_period and shapes)."""
        if self._hp != other._hp:
            return False
        return all(
            a.shape == b.shape and np.allclose(a, b, atol=atol, rtol=0.0)
            for a, b in zip(self._matrices, other._matrices)
        )

    def __repr__(self) -> str:
        return f"PeriodicMatrixSequence(shapes={self.shapes}, horizon_period={tuple(self._hp)})"


__all__ = [
    "PeriodicMatrixSequence",
    "as_matrix",
]
