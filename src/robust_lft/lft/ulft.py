# src/robust_lft/lft/ulft.py
"""
Ulft: a periodic, time-varying state-space realization in feedback with an
uncertainty / state structure.

    [ z_k ]   [ a_k  b_k ] [ w_k ]
    [ y_k ] = [ c_k  d_k ] [ u_k ],      w = Delta z

Shapes at every stored time step k (Delta widths are constant in time):
    a_k : (delta.dim_in,  delta.dim_out)
    b_k : (delta.dim_in,  dim_in)
    c_k : (dim_out,       delta.dim_out)
    d_k : (dim_out,       dim_in)

Rows of a/b are delta inputs z, columns of a/c are delta outputs w, both in
DeltaSequence order. Instances are immutable; every operation returns a new Ulft.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

import numpy as np

from robust_lft.core.errors import DimensionMismatchError
from robust_lft.core.horizon_period import HorizonPeriod
from robust_lft.core.periodic_sequence import PeriodicMatrixSequence
from robust_lft.deltas.sequence import DeltaSequence
from robust_lft.lft.channels import DisturbanceL2, PerformanceL2Induced, PerformanceStable, as_channel_tuple

Array = np.ndarray

_PERFORMANCE_TYPES = (PerformanceL2Induced, PerformanceStable)


def _default_horizon_period(value: Any) -> HorizonPeriod:
    if isinstance(value, PeriodicMatrixSequence):
        return value.horizon_period
    if isinstance(value, (list, tuple)):
        return HorizonPeriod(0, max(len(value), 1))
    return HorizonPeriod(0, 1)


def _offsets(widths: Sequence[int]) -> List[int]:
    out = [0]
    for w in widths:
        out.append(out[-1] + int(w))
    return out


class Ulft:
    """
    Parameters
    ----------
    a, b, c, d     : a matrix, a list with one matrix per time step, or a PeriodicMatrixSequence
    delta          : None, a Delta, an iterable of Delta, or a DeltaSequence
    horizon_period : (horizon, period). If None, (0, L) for L-long matrix lists
                     (reconciled with the horizon_period of PeriodicMatrixSequence inputs).
    performance    : None, one performance annotation, or an iterable of them
    disturbance    : None, one DisturbanceL2, or an iterable of them

    Raises
    ------
    DimensionMismatchError if matrix sizes disagree with each other or with the deltas.
    IncompatibleHorizonPeriodError if a delta cannot be refined to horizon_period.
    NameCollisionError if delta / channel names repeat.
    """

    __slots__ = ("_a", "_b", "_c", "_d", "_delta", "_performance", "_disturbance", "_hp")

    def __init__(
        self,
        a: Any,
        b: Any,
        c: Any,
        d: Any,
        delta: Any = None,
        horizon_period: Any = None,
        performance: Any = None,
        disturbance: Any = None,
    ) -> None:
        if horizon_period is None:
            hp = HorizonPeriod.reconcile(*(_default_horizon_period(m) for m in (a, b, c, d)))
        else:
            hp = HorizonPeriod.coerce(horizon_period)

        seqs = []
        for label, m in (("a", a), ("b", b), ("c", c), ("d", d)):
            if isinstance(m, PeriodicMatrixSequence):
                seq = m if m.horizon_period == hp else m.match_horizon_period(hp)
            else:
                try:
                    seq = PeriodicMatrixSequence(m, hp)
                except DimensionMismatchError as exc:
                    raise DimensionMismatchError(f"'{label}': {exc}") from exc
            seqs.append(seq)
        self._a, self._b, self._c, self._d = seqs
        self._hp = hp

        deltas = delta if isinstance(delta, DeltaSequence) else DeltaSequence(() if delta is None else delta)
        self._delta = deltas.match_horizon_period(hp)

        self._check_dimensions()

        self._performance = as_channel_tuple(performance, _PERFORMANCE_TYPES, "performance")
        self._disturbance = as_channel_tuple(disturbance, DisturbanceL2, "disturbance")
        for ch in self._performance + self._disturbance:
            ch.check_range(self.dim_out, self.dim_in)

    def _check_dimensions(self) -> None:
        z_dim = self._delta.dim_in
        w_dim = self._delta.dim_out
        d_shapes = set(self._d.shapes)
        if len(d_shapes) != 1:
            raise DimensionMismatchError(f"'d' must keep one shape over time, got {sorted(d_shapes)}")
        out_dim, in_dim = self._d[0].shape
        expected = {
            "a": (z_dim, w_dim),
            "b": (z_dim, in_dim),
            "c": (out_dim, w_dim),
        }
        for label, seq in (("a", self._a), ("b", self._b), ("c", self._c)):
            for k, shape in enumerate(seq.shapes):
                if shape != expected[label]:
                    raise DimensionMismatchError(
                        f"'{label}' at time step {k} has shape {shape}, expected {expected[label]} "
                        f"(delta z/w widths {z_dim}/{w_dim}, d shape {(out_dim, in_dim)})"
                    )

    # ----------------
    # Accessors
    # ----------------

    @property
    def a(self) -> PeriodicMatrixSequence:
        return self._a

    @property
    def b(self) -> PeriodicMatrixSequence:
        return self._b

    @property
    def c(self) -> PeriodicMatrixSequence:
        return self._c

    @property
    def d(self) -> PeriodicMatrixSequence:
        return self._d

    @property
    def delta(self) -> DeltaSequence:
        return self._delta

    @property
    def performance(self) -> Tuple[Any, ...]:
        return self._performance

    @property
    def disturbance(self) -> Tuple[DisturbanceL2, ...]:
        return self._disturbance

    @property
    def horizon_period(self) -> HorizonPeriod:
        return self._hp

    @property
    def dim_out(self) -> int:
        return int(self._d[0].shape[0])

    @property
    def dim_in(self) -> int:
        return int(self._d[0].shape[1])

    def size(self) -> Tuple[int, int]:
        """(dim_out, dim_in), identical at every time step."""
        return self.dim_out, self.dim_in

    def is_continuous(self) -> bool:
        return "DeltaIntegrator" in self._delta.types

    def is_discrete(self) -> bool:
        return "DeltaDelayZ" in self._delta.types

    def is_memoryless(self) -> bool:
        return not (self.is_continuous() or self.is_discrete())

    def _replace(self, **changes: Any) -> Ulft:
        kwargs = {
            "a": self._a,
            "b": self._b,
            "c": self._c,
            "d": self._d,
            "delta": self._delta,
            "horizon_period": self._hp,
            "performance": self._performance,
            "disturbance": self._disturbance,
        }
        kwargs.update(changes)
        return Ulft(**kwargs)

    # ----------------
    # Horizon period
    # ----------------

    def match_horizon_period(self, horizon_period: Any) -> Ulft:
        """
        Equivalent Ulft over a refined horizon_period (periodic tails repeated).

        Raises
        ------
        IncompatibleHorizonPeriodError if horizon_period is not an exact refinement.
        """
        hp = HorizonPeriod.coerce(horizon_period)
        if hp == self._hp:
            return self
        return self._replace(
            a=self._a.match_horizon_period(hp),
            b=self._b.match_horizon_period(hp),
            c=self._c.match_horizon_period(hp),
            d=self._d.match_horizon_period(hp),
            delta=self._delta.match_horizon_period(hp),
            horizon_period=hp,
        )

    # ----------------
    # Uncertainty / channel edits
    # ----------------

    def _delta_indices(self, which: Any) -> List[int]:
        if isinstance(which, (str, int, np.integer)):
            which = [which]
        indices = []
        for item in which:
            if isinstance(item, str):
                indices.append(self._delta.index_of(item))
            else:
                k = int(item)
                if not 0 <= k < len(self._delta):
                    raise IndexError(f"Delta index {k} out of range for {len(self._delta)} deltas")
                indices.append(k)
        return sorted(set(indices))

    def remove_uncertainty(self, which: Any) -> Ulft:
        """
        Close the selected deltas with zero: their rows of a/b (delta inputs)
        and columns of a/c (delta outputs) are dropped.

        which : a delta index, a delta name, or an iterable of either
        """
        drop = set(self._delta_indices(which))
        row_offsets = _offsets(self._delta.dim_ins)
        col_offsets = _offsets(self._delta.dim_outs)
        keep_rows = [
            r for k in range(len(self._delta)) if k not in drop for r in range(row_offsets[k], row_offsets[k + 1])
        ]
        keep_cols = [
            c for k in range(len(self._delta)) if k not in drop for c in range(col_offsets[k], col_offsets[k + 1])
        ]
        length = self._hp.length
        rows = [keep_rows] * length
        cols = [keep_cols] * length
        return self._replace(
            a=self._a.take(rows=rows, cols=cols),
            b=self._b.take(rows=rows),
            c=self._c.take(cols=cols),
            delta=self._delta.remove(drop),
        )

    @staticmethod
    def _names(names: Any) -> List[str]:
        return [names] if isinstance(names, str) else list(names)

    def _without(self, channels: Tuple[Any, ...], names: Any, label: str) -> Tuple[Any, ...]:
        drop = self._names(names)
        known = {ch.name for ch in channels}
        missing = [n for n in drop if n not in known]
        if missing:
            raise KeyError(f"No {label} named {missing} (have {sorted(known)})")
        return tuple(ch for ch in channels if ch.name not in drop)

    def remove_performance(self, names: Any) -> Ulft:
        return self._replace(performance=self._without(self._performance, names, "performance"))

    def remove_disturbance(self, names: Any) -> Ulft:
        return self._replace(disturbance=self._without(self._disturbance, names, "disturbance"))

    def add_performance(self, *performances: Any) -> Ulft:
        return self._replace(performance=self._performance + tuple(performances))

    def add_disturbance(self, *disturbances: Any) -> Ulft:
        return self._replace(disturbance=self._disturbance + tuple(disturbances))

    # ----------------
    # Composition / generation
    # ----------------

    def blkdiag(self, *others: Any) -> Ulft:
        """Block-diagonal composition with other Ulfts or convertible values."""
        from robust_lft.lft.blkdiag import block_diagonal

        return block_diagonal(self, *others)

    @classmethod
    def random(cls, **options: Any) -> Ulft:
        """Random, nominally stable Ulft (see lft.random_ulft.random_ulft)."""
        from robust_lft.lft.random_ulft import random_ulft

        return random_ulft(**options)

    # ----------------
    # Comparison
    # ----------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ulft):
            return NotImplemented
        return (
            self._hp == other._hp
            and self._a == other._a
            and self._b == other._b
            and self._c == other._c
            and self._d == other._d
            and self._delta == other._delta
            and self._performance == other._performance
            and self._disturbance == other._disturbance
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Ulft(size={self.size()}, horizon_period={tuple(self._hp)}, delta={self._delta!r}, "
            f"performance={[p.name for p in self._performance]}, "
            f"disturbance={[q.name for q in self._disturbance]})"
        )


__all__ = [
    "Ulft",
]
