# src/robust_lft/deltas/base.py
"""
Capability contract shared by every uncertainty / state block (Delta).

The variant set is closed (see deltas/variants.py). Every variant is a frozen
dataclass deriving from Delta and provides:

    - dim_out / dim_in  : constant output / input width per time step
    - horizon_period    : the periodicity of its (possibly time-varying) data
    - ==                : structural equality (variant + name + bounds + size + horizon_period)
    - match_horizon_period(hp) -> equivalent Delta over a refined horizon_period
    - combine(other)            -> merged Delta with summed dimensions
    - random(rng, hp, config)   -> randomly parameterized instance (used by Ulft.random)

LFT convention: a Delta maps its input z (dim_in) to its output w (dim_out).
"""

from __future__ import annotations

import string
from abc import ABC, abstractmethod
from dataclasses import fields, replace
from typing import Any, ClassVar, Sequence, Tuple

import numpy as np

from robust_lft.core.errors import NameCollisionError
from robust_lft.core.horizon_period import HorizonPeriod

# Parameters compared by combine() are every dataclass field except these.
_SIZE_FIELDS = ("dim_outin", "dim_out_", "dim_in_", "dim_outins", "name", "names", "horizon_period")


def random_name(rng: np.random.Generator, length: int = 8) -> str:
    """Random lowercase identifier drawn from rng."""
    letters = np.array(list(string.ascii_lowercase))
    return "".join(rng.choice(letters, size=length))


def per_step(values: Any, hp: HorizonPeriod, label: str) -> Tuple[float, ...]:
    """
    Normalize a scalar or a per-time-step sequence to a tuple of hp.length floats.
    """
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.size == 1:
        arr = np.full(hp.length, float(arr[0]))
    if arr.size != hp.length:
        raise ValueError(f"{label} must be a scalar or have length {hp.length}, got {arr.size}")
    return tuple(float(v) for v in arr)


def check_dim(value: Any, label: str) -> int:
    dim = int(value)
    if dim < 1 or dim != value:
        raise ValueError(f"{label} must be a positive integer, got {value!r}")
    return dim


class Delta(ABC):
    """Abstract base of all Delta variants."""

    is_state: ClassVar[bool] = False

    name: str
    horizon_period: HorizonPeriod

    # ----------------
    # Size
    # ----------------

    @property
    @abstractmethod
    def dim_out(self) -> int: ...

    @property
    @abstractmethod
    def dim_in(self) -> int: ...

    def size(self) -> Tuple[int, int]:
        """(dim_out, dim_in), identical at every time step."""
        return self.dim_out, self.dim_in

    @property
    def type_name(self) -> str:
        """Runtime discriminator, e.g. "DeltaSltv"."""
        return type(self).__name__

    # ----------------
    # Horizon period
    # ----------------

    def match_horizon_period(self, horizon_period: Any) -> Delta:
        """
        Return an equivalent Delta over the refined horizon_period.

        Per-time-step data is resampled by repeating its periodic tail.

        Raises
        ------
        IncompatibleHorizonPeriodError if horizon_period is not an exact refinement.
        """
        new_hp = HorizonPeriod.coerce(horizon_period)
        if new_hp == self.horizon_period:
            return self
        time_map = self.horizon_period.time_map(new_hp)
        return replace(self, horizon_period=new_hp, **self._resampled(time_map))

    def _resampled(self, time_map: Sequence[int]) -> dict:
        """Per-time-step fields remapped through time_map (none by default)."""
        return {}

    # ----------------
    # Combination
    # ----------------

    def _parameters(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, f.name) for f in fields(self) if f.name not in _SIZE_FIELDS)

    def is_combinable(self, other: Delta) -> bool:
        try:
            self.combine(other)
        except NameCollisionError:
            return False
        return True

    def combine(self, other: Delta) -> Delta:
        """
        Merge with another Delta of the same variant and name into one block whose
        dimensions are the sums of both. State deltas combine regardless of name
        (the first name is kept).

        Raises
        ------
        NameCollisionError if the variants, names or bound parameters differ.
        IncompatibleHorizonPeriodError if the horizon_periods cannot be reconciled.
        """
        if type(other) is not type(self):
            raise NameCollisionError(
                f"Cannot combine {self.type_name} '{self.name}' with {other.type_name} '{other.name}'"
            )
        if not self.is_state and other.name != self.name:
            raise NameCollisionError(f"Cannot combine deltas named '{self.name}' and '{other.name}'")
        hp = HorizonPeriod.reconcile(self.horizon_period, other.horizon_period)
        lhs = self.match_horizon_period(hp)
        rhs = other.match_horizon_period(hp)
        if lhs._parameters() != rhs._parameters():
            raise NameCollisionError(
                f"{self.type_name} '{self.name}' appears with different parameters and cannot be combined"
            )
        return lhs._grown(rhs)

    @abstractmethod
    def _grown(self, other: Delta) -> Delta:
        """Copy of self with the dimensions of other appended."""

    # ----------------
    # Random generation
    # ----------------

    @classmethod
    @abstractmethod
    def random(
        cls,
        rng: np.random.Generator,
        horizon_period: Any = (0, 1),
        config: Any = None,
        name: str | None = None,
    ) -> Delta:
        """Randomly parameterized instance with valid bounds."""


__all__ = [
    "Delta",
    "check_dim",
    "per_step",
    "random_name",
]
