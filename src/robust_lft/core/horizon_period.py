# src/robust_lft/core/horizon_period.py

from __future__ import annotations

from math import gcd
from typing import Any, Iterable, List, NamedTuple

from robust_lft.core.errors import IncompatibleHorizonPeriodError


class HorizonPeriod(NamedTuple):
    """
    Time-index bookkeeping for finite, eventually periodic sequences.

    Definitions:
        - A sequence with horizon_period (h, p) stores h + p entries.
        - Entries 0, ..., h-1 form the non-repeating prefix.
        - Entries h, ..., h+p-1 form the periodic tail: entry h+p+k equals entry h+k.

    API:
        resolve(t)       -> stored index effective at absolute time t
        length           -> number of stored entries (h + p)
        can_refine_to(o) -> True iff o is an exact periodic refinement of self
        time_map(o)      -> stored indices of self for every stored index of o
    """

    horizon: int
    period: int

    # ----------------
    # Construction
    # ----------------

    @classmethod
    def coerce(cls, value: Any) -> HorizonPeriod:
        """
        Build a HorizonPeriod from a HorizonPeriod, a (horizon, period) pair or an array-like.
        """
        if isinstance(value, HorizonPeriod):
            return value
        try:
            horizon, period = (int(v) for v in value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"horizon_period must be a (horizon, period) pair, got {value!r}") from exc
        hp = cls(horizon, period)
        hp.validate()
        return hp

    def validate(self) -> None:
        if self.horizon < 0:
            raise ValueError(f"horizon must be non-negative, got {self.horizon}")
        if self.period < 1:
            raise ValueError(f"period must be positive, got {self.period}")

    # ----------------
    # Public API
    # ----------------

    @property
    def length(self) -> int:
        """Number of stored time steps (horizon + period)."""
        return self.horizon + self.period

    @property
    def is_time_invariant(self) -> bool:
        return self.horizon == 0 and self.period == 1

    def resolve(self, t: int) -> int:
        """
        Return the stored index effective at absolute time step t (t >= 0).
        """
        if t < 0:
            raise IndexError(f"Time step t={t} must be non-negative")
        if t < self.length:
            return t
        return self.horizon + (t - self.horizon) % self.period

    def can_refine_to(self, other: Any) -> bool:
        """
        True iff `other` describes the same sequence with a longer but compatible
        prefix and a period that is an integer multiple of this one.
        """
        other = HorizonPeriod.coerce(other)
        return other.horizon >= self.horizon and other.period % self.period == 0

    def time_map(self, other: Any) -> List[int]:
        """
        For each stored index of `other`, the stored index of self holding the same entry.

        Raises
        ------
        IncompatibleHorizonPeriodError if `other` is not a refinement of self.
        """
        other = HorizonPeriod.coerce(other)
        if not self.can_refine_to(other):
            raise IncompatibleHorizonPeriodError(
                f"horizon_period {tuple(self)} cannot be refined to {tuple(other)}"
            )
        return [self.resolve(t) for t in range(other.length)]

    @staticmethod
    def reconcile(*hps: Any) -> HorizonPeriod:
        """
        Common horizon_period of several sequences: (max horizon, lcm of periods).
        """
        coerced = [HorizonPeriod.coerce(hp) for hp in hps]
        if not coerced:
            return HorizonPeriod(0, 1)
        horizon = max(hp.horizon for hp in coerced)
        period = 1
        for hp in coerced:
            period = period * hp.period // gcd(period, hp.period)
        return HorizonPeriod(horizon, period)


def reconcile_all(hps: Iterable[Any]) -> HorizonPeriod:
    """Convenience wrapper of HorizonPeriod.reconcile for an iterable."""
    return HorizonPeriod.reconcile(*list(hps))


__all__ = [
    "HorizonPeriod",
    "reconcile_all",
]
