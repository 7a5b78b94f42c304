# src/robust_lft/deltas/variants.py
"""
The closed set of Delta variants.

State deltas (memory operators):
  - DeltaDelayZ      : discrete-time unit delay, z^-1 I
  - DeltaIntegrator  : continuous-time integrator, (1/s) I  (horizon_period is always (0, 1))

Uncertainty deltas:
  - DeltaSlti          : static, linear time-invariant real parameter in [lower, upper]
  - DeltaDlti          : dynamic LTI operator with ||Delta|| <= upper_bound
  - DeltaBounded       : bounded (possibly nonlinear, time-varying) operator, per-step norm bound
  - DeltaSltv          : static, linear time-varying real parameter, per-step [lower, upper]
  - DeltaSltvRateBnd   : static LTV parameter with bounded rate of variation
  - DeltaSltvRepeated  : several static LTV parameters sharing one block
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Sequence, Tuple, Type

import numpy as np

from robust_lft.core.errors import IncompatibleHorizonPeriodError, UnknownDeltaTypeError
from robust_lft.core.horizon_period import HorizonPeriod
from robust_lft.deltas.base import Delta, check_dim, per_step, random_name
from robust_lft.models.parameters import SamplingConfig


def _sampling(config: Any) -> SamplingConfig:
    if config is None:
        return SamplingConfig()
    return getattr(config, "sampling", config)


def _random_dim(rng: np.random.Generator, cfg: SamplingConfig) -> int:
    return int(rng.integers(1, cfg.max_delta_dim + 1))


def _random_interval(rng: np.random.Generator, cfg: SamplingConfig, size: int | None = None):
    lower = -rng.uniform(0.1, cfg.max_bound, size=size)
    upper = rng.uniform(0.1, cfg.max_bound, size=size)
    return lower, upper


def _check_interval(lower: Sequence[float], upper: Sequence[float], label: str) -> None:
    if any(lo > hi for lo, hi in zip(lower, upper)):
        raise ValueError(f"{label}: lower bound must be less than or equal to upper bound")


# ---------------------------
# State deltas
# ---------------------------


@dataclass(frozen=True)
class DeltaDelayZ(Delta):
    """Discrete-time delay (the state of a discrete-time LFT)."""

    is_state = True

    dim_outin: int = 1
    timestep: float = -1.0  # -1: unspecified sample time
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)
    name: str = "z"

    def __post_init__(self) -> None:
        object.__setattr__(self, "dim_outin", check_dim(self.dim_outin, "dim_outin"))
        object.__setattr__(self, "timestep", float(self.timestep))
        object.__setattr__(self, "horizon_period", HorizonPeriod.coerce(self.horizon_period))

    @property
    def dim_out(self) -> int:
        return self.dim_outin

    @property
    def dim_in(self) -> int:
        return self.dim_outin

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_outin=self.dim_outin + other.dim_outin)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaDelayZ:
        return cls(_random_dim(rng, _sampling(config)), horizon_period=horizon_period)


@dataclass(frozen=True)
class DeltaIntegrator(Delta):
    """Continuous-time integrator (the state of a continuous-time LFT)."""

    is_state = True

    dim_outin: int = 1
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)
    name: str = "1/s"

    def __post_init__(self) -> None:
        object.__setattr__(self, "dim_outin", check_dim(self.dim_outin, "dim_outin"))
        hp = HorizonPeriod.coerce(self.horizon_period)
        if not hp.is_time_invariant:
            raise IncompatibleHorizonPeriodError("DeltaIntegrator requires horizon_period (0, 1)")
        object.__setattr__(self, "horizon_period", hp)

    @property
    def dim_out(self) -> int:
        return self.dim_outin

    @property
    def dim_in(self) -> int:
        return self.dim_outin

    def match_horizon_period(self, horizon_period: Any) -> Delta:
        if not HorizonPeriod.coerce(horizon_period).is_time_invariant:
            raise IncompatibleHorizonPeriodError(
                f"Continuous-time DeltaIntegrator cannot take horizon_period {tuple(horizon_period)}"
            )
        return self

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_outin=self.dim_outin + other.dim_outin)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaIntegrator:
        return cls(_random_dim(rng, _sampling(config)), horizon_period=horizon_period)


# ---------------------------
# Time-invariant uncertainties
# ---------------------------


@dataclass(frozen=True)
class DeltaSlti(Delta):
    """Static LTI real parameter: w = delta * z with lower_bound <= delta <= upper_bound."""

    name: str
    dim_outin: int = 1
    lower_bound: float = -1.0
    upper_bound: float = 1.0
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dim_outin", check_dim(self.dim_outin, "dim_outin"))
        object.__setattr__(self, "lower_bound", float(self.lower_bound))
        object.__setattr__(self, "upper_bound", float(self.upper_bound))
        object.__setattr__(self, "horizon_period", HorizonPeriod.coerce(self.horizon_period))
        _check_interval([self.lower_bound], [self.upper_bound], f"DeltaSlti '{self.name}'")

    @property
    def dim_out(self) -> int:
        return self.dim_outin

    @property
    def dim_in(self) -> int:
        return self.dim_outin

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_outin=self.dim_outin + other.dim_outin)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaSlti:
        cfg = _sampling(config)
        lower, upper = _random_interval(rng, cfg)
        return cls(name or random_name(rng), _random_dim(rng, cfg), lower, upper, horizon_period)


@dataclass(frozen=True)
class DeltaDlti(Delta):
    """Dynamic LTI operator with H-infinity norm bound upper_bound."""

    name: str
    dim_out_: int = 1
    dim_in_: int = 1
    upper_bound: float = 1.0
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dim_out_", check_dim(self.dim_out_, "dim_out"))
        object.__setattr__(self, "dim_in_", check_dim(self.dim_in_, "dim_in"))
        object.__setattr__(self, "upper_bound", float(self.upper_bound))
        object.__setattr__(self, "horizon_period", HorizonPeriod.coerce(self.horizon_period))
        if not (self.upper_bound > 0.0):
            raise ValueError(f"DeltaDlti '{self.name}': upper_bound must be positive")

    @property
    def dim_out(self) -> int:
        return self.dim_out_

    @property
    def dim_in(self) -> int:
        return self.dim_in_

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_out_=self.dim_out_ + other.dim_out, dim_in_=self.dim_in_ + other.dim_in)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaDlti:
        cfg = _sampling(config)
        return cls(
            name or random_name(rng),
            _random_dim(rng, cfg),
            _random_dim(rng, cfg),
            float(rng.uniform(0.1, cfg.max_bound)),
            horizon_period,
        )


# ---------------------------
# Time-varying uncertainties
# ---------------------------


@dataclass(frozen=True)
class DeltaBounded(Delta):
    """Bounded operator with ||w_k|| <= upper_bound[k] ||z_k|| at every time step k."""

    name: str
    dim_out_: int = 1
    dim_in_: int = 1
    upper_bound: Any = 1.0
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)

    def __post_init__(self) -> None:
        hp = HorizonPeriod.coerce(self.horizon_period)
        object.__setattr__(self, "horizon_period", hp)
        object.__setattr__(self, "dim_out_", check_dim(self.dim_out_, "dim_out"))
        object.__setattr__(self, "dim_in_", check_dim(self.dim_in_, "dim_in"))
        object.__setattr__(self, "upper_bound", per_step(self.upper_bound, hp, "upper_bound"))
        if any(ub <= 0.0 for ub in self.upper_bound):
            raise ValueError(f"DeltaBounded '{self.name}': upper_bound must be positive")

    @property
    def dim_out(self) -> int:
        return self.dim_out_

    @property
    def dim_in(self) -> int:
        return self.dim_in_

    def _resampled(self, time_map: Sequence[int]) -> dict:
        return {"upper_bound": tuple(self.upper_bound[k] for k in time_map)}

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_out_=self.dim_out_ + other.dim_out, dim_in_=self.dim_in_ + other.dim_in)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaBounded:
        cfg = _sampling(config)
        hp = HorizonPeriod.coerce(horizon_period)
        return cls(
            name or random_name(rng),
            _random_dim(rng, cfg),
            _random_dim(rng, cfg),
            rng.uniform(0.1, cfg.max_bound, size=hp.length),
            hp,
        )


@dataclass(frozen=True)
class DeltaSltv(Delta):
    """Static LTV real parameter: w_k = delta_k z_k with lower_bound[k] <= delta_k <= upper_bound[k]."""

    name: str
    dim_outin: int = 1
    lower_bound: Any = -1.0
    upper_bound: Any = 1.0
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)

    def __post_init__(self) -> None:
        hp = HorizonPeriod.coerce(self.horizon_period)
        object.__setattr__(self, "horizon_period", hp)
        object.__setattr__(self, "dim_outin", check_dim(self.dim_outin, "dim_outin"))
        object.__setattr__(self, "lower_bound", per_step(self.lower_bound, hp, "lower_bound"))
        object.__setattr__(self, "upper_bound", per_step(self.upper_bound, hp, "upper_bound"))
        _check_interval(self.lower_bound, self.upper_bound, f"DeltaSltv '{self.name}'")

    @property
    def dim_out(self) -> int:
        return self.dim_outin

    @property
    def dim_in(self) -> int:
        return self.dim_outin

    def _resampled(self, time_map: Sequence[int]) -> dict:
        return {
            "lower_bound": tuple(self.lower_bound[k] for k in time_map),
            "upper_bound": tuple(self.upper_bound[k] for k in time_map),
        }

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_outin=self.dim_outin + other.dim_outin)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaSltv:
        cfg = _sampling(config)
        hp = HorizonPeriod.coerce(horizon_period)
        lower, upper = _random_interval(rng, cfg, size=hp.length)
        return cls(name or random_name(rng), _random_dim(rng, cfg), lower, upper, hp)


@dataclass(frozen=True)
class DeltaSltvRateBnd(Delta):
    """
    Static LTV real parameter with bounded rate of variation:
        lower_bound <= delta_k <= upper_bound,  lower_rate <= delta_{k+1} - delta_k <= upper_rate
    """

    name: str
    dim_outin: int = 1
    lower_bound: float = -1.0
    upper_bound: float = 1.0
    lower_rate: float = -1.0
    upper_rate: float = 1.0
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dim_outin", check_dim(self.dim_outin, "dim_outin"))
        for label in ("lower_bound", "upper_bound", "lower_rate", "upper_rate"):
            object.__setattr__(self, label, float(getattr(self, label)))
        object.__setattr__(self, "horizon_period", HorizonPeriod.coerce(self.horizon_period))
        _check_interval([self.lower_bound], [self.upper_bound], f"DeltaSltvRateBnd '{self.name}'")
        _check_interval([self.lower_rate], [self.upper_rate], f"DeltaSltvRateBnd '{self.name}' rates")

    @property
    def dim_out(self) -> int:
        return self.dim_outin

    @property
    def dim_in(self) -> int:
        return self.dim_outin

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_outin=self.dim_outin + other.dim_outin)

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaSltvRateBnd:
        cfg = _sampling(config)
        lower, upper = _random_interval(rng, cfg)
        lower_rate, upper_rate = _random_interval(rng, cfg)
        return cls(
            name or random_name(rng),
            _random_dim(rng, cfg),
            lower,
            upper,
            lower_rate,
            upper_rate,
            horizon_period,
        )


@dataclass(frozen=True)
class DeltaSltvRepeated(Delta):
    """
    Several static LTV parameters sharing one block:
        w = blkdiag(delta_1 I_{d_1}, ..., delta_r I_{d_r}) z,  lower_bounds[i] <= delta_i <= upper_bounds[i]

    The block is identified by the joined parameter names.
    """

    names: Tuple[str, ...]
    dim_outins: Tuple[int, ...] = (1,)
    lower_bounds: Tuple[float, ...] = (-1.0,)
    upper_bounds: Tuple[float, ...] = (1.0,)
    horizon_period: HorizonPeriod = HorizonPeriod(0, 1)

    def __post_init__(self) -> None:
        names = (self.names,) if isinstance(self.names, str) else tuple(str(n) for n in self.names)
        if not names:
            raise ValueError("DeltaSltvRepeated needs at least one parameter name")
        if len(set(names)) != len(names):
            raise ValueError(f"DeltaSltvRepeated parameter names must be unique, got {names}")
        count = len(names)

        def _expand(values: Any, label: str) -> tuple:
            arr = np.asarray(values, dtype=float).reshape(-1)
            if arr.size == 1:
                arr = np.full(count, float(arr[0]))
            if arr.size != count:
                raise ValueError(f"{label} must have one entry per parameter ({count}), got {arr.size}")
            return tuple(float(v) for v in arr)

        object.__setattr__(self, "names", names)
        object.__setattr__(
            self, "dim_outins", tuple(check_dim(d, "dim_outins") for d in _expand(self.dim_outins, "dim_outins"))
        )
        object.__setattr__(self, "lower_bounds", _expand(self.lower_bounds, "lower_bounds"))
        object.__setattr__(self, "upper_bounds", _expand(self.upper_bounds, "upper_bounds"))
        object.__setattr__(self, "horizon_period", HorizonPeriod.coerce(self.horizon_period))
        _check_interval(self.lower_bounds, self.upper_bounds, f"DeltaSltvRepeated '{self.name}'")

    @property
    def name(self) -> str:
        return "_".join(self.names)

    @property
    def dim_out(self) -> int:
        return int(sum(self.dim_outins))

    @property
    def dim_in(self) -> int:
        return int(sum(self.dim_outins))

    def _grown(self, other: Delta) -> Delta:
        return replace(self, dim_outins=tuple(a + b for a, b in zip(self.dim_outins, other.dim_outins)))

    @classmethod
    def random(cls, rng, horizon_period=(0, 1), config=None, name=None) -> DeltaSltvRepeated:
        cfg = _sampling(config)
        count = int(rng.integers(1, cfg.max_repeated + 1))
        names = [random_name(rng) for _ in range(count)]
        if name is not None:
            names[0] = name
        lower, upper = _random_interval(rng, cfg, size=count)
        dims = rng.integers(1, cfg.max_delta_dim + 1, size=count)
        return cls(tuple(names), tuple(int(d) for d in dims), tuple(lower), tuple(upper), horizon_period)


# ---------------------------
# Registry
# ---------------------------

DELTA_TYPES: Dict[str, Type[Delta]] = {
    cls.__name__: cls
    for cls in (
        DeltaIntegrator,
        DeltaDelayZ,
        DeltaSlti,
        DeltaDlti,
        DeltaBounded,
        DeltaSltv,
        DeltaSltvRateBnd,
        DeltaSltvRepeated,
    )
}
STATE_TYPES: Tuple[str, ...] = ("DeltaDelayZ", "DeltaIntegrator")
UNCERTAINTY_TYPES: Tuple[str, ...] = tuple(t for t in DELTA_TYPES if t not in STATE_TYPES)


def delta_class(type_name: str) -> Type[Delta]:
    """
    Look up a Delta variant by name.

    Raises
    ------
    UnknownDeltaTypeError if type_name is not one of DELTA_TYPES.
    """
    try:
        return DELTA_TYPES[type_name]
    except (KeyError, TypeError):
        raise UnknownDeltaTypeError(
            f"Unknown Delta type {type_name!r}; expected one of {sorted(DELTA_TYPES)}"
        ) from None


def make_delta(
    type_name: str,
    rng: np.random.Generator,
    horizon_period: Any = (0, 1),
    config: Any = None,
) -> Delta:
    """Fresh randomly parameterized Delta of the named variant."""
    return delta_class(type_name).random(rng, horizon_period, config)


__all__ = [
    "DELTA_TYPES",
    "STATE_TYPES",
    "UNCERTAINTY_TYPES",
    "DeltaBounded",
    "DeltaDelayZ",
    "DeltaDlti",
    "DeltaIntegrator",
    "DeltaSlti",
    "DeltaSltv",
    "DeltaSltvRateBnd",
    "DeltaSltvRepeated",
    "delta_class",
    "make_delta",
]
