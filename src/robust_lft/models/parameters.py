# src/robust_lft/models/parameters.py
"""
Configuration dataclasses for random LFT generation and nominal stability checks.

This module contains ONLY data containers and light validation helpers.
No algorithmic logic is implemented here.

Recommended usage:
- Build a RandomUlftConfig directly, or load one from YAML via utils/config.py.
- Pass it to lft.random_ulft.random_ulft(..., config=cfg) / Ulft.random(config=cfg).

Sampling ranges (all inclusive):
  - LFT input/output widths:      1 .. max_dim
  - Delta block widths:           1 .. max_delta_dim
  - horizon:                      0 .. max_horizon
  - period:                       1 .. max_period
  - number of deltas:             0 .. max_num_deltas
  - repeated-parameter count:     1 .. max_repeated (DeltaSltvRepeated)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


# ---------------------------
# Sampling ranges
# ---------------------------


@dataclass(frozen=True)
class SamplingConfig:
    """
    Ranges used when the caller leaves an option unspecified.

    Fields:
    - max_dim: upper bound of the LFT input/output widths
    - max_delta_dim: upper bound of each Delta block width
    - max_horizon, max_period: ranges of a random (non-LTI) horizon_period
    - max_num_deltas: upper bound of the random number of deltas
    - lti_probability: probability that a random discrete/memoryless LFT is LTI (0, 1)
    - max_bound: magnitude range of random Delta bounds
    - max_repeated: upper bound of the parameter count in DeltaSltvRepeated
    """

    max_dim: int = 10
    max_delta_dim: int = 5
    max_horizon: int = 5
    max_period: int = 5
    max_num_deltas: int = 5
    lti_probability: float = 0.5
    max_bound: float = 2.0
    max_repeated: int = 3

    def validate(self) -> None:
        if not (self.max_dim >= 1 and self.max_delta_dim >= 1):
            raise ValueError("max_dim and max_delta_dim must be at least 1")
        if not (self.max_horizon >= 0 and self.max_period >= 1):
            raise ValueError("Require max_horizon>=0 and max_period>=1")
        if self.max_num_deltas < 0:
            raise ValueError("max_num_deltas must be non-negative")
        if not (0.0 <= self.lti_probability <= 1.0):
            raise ValueError("lti_probability must be between 0 and 1")
        if not (self.max_bound > 0.1):
            raise ValueError("max_bound must be greater than 0.1")
        if self.max_repeated < 1:
            raise ValueError("max_repeated must be at least 1")


# ---------------------------
# Nominal stability
# ---------------------------


@dataclass(frozen=True)
class StabilityConfig:
    """
    Constructive stability margins for the random state matrices, and the
    Lyapunov LMI settings used to certify them.

    - contraction_range: discrete-time state matrices are scaled to a spectral
      norm drawn from this range (must lie inside (0, 1))
    - margin_range: continuous-time state matrices are shifted so their
      spectral abscissa equals minus a value drawn from this range
    - lmi_shift: strictness margin of the Lyapunov decrease condition (P is normalized to P >= I)
    - solver: CVXPY solver name
    """

    contraction_range: tuple = (0.1, 0.95)
    margin_range: tuple = (0.1, 2.0)
    lmi_shift: float = 1e-3
    solver: str = "SCS"
    options: Mapping[str, Any] | None = None

    def validate(self) -> None:
        lo, hi = (float(v) for v in self.contraction_range)
        if not (0.0 < lo <= hi < 1.0):
            raise ValueError("contraction_range must satisfy 0 < low <= high < 1")
        lo, hi = (float(v) for v in self.margin_range)
        if not (0.0 < lo <= hi):
            raise ValueError("margin_range must satisfy 0 < low <= high")
        if not (self.lmi_shift > 0.0):
            raise ValueError("lmi_shift must be positive")


# ---------------------------
# Full config
# ---------------------------


@dataclass(frozen=True)
class RandomUlftConfig:
    """
    Aggregator consumed by the random generator and the sampling script.
    Mirrors the example YAML in configs/random_lft.yaml.
    """

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)

    def validate(self) -> None:
        self.sampling.validate()
        self.stability.validate()


__all__ = [
    "RandomUlftConfig",
    "SamplingConfig",
    "StabilityConfig",
]
