# src/robust_lft/core/errors.py
"""
Exception taxonomy for LFT construction and composition.

All errors are user-input validation errors: they are raised synchronously to
the direct caller and never retried. Every class derives from ValueError so
callers that only care about "bad input" can catch that.
"""

from __future__ import annotations


class LftError(ValueError):
    """Base class for all LFT validation errors."""


class InconsistentHorizonPeriodError(LftError):
    """
    A requested horizon_period conflicts with continuous-time forcing or with
    the horizon_period of a required Delta.
    """


class IncompatibleHorizonPeriodError(LftError):
    """A sequence or Delta cannot be refined to the requested horizon_period."""


class UnknownDeltaTypeError(LftError):
    """A requested Delta variant name is not in the supported set."""


class UnsupportedOperandError(LftError, TypeError):
    """A block-diagonal operand cannot be converted to a Ulft."""


class NameCollisionError(LftError):
    """Two distinct, non-combinable deltas or channels share a name."""


class MixedTimeDomainError(LftError):
    """Continuous-time (integrator) and discrete-time (delay) states were mixed."""


class DimensionMismatchError(LftError):
    """Realization matrices are inconsistent with each other or with the deltas."""


__all__ = [
    "DimensionMismatchError",
    "IncompatibleHorizonPeriodError",
    "InconsistentHorizonPeriodError",
    "LftError",
    "MixedTimeDomainError",
    "NameCollisionError",
    "UnknownDeltaTypeError",
    "UnsupportedOperandError",
]
