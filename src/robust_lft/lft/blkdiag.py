# src/robust_lft/lft/blkdiag.py
"""
Block-diagonal composition of LFTs.

Algorithm (block_diagonal):
  1) convert every operand to a Ulft (to_ulft)
  2) refine all operands to their common horizon_period (max horizon, lcm period)
  3) merge the delta sequences: one leading state block, then every distinct
     uncertainty in order of first occurrence (same-named deltas combined)
  4) join a/b/c/d block-diagonally, then permute the rows of a/b (delta inputs)
     and the columns of a/c (delta outputs) to follow the merged delta order
  5) offset and merge the performance / disturbance channels
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import Any, List

import control as ct
import numpy as np

from robust_lft.core.errors import UnsupportedOperandError
from robust_lft.core.horizon_period import HorizonPeriod
from robust_lft.core.periodic_sequence import as_matrix
from robust_lft.deltas.base import Delta
from robust_lft.deltas.sequence import merge_sequences, slot_permutation
from robust_lft.deltas.variants import DeltaDelayZ, DeltaIntegrator
from robust_lft.lft.channels import merge_channels
from robust_lft.lft.ulft import Ulft

logger = logging.getLogger(__name__)


# ---------------------------
# Operand conversion
# ---------------------------


def _matrix_ulft(value: Any) -> Ulft:
    d = as_matrix(value)
    dim_out, dim_in = d.shape
    return Ulft(np.zeros((0, 0)), np.zeros((0, dim_in)), np.zeros((dim_out, 0)), d)


def _delta_ulft(delta: Delta) -> Ulft:
    # y = Delta u
    return Ulft(
        np.zeros((delta.dim_in, delta.dim_out)),
        np.eye(delta.dim_in),
        np.eye(delta.dim_out),
        np.zeros((delta.dim_out, delta.dim_in)),
        delta,
        horizon_period=delta.horizon_period,
    )


def _state_space_ulft(sys: ct.StateSpace) -> Ulft:
    a = np.asarray(sys.A, dtype=float)
    b = np.asarray(sys.B, dtype=float)
    c = np.asarray(sys.C, dtype=float)
    d = np.asarray(sys.D, dtype=float)
    n = a.shape[0]
    if n == 0:
        return Ulft(np.zeros((0, 0)), np.zeros((0, d.shape[1])), np.zeros((d.shape[0], 0)), d)
    if sys.isctime():
        state = DeltaIntegrator(n)
    else:
        timestep = -1.0 if sys.dt is True else float(sys.dt)
        state = DeltaDelayZ(n, timestep=timestep)
    return Ulft(a, b, c, d, state)


def to_ulft(value: Any) -> Ulft:
    """
    Convert a block-diagonal operand to a Ulft.

      - Ulft                   -> unchanged
      - real scalar / ndarray  -> d-only LFT (no deltas)
      - Delta                  -> canonical realization a = 0, b = I, c = I, d = 0
      - control.StateSpace     -> LFT with a DeltaIntegrator (continuous) or DeltaDelayZ (discrete) state

    Raises
    ------
    UnsupportedOperandError for anything else.
    """
    if isinstance(value, Ulft):
        return value
    if isinstance(value, Delta):
        return _delta_ulft(value)
    if isinstance(value, ct.StateSpace):
        return _state_space_ulft(value)
    if isinstance(value, (bool, np.bool_)):
        raise UnsupportedOperandError("Boolean values cannot be converted to a Ulft")
    if isinstance(value, Real):
        return _matrix_ulft(value)
    if isinstance(value, np.ndarray) and value.dtype.kind in "iuf" and value.ndim <= 2:
        return _matrix_ulft(value)
    raise UnsupportedOperandError(f"Cannot convert operand of type {type(value).__name__} to a Ulft")


# ---------------------------
# Composition
# ---------------------------


def block_diagonal(*operands: Any) -> Ulft:
    """
    Block-diagonal composition of Ulfts (and convertible values).

    Raises
    ------
    UnsupportedOperandError if an operand cannot be converted.
    IncompatibleHorizonPeriodError if an operand cannot be refined to the common horizon_period.
    MixedTimeDomainError if continuous and discrete states are mixed.
    NameCollisionError if same-named deltas or channels cannot be merged.
    """
    if not operands:
        raise ValueError("block_diagonal needs at least one operand")
    lfts: List[Ulft] = [to_ulft(op) for op in operands]

    hp = HorizonPeriod.reconcile(*(lft.horizon_period for lft in lfts))
    lfts = [lft.match_horizon_period(hp) for lft in lfts]
    logger.debug("blkdiag of %d operands at horizon_period %s", len(lfts), tuple(hp))

    merged, slots = merge_sequences(*(lft.delta for lft in lfts))
    rows = [slot_permutation(slots, [lft.delta.dim_ins for lft in lfts])] * hp.length
    cols = [slot_permutation(slots, [lft.delta.dim_outs for lft in lfts])] * hp.length
    logger.debug("merged deltas: %s", list(merged.names))

    head, tail = lfts[0], lfts[1:]
    a = head.a.block_diagonal(*(lft.a for lft in tail)).take(rows=rows, cols=cols)
    b = head.b.block_diagonal(*(lft.b for lft in tail)).take(rows=rows)
    c = head.c.block_diagonal(*(lft.c for lft in tail)).take(cols=cols)
    d = head.d.block_diagonal(*(lft.d for lft in tail))

    dim_outs = [lft.dim_out for lft in lfts]
    dim_ins = [lft.dim_in for lft in lfts]
    performance = merge_channels([lft.performance for lft in lfts], dim_outs, dim_ins)
    disturbance = merge_channels([lft.disturbance for lft in lfts], dim_outs, dim_ins)

    return Ulft(a, b, c, d, merged, horizon_period=hp, performance=performance, disturbance=disturbance)


__all__ = [
    "block_diagonal",
    "to_ulft",
]
