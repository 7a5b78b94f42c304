# src/robust_lft/synthesis/nominal_stability.py
"""
Nominal stability of a Ulft: every non-state delta is closed with zero and the
remaining state recursion is checked.

  - discrete   : x_{k+1} = A_k x_k        stable iff rho(A_{h+p-1} ... A_h) < 1
  - continuous : dx/dt   = A x            stable iff max Re eig(A) < 0
  - memoryless : always stable

lyapunov_lmi_certificate() certifies the same property with a periodic
Lyapunov function found by CVXPY:

  discrete   : P_k >= I,   A_k^T P_{k+1} A_k - P_k <= -eps I   for every stored k
  continuous : P   >= I,   A^T P + P A           <= -eps I

and accepts the solver answer only after re-checking P with numpy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import cvxpy as cp
import numpy as np

from robust_lft.lft.ulft import Ulft

logger = logging.getLogger(__name__)

Array = np.ndarray

_OPTIMAL = ("optimal", "optimal_inaccurate")


def nominal_state_matrices(ulft: Ulft) -> List[Array]:
    """State matrix A_k at every stored time step after removing all non-state deltas."""
    others = [k for k, d in enumerate(ulft.delta) if not d.is_state]
    nominal = ulft.remove_uncertainty(others) if others else ulft
    return [np.array(m) for m in nominal.a]


def periodic_monodromy(matrices: List[Array], horizon: int) -> Array:
    """Product A_{h+p-1} ... A_h over the periodic tail."""
    n = matrices[0].shape[0]
    phi = np.eye(n)
    for A in matrices[horizon:]:
        phi = A @ phi
    return phi


def is_nominally_stable(ulft: Ulft, tol: float = 0.0) -> bool:
    """
    Eigenvalue test of nominal stability.

    tol : required margin (spectral radius < 1 - tol, or max real part < -tol)
    """
    if ulft.is_memoryless():
        return True
    A = nominal_state_matrices(ulft)
    if A[0].size == 0:
        return True
    if ulft.is_continuous():
        return bool(np.max(np.linalg.eigvals(A[0]).real) < -tol)
    phi = periodic_monodromy(A, ulft.horizon_period.horizon)
    return bool(np.max(np.abs(np.linalg.eigvals(phi))) < 1.0 - tol)


def _sym(M: cp.Expression) -> cp.Expression:
    return 0.5 * (M + M.T)


def _decrease_matrices(A: List[Array], Ps: List[Array], hp: Any, continuous: bool) -> List[Array]:
    """Lyapunov decrease matrices at a numeric P (must be negative definite)."""
    if continuous:
        P = Ps[0]
        return [A[0].T @ P + P @ A[0]]
    return [A[k].T @ Ps[hp.resolve(k + 1)] @ A[k] - Ps[k] for k in range(hp.length)]


def _certificate_margin(A: List[Array], Ps: List[Array], hp: Any, continuous: bool) -> float:
    """
    Smallest eigenvalue margin of a numeric certificate:
    min( min eig(P_k), -max eig(decrease_k) ). Positive iff P proves stability.
    """
    pos = min(float(np.min(np.linalg.eigvalsh(0.5 * (P + P.T)))) for P in Ps)
    dec = max(
        float(np.max(np.linalg.eigvalsh(0.5 * (M + M.T)))) for M in _decrease_matrices(A, Ps, hp, continuous)
    )
    return min(pos, -dec)


def lyapunov_lmi_certificate(
    ulft: Ulft,
    *,
    lmi_shift: float = 1e-3,
    solver: Optional[str] = "SCS",
    verbose: bool = False,
    solver_options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Search for a (periodic) quadratic Lyapunov function of the nominal system.

    The LMIs are homogeneous in P, so P is normalized (P_k >= I) and only the
    decrease condition carries the lmi_shift margin. A solver answer is accepted
    only if the returned P passes the (unshifted) Lyapunov inequalities when
    checked with numpy eigvalsh.

    Returns
    -------
    {
      "valid":  True iff the LMIs were solved and the returned P certifies stability,
      "status": CVXPY problem status ("trivial" for memoryless systems),
      "margin": eigenvalue margin of the returned P (None if no P),
      "P":      list of Lyapunov matrices (one per stored time step), or None
    }
    """
    if ulft.is_memoryless():
        return {"valid": True, "status": "trivial", "margin": None, "P": []}
    A = nominal_state_matrices(ulft)
    n = A[0].shape[0]
    if n == 0:
        return {"valid": True, "status": "trivial", "margin": None, "P": []}

    hp = ulft.horizon_period
    continuous = ulft.is_continuous()
    eye = cp.Constant(np.eye(n))
    cons = []
    if continuous:
        P = cp.Variable((n, n), symmetric=True)
        Ac = cp.Constant(A[0])
        Ps = [P]
        cons += [P >> eye]
        cons += [_sym(Ac.T @ P + P @ Ac) << -lmi_shift * eye]
    else:
        Ps = [cp.Variable((n, n), symmetric=True) for _ in range(hp.length)]
        for k in range(hp.length):
            Ak = cp.Constant(A[k])
            P_next = Ps[hp.resolve(k + 1)]
            cons += [Ps[k] >> eye]
            cons += [_sym(Ak.T @ P_next @ Ak - Ps[k]) << -lmi_shift * eye]

    prob = cp.Problem(cp.Minimize(0), cons)
    if solver is None or str(solver).upper() == "SCS":
        scs_defaults: Dict[str, Any] = {
            "max_iters": 200000,
            "eps": 1e-6,
            "acceleration_lookback": 50,
        }
        if solver_options:
            scs_defaults.update(solver_options)
        prob.solve(solver=cp.SCS, verbose=verbose, **scs_defaults)
    else:
        prob.solve(solver=solver, verbose=verbose, **(solver_options or {}))

    if prob.status not in _OPTIMAL or any(P.value is None for P in Ps):
        return {"valid": False, "status": prob.status, "margin": None, "P": None}

    P_values = [np.array(P.value) for P in Ps]
    margin = _certificate_margin(A, P_values, hp, continuous)
    valid = margin > 0.0
    if not valid:
        logger.debug(
            "solver reported %s but the returned P fails the Lyapunov check (margin %.3e)", prob.status, margin
        )
    return {
        "valid": valid,
        "status": prob.status,
        "margin": margin,
        "P": (P_values if valid else None),
    }


__all__ = [
    "is_nominally_stable",
    "lyapunov_lmi_certificate",
    "nominal_state_matrices",
    "periodic_monodromy",
]
