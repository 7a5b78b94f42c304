# src/robust_lft/lft/random_ulft.py
"""
Random, nominally stable Ulft generation.

Options (all optional):
  - horizon_period : explicit (horizon, period)
  - dim_out, dim_in: LFT output / input widths
  - num_deltas     : number of deltas; the result holds max(num_deltas, len(req_deltas))
  - req_deltas     : Delta instances and/or variant names (e.g. "DeltaSltv") that must appear

Procedure:
  1) time domain: fixed by a required state delta, otherwise drawn uniformly
     among continuous / discrete / memoryless (continuous only when LTI is possible)
  2) horizon_period: explicit, (0, 1) if continuous, reconciled from the required
     Delta instances, or random
  3) deltas: required ones first, then one state delta (if the time domain has
     one), then random uncertainty variants; the state delta leads
  4) matrices: random normal entries; the state block is built stable
       discrete   : ||A_k||_2 < 1 at every step, hence every periodic monodromy is a contraction
       continuous : A = M - (max Re eig(M) + margin) I
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Set

import numpy as np

from robust_lft.core.errors import InconsistentHorizonPeriodError, MixedTimeDomainError, NameCollisionError
from robust_lft.core.horizon_period import HorizonPeriod
from robust_lft.deltas.base import Delta, check_dim, random_name
from robust_lft.deltas.variants import STATE_TYPES, UNCERTAINTY_TYPES, delta_class
from robust_lft.lft.ulft import Ulft
from robust_lft.models.parameters import RandomUlftConfig

logger = logging.getLogger(__name__)

Array = np.ndarray

_DEFAULT_RNG = np.random.default_rng()

CONTINUOUS = "continuous"
DISCRETE = "discrete"
MEMORYLESS = "memoryless"

_STATE_OF_DOMAIN = {CONTINUOUS: "DeltaIntegrator", DISCRETE: "DeltaDelayZ"}
_DOMAIN_OF_STATE = {v: k for k, v in _STATE_OF_DOMAIN.items()}


def as_rng(rng: Any = None) -> np.random.Generator:
    """Generator passthrough, int seed -> fresh Generator, None -> process-level Generator."""
    if isinstance(rng, np.random.Generator):
        return rng
    if rng is None:
        return _DEFAULT_RNG
    return np.random.default_rng(rng)


class UlftRandomGenerator:
    """
    Seedable random Ulft factory.

    Parameters
    ----------
    config : RandomUlftConfig (sampling ranges + stability margins); defaults if None
    rng    : numpy Generator, int seed, or None for the process-level generator
    """

    def __init__(self, config: RandomUlftConfig | None = None, rng: Any = None) -> None:
        self.config = RandomUlftConfig() if config is None else config
        self.config.validate()
        self.rng = as_rng(rng)

    # ----------------
    # Public API
    # ----------------

    def generate(
        self,
        horizon_period: Any = None,
        dim_out: Optional[int] = None,
        dim_in: Optional[int] = None,
        num_deltas: Optional[int] = None,
        req_deltas: Any = None,
    ) -> Ulft:
        """
        Raises
        ------
        InconsistentHorizonPeriodError if horizon_period conflicts with continuous time or a required Delta.
        UnknownDeltaTypeError for an unsupported variant name in req_deltas.
        NameCollisionError / MixedTimeDomainError if more than one state delta is required.
        """
        rng = self.rng
        sampling = self.config.sampling
        required = self._required(req_deltas)
        concrete = [r for r in required if isinstance(r, Delta)]

        domain = self._time_domain(required, concrete, horizon_period)
        hp = self._resolve_horizon_period(domain, concrete, horizon_period)
        for d in concrete:
            if not d.horizon_period.can_refine_to(hp):
                raise InconsistentHorizonPeriodError(
                    f"Required {d.type_name} '{d.name}' with horizon_period {tuple(d.horizon_period)} "
                    f"cannot conform to horizon_period {tuple(hp)}"
                )

        if num_deltas is None:
            num_deltas = int(rng.integers(0, sampling.max_num_deltas + 1))
        elif int(num_deltas) < 0:
            raise ValueError(f"num_deltas must be non-negative, got {num_deltas}")
        total = max(int(num_deltas), len(required))

        deltas = self._deltas(required, domain, hp, total)
        dim_out = int(rng.integers(1, sampling.max_dim + 1)) if dim_out is None else check_dim(dim_out, "dim_out")
        dim_in = int(rng.integers(1, sampling.max_dim + 1)) if dim_in is None else check_dim(dim_in, "dim_in")
        logger.debug(
            "random ulft: domain=%s hp=%s dims=(%d, %d) deltas=%s",
            domain,
            tuple(hp),
            dim_out,
            dim_in,
            [d.type_name for d in deltas],
        )

        a, b, c, d = self._matrices(deltas, hp, dim_out, dim_in)
        return Ulft(a, b, c, d, deltas, horizon_period=hp)

    # ----------------
    # Steps
    # ----------------

    @staticmethod
    def _required(req_deltas: Any) -> List[Any]:
        if req_deltas is None:
            return []
        if isinstance(req_deltas, (str, Delta)):
            req_deltas = [req_deltas]
        required = list(req_deltas)
        for r in required:
            if isinstance(r, str):
                delta_class(r)
            elif not isinstance(r, Delta):
                raise TypeError(f"req_deltas entries must be Delta instances or variant names, got {r!r}")

        state_types = [_type_name(r) for r in required if _type_name(r) in STATE_TYPES]
        if len(state_types) > 1:
            if len(set(state_types)) > 1:
                raise MixedTimeDomainError("req_deltas cannot hold both DeltaIntegrator and DeltaDelayZ")
            raise NameCollisionError(f"req_deltas may hold at most one state delta, got {state_types}")
        return required

    def _time_domain(self, required: Sequence[Any], concrete: Sequence[Delta], horizon_period: Any) -> str:
        for r in required:
            name = _type_name(r)
            if name in STATE_TYPES:
                return _DOMAIN_OF_STATE[name]
        lti_possible = all(d.horizon_period.is_time_invariant for d in concrete) and (
            horizon_period is None or HorizonPeriod.coerce(horizon_period).is_time_invariant
        )
        choices = [CONTINUOUS, DISCRETE, MEMORYLESS] if lti_possible else [DISCRETE, MEMORYLESS]
        return str(self.rng.choice(choices))

    def _resolve_horizon_period(self, domain: str, concrete: Sequence[Delta], horizon_period: Any) -> HorizonPeriod:
        if horizon_period is not None:
            hp = HorizonPeriod.coerce(horizon_period)
            if domain == CONTINUOUS and not hp.is_time_invariant:
                raise InconsistentHorizonPeriodError(
                    f"Continuous-time LFTs require horizon_period (0, 1), got {tuple(hp)}"
                )
            return hp
        if domain == CONTINUOUS:
            return HorizonPeriod(0, 1)
        if concrete:
            return HorizonPeriod.reconcile(*(d.horizon_period for d in concrete))
        return self._random_horizon_period()

    def _random_horizon_period(self) -> HorizonPeriod:
        sampling = self.config.sampling
        if self.rng.random() < sampling.lti_probability:
            return HorizonPeriod(0, 1)
        horizon = int(self.rng.integers(0, sampling.max_horizon + 1))
        period = int(self.rng.integers(1, sampling.max_period + 1))
        return HorizonPeriod(horizon, period)

    def _deltas(self, required: Sequence[Any], domain: str, hp: HorizonPeriod, total: int) -> List[Delta]:
        taken: Set[str] = {r.name for r in required if isinstance(r, Delta)}

        def fresh_name() -> str:
            name = random_name(self.rng)
            while name in taken:
                name = random_name(self.rng)
            taken.add(name)
            return name

        def instantiate(type_name: str) -> Delta:
            cls = delta_class(type_name)
            if cls.is_state:
                return cls.random(self.rng, hp, self.config)
            return cls.random(self.rng, hp, self.config, name=fresh_name())

        deltas: List[Delta] = []
        for r in required:
            deltas.append(r.match_horizon_period(hp) if isinstance(r, Delta) else instantiate(r))

        has_state = any(d.is_state for d in deltas)
        if domain != MEMORYLESS and not has_state and len(deltas) < total:
            deltas.append(instantiate(_STATE_OF_DOMAIN[domain]))
        while len(deltas) < total:
            deltas.append(instantiate(str(self.rng.choice(UNCERTAINTY_TYPES))))

        # state delta leads
        return [d for d in deltas if d.is_state] + [d for d in deltas if not d.is_state]

    def _stable_state_matrix(self, n: int, continuous: bool) -> Array:
        stability = self.config.stability
        m = self.rng.standard_normal((n, n))
        if continuous:
            margin = self.rng.uniform(*stability.margin_range)
            shift = float(np.max(np.linalg.eigvals(m).real)) + margin
            return m - shift * np.eye(n)
        radius = self.rng.uniform(*stability.contraction_range)
        norm = float(np.linalg.norm(m, 2))
        return m * (radius / norm) if norm > 0.0 else m

    def _matrices(self, deltas: Sequence[Delta], hp: HorizonPeriod, dim_out: int, dim_in: int):
        rng = self.rng
        z_dim = int(sum(d.dim_in for d in deltas))
        w_dim = int(sum(d.dim_out for d in deltas))
        state = deltas[0] if deltas and deltas[0].is_state else None

        a_seq, b_seq, c_seq, d_seq = [], [], [], []
        for _ in range(hp.length):
            a = rng.standard_normal((z_dim, w_dim))
            if state is not None:
                n = state.dim_in
                a[:n, :n] = self._stable_state_matrix(n, continuous=state.type_name == "DeltaIntegrator")
            a_seq.append(a)
            b_seq.append(rng.standard_normal((z_dim, dim_in)))
            c_seq.append(rng.standard_normal((dim_out, w_dim)))
            d_seq.append(rng.standard_normal((dim_out, dim_in)))
        return a_seq, b_seq, c_seq, d_seq


def _type_name(item: Any) -> str:
    return item if isinstance(item, str) else item.type_name


def random_ulft(
    horizon_period: Any = None,
    dim_out: Optional[int] = None,
    dim_in: Optional[int] = None,
    num_deltas: Optional[int] = None,
    req_deltas: Any = None,
    rng: Any = None,
    config: RandomUlftConfig | None = None,
) -> Ulft:
    """One-shot wrapper around UlftRandomGenerator.generate."""
    generator = UlftRandomGenerator(config=config, rng=rng)
    return generator.generate(
        horizon_period=horizon_period,
        dim_out=dim_out,
        dim_in=dim_in,
        num_deltas=num_deltas,
        req_deltas=req_deltas,
    )


__all__ = [
    "UlftRandomGenerator",
    "as_rng",
    "random_ulft",
]
