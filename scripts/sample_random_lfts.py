# scripts/sample_random_lfts.py
"""
Draw random LFTs and report how the generator covers its option space:
  - number of deltas, delta variants (states vs. uncertainties)
  - horizon / period, input / output widths
  - nominal stability (eigenvalue test, optionally the Lyapunov LMI certificate)

Reads:
  --cfg  : sampling config YAML (configs/random_lft.yaml)

Writes (optional):
  --out  : summary YAML
"""

from __future__ import annotations

import argparse
import pathlib
import sys
from collections import Counter
from typing import Any, Dict

import numpy as np

# make src/ importable
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from robust_lft.deltas.variants import STATE_TYPES  # pyright: ignore[reportMissingImports]
from robust_lft.lft.random_ulft import UlftRandomGenerator  # pyright: ignore[reportMissingImports]
from robust_lft.synthesis.nominal_stability import (  # pyright: ignore[reportMissingImports]
    is_nominally_stable,
    lyapunov_lmi_certificate,
)
from robust_lft.utils.config import (  # pyright: ignore[reportMissingImports]
    build_random_ulft_config,
    config_to_dict,
    load_yaml,
    save_yaml,
)

# ---------------------------
# helpers
# ---------------------------


def _histogram(counter: Counter) -> Dict[str, int]:
    return {str(k): int(v) for k, v in sorted(counter.items(), key=lambda kv: str(kv[0]))}


def _print_histogram(title: str, counter: Counter, total: int) -> None:
    print(f"\n--- {title} ---")
    for key, count in sorted(counter.items(), key=lambda kv: str(kv[0])):
        print(f"  {str(key):<20s} {count:6d}  ({100.0 * count / max(total, 1):5.1f}%)")


# ---------------------------
# main
# ---------------------------


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--cfg", type=str, default="configs/random_lft.yaml", help="Sampling config YAML")
    p.add_argument("--samples", type=int, default=None, help="Number of LFTs (overrides the YAML)")
    p.add_argument("--seed", type=int, default=None, help="RNG seed (overrides the YAML)")
    p.add_argument("--lmi", action="store_true", help="Also certify nominal stability with the Lyapunov LMI")
    p.add_argument("--out", type=str, default=None, help="Optional summary YAML path")
    args = p.parse_args()

    # --- Load config ---
    raw = load_yaml(pathlib.Path(args.cfg))
    config, extras = build_random_ulft_config(raw)
    samples = int(args.samples if args.samples is not None else extras.get("samples", 100))
    seed = args.seed if args.seed is not None else extras.get("seed", 0)
    generator = UlftRandomGenerator(config=config, rng=np.random.default_rng(seed))

    # --- Sample ---
    num_deltas: Counter = Counter()
    state_types: Counter = Counter()
    other_types: Counter = Counter()
    horizons: Counter = Counter()
    periods: Counter = Counter()
    dims: Counter = Counter()
    lti = 0
    unstable = 0
    lmi_failures = 0
    for i in range(samples):
        lft = generator.generate()
        num_deltas[len(lft.delta)] += 1
        for t in lft.delta.types:
            (state_types if t in STATE_TYPES else other_types)[t] += 1
        horizons[lft.horizon_period.horizon] += 1
        periods[lft.horizon_period.period] += 1
        dims[lft.size()] += 1
        lti += int(lft.horizon_period.is_time_invariant)

        if not is_nominally_stable(lft):
            unstable += 1
            print(f"[warn] sample {i}: nominal system is not stable ({lft!r})")
        if args.lmi:
            result = lyapunov_lmi_certificate(
                lft,
                lmi_shift=config.stability.lmi_shift,
                solver=config.stability.solver,
                solver_options=config.stability.options,
            )
            if not result["valid"]:
                lmi_failures += 1
                print(f"[warn] sample {i}: Lyapunov LMI status {result['status']}")

    # --- Report ---
    print(f"\n=== {samples} random LFTs (seed={seed}) ===")
    _print_histogram("number of deltas", num_deltas, samples)
    _print_histogram("state deltas", state_types, samples)
    _print_histogram("uncertainty deltas", other_types, sum(other_types.values()))
    _print_histogram("horizon", horizons, samples)
    _print_histogram("period", periods, samples)
    _print_histogram("size (dim_out, dim_in)", dims, samples)
    print(f"\nLTI (horizon_period (0, 1)) : {lti}")
    print(f"\nnominally unstable : {unstable}")
    if args.lmi:
        print(f"LMI failures       : {lmi_failures}")

    if args.out:
        payload: Dict[str, Any] = {
            "samples": samples,
            "seed": seed,
            "config": config_to_dict(config),
            "num_deltas": _histogram(num_deltas),
            "state_types": _histogram(state_types),
            "uncertainty_types": _histogram(other_types),
            "horizon": _histogram(horizons),
            "period": _histogram(periods),
            "sizes": {f"{o}x{i}": int(c) for (o, i), c in sorted(dims.items())},
            "lti": lti,
            "nominally_unstable": unstable,
            "lmi_failures": (lmi_failures if args.lmi else None),
        }
        save_yaml(payload, args.out)
        print(f"\nSaved summary ➜ {args.out}\n")


if __name__ == "__main__":
    main()
