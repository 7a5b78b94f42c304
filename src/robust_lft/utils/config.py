# src/robust_lft/utils/config.py
"""
Config loader for random LFT sampling.

- Loads a YAML file.
- Builds typed dataclasses from robust_lft.models.parameters.
- Validates ranges.
- Returns (RandomUlftConfig, extras) where extras may include:
    - seed if provided at top level
    - samples if provided at top level

Expected YAML keys (every section and key is optional):

sampling:   { max_dim: 10, max_delta_dim: 5, max_horizon: 5, max_period: 5,
              max_num_deltas: 5, lti_probability: 0.5, max_bound: 2.0, max_repeated: 3 }
stability:  { contraction_range: [0.1, 0.95], margin_range: [0.1, 2.0] }
solver:     { name: SCS, lmi_shift: 1.0e-3, options: { max_iters: 200000, eps: 1.0e-6 } }
samples:    200
seed:       42
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from robust_lft.models.parameters import RandomUlftConfig, SamplingConfig, StabilityConfig


def load_yaml(path: str | Path) -> Dict[str, Any]:
    """
    Load a YAML file into a Python dict.

    An empty file loads as {} so every section falls back to its defaults;
    a non-mapping top level raises ValueError.
    """
    p = Path(path)
    with p.open("r") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Top-level YAML must be a mapping")
    return data


def save_yaml(data: Dict[str, Any], path: str | Path) -> None:
    """
    Save a Python dict to a YAML file (creates parent dirs).
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w") as f:
        yaml.safe_dump(data, f, sort_keys=False)


def _section(cfg: Dict[str, Any], key: str) -> Dict[str, Any]:
    raw = cfg.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"'{key}' section must be a mapping, got {type(raw).__name__}")
    return raw


def _pair(value: Any, label: str) -> Tuple[float, float]:
    try:
        low, high = (float(v) for v in value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{label}' must be a [low, high] pair, got {value!r}") from exc
    return low, high


def build_sampling_config(raw: Dict[str, Any]) -> SamplingConfig:
    known = {f.name for f in fields(SamplingConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown 'sampling' keys: {unknown}")
    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        kwargs[key] = float(value) if key in ("lti_probability", "max_bound") else int(value)
    sampling = SamplingConfig(**kwargs)
    sampling.validate()
    return sampling


def build_stability_config(stab_raw: Dict[str, Any], sol_raw: Dict[str, Any]) -> StabilityConfig:
    defaults = StabilityConfig()
    stability = StabilityConfig(
        contraction_range=_pair(stab_raw.get("contraction_range", defaults.contraction_range), "contraction_range"),
        margin_range=_pair(stab_raw.get("margin_range", defaults.margin_range), "margin_range"),
        lmi_shift=float(sol_raw.get("lmi_shift", defaults.lmi_shift)),
        solver=str(sol_raw.get("name", defaults.solver)),
        options=sol_raw.get("options", None),
    )
    stability.validate()
    return stability


def build_random_ulft_config(cfg: Dict[str, Any]) -> Tuple[RandomUlftConfig, Dict[str, Any]]:
    """
    Construct a RandomUlftConfig from a YAML dict.

    Returns:
    -------
    (config, extras) where extras may include:
        - "seed": seed (int) if provided at top level
        - "samples": number of LFTs to draw (int) if provided at top level
    """
    # --- sampling ---
    sampling = build_sampling_config(_section(cfg, "sampling"))

    # --- stability / solver ---
    stability = build_stability_config(_section(cfg, "stability"), _section(cfg, "solver"))

    config = RandomUlftConfig(sampling=sampling, stability=stability)
    config.validate()

    # --- extras ---
    extras: Dict[str, Any] = {}
    if cfg.get("seed") is not None:
        extras["seed"] = int(cfg["seed"])
    if cfg.get("samples") is not None:
        extras["samples"] = int(cfg["samples"])
        if extras["samples"] < 1:
            raise ValueError("'samples' must be at least 1")
    return config, extras


def config_to_dict(config: RandomUlftConfig) -> Dict[str, Any]:
    """Inverse of build_random_ulft_config (without extras), YAML-safe."""
    s = config.sampling
    t = config.stability
    return {
        "sampling": {f.name: getattr(s, f.name) for f in fields(SamplingConfig)},
        "stability": {
            "contraction_range": [float(v) for v in t.contraction_range],
            "margin_range": [float(v) for v in t.margin_range],
        },
        "solver": {
            "name": t.solver,
            "lmi_shift": float(t.lmi_shift),
            **({"options": dict(t.options)} if t.options else {}),
        },
    }


__all__ = [
    "build_random_ulft_config",
    "build_sampling_config",
    "build_stability_config",
    "config_to_dict",
    "load_yaml",
    "save_yaml",
]
