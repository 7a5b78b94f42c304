# src/robust_lft/lft/channels.py
"""
Performance and disturbance annotations attached to a Ulft.

A channel field holds 0-based LFT output (chan_out) or input (chan_in)
indices. None (or an empty selection) means "all channels".

  - PerformanceL2Induced(name, chan_out, chan_in, gain) : L2-induced gain from chan_in to chan_out
  - PerformanceStable(name)                            : plain stability requirement
  - DisturbanceL2(name, chan_in)                       : L2 signals entering chan_in
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from numbers import Integral
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple

from robust_lft.core.errors import DimensionMismatchError, NameCollisionError

Channels = Optional[Tuple[int, ...]]


def normalize_channels(value: Any) -> Channels:
    """None / empty -> None; otherwise a sorted tuple of unique non-negative ints."""
    if value is None:
        return None
    if isinstance(value, Integral) and not isinstance(value, bool):
        value = (value,)
    chans = sorted({int(v) for v in value})
    if not chans:
        return None
    if chans[0] < 0:
        raise ValueError(f"Channel indices must be non-negative, got {chans}")
    return tuple(chans)


class Channel:
    """
    Shared behaviour of performance / disturbance annotations.

    _CHANNEL_FIELDS maps each channel field to the LFT side it indexes
    ("out" for outputs, "in" for inputs).
    """

    _CHANNEL_FIELDS: ClassVar[Dict[str, str]] = {}

    name: str

    def _normalize_channels(self) -> None:
        for label in self._CHANNEL_FIELDS:
            object.__setattr__(self, label, normalize_channels(getattr(self, label)))

    def _parameters(self) -> Tuple[Any, ...]:
        return tuple(
            getattr(self, f.name) for f in fields(self) if f.name != "name" and f.name not in self._CHANNEL_FIELDS
        )

    def check_range(self, dim_out: int, dim_in: int) -> None:
        """
        Raises
        ------
        DimensionMismatchError if an explicit index exceeds the LFT width.
        """
        widths = {"out": dim_out, "in": dim_in}
        for label, side in self._CHANNEL_FIELDS.items():
            chans = getattr(self, label)
            if chans is not None and chans[-1] >= widths[side]:
                raise DimensionMismatchError(
                    f"{type(self).__name__} '{self.name}': {label} index {chans[-1]} exceeds width {widths[side]}"
                )


@dataclass(frozen=True)
class PerformanceL2Induced(Channel):
    _CHANNEL_FIELDS: ClassVar[Dict[str, str]] = {"chan_out": "out", "chan_in": "in"}

    name: str = "l2induced"
    chan_out: Channels = None
    chan_in: Channels = None
    gain: Optional[float] = None  # None: gain is minimized by the analysis

    def __post_init__(self) -> None:
        self._normalize_channels()
        if self.gain is not None:
            object.__setattr__(self, "gain", float(self.gain))
            if not (self.gain > 0.0):
                raise ValueError(f"PerformanceL2Induced '{self.name}': gain must be positive")


@dataclass(frozen=True)
class PerformanceStable(Channel):
    name: str = "stable"


@dataclass(frozen=True)
class DisturbanceL2(Channel):
    _CHANNEL_FIELDS: ClassVar[Dict[str, str]] = {"chan_in": "in"}

    name: str = "l2"
    chan_in: Channels = None

    def __post_init__(self) -> None:
        self._normalize_channels()


def as_channel_tuple(value: Any, kind: Any, label: str) -> Tuple[Channel, ...]:
    """
    Normalize None / one channel / an iterable of channels to a tuple with unique names.
    """
    if value is None:
        items: Tuple[Any, ...] = ()
    elif isinstance(value, Channel):
        items = (value,)
    else:
        items = tuple(value)
    kinds = kind if isinstance(kind, tuple) else (kind,)
    for ch in items:
        if not isinstance(ch, kinds):
            expected = " or ".join(k.__name__ for k in kinds)
            raise TypeError(f"{label} entries must be {expected} instances, got {type(ch).__name__}")
    names = [ch.name for ch in items]
    if len(set(names)) != len(names):
        raise NameCollisionError(f"{label} names must be unique, got {names}")
    return items


def merge_channels(
    groups: Sequence[Iterable[Channel]],
    dim_outs: Sequence[int],
    dim_ins: Sequence[int],
) -> Tuple[Channel, ...]:
    """
    Merge the channels of block-diagonal operands.

    groups[i] holds the channels of operand i, whose outputs (inputs) start at
    sum(dim_outs[:i]) (sum(dim_ins[:i])) in the joined LFT.

    Same-named channels merge into one, placed at the first occurrence:
      - a channel field that is all-scope in EVERY operand stays all-scope
      - otherwise it becomes the sorted union of the operands' indices, an
        all-scope field contributing its operand's own range

    Raises
    ------
    NameCollisionError if same-named channels differ in variant or parameters.
    """
    out_offsets = [sum(dim_outs[:i]) for i in range(len(groups))]
    in_offsets = [sum(dim_ins[:i]) for i in range(len(groups))]
    num_operands = len(groups)

    order: List[str] = []
    by_name: Dict[str, List[Tuple[int, Channel]]] = {}
    for i, group in enumerate(groups):
        for ch in group:
            if ch.name not in by_name:
                order.append(ch.name)
                by_name[ch.name] = []
            by_name[ch.name].append((i, ch))

    merged: List[Channel] = []
    for name in order:
        members = by_name[name]
        first = members[0][1]
        for _, ch in members[1:]:
            if type(ch) is not type(first) or ch._parameters() != first._parameters():
                raise NameCollisionError(
                    f"Channel '{name}' appears as incompatible {type(first).__name__} / {type(ch).__name__}"
                )
        changes = {}
        for label, side in first._CHANNEL_FIELDS.items():
            if len(members) == num_operands and all(getattr(ch, label) is None for _, ch in members):
                changes[label] = None
                continue
            union = set()
            for i, ch in members:
                offset = out_offsets[i] if side == "out" else in_offsets[i]
                width = dim_outs[i] if side == "out" else dim_ins[i]
                chans = getattr(ch, label)
                local = range(width) if chans is None else chans
                union.update(offset + c for c in local)
            changes[label] = tuple(sorted(union)) or None
        merged.append(replace(first, **changes))
    return tuple(merged)


__all__ = [
    "Channel",
    "DisturbanceL2",
    "PerformanceL2Induced",
    "PerformanceStable",
    "as_channel_tuple",
    "merge_channels",
    "normalize_channels",
]
