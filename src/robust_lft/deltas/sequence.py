# src/robust_lft/deltas/sequence.py

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Tuple

from robust_lft.core.errors import MixedTimeDomainError, NameCollisionError
from robust_lft.core.horizon_period import HorizonPeriod
from robust_lft.deltas.base import Delta

logger = logging.getLogger(__name__)


class DeltaSequence:
    """
    Ordered, immutable collection of Delta blocks with unique names.

    The aggregate input (output) of the uncertainty structure is the
    concatenation of the delta inputs (outputs) in sequence order. State
    deltas (DeltaDelayZ / DeltaIntegrator) conventionally lead the sequence.

    Parameters
    ----------
    deltas : a Delta, an iterable of Delta, or another DeltaSequence
    """

    __slots__ = ("_deltas",)

    def __init__(self, deltas: Any = ()) -> None:
        if isinstance(deltas, DeltaSequence):
            items = deltas._deltas
        elif isinstance(deltas, Delta):
            items = (deltas,)
        else:
            items = tuple(deltas)
        for d in items:
            if not isinstance(d, Delta):
                raise TypeError(f"DeltaSequence entries must be Delta instances, got {type(d).__name__}")
        names = [d.name for d in items]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise NameCollisionError(f"Delta names must be unique within a sequence, repeated: {duplicates}")
        self._deltas: Tuple[Delta, ...] = tuple(items)

    # ----------------
    # Accessors
    # ----------------

    @property
    def deltas(self) -> Tuple[Delta, ...]:
        return self._deltas

    @property
    def types(self) -> Tuple[str, ...]:
        return tuple(d.type_name for d in self._deltas)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self._deltas)

    @property
    def horizon_periods(self) -> Tuple[HorizonPeriod, ...]:
        return tuple(d.horizon_period for d in self._deltas)

    @property
    def dim_outs(self) -> Tuple[int, ...]:
        return tuple(d.dim_out for d in self._deltas)

    @property
    def dim_ins(self) -> Tuple[int, ...]:
        return tuple(d.dim_in for d in self._deltas)

    @property
    def dim_out(self) -> int:
        """Total width of the delta outputs w."""
        return int(sum(self.dim_outs))

    @property
    def dim_in(self) -> int:
        """Total width of the delta inputs z."""
        return int(sum(self.dim_ins))

    @property
    def states(self) -> Tuple[Delta, ...]:
        return tuple(d for d in self._deltas if d.is_state)

    def __len__(self) -> int:
        return len(self._deltas)

    def __iter__(self) -> Iterator[Delta]:
        return iter(self._deltas)

    def __getitem__(self, k: int) -> Delta:
        return self._deltas[k]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DeltaSequence):
            return self._deltas == other._deltas
        if isinstance(other, (list, tuple)):
            return self._deltas == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._deltas)

    def __repr__(self) -> str:
        inner = ", ".join(f"{d.type_name}('{d.name}', {d.dim_out}x{d.dim_in})" for d in self._deltas)
        return f"DeltaSequence([{inner}])"

    def index_of(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise KeyError(f"No delta named '{name}' (have {list(self.names)})") from None

    # ----------------
    # Transformations
    # ----------------

    def append(self, delta: Delta) -> DeltaSequence:
        """New sequence with delta appended. Names must stay unique."""
        return DeltaSequence(self._deltas + (delta,))

    def merge(self, *others: DeltaSequence) -> DeltaSequence:
        """
        Concatenate with other sequences and deduplicate (see merge_sequences).
        """
        merged, _ = merge_sequences(self, *others)
        return merged

    def match_horizon_period(self, horizon_period: Any) -> DeltaSequence:
        hp = HorizonPeriod.coerce(horizon_period)
        return DeltaSequence(d.match_horizon_period(hp) for d in self._deltas)

    def remove(self, indices: Iterable[int]) -> DeltaSequence:
        """New sequence without the deltas at the given positions."""
        drop = {int(i) for i in indices}
        for i in drop:
            if not 0 <= i < len(self._deltas):
                raise IndexError(f"Delta index {i} out of range for {len(self._deltas)} deltas")
        return DeltaSequence(d for k, d in enumerate(self._deltas) if k not in drop)


def merge_sequences(*sequences: Any) -> Tuple[DeltaSequence, List[List[int]]]:
    """
    Merge several delta sequences in order.

    Rules:
      - every state delta is combined into ONE leading state block
        (mixing DeltaIntegrator and DeltaDelayZ is an error)
      - the remaining deltas keep their order of first occurrence; later
        deltas with an already seen name are combined into that entry

    Returns
    -------
    merged : DeltaSequence
    slots  : slots[i][j] is the position in `merged` receiving delta j of sequence i

    Raises
    ------
    MixedTimeDomainError if continuous and discrete states are mixed.
    NameCollisionError if same-named deltas cannot be combined.
    """
    seqs = [s if isinstance(s, DeltaSequence) else DeltaSequence(s) for s in sequences]

    state: Delta | None = None
    for seq in seqs:
        for d in seq.states:
            if state is None:
                state = d
            elif type(d) is not type(state):
                raise MixedTimeDomainError(
                    f"Cannot merge {state.type_name} and {d.type_name} states in one LFT"
                )
            else:
                state = state.combine(d)

    offset = 0 if state is None else 1
    entries: List[Delta] = []
    positions: Dict[str, int] = {}
    slots: List[List[int]] = []
    for seq in seqs:
        seq_slots: List[int] = []
        for d in seq:
            if d.is_state:
                seq_slots.append(0)
                continue
            k = positions.get(d.name)
            if k is None:
                positions[d.name] = len(entries)
                entries.append(d)
                seq_slots.append(offset + len(entries) - 1)
            else:
                logger.debug("combining repeated delta '%s' (%s)", d.name, d.type_name)
                entries[k] = entries[k].combine(d)
                seq_slots.append(offset + k)
        slots.append(seq_slots)

    merged = entries if state is None else [state, *entries]
    return DeltaSequence(merged), slots


def slot_permutation(slots: Sequence[Sequence[int]], widths: Sequence[Sequence[int]]) -> List[int]:
    """
    Permutation that regroups the rows (or columns) of a naive block-diagonal
    join so they follow the merged delta order.

    slots[i][j]  : merged position of delta j in operand i (from merge_sequences)
    widths[i][j] : number of rows (or columns) that delta occupies

    Rows of the same merged slot are kept in operand order.
    """
    blocks = []
    start = 0
    for order, (seq_slots, seq_widths) in enumerate(zip(slots, widths)):
        for slot, width in zip(seq_slots, seq_widths):
            blocks.append((slot, order, range(start, start + int(width))))
            start += int(width)
    blocks.sort(key=lambda blk: (blk[0], blk[1]))
    return [i for _, _, rows in blocks for i in rows]


__all__ = [
    "DeltaSequence",
    "merge_sequences",
    "slot_permutation",
]
