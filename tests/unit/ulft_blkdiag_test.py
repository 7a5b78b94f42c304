"""
Unit tests for block-diagonal composition of Ulfts.

Tests cover:
1. Plain concatenation without reordering
2. Combination of repeated states and uncertainties, with row/column regrouping
3. Horizon-period reconciliation
4. Performance / disturbance channel remapping
5. Conversion of non-Ulft operands
6. Random operands and associativity
"""

import control as ct
import numpy as np
import pytest
from scipy.linalg import block_diag

from robust_lft.core.errors import MixedTimeDomainError, NameCollisionError, UnsupportedOperandError
from robust_lft.deltas.variants import (
    DeltaBounded,
    DeltaDelayZ,
    DeltaIntegrator,
    DeltaSlti,
    DeltaSltv,
)
from robust_lft.lft.blkdiag import block_diagonal, to_ulft
from robust_lft.lft.channels import DisturbanceL2, PerformanceL2Induced, PerformanceStable
from robust_lft.lft.random_ulft import random_ulft
from robust_lft.lft.ulft import Ulft


def _constant_lft(value, delta, **kwargs):
    """4-state LFT whose a/b/c/d entries all equal value."""
    return Ulft(
        value * np.ones((4, 4)),
        value * np.ones((4, 1)),
        value * np.ones((1, 4)),
        np.array([[float(value)]]),
        delta,
        **kwargs,
    )


def _numbered_lft(first, second, delta, **kwargs):
    a1 = np.arange(1, 17, dtype=float).reshape(4, 4).T
    a2 = np.ones((4, 4))
    b = np.arange(first, first + 4, dtype=float).reshape(4, 1)
    c = np.arange(first, first + 4, dtype=float).reshape(1, 4)
    a = a1 if second == 1 else a2
    return Ulft(a, b, c, np.zeros((1, 1)), delta, **kwargs)


# ============================================================================
# Test Class 1: Concatenation without reordering
# ============================================================================

class TestConcatenation:

    def test_state_first_no_duplicates(self):
        lft1 = _constant_lft(1, DeltaSlti("b", 4))
        lft2 = _constant_lft(2, DeltaSlti("a", 4))
        lft3 = _constant_lft(3, DeltaDelayZ(4))
        diag = block_diagonal(lft3, lft1, lft2)

        for name in "abcd":
            expected = block_diag(*(getattr(lft, name)[0] for lft in (lft3, lft1, lft2)))
            assert np.array_equal(getattr(diag, name)[0], expected)
        assert diag.delta == [DeltaDelayZ(4), DeltaSlti("b", 4), DeltaSlti("a", 4)]

    def test_method_delegates(self):
        lft1 = _constant_lft(1, DeltaSlti("b", 4))
        lft2 = _constant_lft(2, DeltaSlti("a", 4))
        assert lft1.blkdiag(lft2) == block_diagonal(lft1, lft2)

    def test_single_operand_is_unchanged(self):
        lft = _constant_lft(1, DeltaSlti("a", 4), performance=PerformanceStable())
        assert block_diagonal(lft) == lft

    def test_no_operands_raises(self):
        with pytest.raises(ValueError):
            block_diagonal()


# ============================================================================
# Test Class 2: Combination and regrouping
# ============================================================================

class TestCombination:

    def test_repeated_delay_states(self):
        lfts = [
            _constant_lft(1, DeltaDelayZ(4)),
            _constant_lft(2, DeltaDelayZ(4)),
            _constant_lft(3, DeltaBounded("d", 4, 4)),
            _constant_lft(4, DeltaSlti("c", 4)),
            _constant_lft(5, DeltaSltv("e", 4)),
        ]
        diag = block_diagonal(*lfts)
        for name in "abcd":
            expected = block_diag(*(getattr(lft, name)[0] for lft in lfts))
            assert np.array_equal(getattr(diag, name)[0], expected)
        assert diag.delta == [DeltaDelayZ(8), DeltaBounded("d", 4, 4), DeltaSlti("c", 4), DeltaSltv("e", 4)]

    def test_shared_uncertainty_is_combined(self):
        lft1 = _numbered_lft(1, 1, DeltaSlti("a", 4))
        lft2 = _numbered_lft(5, 2, DeltaSlti("a", 4))
        diag = block_diagonal(lft1, lft2)
        assert diag.delta == [DeltaSlti("a", 8)]
        for name in "abcd":
            expected = block_diag(getattr(lft1, name)[0], getattr(lft2, name)[0])
            assert np.array_equal(getattr(diag, name)[0], expected)

    def test_reorder_groups_rows_and_columns(self):
        delta1 = DeltaSlti("a", 4)
        delta2 = DeltaSlti("b", 4)
        delta3 = DeltaBounded("c", 4, 4)
        delta4 = DeltaDelayZ(4)
        delta5 = DeltaSltv("e", 4)
        cells = [delta1, delta2, delta3, delta4, delta5, delta1, delta2, delta3, delta4]
        lfts = [_constant_lft(k + 1, delta) for k, delta in enumerate(cells)]
        order = [0, 2, 1, 3, 4, 5, 6, 7, 8]
        operands = [lfts[k] for k in order]
        diag = block_diagonal(*operands)

        assert diag.delta == [
            DeltaDelayZ(8),
            DeltaSlti("a", 8),
            DeltaBounded("c", 8, 8),
            DeltaSlti("b", 8),
            delta5,
        ]

        # operand positions in merged delta order: z, z, a, a, c, c, b, b, e
        grouped = [3, 8, 0, 5, 1, 7, 2, 6, 4]
        a_expected = block_diag(*(operands[k].a[0] for k in grouped))
        b_naive = block_diag(*(op.b[0] for op in operands))
        c_naive = block_diag(*(op.c[0] for op in operands))
        b_expected = np.vstack([b_naive[4 * k: 4 * k + 4, :] for k in grouped])
        c_expected = np.hstack([c_naive[:, 4 * k: 4 * k + 4] for k in grouped])
        d_expected = block_diag(*(op.d[0] for op in operands))

        assert np.array_equal(diag.a[0], a_expected)
        assert np.array_equal(diag.b[0], b_expected)
        assert np.array_equal(diag.c[0], c_expected)
        assert np.array_equal(diag.d[0], d_expected)

    def test_mixed_time_domains_raise(self):
        with pytest.raises(MixedTimeDomainError):
            block_diagonal(_constant_lft(1, DeltaDelayZ(4)), _constant_lft(2, DeltaIntegrator(4)))

    def test_conflicting_same_name_raises(self):
        with pytest.raises(NameCollisionError):
            block_diagonal(
                _constant_lft(1, DeltaSlti("a", 4, -1, 1)),
                _constant_lft(2, DeltaSlti("a", 4, -2, 2)),
            )


# ============================================================================
# Test Class 3: Horizon periods
# ============================================================================

class TestHorizonPeriods:

    def test_horizon_checking(self):
        def steps(j_values, shape):
            return [v * np.ones(shape) for v in j_values]

        values = {k: [10 * j + k for j in (1, 2)] for k in (1, 2, 3)}
        lft1 = Ulft(
            steps(values[1], (4, 4)), steps(values[1], (4, 1)), steps(values[1], (1, 4)), steps(values[1], (1, 1)),
            DeltaDelayZ(4), horizon_period=(1, 1),
        )
        lft2 = Ulft(
            steps(values[2], (4, 4)), steps(values[2], (4, 1)), steps(values[2], (1, 4)), steps(values[2], (1, 1)),
            DeltaBounded("c", 4, 4), horizon_period=(0, 2),
        )
        lft3 = Ulft(
            steps(values[3], (4, 4)), steps(values[3], (4, 1)), steps(values[3], (1, 4)), steps(values[3], (1, 1)),
            DeltaSltv("e", 4), horizon_period=(1, 1),
        )
        diag = block_diagonal(lft1, lft2, lft3)
        assert diag.horizon_period == (1, 2)

        # stored index of each operand at every time step of the result
        expected_map = [(0, 0, 0), (1, 1, 1), (1, 0, 1)]
        for t, time_map in enumerate(expected_map):
            for name in "abcd":
                parts = [getattr(lft, name)[k] for lft, k in zip((lft1, lft2, lft3), time_map)]
                assert np.array_equal(getattr(diag, name)[t], block_diag(*parts))
        assert diag.delta.horizon_periods == ((1, 2), (1, 2), (1, 2))


# ============================================================================
# Test Class 4: Channels
# ============================================================================

class TestChannels:

    def test_repeated_all_scope_channels_merge(self):
        perf = PerformanceL2Induced("a")
        dist = DisturbanceL2("a")
        lft1 = _numbered_lft(1, 1, DeltaSlti("a", 4), performance=perf, disturbance=dist)
        lft2 = _numbered_lft(5, 2, DeltaSlti("a", 4), performance=perf, disturbance=dist)
        diag = block_diagonal(lft1, lft2)
        assert diag.delta == [DeltaSlti("a", 8)]
        assert diag.performance == lft1.performance
        assert diag.disturbance == (DisturbanceL2("a", None),)

    def test_explicit_channels_are_offset_and_joined(self):
        perf = PerformanceL2Induced("a", [0], [0])
        dist = DisturbanceL2("a", [0])
        lft1 = _numbered_lft(1, 1, DeltaSlti("a", 4), performance=perf, disturbance=dist)
        lft2 = _numbered_lft(5, 2, DeltaSlti("a", 4), performance=perf, disturbance=dist)
        diag = block_diagonal(lft1, lft2)
        assert diag.performance == (PerformanceL2Induced("a", [0, 1], [0, 1]),)
        assert diag.disturbance == (DisturbanceL2("a", [0, 1]),)

    def test_channel_only_on_second_operand(self):
        perf = PerformanceL2Induced("a", [0], [0])
        dist = DisturbanceL2("a", [0])
        lft1 = _numbered_lft(1, 1, DeltaSlti("a", 4))
        lft2 = _numbered_lft(5, 2, DeltaSlti("a", 4), performance=perf, disturbance=dist)
        diag = block_diagonal(lft1, lft2)
        assert diag.performance == (PerformanceL2Induced("a", [1], [1]),)
        assert diag.disturbance == (DisturbanceL2("a", [1]),)

    def test_all_scope_becomes_explicit_when_not_shared(self):
        gain = np.ones((2, 3))
        lft = Ulft(np.zeros((0, 0)), np.zeros((0, 3)), np.zeros((2, 0)), gain, performance=PerformanceL2Induced("p"))
        diag = block_diagonal(np.ones((1, 1)), lft)
        assert diag.performance == (PerformanceL2Induced("p", [1, 2], [1, 2, 3]),)

    def test_incompatible_channels_raise(self):
        lft1 = _constant_lft(1, DeltaSlti("a", 4), performance=PerformanceL2Induced("p", gain=1.0))
        lft2 = _constant_lft(2, DeltaSlti("b", 4), performance=PerformanceL2Induced("p", gain=2.0))
        with pytest.raises(NameCollisionError):
            block_diagonal(lft1, lft2)
        lft3 = _constant_lft(3, DeltaSlti("c", 4), performance=PerformanceStable("p"))
        with pytest.raises(NameCollisionError):
            block_diagonal(lft1, lft3)


# ============================================================================
# Test Class 5: Operand conversion
# ============================================================================

class TestConversion:

    def _lft1(self):
        a1 = np.arange(1, 17, dtype=float).reshape(4, 4).T
        b1 = np.arange(1, 5, dtype=float).reshape(4, 1)
        c1 = np.arange(1, 5, dtype=float).reshape(1, 4)
        return Ulft(a1, b1, c1, np.zeros((1, 1)), DeltaSlti("a", 4)), a1, b1, c1

    def test_scalar_operand(self):
        lft1, a1, b1, c1 = self._lft1()
        expected = Ulft(
            a1,
            np.hstack([np.zeros((4, 1)), b1]),
            np.vstack([np.zeros((1, 4)), c1]),
            block_diag(5.0, 0.0),
            DeltaSlti("a", 4),
        )
        assert block_diagonal(5, lft1) == expected

    def test_array_operand(self):
        lft1, a1, b1, c1 = self._lft1()
        column = np.array([[3.0], [5.0]])
        expected = Ulft(
            a1,
            np.hstack([np.zeros((4, 1)), b1]),
            np.vstack([np.zeros((2, 4)), c1]),
            block_diag(column, 0.0),
            DeltaSlti("a", 4),
        )
        assert block_diagonal(column, lft1) == expected

    def test_delta_operand(self):
        lft1, a1, _, _ = self._lft1()
        b3 = 2 * np.ones((4, 4))
        c3 = 2 * np.ones((4, 4))
        d3 = 2 * np.ones((4, 4))
        lft2 = Ulft(a1, b3, c3, d3, DeltaSlti("a", 4))
        delta2 = DeltaSlti("b", 4)
        expected = Ulft(
            block_diag(np.zeros((4, 4)), a1),
            block_diag(np.eye(4), b3),
            block_diag(np.eye(4), c3),
            block_diag(np.zeros((4, 4)), d3),
            [delta2, DeltaSlti("a", 4)],
        )
        assert block_diagonal(delta2, lft2) == expected

    def test_delta_operand_canonical_realization(self):
        lft = to_ulft(DeltaBounded("q", 2, 3))
        assert lft.a[0].shape == (3, 2)
        assert np.array_equal(lft.b[0], np.eye(3))
        assert np.array_equal(lft.c[0], np.eye(2))
        assert np.array_equal(lft.d[0], np.zeros((2, 3)))

    def test_continuous_state_space_operand(self):
        lft1, a1, b1, c1 = self._lft1()
        a2 = np.arange(17, 33, dtype=float).reshape(4, 4).T
        b2 = np.arange(5, 9, dtype=float).reshape(4, 1)
        c2 = np.arange(5, 9, dtype=float).reshape(1, 4)
        sys = ct.StateSpace(a2, b2, c2, np.zeros((1, 1)))
        expected = Ulft(
            block_diag(a2, a1),
            block_diag(b2, b1),
            block_diag(c2, c1),
            np.zeros((2, 2)),
            [DeltaIntegrator(4), DeltaSlti("a", 4)],
        )
        assert block_diagonal(sys, lft1) == expected

    def test_discrete_state_space_operand(self):
        sys = ct.StateSpace(0.5 * np.eye(2), np.ones((2, 1)), np.ones((1, 2)), np.zeros((1, 1)), 0.1)
        lft = to_ulft(sys)
        assert lft.delta == [DeltaDelayZ(2, timestep=0.1)]
        assert lft.is_discrete()

    @pytest.mark.parametrize("bad", ["hi", True, None, [1.0, 2.0], {"a": 1}, np.array(["x"])])
    def test_unsupported_operand_raises(self, bad):
        lft1, _, _, _ = self._lft1()
        with pytest.raises(UnsupportedOperandError):
            block_diagonal(bad, lft1)


# ============================================================================
# Test Class 6: Random operands and associativity
# ============================================================================

class TestRandomOperands:

    @pytest.mark.parametrize("state_type", ["DeltaDelayZ", "DeltaIntegrator"])
    def test_random_operands_concatenate(self, state_type):
        rng = np.random.default_rng(2021)
        for i in range(6):
            dim_in = int(rng.integers(1, 11))
            dim_out = int(rng.integers(1, 11))
            lfts = [
                random_ulft(dim_in=dim_in, dim_out=dim_out, req_deltas=[state_type], rng=rng)
                for _ in range(2)
            ]
            if i % 2:
                lfts[0] = lfts[0].remove_uncertainty(0)
            lfts[1] = lfts[1].remove_uncertainty(0)

            result = block_diagonal(*lfts)
            hp = result.horizon_period
            matched = [lft.match_horizon_period(hp) for lft in lfts]
            assert result.delta == list(matched[0].delta) + list(matched[1].delta)
            for t in range(hp.length):
                for name in "abcd":
                    expected = block_diag(getattr(matched[0], name)[t], getattr(matched[1], name)[t])
                    assert np.array_equal(getattr(result, name)[t], expected)

    def test_associative_structure(self):
        rng = np.random.default_rng(11)
        lfts = [random_ulft(req_deltas=["DeltaDelayZ", "DeltaSlti"], rng=rng) for _ in range(3)]
        flat = block_diagonal(*lfts)
        nested = block_diagonal(block_diagonal(lfts[0], lfts[1]), lfts[2])
        assert flat == nested
        other = block_diagonal(lfts[0], block_diagonal(lfts[1], lfts[2]))
        assert other.horizon_period == flat.horizon_period
        assert sorted(other.delta.names) == sorted(flat.delta.names)
