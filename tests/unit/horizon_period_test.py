"""
Unit tests for HorizonPeriod bookkeeping.

Tests cover:
1. Construction and validation
2. Index resolution over the periodic tail
3. Refinement checks and time maps
4. Reconciliation of several horizon_periods
"""

import pytest

from robust_lft.core.errors import IncompatibleHorizonPeriodError
from robust_lft.core.horizon_period import HorizonPeriod, reconcile_all


# ============================================================================
# Test Class 1: Construction
# ============================================================================

class TestConstruction:

    def test_coerce_from_pair(self):
        hp = HorizonPeriod.coerce([2, 3])
        assert hp == HorizonPeriod(2, 3)
        assert hp == (2, 3)
        assert hp.length == 5

    def test_coerce_passthrough(self):
        hp = HorizonPeriod(1, 1)
        assert HorizonPeriod.coerce(hp) is hp

    @pytest.mark.parametrize("bad", [(-1, 1), (0, 0), (2, -3)])
    def test_invalid_values_raise(self, bad):
        with pytest.raises(ValueError):
            HorizonPeriod.coerce(bad)

    def test_malformed_input_raises(self):
        with pytest.raises(ValueError):
            HorizonPeriod.coerce((1, 2, 3))
        with pytest.raises(ValueError):
            HorizonPeriod.coerce("ab")

    def test_time_invariant_flag(self):
        assert HorizonPeriod(0, 1).is_time_invariant
        assert not HorizonPeriod(1, 1).is_time_invariant
        assert not HorizonPeriod(0, 2).is_time_invariant


# ============================================================================
# Test Class 2: Index resolution
# ============================================================================

class TestResolve:

    def test_prefix_is_identity(self):
        hp = HorizonPeriod(2, 3)
        assert [hp.resolve(t) for t in range(5)] == [0, 1, 2, 3, 4]

    def test_tail_wraps(self):
        hp = HorizonPeriod(2, 3)
        assert [hp.resolve(t) for t in range(5, 11)] == [2, 3, 4, 2, 3, 4]

    def test_lti_always_zero(self):
        hp = HorizonPeriod(0, 1)
        assert {hp.resolve(t) for t in range(20)} == {0}

    def test_negative_time_raises(self):
        with pytest.raises(IndexError):
            HorizonPeriod(0, 1).resolve(-1)


# ============================================================================
# Test Class 3: Refinement
# ============================================================================

class TestRefinement:

    @pytest.mark.parametrize(
        "old, new",
        [((0, 1), (3, 5)), ((1, 1), (2, 3)), ((2, 2), (2, 4)), ((3, 5), (3, 5))],
    )
    def test_valid_refinements(self, old, new):
        assert HorizonPeriod.coerce(old).can_refine_to(new)

    @pytest.mark.parametrize(
        "old, new",
        [((3, 7), (3, 5)), ((5, 5), (3, 5)), ((5, 7), (3, 5)), ((0, 2), (0, 3))],
    )
    def test_invalid_refinements(self, old, new):
        assert not HorizonPeriod.coerce(old).can_refine_to(new)

    def test_time_map_repeats_tail(self):
        assert HorizonPeriod(1, 1).time_map((1, 2)) == [0, 1, 1]
        assert HorizonPeriod(0, 2).time_map((1, 2)) == [0, 1, 0]
        assert HorizonPeriod(1, 2).time_map((2, 4)) == [0, 1, 2, 1, 2, 1]

    def test_time_map_incompatible_raises(self):
        with pytest.raises(IncompatibleHorizonPeriodError):
            HorizonPeriod(3, 7).time_map((3, 5))


# ============================================================================
# Test Class 4: Reconciliation
# ============================================================================

class TestReconcile:

    def test_max_horizon_lcm_period(self):
        assert HorizonPeriod.reconcile((1, 1), (0, 2), (1, 1)) == (1, 2)
        assert HorizonPeriod.reconcile((2, 4), (1, 6)) == (2, 12)

    def test_empty_is_lti(self):
        assert HorizonPeriod.reconcile() == (0, 1)

    def test_result_refines_every_input(self):
        hps = [(0, 3), (4, 2), (1, 5)]
        common = reconcile_all(hps)
        assert common == (4, 30)
        assert all(HorizonPeriod.coerce(hp).can_refine_to(common) for hp in hps)
