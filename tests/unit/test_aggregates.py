"""
Unit Tests - Aggregate Functions
"""
import pytest

from pos_analytics.analytics.aggregates import (
    exp_smooth,
    median,
    moving_average,
    round_half_up,
    safe_divide,
    stddev,
)


class TestStatistics:
    """Tests for stddev and median"""

    def test_population_stddev(self):
        """Test standard deviation divides by n"""
        assert stddev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_stddev_of_constant_series(self):
        assert stddev([3.5, 3.5, 3.5]) == 0.0

    def test_median_odd_and_even(self):
        """Test median picks or averages the middle"""
        assert median([3, 1, 2]) == 2.0
        assert median([4, 1, 3, 2]) == 2.5

    def test_empty_inputs_are_zero(self):
        assert stddev([]) == 0.0
        assert median([]) == 0.0


class TestSmoothing:
    """Tests for moving_average and exp_smooth"""

    def test_moving_average_uses_last_window(self):
        assert moving_average(3, [1, 2, 3, 4, 5]) == pytest.approx(4.0)

    def test_moving_average_short_series_uses_all_values(self):
        """Test fallback to the full mean when the window is not filled"""
        assert moving_average(10, [1, 2, 3, 4, 5]) == pytest.approx(3.0)

    def test_exp_smooth_is_seeded_with_first_value(self):
        # 1 -> 1 -> 1.5 -> 2.25
        assert exp_smooth(0.5, [1, 2, 3]) == pytest.approx(2.25)

    def test_exp_smooth_weights_latest_values(self):
        """Test the newest value dominates for a high alpha"""
        assert exp_smooth(0.9, [0, 0, 0, 100]) > exp_smooth(0.9, [100, 0, 0, 0])

    def test_empty_series(self):
        assert moving_average(3, []) == 0.0
        assert exp_smooth(0.5, []) == 0.0


class TestArithmetic:
    """Tests for rounding and guarded division"""

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.4) == 2
        assert round_half_up(-2.5) == -2

    def test_safe_divide(self):
        assert safe_divide(6, 3) == 2.0
        assert safe_divide(1, 0) == 0.0
        assert safe_divide(1, 0, default=-1.0) == -1.0
        assert safe_divide(1, float("inf")) == 0.0
