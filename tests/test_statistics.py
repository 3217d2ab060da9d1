"""Tests for statistical analysis module."""

import math

import numpy as np
import pytest
from scipy import special

from core.statistics import (
    NumericRecord,
    describe,
    erf,
    extract_numeric_records,
    fit_trend,
    iqr_outliers,
    looks_temporal,
    normal_cdf,
    pareto_concentration,
    percentile,
    two_sided_p_value,
)


def _records(values, names=None):
    names = names or [f"item-{i}" for i in range(len(values))]
    return [NumericRecord(name=n, value=float(v)) for n, v in zip(names, values)]


class TestExtractNumericRecords:
    """Tests for the value-field adapter."""

    def test_value_field_priority(self):
        rows = [{"name": "a", "count": 3, "value": 7}]
        assert extract_numeric_records(rows)[0].value == 7.0

    def test_falls_back_to_later_fields(self):
        rows = [{"label": "b", "amount": 12.5}]
        record = extract_numeric_records(rows)[0]
        assert record.value == 12.5
        assert record.name == "b"

    def test_skips_non_numeric_rows(self):
        rows = [
            {"name": "ok", "value": 1},
            {"name": "text", "value": "12"},
            {"name": "bool", "value": True},
            {"name": "nan", "value": float("nan")},
            {"name": "missing"},
            "not a dict",
        ]
        assert [r.name for r in extract_numeric_records(rows)] == ["ok"]

    def test_numpy_scalars_count_as_numbers(self):
        rows = [{"value": np.float64(2.5)}, {"value": np.int64(4)}]
        assert [r.value for r in extract_numeric_records(rows)] == [2.5, 4.0]

    def test_empty_input(self):
        assert extract_numeric_records(None) == []
        assert extract_numeric_records([]) == []


class TestDescribe:
    """Tests for descriptive statistics."""

    def test_known_sample(self):
        stats = describe([10, 20, 30, 40, 50])

        assert stats.count == 5
        assert stats.sum == 150
        assert stats.mean == pytest.approx(30)
        assert stats.median == pytest.approx(30)
        assert stats.std_dev == pytest.approx(14.142, abs=1e-3)
        assert stats.variance == pytest.approx(200)
        assert stats.q1 == pytest.approx(20)
        assert stats.q3 == pytest.approx(40)
        assert stats.iqr == pytest.approx(20)
        assert stats.range == 40
        assert stats.skewness == pytest.approx(0.0, abs=1e-12)
        assert stats.coefficient_of_variation == pytest.approx(14.142 / 30, abs=1e-4)

    def test_even_count_median(self):
        assert describe([1, 2, 3, 4]).median == pytest.approx(2.5)

    def test_single_value(self):
        stats = describe([5])
        assert stats.mean == 5
        assert stats.std_dev == 0
        assert stats.skewness == 0.0

    def test_zero_mean_has_no_cv(self):
        stats = describe([-1, 1])
        assert stats.coefficient_of_variation is None

    def test_right_skew_is_positive(self):
        assert describe([1, 1, 1, 2, 10]).skewness > 0

    def test_empty_returns_none(self):
        assert describe([]) is None
        assert describe([float("nan")]) is None

    def test_percentile_interpolates(self):
        assert percentile([1, 2, 3, 4], 50) == pytest.approx(2.5)
        assert percentile([], 50) == 0.0


class TestTrend:
    """Tests for linear trend fitting."""

    def test_perfect_increase(self):
        trend = fit_trend(list(range(1, 11)))
        assert trend.slope == pytest.approx(1.0)
        assert trend.correlation == pytest.approx(1.0)
        assert trend.r_squared == pytest.approx(1.0)
        assert trend.direction == "increasing"
        assert trend.strength == "strong"

    def test_decreasing(self):
        trend = fit_trend([10, 8, 7, 5, 2])
        assert trend.slope < 0
        assert trend.direction == "decreasing"

    def test_noisy_trend_is_moderate(self):
        trend = fit_trend([1, 5, 2, 6, 3, 7, 1, 8])
        assert trend.strength == "moderate"

    def test_constant_series(self):
        trend = fit_trend([4, 4, 4, 4])
        assert trend.slope == 0.0
        assert trend.correlation == 0.0
        assert trend.p_value == 1.0

    def test_too_short(self):
        assert fit_trend([1, 2]) is None


class TestIQROutliers:
    """Tests for IQR fence outlier detection."""

    def test_flags_single_outlier(self):
        result = iqr_outliers(_records([10, 12, 11, 13, 9, 100]))
        assert [r.value for r in result.outliers] == [100.0]
        assert result.most_extreme.value == 100.0

    def test_fences(self):
        result = iqr_outliers(_records([10, 12, 11, 13, 9, 100]))
        assert result.lower_fence == pytest.approx(6.5)
        assert result.upper_fence == pytest.approx(16.5)

    def test_no_outliers(self):
        result = iqr_outliers(_records([1, 2, 3, 4, 5]))
        assert result.outliers == []
        assert result.most_extreme is None

    def test_needs_four_records(self):
        assert iqr_outliers(_records([1, 2, 100])) is None


class TestPareto:
    """Tests for value concentration."""

    def test_concentrated(self):
        result = pareto_concentration([80, 10, 5, 3, 2])
        assert result.items_needed == 1
        assert result.percentage == pytest.approx(20.0)
        assert result.is_concentrated

    def test_even_spread_is_not_concentrated(self):
        result = pareto_concentration([10] * 10)
        assert result.items_needed == 8
        assert not result.is_concentrated

    def test_order_does_not_matter(self):
        assert pareto_concentration([2, 3, 80, 5, 10]).items_needed == 1

    @pytest.mark.parametrize("values", [[1, 2], [0, 0, 0], [-5, 1, 2]])
    def test_degenerate_inputs(self, values):
        assert pareto_concentration(values) is None


class TestTemporalNames:

    @pytest.mark.parametrize("name", ["Jan", "february", "2023", "Q3 2021", "Week 4", "month 1"])
    def test_temporal(self, name):
        assert looks_temporal(_records([1], [name]))

    @pytest.mark.parametrize("name", ["Paris", "product-9", "1999", None])
    def test_not_temporal(self, name):
        assert not looks_temporal(_records([1], [name]))


class TestNormalApproximation:
    """Tests for the Abramowitz-Stegun erf and derived p-values."""

    @pytest.mark.parametrize("x", [-2.0, -0.5, 0.0, 0.3, 1.0, 3.0])
    def test_erf_matches_scipy(self, x):
        assert erf(x) == pytest.approx(float(special.erf(x)), abs=2e-7)

    def test_cdf_midpoint(self):
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-7)

    def test_critical_value(self):
        assert two_sided_p_value(1.96) == pytest.approx(0.05, abs=1e-3)

    def test_p_value_bounds(self):
        assert two_sided_p_value(0.0) == pytest.approx(1.0, abs=1e-6)
        assert 0.0 <= two_sided_p_value(40.0) <= 1.0
        assert math.isclose(two_sided_p_value(-2.5), two_sided_p_value(2.5))
