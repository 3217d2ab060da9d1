"""
Statistical analysis engine for descriptive statistics, trends, outliers
and value concentration.

Works on heterogeneous records (arbitrary key/value rows) by first
extracting a typed numeric sample, then computing summaries that never
leak NaN or infinity to callers.
"""

import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)

VALUE_FIELDS = ("value", "count", "amount", "total", "score")
NAME_FIELDS = ("name", "label", "title")

IQR_MULTIPLIER = 1.5
PARETO_VALUE_SHARE = 0.8
PARETO_MAX_ITEM_SHARE = 30.0

_TEMPORAL_NAME = re.compile(
    r"^(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec|20\d\d|q[1-4]|week|month|year)"
)

# Abramowitz and Stegun formula 7.1.26
_ERF_A1 = 0.254829592
_ERF_A2 = -0.284496736
_ERF_A3 = 1.421413741
_ERF_A4 = -1.453152027
_ERF_A5 = 1.061405429
_ERF_P = 0.3275911


@dataclass
class NumericRecord:
    """A record reduced to its label and numeric value."""

    name: Optional[str]
    value: float
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DescriptiveStats:
    """Summary statistics of a numeric sample (population moments)."""

    count: int
    sum: float
    mean: float
    median: float
    min: float
    max: float
    range: float
    variance: float
    std_dev: float
    q1: float
    q3: float
    iqr: float
    coefficient_of_variation: Optional[float]  # None when the mean is zero
    skewness: float


@dataclass
class TrendResult:
    """Ordinary least squares fit of value against position."""

    slope: float
    intercept: float
    correlation: float
    r_squared: float
    p_value: float
    n: int

    @property
    def direction(self) -> str:
        return "increasing" if self.slope > 0 else "decreasing"

    @property
    def strength(self) -> str:
        return "strong" if abs(self.correlation) > 0.7 else "moderate"


@dataclass
class IQROutlierResult:
    """Records falling outside the IQR fences."""

    lower_fence: float
    upper_fence: float
    mean: float
    outliers: List[NumericRecord]

    @property
    def most_extreme(self) -> Optional[NumericRecord]:
        if not self.outliers:
            return None
        return max(self.outliers, key=lambda r: abs(r.value - self.mean))


@dataclass
class ParetoResult:
    """How many of the largest records reach the value-share target."""

    items_needed: int
    total_items: int
    percentage: float  # share of records needed, 0-100
    value_share: float = PARETO_VALUE_SHARE

    @property
    def is_concentrated(self) -> bool:
        return self.percentage <= PARETO_MAX_ITEM_SHARE


def extract_numeric_records(
    records: Optional[Iterable[Dict[str, Any]]],
    value_fields: Sequence[str] = VALUE_FIELDS,
    name_fields: Sequence[str] = NAME_FIELDS,
) -> List[NumericRecord]:
    """
    Reduce heterogeneous rows to NumericRecords.

    The first field in ``value_fields`` holding a finite real number wins;
    rows without one are skipped.

    Args:
        records: Iterable of dict-like rows
        value_fields: Value field names in priority order
        name_fields: Label field names in priority order

    Returns:
        List of NumericRecord in input order
    """
    extracted: List[NumericRecord] = []
    if not records:
        return extracted

    skipped = 0
    for row in records:
        if not isinstance(row, dict):
            skipped += 1
            continue

        value = None
        for key in value_fields:
            candidate = row.get(key)
            if _is_real_number(candidate):
                value = float(candidate)
                break

        if value is None:
            skipped += 1
            continue

        name = None
        for key in name_fields:
            if row.get(key) is not None:
                name = str(row[key])
                break

        extracted.append(NumericRecord(name=name, value=value, raw=row))

    if skipped:
        logger.debug("Skipped %d record(s) without a numeric value field", skipped)
    return extracted


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Linear-interpolation percentile over an already sorted sample."""
    if len(sorted_values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(sorted_values, dtype=float), pct))


def describe(values: Sequence[float]) -> Optional[DescriptiveStats]:
    """
    Compute descriptive statistics for a numeric sample.

    Args:
        values: Numeric sample

    Returns:
        DescriptiveStats, or None for an empty sample
    """
    data = np.asarray(list(values), dtype=float)
    data = data[np.isfinite(data)]
    if data.size == 0:
        return None

    ordered = np.sort(data)
    total = float(data.sum())
    mean = float(data.mean())
    variance = float(data.var())
    std_dev = math.sqrt(variance)
    q1 = percentile(ordered, 25)
    q3 = percentile(ordered, 75)

    if np.isclose(std_dev, 0):
        skewness = 0.0
    else:
        skewness = float(stats.skew(data, bias=True))

    cv = std_dev / mean if mean != 0 else None

    return DescriptiveStats(
        count=int(data.size),
        sum=total,
        mean=mean,
        median=float(np.median(ordered)),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        range=float(ordered[-1] - ordered[0]),
        variance=variance,
        std_dev=std_dev,
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
        coefficient_of_variation=cv,
        skewness=skewness,
    )


def looks_temporal(records: Iterable[NumericRecord]) -> bool:
    """True when any record name looks like a period (month, quarter, year)."""
    for record in records:
        name = (record.name or "").strip().lower()
        if _TEMPORAL_NAME.match(name):
            return True
    return False


def fit_trend(values: Sequence[float]) -> Optional[TrendResult]:
    """
    Fit a linear trend of value against position index.

    Args:
        values: Ordered numeric series

    Returns:
        TrendResult, or None when fewer than 3 values are available
    """
    y = np.asarray(list(values), dtype=float)
    y = y[np.isfinite(y)]
    if y.size < 3:
        return None

    x = np.arange(y.size, dtype=float)
    if np.isclose(y.std(), 0):
        return TrendResult(
            slope=0.0,
            intercept=float(y.mean()),
            correlation=0.0,
            r_squared=0.0,
            p_value=1.0,
            n=int(y.size),
        )

    fit = stats.linregress(x, y)
    correlation = float(np.clip(fit.rvalue, -1.0, 1.0))
    p_value = float(fit.pvalue) if np.isfinite(fit.pvalue) else 1.0

    return TrendResult(
        slope=float(fit.slope),
        intercept=float(fit.intercept),
        correlation=correlation,
        r_squared=correlation ** 2,
        p_value=p_value,
        n=int(y.size),
    )


def iqr_outliers(
    records: Sequence[NumericRecord],
    multiplier: float = IQR_MULTIPLIER,
) -> Optional[IQROutlierResult]:
    """
    Flag records outside [Q1 - k*IQR, Q3 + k*IQR].

    Returns None when fewer than 4 records are available.
    """
    if len(records) < 4:
        return None

    values = np.array([r.value for r in records], dtype=float)
    ordered = np.sort(values)
    q1 = percentile(ordered, 25)
    q3 = percentile(ordered, 75)
    spread = q3 - q1
    lower = q1 - multiplier * spread
    upper = q3 + multiplier * spread

    flagged = [r for r in records if r.value < lower or r.value > upper]
    return IQROutlierResult(
        lower_fence=lower,
        upper_fence=upper,
        mean=float(values.mean()),
        outliers=flagged,
    )


def pareto_concentration(
    values: Sequence[float],
    value_share: float = PARETO_VALUE_SHARE,
) -> Optional[ParetoResult]:
    """
    Count how many of the largest values are needed to reach ``value_share``
    of the total.

    Returns None for fewer than 3 values or a non-positive total.
    """
    data = np.asarray(list(values), dtype=float)
    if data.size < 3:
        return None

    total = float(data.sum())
    if total <= 0:
        return None

    cumulative = np.cumsum(np.sort(data)[::-1]) / total
    reached = np.nonzero(cumulative >= value_share)[0]
    items_needed = int(reached[0]) + 1 if reached.size else int(data.size)

    return ParetoResult(
        items_needed=items_needed,
        total_items=int(data.size),
        percentage=items_needed / data.size * 100,
        value_share=value_share,
    )


def erf(x: float) -> float:
    """Error function via the Abramowitz-Stegun approximation (|err| <= 1.5e-7)."""
    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)
    t = 1.0 / (1.0 + _ERF_P * x)
    y = 1.0 - (
        ((((_ERF_A5 * t + _ERF_A4) * t) + _ERF_A3) * t + _ERF_A2) * t + _ERF_A1
    ) * t * math.exp(-x * x)
    return sign * y


def normal_cdf(x: float) -> float:
    """Standard normal CDF built on the approximate erf."""
    return 0.5 * (1.0 + erf(x / math.sqrt(2.0)))


def two_sided_p_value(z_score: float) -> float:
    p_value = 2.0 * (1.0 - normal_cdf(abs(z_score)))
    return min(1.0, max(0.0, p_value))


def _is_real_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(float(value))
