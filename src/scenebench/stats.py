"""Statistical tools for benchmark results.

Provides:
- Outlier detection using Tukey's fences (IQR method)
- Welch's t-test for comparing two timing distributions
- Least-squares fitting of asymptotic complexity curves
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Callable, Sequence
from typing import Literal

OutlierMode = Literal["upper", "lower", "all"]

AlternativeHypothesis = Literal["not equal", "less", "greater"]

CurveFn = Callable[[float], float]


def quantile_sorted(data: Sequence[float], p: float) -> float:
    """Compute the p-quantile of an already sorted sequence.

    Args:
        data: Sorted, non-empty sequence.
        p: Quantile in [0, 1].

    Returns:
        The quantile value.
    """
    n = len(data)
    if p == 1:
        return data[-1]
    if p == 0:
        return data[0]

    idx = n * p
    if idx % 1 != 0:
        return data[math.ceil(idx) - 1]

    idx = int(idx)
    if n % 2 == 0:
        return (data[idx - 1] + data[idx]) / 2
    return data[idx]


class TukeyOutlierDetector:
    """Outlier detector using Tukey's fences.

    Values outside [Q1 - k*IQR, Q3 + k*IQR] are considered outliers.
    """

    def __init__(self, values: Sequence[float], k: float = 1.5) -> None:
        """Create a detector from a sample.

        Args:
            values: Sample values, must be sorted.
            k: IQR multiplier (default 1.5 for mild outliers).
        """
        if not values:
            msg = "values should be non-empty"
            raise ValueError(msg)

        q1 = quantile_sorted(values, 0.25)
        q3 = quantile_sorted(values, 0.75)
        iqr = q3 - q1

        self.lower_fence = q1 - k * iqr
        self.upper_fence = q3 + k * iqr

    def is_outlier(self, value: float) -> bool:
        return value < self.lower_fence or value > self.upper_fence

    def filter(self, values: Sequence[float], mode: OutlierMode = "all") -> list[float]:
        """Create a copy of the values without outliers.

        Args:
            values: Values to filter.
            mode: Which tail of outliers to remove.

        Returns:
            New list without the selected outliers.
        """
        if mode == "lower":
            return [v for v in values if v >= self.lower_fence]
        if mode == "upper":
            return [v for v in values if v <= self.upper_fence]
        return [v for v in values if not self.is_outlier(v)]


def minimal_least_square(
    input_sizes: Sequence[float], values: Sequence[float], fn: CurveFn
) -> float:
    """Fit the coefficient of the high-order term for the curve `fn`.

    The coefficient minimizes the sum of squared errors; the returned score
    is the RMS of the residuals normalized by the mean of the values, so
    scores of different curves can be compared.

    Args:
        input_sizes: Sizes of the benchmark inputs.
        values: Measured values for each size.
        fn: One variable shape function.

    Returns:
        Normalized RMS, or NaN if the curve can't be fitted.
    """
    sigma_gn_squared = 0.0
    sigma_time = 0.0
    sigma_time_gn = 0.0

    for x, y in zip(input_sizes, values):
        g = fn(x)
        sigma_gn_squared += g * g
        sigma_time += y
        sigma_time_gn += y * g

    if sigma_gn_squared == 0 or sigma_time == 0:
        return math.nan

    coef = sigma_time_gn / sigma_gn_squared

    rms = 0.0
    for x, y in zip(input_sizes, values):
        rms += (y - coef * fn(x)) ** 2

    n = len(input_sizes)
    return math.sqrt(rms / n) / sigma_time * n


def welch_test(
    a: Sequence[float], b: Sequence[float], alternative: AlternativeHypothesis
) -> float:
    """Perform Welch's t-test and return the p-value.

    If a sample has fewer than 2 values, or both variances are zero,
    the result is NaN.

    Args:
        a: First sample.
        b: Second sample.
        alternative: "not equal", "less" (mean of a is less than b)
            or "greater".

    Returns:
        The p-value.
    """
    if alternative not in ("not equal", "less", "greater"):
        msg = f'Invalid alternative hypothesis: "{alternative}"'
        raise TypeError(msg)

    if len(a) < 2 or len(b) < 2:
        return math.nan

    se_a = statistics.variance(a) / len(a)
    se_b = statistics.variance(b) / len(b)
    se = se_a + se_b
    if se == 0:
        return math.nan

    t = (statistics.mean(a) - statistics.mean(b)) / math.sqrt(se)
    df = se**2 / (se_a**2 / (len(a) - 1) + se_b**2 / (len(b) - 1))

    if alternative == "not equal":
        return _student_two_tail(t, df)
    if alternative == "less":
        return 1 - _student_one_tail(t, df)
    return _student_one_tail(t, df)


def _student_one_tail(t: float, df: float) -> float:
    if t < 0:
        return 1 - _student_two_tail(t, df) / 2
    return _student_two_tail(-t, df) / 2


def _student_two_tail(t: float, df: float) -> float:
    """Two-tailed p-value of Student's t distribution."""
    a = df / 2
    s = a + 0.5
    z = df / (df + t * t)

    # Out of the range of log(), t is too close to 0 or infinity.
    if z >= 1:
        return 1.0
    if z <= 0:
        return 0.0

    bt = math.exp(
        _log_gamma(s)
        - _log_gamma(0.5)
        - _log_gamma(a)
        + a * math.log(z)
        + 0.5 * math.log(1 - z)
    )
    if z < (a + 1) / (s + 2):
        return bt * _betinc(z, a, 0.5)
    return 1 - bt * _betinc(1 - z, 0.5, a)


def _betinc(x: float, a: float, b: float) -> float:
    """Incomplete beta function, continued fraction expansion."""
    a0 = 0.0
    b0 = 1.0
    a1 = 1.0
    b1 = 1.0
    m9 = 0.0
    a2 = 0.0

    while abs((a1 - a2) / a1) > 0.00001:
        a2 = a1
        c9 = -(a + m9) * (a + b + m9) * x / (a + 2 * m9) / (a + 2 * m9 + 1)
        a0 = a1 + c9 * a0
        b0 = b1 + c9 * b0
        m9 += 1
        c9 = m9 * (b - m9) * x / (a + 2 * m9) / (a + 2 * m9 - 1)
        a1 = a0 + c9 * a1
        b1 = b0 + c9 * b1
        a0 /= b1
        b0 /= b1
        a1 /= b1
        b1 = 1.0

    return a1 / a


def _log_gamma(z: float) -> float:
    s = (
        1
        + 76.18009173 / z
        - 86.50532033 / (z + 1)
        + 24.01409822 / (z + 2)
        - 1.231739516 / (z + 3)
        + 0.00120858003 / (z + 4)
        - 0.00000536382 / (z + 5)
    )
    return (z - 0.5) * math.log(z + 4.5) - (z + 4.5) + math.log(s * 2.50662827465)
