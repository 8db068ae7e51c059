"""Online statistics over a stream of observations."""
from __future__ import annotations

import math
from typing import Callable, List, Optional, Tuple

from scipy.stats import norm

from .errors import InsufficientDataError, InvalidArgumentError


def check_level(level: float) -> None:
    if not 0.0 < level < 1.0:
        raise InvalidArgumentError(f"Confidence level should be strictly between 0 and 1 (got {level}).")


class StatCollector:
    """Count, mean and variance of observations, updated in O(1) per value.

    Uses Welford's running sum of squared deviations. With keep_history=True
    the raw observations are also kept for reporting.

    The confidence interval half-width at level L is
    |quantile(0.5 - L/2)| * sigma / sqrt(count). ``quantile`` is the inverse
    standard normal CDF (scipy's norm.ppf); it returns a negative value for
    that lower-tail probability, hence the absolute value.
    """

    def __init__(self, keep_history: bool = False,
                 quantile: Callable[[float], float] = norm.ppf):
        self._count = 0
        self._mean = 0.0
        self._m2 = 0.0
        self._quantile = quantile
        self._history: Optional[List[float]] = [] if keep_history else None

    def add(self, value: float) -> None:
        value = float(value)
        self._count += 1
        delta = value - self._mean
        self._mean += delta / self._count
        self._m2 += delta * (value - self._mean)
        if self._history is not None:
            self._history.append(value)

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean(self) -> float:
        """Mean of the observations (NaN when there are none)."""
        return self._mean if self._count else math.nan

    @property
    def variance(self) -> float:
        """Sample variance (NaN with fewer than 2 observations)."""
        if self._count < 2:
            return math.nan
        return self._m2 / (self._count - 1)

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance)

    @property
    def history(self) -> Optional[List[float]]:
        return None if self._history is None else list(self._history)

    def normal_quantile(self, level: float) -> float:
        """Two-sided normal critical value for ``level``, as a positive number."""
        check_level(level)
        return abs(float(self._quantile(0.5 - level / 2.0)))

    def confidence_interval_half_width(self, level: float) -> float:
        check_level(level)
        if self._count < 2:
            raise InsufficientDataError(
                f"At least 2 observations are needed for a confidence interval (have {self._count})."
            )
        return self.normal_quantile(level) * self.standard_deviation / math.sqrt(self._count)

    def confidence_interval(self, level: float) -> Tuple[float, float]:
        half = self.confidence_interval_half_width(level)
        return self._mean - half, self._mean + half

    def __repr__(self) -> str:
        return f"StatCollector(count={self._count}, mean={self.mean}, std={self.standard_deviation})"
