"""Simple Monte Carlo simulation drivers.

A trial is any callable taking the shared random generator and returning one
real-valued observation. Trials are always executed one after the other, in
order, so that a given seed reproduces the same results.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np

from .errors import InvalidArgumentError
from .stats import StatCollector, check_level

logger = logging.getLogger(__name__)

Trial = Callable[[np.random.Generator], float]


def run_fixed(trial: Trial, n: int, rng: np.random.Generator, stat: StatCollector) -> int:
    """Run ``trial`` n times, adding each result to ``stat``. Returns n."""
    if n < 0:
        raise InvalidArgumentError(f"Number of runs should be non negative (got {n}).")
    for _ in range(n):
        stat.add(trial(rng))
    return n


def estimate_required_runs(stat: StatCollector, level: float, max_half_width: float, batch_size: int) -> int:
    """Number of runs N expected to give a half-width of max_half_width.

    N = ceil((z * sigma / max_half_width)^2 / batch_size) * batch_size
    """
    z = stat.normal_quantile(level)
    estimate = (z * stat.standard_deviation / max_half_width) ** 2
    return int(math.ceil(estimate / batch_size)) * batch_size


def run_until_precision(trial: Trial, level: float, max_half_width: float,
                        initial_runs: int, batch_size: int,
                        rng: np.random.Generator, stat: StatCollector,
                        max_runs: Optional[int] = None) -> int:
    """Run trials until the confidence interval half-width drops below ``max_half_width``.

    1) run initial_runs trials
    2) estimate the total number N of runs needed, rounded up to a multiple
       of batch_size
    3) run N - initial_runs more trials
    4) while the half-width is still >= max_half_width, run batch_size more
       trials and check again

    Step 4 has no bound of its own: it relies on the variance of the trial
    results not growing with the number of runs, which holds for trials with
    bounded outcomes such as tour lengths of a fixed instance. ``max_runs``
    optionally caps the total number of runs of this call; the loop then
    stops early with a warning.

    Returns the number of trials run.
    """
    check_level(level)
    if not max_half_width > 0:
        raise InvalidArgumentError(f"Maximal half width should be positive (got {max_half_width}).")
    if initial_runs < 2:
        raise InvalidArgumentError(f"At least 2 initial runs are needed (got {initial_runs}).")
    if batch_size < 1:
        raise InvalidArgumentError(f"Batch size should be at least 1 (got {batch_size}).")
    if max_runs is not None and max_runs < initial_runs:
        raise InvalidArgumentError(f"max_runs ({max_runs}) is smaller than initial_runs ({initial_runs}).")

    def capped(n: int, done: int) -> int:
        if max_runs is None:
            return n
        return max(0, min(n, max_runs - done))

    runs = run_fixed(trial, initial_runs, rng, stat)

    required = estimate_required_runs(stat, level, max_half_width, batch_size)
    logger.info("%d initial runs: mean=%.2f std=%.2f, estimated %d runs needed",
                runs, stat.mean, stat.standard_deviation, required)
    runs += run_fixed(trial, capped(max(0, required - initial_runs), runs), rng, stat)

    while stat.confidence_interval_half_width(level) >= max_half_width:
        if max_runs is not None and runs >= max_runs:
            logger.warning("Stopped after %d runs (max_runs); half width %.4f still >= %.4f",
                           runs, stat.confidence_interval_half_width(level), max_half_width)
            break
        runs += run_fixed(trial, capped(batch_size, runs), rng, stat)
        logger.debug("%d runs: half width %.4f", runs, stat.confidence_interval_half_width(level))

    logger.info("Simulation finished after %d runs", runs)
    return runs
