"""TSP trial used by the Monte Carlo simulation."""
from __future__ import annotations

import logging

import numpy as np

from .data import TspData
from .errors import InvalidArgumentError, OutOfRangeError
from .sampling import SampledData
from .tour import Tour

logger = logging.getLogger(__name__)


class TspExperiment:
    """Length of a heuristic tour through a random sample of the cities.

    Each call selects every city except the depot with probability
    ``sampling_prob`` (the depot is always kept), builds a tour with the NND
    heuristic from the depot, improves it with 2-Opt-Best unless
    ``improve`` is False, and returns its length.
    """

    def __init__(self, data: TspData, depot: int, sampling_prob: float, improve: bool = True):
        if depot < 0 or depot >= data.size():
            raise OutOfRangeError(f"Depot index {depot} out of bounds [0, {data.size()}).")
        if not 0.0 <= sampling_prob <= 1.0:
            raise InvalidArgumentError(f"Sampling probability should be between 0 and 1 (got {sampling_prob}).")
        self.data = data
        self.depot = depot
        self.sampling_prob = sampling_prob
        self.improve = improve

    def __call__(self, rng: np.random.Generator) -> float:
        sample = SampledData(self.data, self.depot, self.sampling_prob, rng)
        n = sample.size()
        if n < 3:
            # depot alone, or depot and one city visited back and forth
            return float(2 * sample.distance(0, n - 1))
        tour = Tour(sample)
        # sample city 0 is the depot
        tour.create_nearest_neighbor_both_ends_tour(0)
        constructed = tour.length
        exchanges = tour.two_opt_best() if self.improve else 0
        logger.debug("Trial on %d cities: NND %d -> %d (%d exchanges)",
                     n, constructed, tour.length, exchanges)
        return float(tour.length)

    def __repr__(self) -> str:
        return (f"TspExperiment(cities={self.data.size()}, depot={self.depot}, "
                f"sampling_prob={self.sampling_prob}, improve={self.improve})")
