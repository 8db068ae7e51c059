"""Random selection of cities around a depot."""
from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from .data import TspData
from .errors import InvalidArgumentError, OutOfRangeError

logger = logging.getLogger(__name__)


class SampledData(TspData):
    """Random subset of a data set, always containing the depot.

    Sample city 0 is the depot; the other selected cities follow in
    increasing order of their index in the full data set. Each non-depot
    city is drawn independently with probability ``sampling_prob``, using
    one ``rng.random()`` draw per city in increasing index order.
    """

    def __init__(self, data: TspData, depot: int, sampling_prob: float, rng: np.random.Generator):
        n = data.size()
        if depot < 0 or depot >= n:
            raise OutOfRangeError(f"Depot index {depot} out of bounds [0, {n}).")
        if not 0.0 <= sampling_prob <= 1.0:
            raise InvalidArgumentError(
                f"Sampling probability should be between 0 and 1 (got {sampling_prob})."
            )
        self._data = data
        others = np.delete(np.arange(n, dtype=np.int64), depot)
        draws = rng.random(others.shape[0])
        self._id_in_full_data = np.concatenate(([depot], others[draws < sampling_prob]))
        logger.debug("Sampled %d of %d cities (p=%.3f)", self.size(), n, sampling_prob)

    def size(self) -> int:
        return int(self._id_in_full_data.shape[0])

    def base_index(self, i: int) -> int:
        """Index in the full data set of sample city ``i``."""
        self._check_index(i)
        return int(self._id_in_full_data[i])

    def base_indices(self) -> np.ndarray:
        return self._id_in_full_data.copy()

    def _distance(self, i: int, j: int) -> int:
        return self._data.distance(int(self._id_in_full_data[i]), int(self._id_in_full_data[j]))

    def _distances(self, i: np.ndarray, j: np.ndarray) -> np.ndarray:
        return self._data.distances(self._id_in_full_data[i], self._id_in_full_data[j])

    def _coordinates(self, i: int) -> Tuple[int, int]:
        return self._data.coordinates(int(self._id_in_full_data[i]))
