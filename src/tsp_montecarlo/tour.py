"""Tours over a TspData instance: construction heuristics and 2-opt search.

Construction methods:
 - canonical   cities visited in increasing index order
 - random      Fisher-Yates shuffle driven by a seed
 - NND         nearest neighbor grown from both ends of a path

Improvement:
 - 2-Opt-Best  apply the best improving edge exchange until none is left

The cached tour length always equals the length of the cycle
tour[0] -> tour[1] -> ... -> tour[n-1] -> tour[0].
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .data import TspData
from .errors import InvalidArgumentError, OutOfRangeError

logger = logging.getLogger(__name__)

# max number of gain matrix cells evaluated at once by find_best_exchange
_BLOCK_CELLS = 1 << 20


class End(enum.Enum):
    S = 'S'
    T = 'T'


def choose_end(dist_from_s: int, dist_from_t: int, nearest_to_s: int, nearest_to_t: int) -> End:
    """Pick the end of the NND path to grow.

    The strictly closer candidate wins. On equal distances the T end is
    grown unless the S candidate has the smaller city index.
    """
    if dist_from_s < dist_from_t:
        return End.S
    if dist_from_s == dist_from_t and nearest_to_s < nearest_to_t:
        return End.S
    return End.T


@dataclass(frozen=True)
class Exchange:
    """2-opt move removing edges (tour[i], tour[i+1]) and (tour[j], tour[j+1 mod n])."""
    i: int
    j: int
    improvement: int


class Tour:
    """Solution of a TSP instance, a permutation of its city indices.

    Starts as the canonical tour. The data set is borrowed, never modified.
    """

    def __init__(self, data: TspData):
        n = data.size()
        if n < 3:
            raise InvalidArgumentError(f"A tour needs at least 3 cities (got {n}).")
        self._data = data
        self._tour = np.arange(n, dtype=np.int64)
        self._length = 0
        self.create_canonical_tour()

    # ------------------------------------------------------------------ access

    @property
    def length(self) -> int:
        return self._length

    def size(self) -> int:
        return int(self._tour.shape[0])

    def city_at(self, pos: int) -> int:
        """City index at 1-based position ``pos`` (1..n)."""
        if pos < 1 or pos > self.size():
            raise OutOfRangeError(f"Position {pos} out of bounds [1, {self.size()}].")
        return int(self._tour[pos - 1])

    def cities(self) -> List[int]:
        return self._tour.tolist()

    def __str__(self) -> str:
        return str(self._tour.tolist())

    def __repr__(self) -> str:
        return f"Tour(length={self._length}, cities={self._tour.tolist()})"

    def _cycle_length(self, tour: np.ndarray) -> int:
        return int(self._data.distances(tour, np.roll(tour, -1)).sum())

    def recompute_length(self) -> int:
        self._length = self._cycle_length(self._tour)
        return self._length

    # ------------------------------------------------------------ construction

    def create_canonical_tour(self) -> None:
        self._tour = np.arange(self.size(), dtype=np.int64)
        self.recompute_length()

    def create_random_tour(self, seed: int) -> None:
        rng = np.random.default_rng(seed)
        tour = self._tour.copy()
        for i in range(tour.shape[0] - 1, 0, -1):
            j = int(rng.integers(0, i + 1))
            tour[i], tour[j] = tour[j], tour[i]
        self._tour = tour
        self.recompute_length()

    def _nearest_unvisited(self, city: int, visited: np.ndarray) -> Tuple[int, int]:
        dist = self._data.distances(city, np.arange(visited.shape[0]))
        masked = np.where(visited, np.iinfo(np.int64).max, dist)
        nearest = int(np.argmin(masked))  # first minimum -> smallest index
        return nearest, int(dist[nearest])

    def create_nearest_neighbor_both_ends_tour(self, start: int) -> None:
        """Nearest Neighbor From Both Ends construction starting at ``start``.

        Cities added at the S end fill the tour forward from position 1,
        cities added at the T end fill it backward from position n-1.
        """
        n = self.size()
        if start < 0 or start >= n:
            raise OutOfRangeError(f"Starting city index {start} out of bounds [0, {n}).")

        visited = np.zeros(n, dtype=bool)
        visited[start] = True
        tour = np.empty(n, dtype=np.int64)
        tour[0] = start
        length = 0
        city_s = city_t = start
        s_index, t_index = 0, n

        for _ in range(n - 1):
            nearest_to_s, dist_from_s = self._nearest_unvisited(city_s, visited)
            nearest_to_t, dist_from_t = self._nearest_unvisited(city_t, visited)
            if choose_end(dist_from_s, dist_from_t, nearest_to_s, nearest_to_t) is End.S:
                s_index += 1
                tour[s_index] = nearest_to_s
                length += dist_from_s
                visited[nearest_to_s] = True
                city_s = nearest_to_s
            else:
                t_index -= 1
                tour[t_index] = nearest_to_t
                length += dist_from_t
                visited[nearest_to_t] = True
                city_t = nearest_to_t

        self._tour = tour
        self._length = length + self._data.distance(city_s, city_t)

    # ------------------------------------------------------------- 2-opt best

    def find_best_exchange(self) -> Optional[Exchange]:
        """Best strictly improving 2-opt exchange, or None at a local optimum.

        Pairs are scanned with i ascending, then j ascending from i + 2,
        skipping (0, n-1) whose edges are adjacent. Ties keep the first pair.
        """
        t = self._tour
        n = t.shape[0]
        nxt = np.roll(t, -1)
        edge = self._data.distances(t, nxt)
        cols = np.arange(n)
        best: Optional[Exchange] = None
        rows_per_block = max(1, _BLOCK_CELLS // n)

        for i0 in range(0, n - 2, rows_per_block):
            rows = np.arange(i0, min(i0 + rows_per_block, n - 2))
            gain = (edge[rows][:, None] + edge[None, :]
                    - self._data.distances(t[rows][:, None], t[None, :])
                    - self._data.distances(nxt[rows][:, None], nxt[None, :]))
            valid = cols[None, :] >= rows[:, None] + 2
            valid &= ~((rows[:, None] == 0) & (cols[None, :] == n - 1))
            gain = np.where(valid, gain, 0)
            k = int(np.argmax(gain))  # row-major -> first pair in scan order
            r, j = divmod(k, n)
            if gain[r, j] > (best.improvement if best else 0):
                best = Exchange(int(rows[r]), int(j), int(gain[r, j]))
        return best

    def apply_exchange(self, exchange: Exchange) -> int:
        """Reverse tour[i+1..j] and update the length; returns the realized gain."""
        n = self.size()
        i, j = exchange.i, exchange.j
        if i < 0 or j >= n or j < i + 2 or (i == 0 and j == n - 1):
            raise OutOfRangeError(f"Invalid exchange positions ({i}, {j}) for {n} cities.")
        t = self._tour
        a, b, c, d = int(t[i]), int(t[i + 1]), int(t[j]), int(t[(j + 1) % n])
        gain = (self._data.distance(a, b) + self._data.distance(c, d)
                - self._data.distance(a, c) - self._data.distance(b, d))
        t[i + 1:j + 1] = t[i + 1:j + 1][::-1].copy()
        self._length -= gain
        return gain

    def two_opt_best(self) -> int:
        """Run 2-Opt-Best to a local optimum; returns the number of exchanges."""
        exchanges = 0
        while True:
            exchange = self.find_best_exchange()
            if exchange is None:
                break
            self.apply_exchange(exchange)
            exchanges += 1
        logger.debug("2-opt best: %d exchanges, length %d", exchanges, self._length)
        return exchanges
