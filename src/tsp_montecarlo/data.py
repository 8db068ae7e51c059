"""City data sets and distance oracles.

Features:
 - Parse the plain city format: the number of cities followed by one
   ``<city number> <x> <y>`` record per city (whitespace separated)
 - Two interchangeable oracles over the same coordinates:
     * DistanceTable  - precomputed n x n table (O(n^2) memory)
     * LazyDistances  - coordinates only, distance recomputed on each call
 - build_oracle() prefers the table and falls back to lazy computation
   when the table cannot be allocated

Distances are Euclidean distances rounded half up. Both oracles take the
square root of the exact integer sum of squares, so they return identical
values for identical coordinates.
"""
from __future__ import annotations

import logging
import math
import os
from typing import IO, Optional, Tuple, Union

import numpy as np

from .errors import OutOfRangeError, TspParsingError

logger = logging.getLogger(__name__)

IndexLike = Union[int, np.ndarray]


class TspData:
    """Read-only access to the cities of a problem instance.

    Subclasses implement ``size``, ``_distance``, ``_distances`` and
    ``_coordinates``; index validation is done here.
    """

    def size(self) -> int:
        raise NotImplementedError

    def __len__(self) -> int:
        return self.size()

    def _check_index(self, i: int) -> None:
        if i < 0 or i >= self.size():
            raise OutOfRangeError(f"City index {i} out of bounds [0, {self.size()}).")

    def _check_indices(self, idx: np.ndarray) -> None:
        if idx.size and (idx.min() < 0 or idx.max() >= self.size()):
            raise OutOfRangeError(f"City index out of bounds [0, {self.size()}).")

    def distance(self, i: int, j: int) -> int:
        self._check_index(i)
        self._check_index(j)
        return self._distance(i, j)

    def distances(self, i: IndexLike, j: IndexLike) -> np.ndarray:
        """Element-wise distances between index arrays (numpy broadcasting rules).

        Equal to calling ``distance`` on every pair, as an int64 array.
        """
        i = np.asarray(i, dtype=np.int64)
        j = np.asarray(j, dtype=np.int64)
        self._check_indices(i)
        self._check_indices(j)
        return self._distances(i, j)

    def coordinates(self, i: int) -> Tuple[int, int]:
        self._check_index(i)
        return self._coordinates(i)

    def x(self, i: int) -> int:
        return self.coordinates(i)[0]

    def y(self, i: int) -> int:
        return self.coordinates(i)[1]

    def _distance(self, i: int, j: int) -> int:
        raise NotImplementedError

    def _distances(self, i: np.ndarray, j: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _coordinates(self, i: int) -> Tuple[int, int]:
        raise NotImplementedError


def rounded_distance(dx: int, dy: int) -> int:
    """Euclidean length of (dx, dy) rounded to the nearest integer, halves up."""
    return int(math.floor(math.sqrt(dx * dx + dy * dy) + 0.5))


def _rounded_distances(dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    sq = (dx * dx + dy * dy).astype(np.float64)
    return np.floor(np.sqrt(sq) + 0.5).astype(np.int64)


class _CityCoordinates(TspData):

    def __init__(self, xs, ys):
        self._xs = np.asarray(xs, dtype=np.int64)
        self._ys = np.asarray(ys, dtype=np.int64)
        if self._xs.shape != self._ys.shape or self._xs.ndim != 1:
            raise ValueError("x and y coordinates must be 1-D arrays of equal length")

    def size(self) -> int:
        return int(self._xs.shape[0])

    def _coordinates(self, i: int) -> Tuple[int, int]:
        return int(self._xs[i]), int(self._ys[i])


class LazyDistances(_CityCoordinates):
    """Oracle storing coordinates only; every distance is recomputed."""

    def _distance(self, i: int, j: int) -> int:
        return rounded_distance(int(self._xs[i] - self._xs[j]), int(self._ys[i] - self._ys[j]))

    def _distances(self, i: np.ndarray, j: np.ndarray) -> np.ndarray:
        return _rounded_distances(self._xs[i] - self._xs[j], self._ys[i] - self._ys[j])


class DistanceTable(_CityCoordinates):
    """Oracle backed by a full precomputed distance table.

    Raises MemoryError when the table cannot be allocated.
    """

    def __init__(self, xs, ys):
        super().__init__(xs, ys)
        n = self.size()
        self._table = np.empty((n, n), dtype=np.int64)
        # row by row to avoid n x n temporaries
        for i in range(n):
            self._table[i] = _rounded_distances(self._xs[i] - self._xs, self._ys[i] - self._ys)

    def _distance(self, i: int, j: int) -> int:
        return int(self._table[i, j])

    def _distances(self, i: np.ndarray, j: np.ndarray) -> np.ndarray:
        return self._table[i, j]


def build_oracle(xs, ys, dense: Optional[bool] = None,
                 max_table_cities: Optional[int] = None) -> TspData:
    """Create the oracle for a set of coordinates.

    dense=True forces the table, dense=False forces lazy computation and
    None picks the table unless it is too large (max_table_cities) or its
    allocation fails.
    """
    if dense is False:
        return LazyDistances(xs, ys)
    n = len(xs)
    if dense is None and max_table_cities is not None and n > max_table_cities:
        logger.info("%d cities exceed table limit %d; using lazy distances", n, max_table_cities)
        return LazyDistances(xs, ys)
    try:
        return DistanceTable(xs, ys)
    except MemoryError:
        if dense:
            raise
        logger.warning("Not enough memory for a %dx%d distance table; using lazy distances", n, n)
        return LazyDistances(xs, ys)


def _next_token(tokens, pos: int, what: str) -> str:
    if pos >= len(tokens):
        raise TspParsingError(f'Incomplete record: missing {what}; should follow format "<city number> <x> <y>".')
    return tokens[pos]


# keeps dx*dx + dy*dy within int64
MAX_COORDINATE = 2 ** 31 - 1


def _non_negative_int(token: str) -> int:
    try:
        value = int(token)
    except ValueError:
        raise TspParsingError(
            f"Invalid data value {token!r}. City numbers and coordinates should be non negative integers."
        ) from None
    if value < 0:
        raise TspParsingError(
            f"Invalid data value {token!r}. City numbers and coordinates should be non negative integers."
        )
    if value > MAX_COORDINATE:
        raise TspParsingError(f"Invalid data value {token!r}. Values should not exceed {MAX_COORDINATE}.")
    return value


def parse_tsp_data(stream: IO[str]) -> Tuple[np.ndarray, np.ndarray]:
    """Parse city data from a text stream into (xs, ys) coordinate arrays.

    Raises TspParsingError on malformed input; nothing is returned partially.
    """
    try:
        tokens = stream.read().split()
    except (OSError, UnicodeDecodeError) as e:
        raise TspParsingError(f"Invalid data. Unable to read data: {e}") from e
    if not tokens:
        raise TspParsingError("Invalid data. Empty data.")

    try:
        n = int(tokens[0])
    except ValueError:
        raise TspParsingError(
            f"Invalid data value {tokens[0]!r}. Invalid number of cities in first line of data file."
        ) from None
    if n < 3:
        raise TspParsingError(f"Invalid data value. Number of cities should be at least 3 (read {n}).")
    if len(tokens) - 1 < 3 * n:
        raise TspParsingError(
            f"Incomplete records: {n} cities announced but only {len(tokens) - 1} values follow; "
            f'each city should follow format "<city number> <x> <y>".'
        )

    xs = np.empty(n, dtype=np.int64)
    ys = np.empty(n, dtype=np.int64)
    pos = 1
    for expected in range(n):
        city = _non_negative_int(_next_token(tokens, pos, "city number"))
        if city != expected:
            raise TspParsingError(f"Invalid city number: {expected} expected, {city} read.")
        xs[expected] = _non_negative_int(_next_token(tokens, pos + 1, f"x coordinate of city {expected}"))
        ys[expected] = _non_negative_int(_next_token(tokens, pos + 2, f"y coordinate of city {expected}"))
        pos += 3
    if pos < len(tokens):
        logger.debug("Ignoring %d trailing tokens after %d cities", len(tokens) - pos, n)
    return xs, ys


def load_tsp_data(path: Union[str, os.PathLike], dense: Optional[bool] = None,
                  max_table_cities: Optional[int] = None) -> TspData:
    """Read a city data file and build its distance oracle."""
    with open(path, 'r') as f:
        xs, ys = parse_tsp_data(f)
    data = build_oracle(xs, ys, dense=dense, max_table_cities=max_table_cities)
    logger.info("Loaded %d cities from %s (%s)", data.size(), path, type(data).__name__)
    return data
