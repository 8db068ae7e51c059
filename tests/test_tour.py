import numpy as np
import pytest

from tsp_montecarlo.data import DistanceTable, LazyDistances
from tsp_montecarlo.errors import InvalidArgumentError, OutOfRangeError
from tsp_montecarlo.tour import End, Exchange, Tour, choose_end

from conftest import split


def brute_force_length(data, cities):
    n = len(cities)
    return sum(data.distance(cities[k], cities[(k + 1) % n]) for k in range(n))


def brute_force_best_exchange(data, cities):
    """Best exchange over every pair of non-adjacent tour edges, scanned in (i, j) order."""
    n = len(cities)
    best = None
    for i in range(n):
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue
            a, b, c, d = cities[i], cities[i + 1], cities[j], cities[(j + 1) % n]
            gain = (data.distance(a, b) + data.distance(c, d)
                    - data.distance(a, c) - data.distance(b, d))
            if gain > (best.improvement if best else 0):
                best = Exchange(i, j, gain)
    return best


def line(xs):
    xs = np.asarray(xs)
    return LazyDistances(xs, np.zeros_like(xs))


@pytest.mark.parametrize("args, expected", [
    ((1, 2, 5, 3), End.S),
    ((2, 1, 3, 5), End.T),
    ((2, 2, 3, 5), End.S),
    ((2, 2, 5, 3), End.T),
    ((2, 2, 4, 4), End.T),
    ((0, 7, 9, 1), End.S),
])
def test_choose_end(args, expected):
    assert choose_end(*args) is expected


def test_square_canonical_and_two_opt(square):
    tour = Tour(square)
    assert tour.length == 40
    assert tour.cities() == [0, 1, 2, 3]
    assert tour.two_opt_best() == 0
    assert tour.length == 40


def test_two_opt_uncrosses_square():
    data = DistanceTable(*split([(0, 0), (10, 10), (0, 10), (10, 0)]))
    tour = Tour(data)
    assert tour.length == 48
    assert tour.find_best_exchange() == Exchange(0, 2, 8)
    assert tour.two_opt_best() == 1
    assert tour.cities() == [0, 2, 1, 3]
    assert tour.length == 40


def test_last_edge_pair_is_evaluated():
    # only crossing is between the edges leaving positions n-3 and n-1
    data = DistanceTable(*split([(0, 0), (0, 10), (10, 20), (20, 0), (20, 10)]))
    tour = Tour(data)
    assert tour.length == 78
    assert tour.find_best_exchange() == Exchange(2, 4, 10)
    assert tour.two_opt_best() == 1
    assert tour.cities() == [0, 1, 2, 4, 3]
    assert tour.length == 68


def test_needs_three_cities():
    with pytest.raises(InvalidArgumentError):
        Tour(line([0, 5]))


def test_canonical_length_is_brute_force_sum(dense_data):
    tour = Tour(dense_data)
    assert tour.cities() == list(range(dense_data.size()))
    assert tour.length == brute_force_length(dense_data, tour.cities())


def test_random_tour_reproducible(dense_data):
    first, second = Tour(dense_data), Tour(dense_data)
    first.create_random_tour(42)
    second.create_random_tour(42)
    assert first.cities() == second.cities()
    assert sorted(first.cities()) == list(range(dense_data.size()))
    assert first.length == brute_force_length(dense_data, first.cities())

    other = Tour(dense_data)
    other.create_random_tour(43)
    assert other.cities() != first.cities()


def test_nnd_on_line():
    data = line([10, 12, 7, 15, 3])
    tour = Tour(data)
    tour.create_nearest_neighbor_both_ends_tour(0)
    assert tour.cities() == [0, 2, 4, 3, 1]
    assert tour.length == 24


def test_nnd_equal_candidates_grow_t_end(square):
    tour = Tour(square)
    # from city 0, cities 1 and 3 are both at 10; city 1 is nearest to both ends
    tour.create_nearest_neighbor_both_ends_tour(0)
    assert tour.city_at(4) == 1
    assert tour.length == 40


@pytest.mark.parametrize("start", [0, 7, 39])
def test_nnd_is_permutation(dense_data, start):
    tour = Tour(dense_data)
    tour.create_nearest_neighbor_both_ends_tour(start)
    assert sorted(tour.cities()) == list(range(dense_data.size()))
    assert tour.city_at(1) == start
    assert tour.length == brute_force_length(dense_data, tour.cities())


def test_nnd_start_out_of_range(dense_data):
    tour = Tour(dense_data)
    tour.create_random_tour(1)
    before, length = tour.cities(), tour.length
    for start in (-1, dense_data.size()):
        with pytest.raises(OutOfRangeError):
            tour.create_nearest_neighbor_both_ends_tour(start)
    assert tour.cities() == before
    assert tour.length == length


def test_two_opt_reaches_brute_force_local_optimum(dense_data):
    tour = Tour(dense_data)
    tour.create_random_tour(5)
    start = tour.length
    tour.two_opt_best()
    assert tour.length <= start
    assert tour.length == brute_force_length(dense_data, tour.cities())
    assert brute_force_best_exchange(dense_data, tour.cities()) is None


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_best_exchange_matches_brute_force(dense_data, seed):
    tour = Tour(dense_data)
    tour.create_random_tour(seed)
    assert tour.find_best_exchange() == brute_force_best_exchange(dense_data, tour.cities())


def test_best_exchange_matches_brute_force_in_small_blocks(monkeypatch, dense_data):
    from tsp_montecarlo import tour as tour_module
    monkeypatch.setattr(tour_module, '_BLOCK_CELLS', 100)
    tour = Tour(dense_data)
    tour.create_random_tour(11)
    assert tour.find_best_exchange() == brute_force_best_exchange(dense_data, tour.cities())


def test_two_opt_never_increases_and_is_idempotent(dense_data):
    tour = Tour(dense_data)
    tour.create_nearest_neighbor_both_ends_tour(0)
    constructed = tour.length
    tour.two_opt_best()
    improved, cities = tour.length, tour.cities()
    assert improved <= constructed
    assert tour.two_opt_best() == 0
    assert tour.length == improved
    assert tour.cities() == cities


def test_apply_exchange_keeps_length_consistent(dense_data):
    tour = Tour(dense_data)
    gain = tour.apply_exchange(Exchange(3, 10, 0))
    assert tour.cities()[4:11] == list(range(10, 3, -1))
    assert tour.length == brute_force_length(dense_data, tour.cities())
    assert tour.length == brute_force_length(dense_data, list(range(40))) - gain


@pytest.mark.parametrize("i, j", [(0, 39), (3, 4), (-1, 5), (5, 40)])
def test_apply_exchange_rejects_invalid_pairs(dense_data, i, j):
    tour = Tour(dense_data)
    with pytest.raises(OutOfRangeError):
        tour.apply_exchange(Exchange(i, j, 1))
    assert tour.cities() == list(range(40))


def test_lazy_and_table_give_same_tours(dense_data, lazy_data):
    tours = []
    for data in (dense_data, lazy_data):
        tour = Tour(data)
        tour.create_nearest_neighbor_both_ends_tour(3)
        tour.two_opt_best()
        tours.append((tour.cities(), tour.length))
    assert tours[0] == tours[1]


def test_city_at_and_str(square):
    tour = Tour(square)
    assert tour.city_at(1) == 0
    assert tour.city_at(4) == 3
    for pos in (0, 5):
        with pytest.raises(OutOfRangeError):
            tour.city_at(pos)
    assert str(tour) == "[0, 1, 2, 3]"
