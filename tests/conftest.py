import numpy as np
import pytest

from tsp_montecarlo.data import DistanceTable, LazyDistances

SQUARE = [(0, 0), (0, 10), (10, 10), (10, 0)]


def split(coords):
    coords = np.asarray(coords, dtype=np.int64)
    return coords[:, 0], coords[:, 1]


def as_text(coords) -> str:
    lines = [str(len(coords))]
    lines += [f"{i} {x} {y}" for i, (x, y) in enumerate(coords)]
    return "\n".join(lines) + "\n"


@pytest.fixture
def square():
    return DistanceTable(*split(SQUARE))


@pytest.fixture
def random_coords():
    return np.random.default_rng(7).integers(0, 1000, size=(40, 2))


@pytest.fixture
def dense_data(random_coords):
    return DistanceTable(*split(random_coords))


@pytest.fixture
def lazy_data(random_coords):
    return LazyDistances(*split(random_coords))


@pytest.fixture
def data_file(tmp_path, random_coords):
    path = tmp_path / "cities.dat"
    path.write_text(as_text(random_coords[:15].tolist()))
    return str(path)
