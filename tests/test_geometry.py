import numpy as np
import pytest

from ssedetect.core.errors import ConfigurationError
from ssedetect.core.geometry import (
    build_neighbor_graph,
    compute_distance_matrix,
    ellipsoid_distance,
    nearest_station,
    neighbor_lists,
)


def _flat_km(lat1, lon1, lat2, lon2):
    return 100.0 * np.hypot(lat2 - lat1, lon2 - lon1)


def test_ellipsoid_distance_one_tenth_degree_latitude():
    d = ellipsoid_distance(45.0, -123.0, 45.1, -123.0)
    # ~11.1 km on the WGS84 ellipsoid at mid latitudes
    assert 11.0 < d < 11.2


def test_distance_matrix_symmetric_with_infinite_diagonal():
    lats = [0.0, 0.1, 1.0]
    lons = [0.0, 0.0, 0.0]
    dm = compute_distance_matrix(lats, lons, distance_func=_flat_km)
    assert dm.shape == (3, 3)
    assert np.all(np.isinf(np.diag(dm)))
    assert np.allclose(dm, dm.T)
    assert dm[0, 1] == pytest.approx(10.0)
    assert dm[0, 2] == pytest.approx(100.0)


def test_neighbor_graph_threshold_and_self_exclusion():
    dm = np.array([[np.inf, 10.0, 100.0],
                   [10.0, np.inf, 55.0],
                   [100.0, 55.0, np.inf]])
    adj = build_neighbor_graph(dm, 55.0)
    assert adj[0, 1] and adj[1, 0]
    # the threshold is inclusive
    assert adj[1, 2]
    assert not adj[0, 2]
    assert not adj.diagonal().any()


def test_colocated_stations_are_not_neighbors():
    dm = np.array([[np.inf, 0.0], [0.0, np.inf]])
    adj = build_neighbor_graph(dm, 55.0)
    assert not adj.any()


def test_nonpositive_neighbor_distance_rejected():
    with pytest.raises(ConfigurationError):
        build_neighbor_graph(np.zeros((2, 2)), 0.0)


def test_neighbor_lists_and_nearest_station():
    dm = np.array([[np.inf, 30.0, 20.0],
                   [30.0, np.inf, 40.0],
                   [20.0, 40.0, np.inf]])
    adj = build_neighbor_graph(dm, 35.0)
    lists = neighbor_lists(adj)
    assert list(lists[0]) == [1, 2]
    assert list(lists[1]) == [0]
    assert nearest_station(dm, 0, [1, 2]) == 2
    assert nearest_station(dm, 1, [0, 2]) == 0
    assert nearest_station(dm, 1, [1]) is None
