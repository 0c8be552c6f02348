import numpy as np

from ssedetect.core.neighbors import filter_events_by_neighbors, neighbor_status
from ssedetect.core.segmentation import StationEvent


def _event(station, start, length=20):
    return StationEvent(station=station, start=start, end=start + length - 1,
                        start_date=float(start), end_date=float(start + length - 1))


def _full_graph(n):
    adj = np.ones((n, n), dtype=bool)
    np.fill_diagonal(adj, False)
    return adj


def test_station_without_neighbors_is_unfiltered():
    events = [[_event(0, 100), _event(0, 300)], [_event(1, 500)]]
    adj = np.zeros((2, 2), dtype=bool)
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0, 0.0], tolerance=5)
    assert filtered == events


def test_events_need_corroboration_within_tolerance():
    events = [[_event(0, 100), _event(0, 300)], [_event(1, 103)]]
    adj = _full_graph(2)
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0, 0.0], tolerance=5)
    assert [ev.start for ev in filtered[0]] == [100]
    assert [ev.start for ev in filtered[1]] == [103]


def test_tolerance_is_inclusive():
    events = [[_event(0, 100)], [_event(1, 105)], [_event(2, 106)]]
    adj = np.zeros((3, 3), dtype=bool)
    adj[0, 1] = adj[1, 0] = True
    adj[0, 2] = adj[2, 0] = True
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0] * 3, tolerance=5)
    assert len(filtered[0]) == 1
    # station 2 only neighbors station 0, whose start is 6 days away
    assert filtered[2] == []


def test_events_before_neighbors_came_online_are_exempt():
    events = [[_event(0, 50), _event(0, 200)], []]
    adj = _full_graph(2)
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0, 80.0], tolerance=5)
    assert [ev.start for ev in filtered[0]] == [50]


def test_fraction_of_neighbors_required():
    n = 21
    adj = np.zeros((n, n), dtype=bool)
    adj[0, 1:] = adj[1:, 0] = True
    events = [[_event(0, 100)]] + [[] for _ in range(n - 1)]
    # 20 neighbors: two corroborating stations are needed
    events[1] = [_event(1, 101)]
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0] * n, tolerance=5)
    assert filtered[0] == []

    events[2] = [_event(2, 98)]
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0] * n, tolerance=5)
    assert len(filtered[0]) == 1


def test_filter_does_not_depend_on_station_order():
    # station 1's event is uncorroborated, but it still corroborates station 0
    events = [[_event(0, 100)], [_event(1, 102), _event(1, 400)], [_event(2, 101)]]
    adj = np.zeros((3, 3), dtype=bool)
    adj[0, 1] = adj[1, 0] = True
    adj[1, 2] = adj[2, 1] = True
    filtered = filter_events_by_neighbors(events, adj, first_day=[0.0] * 3, tolerance=5)
    assert len(filtered[0]) == 1
    assert [ev.start for ev in filtered[1]] == [102]


def test_neighbor_status_flags():
    adj = np.zeros((3, 3), dtype=bool)
    adj[0, 1] = adj[1, 0] = True
    isolated, first = neighbor_status(adj, first_day=[10.0, 20.0, 5.0])
    assert list(isolated) == [False, False, True]
    assert list(first) == [True, False, False]
