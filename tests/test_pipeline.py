import numpy as np
import pytest

from ssedetect.core.catalog import NEIGHBOR, OWN
from ssedetect.core.config import DetectionConfig
from ssedetect.core.errors import ConfigurationError, InputShapeError
from ssedetect.core.pipeline import detect_sse
from ssedetect.core.slopes import SlopeScoreCache

from synthetic import DAY0, excursion_scores, make_stations, ramp_network, two_station_scenario


def test_two_station_event():
    stations, scores, distances, config = two_station_scenario()
    catalog = detect_sse(stations, config, scores=scores, distances=distances)

    assert catalog.n_events == 1
    spike = catalog.spikes[0]
    assert (spike.begin, spike.end, spike.day) == (103, 129, 116)
    assert spike.stations == (0, 1)

    # station 0 started before the network event began
    assert list(catalog.felt[:, 0]) == [False, True]
    assert list(catalog.neighbor_felt[:, 0]) == [True, False]
    assert catalog.start_dates[1, 0] == DAY0 + 103
    assert catalog.durations[1, 0] == 30

    assert catalog.east_vel[1, 0] == pytest.approx(-58.0)
    assert catalog.north_vel[1, 0] == pytest.approx(29.0)
    assert catalog.east_sig[1, 0] > 0
    assert np.isnan(catalog.east_vel[0, 0])
    assert catalog.event_days[1].sum() == 30
    assert catalog.event_days[0].sum() == 0


def test_two_station_event_reverse_neighbor():
    stations, scores, distances, config = two_station_scenario(reverse_neighbor=True)
    catalog = detect_sse(stations, config, scores=scores, distances=distances)

    assert catalog.felt[:, 0].all()
    a = catalog.assignments[(0, 0)]
    assert (a.source, a.donor, a.start_date, a.duration) == (NEIGHBOR, 1, DAY0 + 103, 30)
    assert catalog.assignments[(1, 0)].source == OWN
    assert catalog.east_vel[0, 0] == pytest.approx(-58.0)
    assert np.all(catalog.event_days[0, 103:133] == 2)


def test_ramp_detected_from_positions():
    # slopes reach the full ramp rate only where the whole window lies inside
    # the ramp, so the detected span is the 150-190 ramp shortened by the
    # half-width at each end and the recovered displacement is 30 days of it
    stations = ramp_network()
    config = DetectionConfig(window_half_width=5, prop_thresh=0.1, min_stations=3)
    catalog = detect_sse(stations, config)

    assert not catalog.isolated.any()
    assert catalog.n_events == 1
    for i in range(3):
        assert len(catalog.events[i]) == 1
        ev = catalog.events[i][0]
        assert ev.start_date == DAY0 + 155
        assert ev.duration == 31
    assert catalog.felt[:, 0].all()
    assert np.allclose(catalog.east_vel[:, 0], -60.0)
    assert np.allclose(catalog.north_vel[:, 0], 0.0)
    assert catalog.date_range.tolist() == [[DAY0 + 155, DAY0 + 185]]


def test_inputs_are_not_modified():
    stations, scores, distances, config = two_station_scenario()
    before = (stations.east.copy(), scores[0].copy(), distances.copy())
    detect_sse(stations, config, scores=scores, distances=distances)
    assert np.array_equal(stations.east, before[0])
    assert np.array_equal(scores[0], before[1])
    assert np.array_equal(distances, before[2])


def test_isolated_stations_keep_uncorroborated_events():
    nd = 300
    stations = make_stations(east=np.full((2, nd), 10.0), lat=[0.0, 5.0])
    scores = (excursion_scores(nd, [(100, 30), (200, 30)]), np.zeros((2, nd)))
    config = DetectionConfig(window_half_width=5, prop_thresh=0.05, min_stations=1)
    catalog = detect_sse(stations, config, scores=scores)

    assert catalog.isolated.all()
    assert [len(ev) for ev in catalog.events] == [1, 1]
    # a single active station never forms a network event
    assert catalog.n_events == 0
    assert catalog.felt.shape == (2, 0)
    assert catalog.east_vel.shape == (2, 0)


def test_station_without_negative_scores_is_degenerate():
    nd = 300
    stations, scores, distances, config = two_station_scenario(nd)
    east = np.vstack([scores[0], np.full(nd, 0.5)])
    stations = make_stations(east=np.vstack([stations.east, np.full(nd, 7.0)]))
    distances = np.array([[0.0, 10.0, 900.0], [10.0, 0.0, 900.0], [900.0, 900.0, 0.0]])
    catalog = detect_sse(stations, config, scores=(east, np.zeros((3, nd))), distances=distances)

    assert catalog.degenerate_stations == [2]
    assert np.isnan(catalog.thresholds[2])
    assert not catalog.anomalous[2].any()
    assert catalog.events[2] == []
    assert catalog.n_events == 1


def test_invalid_config_fails_before_work():
    stations, scores, distances, _ = two_station_scenario()
    cache = SlopeScoreCache()
    with pytest.raises(ConfigurationError):
        detect_sse(stations, DetectionConfig(window_half_width=5, prop_thresh=1.5), cache=cache)
    with pytest.raises(ConfigurationError):
        detect_sse(stations, DetectionConfig(window_half_width=0, prop_thresh=0.1), cache=cache)
    assert len(cache) == 0


def test_shape_mismatch():
    stations, scores, distances, config = two_station_scenario()
    with pytest.raises(InputShapeError):
        detect_sse(stations, config, scores=(scores[0][:, :-1], scores[1]), distances=distances)
    with pytest.raises(InputShapeError):
        detect_sse(stations, config, scores=scores, distances=np.zeros((3, 3)))


def test_cache_shared_between_runs():
    stations = ramp_network()
    cache = SlopeScoreCache()
    first = detect_sse(stations, DetectionConfig(window_half_width=5, prop_thresh=0.1,
                                                 min_stations=3), cache=cache)
    second = detect_sse(stations, DetectionConfig(window_half_width=5, prop_thresh=0.2,
                                                  min_stations=3), cache=cache)
    assert len(cache) == 1
    assert np.array_equal(first.score_east, second.score_east, equal_nan=True)


def test_score_sign_flips_detection():
    stations, scores, distances, config = two_station_scenario()
    config.score_sign = -1.0
    flipped = (-scores[0], scores[1])
    catalog = detect_sse(stations, config, scores=flipped, distances=distances)
    assert catalog.n_events == 1
    assert np.array_equal(catalog.score, scores[0])


def test_tables():
    stations, scores, distances, config = two_station_scenario()
    catalog = detect_sse(stations, config, scores=scores, distances=distances)

    events = catalog.events_table()
    assert list(events['stations']) == ['S01 S02']
    assert events.loc[0, 'day'] == DAY0 + 116

    disp = catalog.displacement_table()
    assert list(disp['station']) == ['S02']
    assert disp.loc[0, 'donor'] == 'S02'
    assert disp.loc[0, 'east_vel'] == pytest.approx(-58.0)


def test_injected_displacement_recovered_over_flagged_span():
    nd, start, end = 365, 150, 190
    stations = ramp_network(nd, start, end)
    scores = (excursion_scores(nd, [(start, end - start + 1)] * 3), np.zeros((3, nd)))
    config = DetectionConfig(window_half_width=5, prop_thresh=0.05, min_stations=3)
    catalog = detect_sse(stations, config, scores=scores)

    assert catalog.n_events == 1
    assert catalog.felt[:, 0].all()
    assert np.all(catalog.start_dates[:, 0] == DAY0 + start)
    assert np.all(catalog.durations[:, 0] == end - start + 1)
    # the ramp drops 2 units/day for 40 days
    assert np.allclose(catalog.east_vel[:, 0], -80.0)


def test_network_wide_gap_on_event_day():
    stations, scores, distances, config = two_station_scenario()
    stations.dates[:, 116] = 0.0
    catalog = detect_sse(stations, config, scores=scores, distances=distances)

    assert catalog.fulldate[116] == DAY0 + 116
    assert catalog.n_events == 1
    assert catalog.spikes[0].day == 116
    assert list(catalog.felt[:, 0]) == [False, True]
    assert catalog.east_vel[1, 0] == pytest.approx(-58.0)
    assert catalog.event_days[1].sum() == 29


def test_network_wide_gap_on_event_start():
    stations, scores, distances, config = two_station_scenario()
    stations.dates[:, 103] = 0.0
    catalog = detect_sse(stations, config, scores=scores, distances=distances)

    ev = catalog.events[1][0]
    assert (ev.start_date, ev.duration) == (DAY0 + 103, 30)
    # station 0's event is still corroborated by station 1
    assert len(catalog.events[0]) == 1
    assert catalog.assignments[(1, 0)].start_date == DAY0 + 103
    # first observed day of the event is 104
    assert catalog.east_vel[1, 0] == pytest.approx(-56.0)
