import numpy as np
import pytest

from ssedetect.core.catalog import Assignment
from ssedetect.core.errors import InputShapeError, SingularFitError
from ssedetect.core.velocity import estimate_displacements, fit_displacement

from synthetic import DAY0, make_stations


def test_exact_linear_trend():
    t = 737000.0 + np.arange(30)
    pos = 5.0 + 2.0 * (t - t[0])
    result = fit_displacement(t, pos, np.ones(30))
    assert result.velocity == pytest.approx(58.0, rel=1e-9)
    expected_sigma = np.sqrt(1.0 / np.sum((t - t.mean()) ** 2))
    assert result.sigma == pytest.approx(expected_sigma, rel=1e-9)


def test_displacement_is_trend_difference_not_data_difference():
    t = np.arange(11, dtype=float)
    pos = 1.0 * t
    pos[0] += 3.0
    pos[-1] -= 3.0
    result = fit_displacement(t, pos, np.ones(11))
    assert result.velocity != pytest.approx(pos[-1] - pos[0])
    assert result.velocity < 10.0


def test_weights_downplay_uncertain_observations():
    t = np.arange(20, dtype=float)
    pos = -1.5 * t
    pos[10] += 50.0
    unc = np.ones(20)
    unc[10] = 1e4
    result = fit_displacement(t, pos, unc)
    assert result.velocity == pytest.approx(-1.5 * 19, rel=1e-4)


def test_sigma_scales_with_uncertainty():
    t = np.arange(20, dtype=float)
    a = fit_displacement(t, t, np.full(20, 1.0))
    b = fit_displacement(t, t, np.full(20, 2.0))
    assert b.sigma == pytest.approx(2.0 * a.sigma)


def test_too_few_observations():
    with pytest.raises(InputShapeError):
        fit_displacement([1.0], [2.0], [1.0])
    # zero uncertainties are not usable observations
    with pytest.raises(InputShapeError):
        fit_displacement([1.0, 2.0, 3.0], [1.0, 2.0, 3.0], [1.0, 0.0, 0.0])


def test_single_date_is_singular():
    with pytest.raises(SingularFitError):
        fit_displacement([5.0, 5.0, 5.0], [1.0, 2.0, 3.0], [1.0, 1.0, 1.0])


def test_mismatched_shapes():
    with pytest.raises(InputShapeError):
        fit_displacement([1.0, 2.0], [1.0, 2.0, 3.0], [1.0, 1.0])


def test_estimate_displacements_per_component():
    nd = 100
    d = np.arange(nd)
    stations = make_stations(
        east=np.vstack([1000.0 - 2.0 * d, 1000.0 - 2.0 * d]),
        north=np.vstack([500.0 + d, 500.0 + d]),
    )
    assignments = {
        (0, 0): Assignment(station=0, event=0, start_date=DAY0 + 10, duration=30, donor=0),
        (1, 1): Assignment(station=1, event=1, start_date=DAY0 + 50, duration=11, donor=1),
    }
    out = estimate_displacements(stations, assignments, n_events=2)
    assert out['east_vel'][0, 0] == pytest.approx(-58.0)
    assert out['north_vel'][0, 0] == pytest.approx(29.0)
    assert out['east_vel'][1, 1] == pytest.approx(-20.0)
    assert out['east_sig'][0, 0] > 0
    # unassigned pairs stay absent, not zero
    assert np.isnan(out['east_vel'][0, 1])
    assert np.isnan(out['north_sig'][1, 0])


def test_no_estimate_when_observations_miss_event_span():
    nd = 100
    d = np.arange(nd)
    dates = DAY0 + d
    dates = np.where((d >= 40) & (d < 70), 0.0, dates)
    stations = make_stations(east=1000.0 - d, dates=dates[None, :])
    assignments = {(0, 0): Assignment(station=0, event=0, start_date=DAY0 + 45, duration=20, donor=0)}
    out = estimate_displacements(stations, assignments, n_events=1)
    for key in ('east_vel', 'east_sig', 'north_vel', 'north_sig'):
        assert np.isnan(out[key][0, 0])
