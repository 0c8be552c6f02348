"""
Event displacement estimation.

Fits a weighted linear trend to the positions observed during each felt
event and reports the trend-line displacement between the first and last
observed day, with the 1-sigma uncertainty of the slope.

Model
-----
For observation k at date t_k with position p_k and uncertainty s_k:

    p_k = v * (t_k - t_0) + c

with weights w_k = 1 / s_k**2. The model covariance is (X^T W X)^-1 where
X = [t - t_0, 1]. Shifting dates by the first observed date t_0 leaves the
slope and its variance unchanged while keeping the normal matrix well
conditioned for large day numbers.
"""

import logging
import warnings
from collections import namedtuple

import numpy as np
from scipy import linalg

from .errors import InputShapeError, SingularFitError

logger = logging.getLogger(__name__)

Displacement = namedtuple('Displacement', ['velocity', 'sigma'])

COMPONENTS = (('east', 'east_unc'), ('north', 'north_unc'))


def fit_displacement(dates, positions, uncertainties, max_condition=1e12):
    """
    Weighted least-squares displacement over a set of observations.

    Parameters
    ----------
    dates : array-like
        Observation dates (days)
    positions : array-like
        Positions on those dates
    uncertainties : array-like
        1-sigma position uncertainties; non-positive values are ignored
    max_condition : float
        Largest accepted condition number of the normal matrix

    Returns
    -------
    result : Displacement
        ``velocity`` is the fitted displacement between the first and last
        observation; ``sigma`` is the square root of the slope variance
    """
    dates = np.asarray(dates, dtype=float)
    positions = np.asarray(positions, dtype=float)
    uncertainties = np.asarray(uncertainties, dtype=float)
    if not (dates.shape == positions.shape == uncertainties.shape):
        raise InputShapeError(
            f"dates {dates.shape}, positions {positions.shape} and uncertainties "
            f"{uncertainties.shape} differ in shape")

    use = np.isfinite(dates) & np.isfinite(positions) & np.isfinite(uncertainties) & (uncertainties > 0)
    dates, positions, uncertainties = dates[use], positions[use], uncertainties[use]
    if dates.size < 2:
        raise InputShapeError(f"need at least 2 observations for a linear fit, got {dates.size}")

    order = np.argsort(dates, kind='stable')
    dates, positions, uncertainties = dates[order], positions[order], uncertainties[order]

    X = np.column_stack([dates - dates[0], np.ones(dates.size)])
    w = 1.0 / uncertainties ** 2
    normal = X.T @ (w[:, None] * X)

    cond = np.linalg.cond(normal)
    if not np.isfinite(cond) or cond > max_condition:
        raise SingularFitError(f"normal matrix condition number {cond:.3g} exceeds {max_condition:.3g}")

    with warnings.catch_warnings():
        warnings.simplefilter('error', linalg.LinAlgWarning)
        try:
            cov = linalg.solve(normal, np.eye(2), assume_a='pos')
        except (linalg.LinAlgError, linalg.LinAlgWarning) as e:
            raise SingularFitError(str(e)) from e

    model = cov @ (X.T @ (w * positions))
    ends = X[[0, -1]] @ model
    velocity = float(ends[1] - ends[0])
    sigma = float(np.sqrt(cov[0, 0]))
    return Displacement(velocity, sigma)


def estimate_displacements(stations, assignments, n_events, max_condition=1e12):
    """
    Displacements of every assigned (station, event) pair.

    Parameters
    ----------
    stations : StationArrays
        Station positions and uncertainties
    assignments : dict
        (station, event) -> Assignment
    n_events : int
        Number of catalog events
    max_condition : float
        See fit_displacement

    Returns
    -------
    result : dict
        ``east_vel``, ``east_sig``, ``north_vel``, ``north_sig``: ns x n_events
        matrices, NaN where no estimate exists
    """
    shape = (stations.n_stations, n_events)
    out = {key: np.full(shape, np.nan) for key in ('east_vel', 'east_sig', 'north_vel', 'north_sig')}
    valid = stations.valid
    n_failed = 0

    for (i, j), a in sorted(assignments.items()):
        use = valid[i] & a.span_mask(stations.dates[i])
        for pos_name, unc_name in COMPONENTS:
            try:
                result = fit_displacement(stations.dates[i, use],
                                          getattr(stations, pos_name)[i, use],
                                          getattr(stations, unc_name)[i, use],
                                          max_condition=max_condition)
            except (InputShapeError, SingularFitError) as e:
                logger.warning(f"{stations.names[i]}: no {pos_name} displacement for event {j}: {e}")
                n_failed += 1
                continue
            out[f'{pos_name}_vel'][i, j] = result.velocity
            out[f'{pos_name}_sig'][i, j] = result.sigma

    logger.info(f"Displacements: {len(assignments)} station-events, {n_failed} component fits failed")
    return out
