"""
Daily slope scores.

For each station-day the score is the least-squares slope of position
against date over the valid observations in a moving window of
``2 * window_half_width + 1`` columns centered on that day.
Window sums are accumulated with a boxcar convolution so the whole
matrix is scored in a few array passes.
"""

import logging

import numpy as np
from scipy.ndimage import convolve1d

from .errors import ConfigurationError, InputShapeError

logger = logging.getLogger(__name__)


def _window_sum(data, window_half_width):
    kernel = np.ones(2 * window_half_width + 1)
    return convolve1d(data, kernel, axis=1, mode='constant', cval=0.0)


def daily_slopes(dates, positions, valid, window_half_width, min_points=None):
    """
    Moving-window slope of every station-day.

    Parameters
    ----------
    dates : ndarray
        ns x nd day numbers
    positions : ndarray
        ns x nd positions
    valid : ndarray of bool
        ns x nd observation mask
    window_half_width : int
        Half-width of the window in days
    min_points : int, optional
        Fewest observations for a defined slope (default window_half_width + 1)

    Returns
    -------
    score : ndarray
        ns x nd slopes in position units per day; NaN where undefined
    """
    dates = np.atleast_2d(np.asarray(dates, dtype=float))
    positions = np.atleast_2d(np.asarray(positions, dtype=float))
    valid = np.atleast_2d(np.asarray(valid, dtype=bool))
    if not (dates.shape == positions.shape == valid.shape):
        raise InputShapeError(
            f"dates {dates.shape}, positions {positions.shape} and mask {valid.shape} differ in shape")
    if window_half_width <= 0:
        raise ConfigurationError(f"window_half_width must be positive, got {window_half_width}")
    if min_points is None:
        min_points = window_half_width + 1
    min_points = max(int(min_points), 2)

    w = valid.astype(float)
    # shift dates per station to keep the sums small
    ref = np.where(valid, dates, np.inf).min(axis=1, keepdims=True)
    ref[~np.isfinite(ref)] = 0.0
    t = np.where(valid, dates - ref, 0.0)
    x = np.where(valid, positions, 0.0)

    n = _window_sum(w, window_half_width)
    st = _window_sum(t, window_half_width)
    sx = _window_sum(x, window_half_width)
    stt = _window_sum(t * t, window_half_width)
    stx = _window_sum(t * x, window_half_width)

    denom = n * stt - st * st
    score = np.full(dates.shape, np.nan)
    ok = (n >= min_points) & (denom > 1e-9)
    score[ok] = (n[ok] * stx[ok] - st[ok] * sx[ok]) / denom[ok]
    return score


class SlopeScoreCache:
    """
    Slope-score matrices keyed by integer window half-width.

    The cache is owned by the caller and may be shared by detection runs on
    the same station arrays.

    Examples
    --------
    >>> cache = SlopeScoreCache()
    >>> east, north = cache.get(stations, 15)   # computed
    >>> east, north = cache.get(stations, 15)   # reused
    """

    def __init__(self):
        self._scores = {}

    def __contains__(self, window_half_width):
        return window_half_width in self._scores

    def __len__(self):
        return len(self._scores)

    @staticmethod
    def _key(window_half_width):
        if int(window_half_width) != window_half_width or window_half_width <= 0:
            raise ConfigurationError(
                f"window_half_width must be a positive integer, got {window_half_width!r}")
        return int(window_half_width)

    def put(self, window_half_width, east, north):
        self._scores[self._key(window_half_width)] = (np.asarray(east, dtype=float),
                                                      np.asarray(north, dtype=float))

    def get(self, stations, window_half_width):
        """Return (east, north) scores, computing them on first use."""
        key = self._key(window_half_width)
        if key not in self._scores:
            logger.info(f"Computing daily slopes for window half-width {key}")
            valid = stations.valid
            east = daily_slopes(stations.dates, stations.east, valid, key)
            north = daily_slopes(stations.dates, stations.north, valid, key)
            self._scores[key] = (east, north)
        else:
            logger.debug(f"Reusing cached daily slopes for window half-width {key}")
        return self._scores[key]

    def clear(self):
        self._scores.clear()
