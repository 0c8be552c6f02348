"""
Per-station detection thresholds.

Each station gets its own threshold: the slope score below which a chosen
proportion of that station's negative scores lie.
"""

import logging

import numpy as np

from .errors import DegenerateThresholdError

logger = logging.getLogger(__name__)


def estimate_station_threshold(scores, prop_thresh, bins=100):
    """
    Threshold for a single station.

    Parameters
    ----------
    scores : array-like
        Slope scores of one station (NaN entries are ignored)
    prop_thresh : float
        Proportion of negative scores, counted from the most negative end,
        that must lie at or below the threshold bin
    bins : int
        Number of histogram bins

    Returns
    -------
    threshold : float
        Center of the first bin, walking up from the most negative score,
        whose cumulative normalized count exceeds ``prop_thresh``
    """
    scores = np.asarray(scores, dtype=float)
    negative = scores[np.isfinite(scores) & (scores < 0)]
    if negative.size == 0:
        raise DegenerateThresholdError("no negative slope scores")

    counts, edges = np.histogram(negative, bins=bins)
    centers = 0.5 * (edges[:-1] + edges[1:])
    cumulative = np.cumsum(counts) / counts.sum()

    above = np.flatnonzero(cumulative > prop_thresh)
    if above.size == 0:
        raise DegenerateThresholdError(
            f"cumulative score fraction never exceeds {prop_thresh}")
    return float(centers[above[0]])


def estimate_thresholds(score, prop_thresh, bins=100, names=None):
    """
    Thresholds for every station.

    Parameters
    ----------
    score : ndarray
        ns x nd slope-score matrix (sign already applied)
    prop_thresh : float
        See estimate_station_threshold
    bins : int
        Number of histogram bins
    names : list of str, optional
        Station names (for logging)

    Returns
    -------
    thresholds : ndarray
        One threshold per station, NaN for stations without negative scores
    degenerate : list of int
        Indices of stations for which no threshold exists
    """
    score = np.atleast_2d(np.asarray(score, dtype=float))
    ns = score.shape[0]
    if names is None:
        names = [f"STA{i}" for i in range(ns)]

    thresholds = np.full(ns, np.nan)
    degenerate = []

    for i in range(ns):
        try:
            thresholds[i] = estimate_station_threshold(score[i], prop_thresh, bins=bins)
        except DegenerateThresholdError as e:
            logger.warning(f"{names[i]}: no detection threshold ({e}); station yields no events")
            degenerate.append(i)
            continue
        logger.debug(f"{names[i]}: threshold {thresholds[i]:.4g}")

    logger.info(f"Thresholds estimated for {ns - len(degenerate)}/{ns} stations")
    return thresholds, degenerate
