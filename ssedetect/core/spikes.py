"""
Network-wide spike detection.

A spike is a run of days during which several stations are inside one of
their own events. Candidate spikes are merged when close in time, filtered by
the number of stations that felt them, and merged again where the surviving
spikes overlap.
"""

import logging
from dataclasses import dataclass, replace
from typing import Tuple, List

import numpy as np

from .segmentation import find_runs

logger = logging.getLogger(__name__)

MIN_CONCURRENT = 2


@dataclass(frozen=True)
class CatalogSpike:
    """Network-level event spanning columns ``begin``..``end`` (inclusive)."""
    begin: int
    end: int
    day: int
    stations: Tuple[int, ...] = ()

    @property
    def n_felt(self):
        return len(self.stations)


def midpoint(begin, end):
    """``begin + round((end - begin) / 2)`` with halves rounded up."""
    return int(begin + np.floor((end - begin) / 2.0 + 0.5))


def make_spike(begin, end, stations=()):
    return CatalogSpike(begin=int(begin), end=int(end), day=midpoint(begin, end),
                        stations=tuple(int(s) for s in stations))


def candidate_spikes(coverage, min_concurrent=MIN_CONCURRENT):
    """
    Spikes from runs of days with at least ``min_concurrent`` active stations.

    Parameters
    ----------
    coverage : ndarray of bool
        ns x nd filtered event coverage

    Returns
    -------
    spikes : list of CatalogSpike
        Spikes without felt stations
    """
    coverage = np.atleast_2d(np.asarray(coverage, dtype=bool))
    many = coverage.sum(axis=0) >= min_concurrent
    starts, ends = find_runs(many)
    return [make_spike(b, e) for b, e in zip(starts, ends)]


def merge_close_spikes(spikes, separation):
    """
    Collapse runs of spikes whose consecutive days are ``<= separation`` apart.

    Each run keeps the first spike's begin and the last spike's end; the day
    is recomputed as the midpoint.
    """
    if not spikes:
        return []
    merged = []
    group = [spikes[0]]
    for spike in spikes[1:]:
        if spike.day - group[-1].day <= separation:
            group.append(spike)
            continue
        merged.append(make_spike(group[0].begin, group[-1].end))
        group = [spike]
    merged.append(make_spike(group[0].begin, group[-1].end))
    return merged


def felt_stations(coverage, begin, end):
    """Stations with at least one event day in ``[begin, end]``."""
    coverage = np.atleast_2d(np.asarray(coverage, dtype=bool))
    return np.flatnonzero(coverage[:, begin:end + 1].any(axis=1))


def assign_felt(spikes, coverage):
    """Recompute felt stations of every spike from the coverage matrix."""
    return [replace(s, stations=tuple(int(i) for i in felt_stations(coverage, s.begin, s.end)))
            for s in spikes]


def merge_overlapping_spikes(spikes):
    """
    Merge each spike that begins before the previous surviving spike ends
    into that spike. Felt stations are cleared and must be recomputed.
    """
    merged: List[CatalogSpike] = []
    for spike in spikes:
        if merged and spike.begin < merged[-1].end:
            prev = merged[-1]
            merged[-1] = make_spike(prev.begin, max(prev.end, spike.end))
            continue
        merged.append(make_spike(spike.begin, spike.end))
    return merged


def detect_spikes(coverage, window_half_width, min_stations=10, min_concurrent=MIN_CONCURRENT):
    """
    Build the network catalog of spikes.

    Parameters
    ----------
    coverage : ndarray of bool
        ns x nd filtered event coverage
    window_half_width : int
        Slope window half-width; spikes whose days are within twice this
        value are collapsed
    min_stations : int
        Minimum number of felt stations for a spike to be kept
    min_concurrent : int
        Minimum number of concurrently active stations defining a spike day

    Returns
    -------
    spikes : list of CatalogSpike
        Ordered by day, pairwise non-overlapping, each felt by at least
        ``min_stations`` stations
    """
    coverage = np.atleast_2d(np.asarray(coverage, dtype=bool))

    spikes = candidate_spikes(coverage, min_concurrent=min_concurrent)
    n_candidates = len(spikes)

    spikes = merge_close_spikes(spikes, 2 * window_half_width)
    spikes = assign_felt(spikes, coverage)
    n_collapsed = len(spikes)

    spikes = [s for s in spikes if s.n_felt >= min_stations]

    # boundaries changed, so felt sets are recomputed rather than unioned
    spikes = assign_felt(merge_overlapping_spikes(spikes), coverage)

    logger.info(f"Spikes: {n_candidates} candidates, {n_collapsed} after collapsing, "
                f"{len(spikes)} felt by >= {min_stations} stations")
    return spikes
