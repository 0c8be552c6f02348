"""
Neighbor-based corroboration of per-station events.

An event survives when enough neighboring stations started an event at
about the same time, or when it predates every neighbor's first day of
operation.
"""

import logging

import numpy as np

from .geometry import neighbor_lists
from .segmentation import start_dates

logger = logging.getLogger(__name__)


def neighbor_status(adjacency, first_day):
    """
    Describe each station relative to its neighbors.

    Parameters
    ----------
    adjacency : ndarray of bool
        N x N neighbor graph
    first_day : array-like
        First operational date per station

    Returns
    -------
    isolated : ndarray of bool
        Station has no neighbors
    first_of_neighbors : ndarray of bool
        Station has neighbors and came online no later than all of them
    """
    first_day = np.asarray(first_day, dtype=float)
    neighbors = neighbor_lists(adjacency)
    ns = len(neighbors)
    isolated = np.zeros(ns, dtype=bool)
    first_of_neighbors = np.zeros(ns, dtype=bool)
    for i, n in enumerate(neighbors):
        if n.size == 0:
            isolated[i] = True
        elif not np.any(first_day[i] > first_day[n]):
            first_of_neighbors[i] = True
    return isolated, first_of_neighbors


def corroborating_count(dates, neighbor_dates, tolerance):
    """
    Count, for each date, the neighbors with an event start within tolerance.

    Parameters
    ----------
    dates : ndarray
        Event start dates of the station under test
    neighbor_dates : list of ndarray
        Event start dates of each neighbor
    tolerance : float
        Allowed separation in days

    Returns
    -------
    counts : ndarray of int
    """
    counts = np.zeros(len(dates), dtype=int)
    for nd in neighbor_dates:
        if nd.size == 0:
            continue
        close = np.abs(dates[:, None] - nd[None, :]) <= tolerance
        counts += close.any(axis=1)
    return counts


def filter_events_by_neighbors(events, adjacency, first_day, tolerance,
                               fraction=0.1, names=None):
    """
    Discard per-station events that nearby stations do not corroborate.

    Parameters
    ----------
    events : list of list of StationEvent
        Segmented events per station
    adjacency : ndarray of bool
        N x N neighbor graph
    first_day : array-like
        First operational date per station
    tolerance : float
        Temporal tolerance (days) between event starts
    fraction : float
        Fraction of neighbors that must corroborate an event
    names : list of str, optional
        Station names (for logging)

    Returns
    -------
    filtered : list of list of StationEvent
    """
    first_day = np.asarray(first_day, dtype=float)
    neighbors = neighbor_lists(adjacency)
    if names is None:
        names = [f"STA{i}" for i in range(len(events))]

    # corroboration always uses the segmented events, never partially filtered ones
    all_dates = [start_dates(station_events) for station_events in events]

    filtered = []
    n_removed = 0
    for i, station_events in enumerate(events):
        n = neighbors[i]
        if n.size == 0 or not station_events:
            filtered.append(list(station_events))
            continue

        dates = all_dates[i]
        preneigh = dates < np.min(first_day[n])
        counts = corroborating_count(dates, [all_dates[k] for k in n], tolerance)
        keep = (counts >= fraction * n.size) | preneigh

        kept = [ev for ev, k in zip(station_events, keep) if k]
        if len(kept) < len(station_events):
            logger.debug(f"{names[i]}: {len(station_events) - len(kept)} of "
                         f"{len(station_events)} events not corroborated by {n.size} neighbors")
        n_removed += len(station_events) - len(kept)
        filtered.append(kept)

    logger.info(f"Neighbor filter removed {n_removed} per-station events")
    return filtered
