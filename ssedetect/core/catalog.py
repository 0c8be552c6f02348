"""
Mapping of per-station events onto catalog spikes.

For every (station, spike) pair decides whether the station felt the spike
and which dates describe the station's own version of the event. Stations
that did not detect an event felt by many of their neighbors are flagged as
neighbor-felt and, when enabled, inherit the nearest felt station's dates.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np

from .geometry import neighbor_lists, nearest_station
from .segmentation import start_dates

logger = logging.getLogger(__name__)

OWN = 'own'
NEIGHBOR = 'neighbor'


@dataclass(frozen=True)
class Assignment:
    """Dates used to estimate the displacement of one station for one spike."""
    station: int
    event: int
    start_date: float
    duration: int
    source: str = OWN
    donor: int = -1

    @property
    def end_date(self):
        return self.start_date + self.duration - 1

    def span_mask(self, dates):
        """Which of ``dates`` fall inside the event span."""
        dates = np.asarray(dates, dtype=float)
        return (dates >= self.start_date) & (dates <= self.end_date)


@dataclass
class CatalogAssignments:
    felt: np.ndarray
    neighbor_felt: np.ndarray
    assignments: Dict[Tuple[int, int], Assignment] = field(default_factory=dict)

    @property
    def start_dates(self):
        out = np.zeros(self.felt.shape)
        for (i, j), a in self.assignments.items():
            out[i, j] = a.start_date
        return out

    @property
    def durations(self):
        out = np.zeros(self.felt.shape, dtype=int)
        for (i, j), a in self.assignments.items():
            out[i, j] = a.duration
        return out


def own_matches(events, spikes, fulldate):
    """
    First own event of each station starting inside each spike.

    Returns
    -------
    matches : ndarray of int
        ns x nspike index into the station's event list, -1 where none
    """
    fulldate = np.asarray(fulldate, dtype=float)
    matches = np.full((len(events), len(spikes)), -1, dtype=int)
    for i, station_events in enumerate(events):
        dates = start_dates(station_events)
        if dates.size == 0:
            continue
        for j, spike in enumerate(spikes):
            inside = np.flatnonzero((dates >= fulldate[spike.begin]) & (dates < fulldate[spike.end]))
            if inside.size:
                matches[i, j] = inside[0]
    return matches


def catalog_events(events, spikes, fulldate, first_day, last_day, adjacency, distmat,
                   observation_dates, reverse_neighbor=False, reverse_fraction=1.0 / 3.0,
                   min_coverage=0.5, names=None):
    """
    Decide which stations felt each spike and with which dates.

    Parameters
    ----------
    events : list of list of StationEvent
        Neighbor-filtered events per station
    spikes : list of CatalogSpike
        Final catalog spikes
    fulldate : array-like
        Calendar day of each column
    first_day, last_day : array-like
        First and last operational date per station
    adjacency : ndarray of bool
        N x N neighbor graph
    distmat : ndarray
        N x N distance matrix in km
    observation_dates : list of ndarray
        Dates on which each station has a valid position
    reverse_neighbor : bool
        Let neighbor-felt stations inherit the nearest felt station's dates
    reverse_fraction : float
        Fraction of neighbors (strictly exceeded) marking a station neighbor-felt
    min_coverage : float
        Fraction of inherited event days that must be observed
    names : list of str, optional
        Station names (for logging)

    Returns
    -------
    result : CatalogAssignments
    """
    fulldate = np.asarray(fulldate, dtype=float)
    first_day = np.asarray(first_day, dtype=float)
    last_day = np.asarray(last_day, dtype=float)
    ns, nspike = len(events), len(spikes)
    if names is None:
        names = [f"STA{i}" for i in range(ns)]

    matches = own_matches(events, spikes, fulldate)
    felt = matches >= 0

    # events outside a station's operational window are never felt
    spike_dates = np.array([fulldate[s.day] for s in spikes], dtype=float)
    offline = (spike_dates[None, :] < first_day[:, None]) | (spike_dates[None, :] > last_day[:, None])
    felt &= ~offline

    neighbors = neighbor_lists(adjacency)
    neighbor_felt = np.zeros((ns, nspike), dtype=bool)
    for i, n in enumerate(neighbors):
        if n.size == 0:
            continue
        neighbor_felt[i] = ~felt[i] & (felt[n].sum(axis=0) > reverse_fraction * n.size)

    assignments = {}
    for i, j in zip(*np.nonzero(felt)):
        ev = events[i][matches[i, j]]
        assignments[(int(i), int(j))] = Assignment(
            station=int(i), event=int(j), start_date=ev.start_date,
            duration=ev.duration, source=OWN, donor=int(i))

    if reverse_neighbor:
        own_felt = felt.copy()
        for i, j in zip(*np.nonzero(neighbor_felt)):
            donor = nearest_station(distmat, i, np.flatnonzero(own_felt[:, j]))
            if donor is None:
                continue
            source = assignments[(donor, int(j))]
            candidate = Assignment(station=int(i), event=int(j), start_date=source.start_date,
                                   duration=source.duration, source=NEIGHBOR, donor=donor)
            observed = int(candidate.span_mask(observation_dates[i]).sum())
            if observed < min_coverage * candidate.duration:
                logger.debug(f"{names[i]}: event {j} inherited from {names[donor]} has only "
                             f"{observed}/{candidate.duration} observed days; not felt")
                neighbor_felt[i, j] = False
                continue
            felt[i, j] = True
            assignments[(int(i), int(j))] = candidate

    logger.info(f"Catalog: {nspike} events, {int(felt.sum())} felt station-events, "
                f"{int(neighbor_felt.sum())} neighbor-felt")
    return CatalogAssignments(felt=felt, neighbor_felt=neighbor_felt, assignments=assignments)


def event_day_map(assignments, dates, valid):
    """
    Station x day map of observation days used for displacement estimates.

    Returns
    -------
    days : ndarray of int
        1 on days of an own event, 2 on days of an inherited event, 0 elsewhere
    """
    dates = np.asarray(dates, dtype=float)
    valid = np.asarray(valid, dtype=bool)
    days = np.zeros(dates.shape, dtype=int)
    for (i, _), a in assignments.items():
        used = a.span_mask(dates[i]) & valid[i]
        days[i, used] = 1 if a.source == OWN else 2
    return days
