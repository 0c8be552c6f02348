"""
Per-station event segmentation.

Turns a boolean "anomalous day" mask into discrete events and discards
events shorter than the minimum duration.
"""

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationEvent:
    """One run of anomalous days at one station (column indices inclusive)."""
    station: int
    start: int
    end: int
    start_date: float
    end_date: float

    @property
    def duration(self):
        return int(round(self.end_date - self.start_date)) + 1


def find_runs(mask):
    """
    Locate maximal runs of True values.

    The mask is padded with False at both ends and differenced: a 0->1
    transition starts a run and a 1->0 transition ends it.

    Parameters
    ----------
    mask : array-like of bool
        1-D mask

    Returns
    -------
    starts, ends : ndarray of int
        First and last (inclusive) index of every run
    """
    padded = np.concatenate(([False], np.asarray(mask, dtype=bool), [False]))
    difference = np.diff(padded.astype(np.int8))
    starts = np.flatnonzero(difference == 1)
    ends = np.flatnonzero(difference == -1) - 1
    return starts, ends


def anomaly_mask(score, thresholds):
    """Days whose score is below the station's threshold."""
    score = np.atleast_2d(np.asarray(score, dtype=float))
    thresholds = np.asarray(thresholds, dtype=float)
    with np.errstate(invalid='ignore'):
        return score < thresholds[:, None]


def segment_station(mask, fulldate, station=0, min_duration=10):
    """
    Events of a single station.

    Parameters
    ----------
    mask : array-like of bool
        Anomalous-day mask of the station
    fulldate : array-like
        Calendar day of each column
    station : int
        Station index stored on the events
    min_duration : int
        Shortest duration (days) retained

    Returns
    -------
    events : list of StationEvent
    """
    fulldate = np.asarray(fulldate, dtype=float)
    starts, ends = find_runs(mask)
    events = []
    for s, e in zip(starts, ends):
        event = StationEvent(station=station, start=int(s), end=int(e),
                             start_date=float(fulldate[s]), end_date=float(fulldate[e]))
        if event.duration >= min_duration:
            events.append(event)
    return events


def segment_events(mask, fulldate, min_duration=10, names=None):
    """
    Events of every station.

    Parameters
    ----------
    mask : ndarray of bool
        ns x nd anomalous-day mask
    fulldate : array-like
        Calendar day of each column
    min_duration : int
        Shortest duration (days) retained
    names : list of str, optional
        Station names (for logging)

    Returns
    -------
    events : list of list of StationEvent
        Events per station, ordered by start day
    """
    mask = np.atleast_2d(np.asarray(mask, dtype=bool))
    if names is None:
        names = [f"STA{i}" for i in range(mask.shape[0])]

    events = []
    for i in range(mask.shape[0]):
        station_events = segment_station(mask[i], fulldate, station=i, min_duration=min_duration)
        logger.debug(f"{names[i]}: {len(station_events)} events of >= {min_duration} days")
        events.append(station_events)

    logger.info(f"Segmented {sum(len(e) for e in events)} per-station events")
    return events


def events_to_coverage(events, shape):
    """
    Boolean station x day matrix marking every day inside an event.

    Parameters
    ----------
    events : list of list of StationEvent
    shape : tuple
        (ns, nd)

    Returns
    -------
    coverage : ndarray of bool
    """
    coverage = np.zeros(shape, dtype=bool)
    for station_events in events:
        for ev in station_events:
            coverage[ev.station, ev.start:ev.end + 1] = True
    return coverage


def start_dates(station_events):
    """Start dates of a station's events as an array."""
    return np.array([ev.start_date for ev in station_events], dtype=float)
