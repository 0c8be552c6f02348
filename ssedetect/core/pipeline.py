"""
Slow slip event detection pipeline.

Runs the stages in order:

1. slope scores (given, cached or computed) and per-station thresholds
2. per-station event segmentation
3. neighbor graph and neighbor-based event filtering
4. network spike detection and merging
5. cataloging of station events onto spikes
6. weighted least-squares displacement estimates

Each stage returns new arrays; nothing produced by an earlier stage is
modified by a later one.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .catalog import Assignment, catalog_events, event_day_map
from .config import DetectionConfig
from .errors import InputShapeError
from .geometry import build_neighbor_graph, compute_distance_matrix
from .neighbors import filter_events_by_neighbors, neighbor_status
from .segmentation import StationEvent, anomaly_mask, events_to_coverage, segment_events
from .slopes import SlopeScoreCache
from .spikes import CatalogSpike, detect_spikes
from .threshold import estimate_thresholds
from .velocity import estimate_displacements

logger = logging.getLogger(__name__)


@dataclass
class SSECatalog:
    """Result of one detection run."""
    config: DetectionConfig
    names: List[str]
    lat: np.ndarray
    lon: np.ndarray
    fulldate: np.ndarray
    first_day: np.ndarray
    last_day: np.ndarray
    score_east: np.ndarray
    score_north: np.ndarray
    thresholds: np.ndarray
    degenerate_stations: List[int]
    anomalous: np.ndarray
    events: List[List[StationEvent]]
    coverage: np.ndarray
    isolated: np.ndarray
    first_of_neighbors: np.ndarray
    spikes: List[CatalogSpike]
    felt: np.ndarray
    neighbor_felt: np.ndarray
    assignments: Dict[Tuple[int, int], Assignment]
    start_dates: np.ndarray
    durations: np.ndarray
    event_days: np.ndarray
    east_vel: np.ndarray
    east_sig: np.ndarray
    north_vel: np.ndarray
    north_sig: np.ndarray
    distances: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def n_events(self):
        return len(self.spikes)

    @property
    def score(self):
        """Scores that drove detection, sign applied."""
        raw = self.score_east if self.config.detection_component == 'east' else self.score_north
        return self.config.score_sign * raw

    @property
    def date_range(self):
        """n_events x 2 array of (begin, end) dates."""
        if not self.spikes:
            return np.zeros((0, 2))
        return np.array([[self.fulldate[s.begin], self.fulldate[s.end]] for s in self.spikes])

    def events_table(self):
        """One row per catalog event."""
        rows = []
        for j, s in enumerate(self.spikes):
            rows.append({
                'event': j,
                'begin': self.fulldate[s.begin],
                'end': self.fulldate[s.end],
                'day': self.fulldate[s.day],
                'n_felt': s.n_felt,
                'stations': ' '.join(self.names[i] for i in s.stations),
            })
        return pd.DataFrame(rows, columns=['event', 'begin', 'end', 'day', 'n_felt', 'stations'])

    def displacement_table(self):
        """One row per assigned (station, event) pair."""
        rows = []
        for (i, j), a in sorted(self.assignments.items()):
            rows.append({
                'station': self.names[i],
                'event': j,
                'start_date': a.start_date,
                'duration': a.duration,
                'source': a.source,
                'donor': self.names[a.donor] if a.donor >= 0 else '',
                'east_vel': self.east_vel[i, j],
                'east_sig': self.east_sig[i, j],
                'north_vel': self.north_vel[i, j],
                'north_sig': self.north_sig[i, j],
            })
        columns = ['station', 'event', 'start_date', 'duration', 'source', 'donor',
                   'east_vel', 'east_sig', 'north_vel', 'north_sig']
        return pd.DataFrame(rows, columns=columns)


def _check_scores(scores, shape):
    east, north = scores
    east = np.atleast_2d(np.asarray(east, dtype=float))
    north = np.atleast_2d(np.asarray(north, dtype=float))
    for name, arr in (('east', east), ('north', north)):
        if arr.shape != shape:
            raise InputShapeError(f"{name} slope scores have shape {arr.shape}, expected {shape}")
    return east, north


def detect_sse(stations, config, scores=None, cache=None, distances=None, distance_func=None):
    """
    Detect and catalog slow slip events.

    Parameters
    ----------
    stations : StationArrays
        Station coordinates, dates, positions and uncertainties
    config : DetectionConfig
        Detection parameters (validated before any work starts)
    scores : tuple of ndarray, optional
        Precomputed (east, north) slope scores, sign not yet applied
    cache : SlopeScoreCache, optional
        Cache consulted (and filled) when ``scores`` is not given
    distances : ndarray, optional
        Precomputed N x N station distance matrix in km
    distance_func : callable, optional
        ``f(lat1, lon1, lat2, lon2) -> km`` used when ``distances`` is not given

    Returns
    -------
    catalog : SSECatalog
    """
    config.validate()
    shape = stations.shape
    names = stations.names
    np_days = int(config.window_half_width)

    if scores is None:
        if cache is None:
            cache = SlopeScoreCache()
        scores = cache.get(stations, np_days)
    score_east, score_north = _check_scores(scores, shape)

    if distances is not None:
        distances = np.asarray(distances, dtype=float)
        if distances.shape != (shape[0], shape[0]):
            raise InputShapeError(
                f"distance matrix has shape {distances.shape}, expected {(shape[0], shape[0])}")
        distances = distances.copy()
        np.fill_diagonal(distances, np.inf)

    logger.info(f"Detecting SSEs at {shape[0]} stations over {shape[1]} days "
                f"(window half-width {np_days}, prop_thresh {config.prop_thresh})")

    raw = score_east if config.detection_component == 'east' else score_north
    score = config.score_sign * raw

    thresholds, degenerate = estimate_thresholds(score, config.prop_thresh,
                                                 bins=config.histogram_bins, names=names)
    anomalous = anomaly_mask(score, thresholds)
    fulldate = stations.fulldate
    events = segment_events(anomalous, fulldate, min_duration=config.min_duration, names=names)

    if distances is None:
        distances = compute_distance_matrix(stations.lat, stations.lon, distance_func=distance_func)
    adjacency = build_neighbor_graph(distances, config.neighbor_distance)
    first_day = stations.first_day
    last_day = stations.last_day
    isolated, first_of_neighbors = neighbor_status(adjacency, first_day)

    events = filter_events_by_neighbors(events, adjacency, first_day, tolerance=np_days,
                                        fraction=config.neighbor_fraction, names=names)
    coverage = events_to_coverage(events, shape)

    spikes = detect_spikes(coverage, np_days, min_stations=config.min_stations)

    valid = stations.valid
    observation_dates = [stations.dates[i, valid[i]] for i in range(shape[0])]
    cataloged = catalog_events(events, spikes, fulldate, first_day, last_day, adjacency, distances,
                               observation_dates,
                               reverse_neighbor=config.reverse_neighbor,
                               reverse_fraction=config.reverse_neighbor_fraction,
                               min_coverage=config.reverse_min_coverage,
                               names=names)

    displacements = estimate_displacements(stations, cataloged.assignments, len(spikes),
                                           max_condition=config.max_condition)

    return SSECatalog(
        config=config,
        names=list(names),
        lat=stations.lat.copy(),
        lon=stations.lon.copy(),
        fulldate=fulldate,
        first_day=first_day,
        last_day=last_day,
        score_east=score_east,
        score_north=score_north,
        thresholds=thresholds,
        degenerate_stations=degenerate,
        anomalous=anomalous,
        events=events,
        coverage=coverage,
        isolated=isolated,
        first_of_neighbors=first_of_neighbors,
        spikes=spikes,
        felt=cataloged.felt,
        neighbor_felt=cataloged.neighbor_felt,
        assignments=cataloged.assignments,
        start_dates=cataloged.start_dates,
        durations=cataloged.durations,
        event_days=event_day_map(cataloged.assignments, stations.dates, valid),
        distances=distances,
        **displacements,
    )
