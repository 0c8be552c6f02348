"""
Station geometry module for SSEDETECT.

Provides station proximity functions, including:
- Ellipsoidal distance matrix computation
- Neighbor graph construction from a distance threshold
- Nearest-station lookup among a candidate subset
"""

import numpy as np
import logging
from obspy.geodetics import gps2dist_azimuth

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def ellipsoid_distance(lat1, lon1, lat2, lon2):
    """
    Compute distance between two points on the WGS84 ellipsoid.

    Parameters
    ----------
    lat1, lon1 : float
        First point coordinates in degrees
    lat2, lon2 : float
        Second point coordinates in degrees

    Returns
    -------
    distance : float
        Distance in kilometers
    """
    dist_m, _, _ = gps2dist_azimuth(lat1, lon1, lat2, lon2)
    return dist_m / 1000.0


def compute_distance_matrix(latitudes, longitudes, distance_func=None):
    """
    Compute pairwise distance matrix between stations.

    Parameters
    ----------
    latitudes : array-like
        Station latitudes in degrees
    longitudes : array-like
        Station longitudes in degrees
    distance_func : callable, optional
        ``f(lat1, lon1, lat2, lon2) -> km``. Defaults to the WGS84
        ellipsoidal distance.

    Returns
    -------
    distmat : ndarray
        N x N distance matrix in km. The diagonal is infinite so a station
        is never its own nearest station or neighbor.
    """
    if distance_func is None:
        distance_func = ellipsoid_distance

    lats = np.asarray(latitudes, dtype=float)
    lons = np.asarray(longitudes, dtype=float)
    n = len(lats)

    distmat = np.zeros((n, n))

    for i in range(n):
        for j in range(i + 1, n):
            dist = distance_func(lats[i], lons[i], lats[j], lons[j])
            distmat[i, j] = dist
            distmat[j, i] = dist

    np.fill_diagonal(distmat, np.inf)

    return distmat


def build_neighbor_graph(distmat, neighbor_distance):
    """
    Build the station adjacency matrix.

    Parameters
    ----------
    distmat : ndarray
        N x N distance matrix in km
    neighbor_distance : float
        Maximum neighbor separation in km

    Returns
    -------
    adjacency : ndarray of bool
        True where 0 < distance <= neighbor_distance
    """
    if neighbor_distance <= 0:
        raise ConfigurationError(f"neighbor_distance must be positive, got {neighbor_distance}")

    distmat = np.asarray(distmat, dtype=float)
    adjacency = (distmat <= neighbor_distance) & (distmat > 0)
    np.fill_diagonal(adjacency, False)

    n_isolated = int(np.sum(~adjacency.any(axis=1)))
    logger.info(f"Neighbor graph: {int(adjacency.sum()) // 2} pairs within "
                f"{neighbor_distance:g} km, {n_isolated} stations without neighbors")

    return adjacency


def neighbor_lists(adjacency):
    """Return the neighbor indices of every station."""
    return [np.flatnonzero(row) for row in np.asarray(adjacency, dtype=bool)]


def nearest_station(distmat, station, candidates):
    """
    Return the candidate closest to ``station``.

    Parameters
    ----------
    distmat : ndarray
        N x N distance matrix in km
    station : int
        Reference station index
    candidates : array-like of int
        Candidate station indices

    Returns
    -------
    index : int or None
        Nearest candidate, None if there are no candidates
    """
    candidates = np.asarray(candidates, dtype=int)
    candidates = candidates[candidates != station]
    if candidates.size == 0:
        return None
    return int(candidates[np.argmin(distmat[station, candidates])])
