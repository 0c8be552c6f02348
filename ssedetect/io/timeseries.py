"""
Station position time series for SSEDETECT.

Provides functionality to:
- Hold per-station daily positions as dense station x day matrices
- Build those matrices from a long-format pandas DataFrame or CSV file
- Derive observation masks and first/last operational days

Dates are day numbers (proleptic Gregorian ordinals). A zero date, or a zero
east position, marks a day without observation.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from ..core.errors import InputShapeError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['station', 'lat', 'lon', 'date', 'east', 'east_unc', 'north', 'north_unc']


@dataclass
class StationArrays:
    """
    Station x day position matrices.

    Parameters
    ----------
    names : list of str
        Station names, one per row
    lat, lon : ndarray
        Station reference coordinates in degrees
    dates : ndarray
        ns x nd day numbers, 0 where the station did not observe
    east, east_unc, north, north_unc : ndarray
        ns x nd positions and 1-sigma uncertainties
    days : ndarray, optional
        Calendar day of each column. When omitted it is derived from
        ``dates`` (see fulldate).
    """
    names: List[str]
    lat: np.ndarray
    lon: np.ndarray
    dates: np.ndarray
    east: np.ndarray
    east_unc: np.ndarray
    north: np.ndarray
    north_unc: np.ndarray
    days: Optional[np.ndarray] = None

    def __post_init__(self):
        self.lat = np.asarray(self.lat, dtype=float)
        self.lon = np.asarray(self.lon, dtype=float)
        self.dates = np.atleast_2d(np.asarray(self.dates, dtype=float))
        shape = self.dates.shape
        for name in ('east', 'east_unc', 'north', 'north_unc'):
            arr = np.atleast_2d(np.asarray(getattr(self, name), dtype=float))
            if arr.shape != shape:
                raise InputShapeError(f"{name} has shape {arr.shape}, expected {shape}")
            setattr(self, name, arr)
        ns = shape[0]
        if len(self.names) != ns or self.lat.shape != (ns,) or self.lon.shape != (ns,):
            raise InputShapeError(
                f"Expected {ns} station names and coordinates, got {len(self.names)} names, "
                f"{self.lat.size} latitudes and {self.lon.size} longitudes")
        self.names = [str(n) for n in self.names]
        if self.days is not None:
            self.days = np.asarray(self.days, dtype=float)
            if self.days.shape != (shape[1],):
                raise InputShapeError(f"days has shape {self.days.shape}, expected {(shape[1],)}")

    @property
    def shape(self):
        return self.dates.shape

    @property
    def n_stations(self):
        return self.dates.shape[0]

    @property
    def n_days(self):
        return self.dates.shape[1]

    @property
    def valid(self):
        """Days with both a date and a position."""
        return (self.dates > 0) & (self.east != 0)

    @property
    def fulldate(self):
        """
        Calendar day of each column.

        Without an explicit ``days`` calendar this is the column-wise maximum
        of ``dates``. Columns no station observed are filled linearly from
        the observed columns, one day per column beyond the first and last.
        """
        if self.days is not None:
            return self.days.copy()
        full = self.dates.max(axis=0)
        known = full > 0
        if not known.any() or known.all():
            return full
        idx = np.arange(full.size)
        k = idx[known]
        full = np.interp(idx, k, full[k])
        before, after = idx < k[0], idx > k[-1]
        full[before] = full[k[0]] - (k[0] - idx[before])
        full[after] = full[k[-1]] + (idx[after] - k[-1])
        return full

    @property
    def first_day(self):
        """First non-zero date per station (0 for a station that never observed)."""
        has = self.dates > 0
        idx = np.argmax(has, axis=1)
        out = self.dates[np.arange(self.n_stations), idx]
        out[~has.any(axis=1)] = 0.0
        return out

    @property
    def last_day(self):
        """Last non-zero date per station (0 for a station that never observed)."""
        has = self.dates > 0
        idx = self.n_days - 1 - np.argmax(has[:, ::-1], axis=1)
        out = self.dates[np.arange(self.n_stations), idx]
        out[~has.any(axis=1)] = 0.0
        return out

    def station_index(self, station):
        """Return row index for a station name or pass an index through."""
        if isinstance(station, (int, np.integer)):
            return int(station)
        try:
            return self.names.index(station)
        except ValueError:
            raise KeyError(f"Unknown station {station!r}") from None


def to_day_number(values):
    """Convert date-like values to proleptic Gregorian ordinals."""
    stamps = pd.to_datetime(pd.Series(values))
    return np.array([ts.toordinal() for ts in stamps], dtype=float)


def from_dataframe(df):
    """
    Build StationArrays from a long-format table.

    Parameters
    ----------
    df : pandas.DataFrame
        One row per station-day with columns: station, lat, lon, date, east,
        east_unc, north, north_unc. ``date`` may be a day number or anything
        pandas can parse as a date.

    Returns
    -------
    stations : StationArrays
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise InputShapeError(f"Time series table is missing columns: {missing}")

    df = df.copy()
    if not pd.api.types.is_numeric_dtype(df['date']):
        df['date'] = to_day_number(df['date'])
    df['date'] = df['date'].astype(float)
    df = df.drop_duplicates(subset=['station', 'date'], keep='last')

    coords = df.groupby('station', sort=True)[['lat', 'lon']].first()
    names = list(coords.index)
    days = np.arange(df['date'].min(), df['date'].max() + 1)
    row = {name: i for i, name in enumerate(names)}
    col = np.searchsorted(days, df['date'].to_numpy())
    rows = df['station'].map(row).to_numpy()

    ns, nd = len(names), len(days)
    mats = {}
    for name in ('date', 'east', 'east_unc', 'north', 'north_unc'):
        mat = np.zeros((ns, nd))
        mat[rows, col] = df[name].fillna(0.0).to_numpy(dtype=float)
        mats[name] = mat

    logger.info(f"Built time series for {ns} stations over {nd} days")
    return StationArrays(
        names=names,
        lat=coords['lat'].to_numpy(),
        lon=coords['lon'].to_numpy(),
        dates=mats['date'],
        east=mats['east'],
        east_unc=mats['east_unc'],
        north=mats['north'],
        north_unc=mats['north_unc'],
        days=days,
    )


def load_timeseries(path, **read_kwargs):
    """
    Load station time series from a long-format CSV file.

    Parameters
    ----------
    path : str
        CSV file with the columns listed in REQUIRED_COLUMNS

    Returns
    -------
    stations : StationArrays
    """
    df = pd.read_csv(path, **read_kwargs)
    logger.debug(f"Read {len(df)} rows from {path}")
    return from_dataframe(df)
