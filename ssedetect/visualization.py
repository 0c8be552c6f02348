"""
Visualization utilities for SSEDETECT results.

Provides functions to create:
- a catalog overview: detected days of every station sorted by latitude,
  with catalog event spans shaded and event days marked
- per-station plots: east position with detections highlighted above the
  daily slope scores and the station's threshold

These helpers are designed to work with detect_sse output.
"""

import os
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

# proleptic Gregorian ordinal of 1970-01-01
_UNIX_ORDINAL = 719163


def days_to_datetime64(days):
    """Convert day numbers to numpy datetime64[D] for plotting."""
    days = np.asarray(days, dtype=float)
    return (np.round(days) - _UNIX_ORDINAL).astype('int64').astype('datetime64[D]')


def plot_catalog(catalog, outfile):
    """
    Save an overview figure of the catalog.

    Parameters
    ----------
    catalog : SSECatalog
        Detection result
    outfile : str
        Output image path

    Returns
    -------
    outfile : str
    """
    outdir = os.path.dirname(outfile)
    if outdir:
        os.makedirs(outdir, exist_ok=True)

    lat = np.asarray(catalog.lat)
    latsort = np.argsort(-lat)
    fulldate = days_to_datetime64(catalog.fulldate)
    ymin, ymax = lat.min() - 0.1, lat.max() + 0.1

    fig, ax = plt.subplots(figsize=(12, 6))

    for s in catalog.spikes:
        ax.axvspan(fulldate[s.begin], fulldate[s.end], color=(1.0, 0.8, 0.8), lw=0)
        ax.axvline(fulldate[s.day], color='r', lw=0.8)

    rows, cols = np.nonzero(catalog.coverage[latsort])
    if rows.size:
        ax.plot(fulldate[cols], lat[latsort][rows], '.k', markersize=1)

    ax.set_ylim(ymin, ymax)
    ax.set_xlabel('Date')
    ax.set_ylabel('Latitude')
    ax.set_title(f'{catalog.n_events} cataloged events, {len(catalog.names)} stations')
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(outfile, dpi=150)
    plt.close(fig)
    return outfile


def plot_station_timeseries(catalog, stations, station, outdir='.'):
    """
    Save a two-panel figure for one station.

    Parameters
    ----------
    catalog : SSECatalog
        Detection result
    stations : StationArrays
        Station time series used for the detection
    station : str or int
        Station name or row index
    outdir : str
        Directory where the figure is written

    Returns
    -------
    outfile : str
    """
    os.makedirs(outdir, exist_ok=True)
    i = stations.station_index(station)
    name = stations.names[i]

    valid = stations.valid[i]
    detected = catalog.anomalous[i] & valid
    dates = days_to_datetime64(stations.dates[i])
    score = catalog.score[i]

    fig, (top, bottom) = plt.subplots(2, 1, sharex=True, figsize=(10, 8),
                                      gridspec_kw={'height_ratios': [2, 1]})

    top.plot(dates[valid], stations.east[i, valid], '.k', markersize=2)
    top.plot(dates[detected], stations.east[i, detected], '.r', markersize=2)
    top.set_ylabel('East position')
    top.set_title(name)

    finite = valid & np.isfinite(score)
    bottom.plot(dates[finite], score[finite], '.k', markersize=2)
    bottom.plot(dates[detected & finite], score[detected & finite], '.r', markersize=2)
    bottom.axhline(0.0, color='k', lw=0.8)
    if np.isfinite(catalog.thresholds[i]):
        bottom.axhline(catalog.thresholds[i], color='r', ls='--', lw=0.8)
    if finite.any():
        mu, sd = np.mean(score[finite]), np.std(score[finite])
        if sd > 0:
            bottom.set_ylim(mu - 4 * sd, mu + 4 * sd)
    bottom.set_ylabel('Daily velocity')
    bottom.set_xlabel('Date')

    fig.autofmt_xdate()
    fig.tight_layout()
    outfile = os.path.join(outdir, f'{name}.png')
    fig.savefig(outfile, dpi=150)
    plt.close(fig)
    return outfile
