"""
Export of detection results.

Writes the event catalog, per-station displacements and thresholds as CSV
tables plus a JSON summary.
"""

import os
import json
import logging
from datetime import date

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def day_to_iso(day):
    """Format a day number as YYYY-MM-DD ('' for non-positive values)."""
    if not np.isfinite(day) or day <= 0:
        return ''
    return date.fromordinal(int(round(day))).isoformat()


def thresholds_table(catalog):
    return pd.DataFrame({
        'station': catalog.names,
        'lat': catalog.lat,
        'lon': catalog.lon,
        'threshold': catalog.thresholds,
        'n_events': [len(ev) for ev in catalog.events],
        'first_day': [day_to_iso(d) for d in catalog.first_day],
        'last_day': [day_to_iso(d) for d in catalog.last_day],
        'isolated': catalog.isolated,
    })


def catalog_summary(catalog):
    """JSON-serializable summary of a detection run."""
    events = []
    for j, s in enumerate(catalog.spikes):
        events.append({
            'event': j,
            'begin': day_to_iso(catalog.fulldate[s.begin]),
            'end': day_to_iso(catalog.fulldate[s.end]),
            'day': day_to_iso(catalog.fulldate[s.day]),
            'stations': [catalog.names[i] for i in s.stations],
        })
    return {
        'config': catalog.config.to_dict(),
        'n_stations': len(catalog.names),
        'n_events': catalog.n_events,
        'degenerate_stations': [catalog.names[i] for i in catalog.degenerate_stations],
        'events': events,
    }


def save_catalog(catalog, outdir, prefix=''):
    """
    Save a detection catalog.

    Parameters
    ----------
    catalog : SSECatalog
        Detection result
    outdir : str
        Output directory (created if needed)
    prefix : str
        Optional file name prefix

    Returns
    -------
    paths : dict
        Mapping of output kind to written file path
    """
    os.makedirs(outdir, exist_ok=True)
    paths = {
        'events': os.path.join(outdir, f'{prefix}events.csv'),
        'displacements': os.path.join(outdir, f'{prefix}displacements.csv'),
        'thresholds': os.path.join(outdir, f'{prefix}thresholds.csv'),
        'summary': os.path.join(outdir, f'{prefix}catalog.json'),
    }

    events = catalog.events_table()
    events['begin'] = events['begin'].map(day_to_iso)
    events['end'] = events['end'].map(day_to_iso)
    events['day'] = events['day'].map(day_to_iso)
    events.to_csv(paths['events'], index=False)

    displacements = catalog.displacement_table()
    displacements['start_date'] = displacements['start_date'].map(day_to_iso)
    displacements.to_csv(paths['displacements'], index=False)

    thresholds_table(catalog).to_csv(paths['thresholds'], index=False)

    with open(paths['summary'], 'w') as fh:
        json.dump(catalog_summary(catalog), fh, indent=2)

    logger.info(f"Saved catalog with {catalog.n_events} events to {outdir}")
    return paths
