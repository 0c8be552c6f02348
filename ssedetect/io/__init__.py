"""
I/O modules for station time series and detection results.

Provides:
- Station x day position matrices built from long-format tables
- CSV/JSON export of the event catalog
"""

from .timeseries import StationArrays, from_dataframe, load_timeseries
from .catalog import save_catalog

__all__ = [
    'StationArrays',
    'from_dataframe',
    'load_timeseries',
    'save_catalog',
]
