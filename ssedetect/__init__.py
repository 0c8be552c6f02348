"""
SSEDETECT - Slow Slip Event detection from GNSS position time series

Detects, catalogs and characterizes slow slip events from daily
multi-station geodetic positions.

This package provides:
- Moving-window daily slope scores and per-station thresholds
- Per-station event segmentation and neighbor corroboration
- Network-wide event cataloging from concurrent station detections
- Weighted least-squares event displacements with uncertainties
"""

__version__ = "0.1.0"

from . import core
from . import io

__all__ = ['core', 'io']
