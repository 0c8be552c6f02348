"""
Core algorithms for slow slip event detection and cataloging.

This module provides:
- Station neighbor graphs from ellipsoidal distances
- Per-station thresholds and event segmentation
- Neighbor corroboration, network spike detection and cataloging
- Weighted least-squares event displacements
"""

from .config import DetectionConfig, from_mapping, load_config
from .errors import (
    SSEError,
    InputShapeError,
    DegenerateThresholdError,
    SingularFitError,
    ConfigurationError,
)
from .geometry import compute_distance_matrix, build_neighbor_graph
from .threshold import estimate_thresholds
from .segmentation import StationEvent, find_runs, segment_events, events_to_coverage
from .neighbors import filter_events_by_neighbors
from .spikes import CatalogSpike, detect_spikes
from .catalog import Assignment, catalog_events
from .velocity import fit_displacement, estimate_displacements
from .slopes import daily_slopes, SlopeScoreCache
from .pipeline import SSECatalog, detect_sse

__all__ = [
    'DetectionConfig',
    'from_mapping',
    'load_config',
    'SSEError',
    'InputShapeError',
    'DegenerateThresholdError',
    'SingularFitError',
    'ConfigurationError',
    'compute_distance_matrix',
    'build_neighbor_graph',
    'estimate_thresholds',
    'StationEvent',
    'find_runs',
    'segment_events',
    'events_to_coverage',
    'filter_events_by_neighbors',
    'CatalogSpike',
    'detect_spikes',
    'Assignment',
    'catalog_events',
    'fit_displacement',
    'estimate_displacements',
    'daily_slopes',
    'SlopeScoreCache',
    'SSECatalog',
    'detect_sse',
]
