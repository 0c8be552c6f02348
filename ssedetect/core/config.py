"""
Detection configuration for SSEDETECT.

Parameters may come from keyword arguments, a plain mapping or a YAML file.
YAML keys may use hyphens (``prop-thresh``) or underscores; both map to the
same field.
"""

import logging
from dataclasses import dataclass, fields, asdict

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

COMPONENTS = ('east', 'north')


@dataclass
class DetectionConfig:
    """
    Parameters of one detection run.

    Parameters
    ----------
    window_half_width : int
        Half-width (days) of the slope-scoring window; also the temporal
        tolerance used to corroborate events between neighbors.
    prop_thresh : float
        Proportion (0, 1) of each station's negative slope scores flagged as
        anomalous.
    min_stations : int
        Minimum number of felt stations for a network spike to be kept.
    score_sign : float
        Multiplier applied to slope scores before thresholding.
    min_duration : int
        Shortest per-station event (days) that is kept.
    neighbor_distance : float
        Neighbor distance threshold in km.
    neighbor_fraction : float
        Fraction of neighbors that must corroborate a per-station event.
    reverse_neighbor : bool
        Assign dates from the nearest felt neighbor to stations that did not
        detect an event that most of their neighbors felt.
    reverse_neighbor_fraction : float
        Fraction of neighbors (strictly exceeded) that marks a station as
        neighbor-felt.
    reverse_min_coverage : float
        Fraction of inherited event days that must be observed for a
        neighbor assignment to stand.
    histogram_bins : int
        Number of histogram bins used for the threshold percentile.
    detection_component : str
        Position component whose scores drive detection ('east' or 'north').
    max_condition : float
        Largest condition number accepted for a displacement fit.
    """
    window_half_width: int
    prop_thresh: float
    min_stations: int = 10
    score_sign: float = 1.0
    min_duration: int = 10
    neighbor_distance: float = 55.0
    neighbor_fraction: float = 0.1
    reverse_neighbor: bool = False
    reverse_neighbor_fraction: float = 1.0 / 3.0
    reverse_min_coverage: float = 0.5
    histogram_bins: int = 100
    detection_component: str = 'east'
    max_condition: float = 1e12

    def validate(self):
        """Raise ConfigurationError for any out-of-range parameter."""
        if int(self.window_half_width) != self.window_half_width or self.window_half_width <= 0:
            raise ConfigurationError(
                f"window_half_width must be a positive integer, got {self.window_half_width!r}")
        if not 0.0 < self.prop_thresh < 1.0:
            raise ConfigurationError(f"prop_thresh must lie in (0, 1), got {self.prop_thresh!r}")
        for name in ('min_stations', 'min_duration', 'histogram_bins'):
            value = getattr(self, name)
            if int(value) != value or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.neighbor_distance <= 0:
            raise ConfigurationError(
                f"neighbor_distance must be positive, got {self.neighbor_distance!r}")
        for name in ('neighbor_fraction', 'reverse_neighbor_fraction', 'reverse_min_coverage'):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ConfigurationError(f"{name} must lie in (0, 1], got {value!r}")
        if self.score_sign == 0:
            raise ConfigurationError("score_sign must be non-zero")
        if self.detection_component not in COMPONENTS:
            raise ConfigurationError(
                f"detection_component must be one of {COMPONENTS}, got {self.detection_component!r}")
        if self.max_condition <= 1:
            raise ConfigurationError(f"max_condition must exceed 1, got {self.max_condition!r}")
        return self

    def to_dict(self):
        return asdict(self)


def from_mapping(mapping):
    """Build a validated DetectionConfig from a mapping of options."""
    known = {f.name for f in fields(DetectionConfig)}
    options = {}
    for key, value in (mapping or {}).items():
        name = str(key).replace('-', '_')
        if name not in known:
            raise ConfigurationError(f"Unknown configuration option: {key}")
        options[name] = value
    try:
        config = DetectionConfig(**options)
    except TypeError as e:
        raise ConfigurationError(f"Incomplete configuration: {e}") from e
    return config.validate()


def read_config_file(path):
    """
    Read a YAML configuration file and return its mapping with keys
    normalized to underscores.
    """
    import yaml

    with open(path) as fh:
        cfg = yaml.safe_load(fh) or {}
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Configuration file {path} does not contain a mapping")
    logger.debug(f"Read {len(cfg)} options from {path}")
    return {str(k).replace('-', '_'): v for k, v in cfg.items()}


def load_config(path, **overrides):
    """
    Load a DetectionConfig from YAML; keyword overrides that are not None
    take precedence over file values.
    """
    cfg = read_config_file(path)
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    return from_mapping(cfg)
