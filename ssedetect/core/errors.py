"""
Exception hierarchy for SSEDETECT.

Per-station and per-event errors are caught by the stage that raised them and
degrade that station or event to "no detection" / "no estimate". Only
ConfigurationError and InputShapeError from mismatched inputs reach the caller.
"""


class SSEError(Exception):
    """Base class for all detection errors."""


class InputShapeError(SSEError):
    """Station-day matrices disagree in shape, or too few days for a fit."""


class DegenerateThresholdError(SSEError):
    """A station has no negative slope scores, so no threshold exists."""


class SingularFitError(SSEError):
    """The weighted normal matrix of a displacement fit is (near) singular."""


class ConfigurationError(SSEError):
    """A detection parameter is out of range."""
