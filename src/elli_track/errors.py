"""
===========================================================
elli_track.errors — exception hierarchy
===========================================================

Every error raised on purpose by the tracker derives from ElliTrackError
and from the built-in exception it naturally specializes (ValueError for
bad inputs, RuntimeError for numerical or tracking failures), so callers
can catch either family.
"""


class ElliTrackError(Exception):
    """Base class of all elli_track errors."""


class InsufficientPointsError(ElliTrackError, ValueError):
    """A conic fit was attempted with fewer points than the model needs."""

    def __init__(self, available: int, required: int):
        super().__init__(f"Need ≥ {required} valid points for conic fit, got {available}.")
        self.available = available
        self.required = required


class DegenerateConicError(ElliTrackError, RuntimeError):
    """Fitted coefficients do not describe a real ellipse."""


class TrackingLostError(ElliTrackError, RuntimeError):
    """Too few points survived the frame; the tracker must be re-initialized."""


class InvalidConfigError(ElliTrackError, ValueError):
    """A configuration value cannot be interpreted (NaN, non-numeric)."""
