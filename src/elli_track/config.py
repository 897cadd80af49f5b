"""
===========================================================
elli_track.config — tracker configuration knobs
===========================================================

All knobs are plain scalars. Finite out-of-range values are clamped into
their valid interval; only values that cannot be read as a number raise
InvalidConfigError.
"""

# --- Imports --------------------------------------------------------------

import math
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidConfigError


# --- Limits ---------------------------------------------------------------

MIN_SAMPLE_STEP = 0.5    # degrees
MAX_SAMPLE_STEP = 90.0   # degrees
MAX_AXIS_TOLERANCE = 0.5

# knob -> (lo, hi), enforced on every assignment
_CLAMPED = {
    "threshold_robust": (0.0, 1.0),
    "sample_step": (MIN_SAMPLE_STEP, MAX_SAMPLE_STEP),
    "axis_tolerance": (0.0, MAX_AXIS_TOLERANCE),
}


def _as_float(name: str, value) -> float:
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be a number, got {value!r}") from None
    if math.isnan(x):
        raise InvalidConfigError(f"{name} must not be NaN")
    return x


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def _at_least(name: str, value, lo: int) -> int:
    x = _as_float(name, value)
    if math.isinf(x):
        return lo if x < 0 else int(1e9)
    return max(lo, int(round(x)))


# --- Config ---------------------------------------------------------------

@dataclass
class TrackerConfig:
    """
    Scalar knobs of the ellipse tracker.

    Attributes
    ----------
    circle : bool
        Lock the model to a circle (K0 = 1, K1 = 0).
    threshold_robust : float
        Points whose robust weight falls below this value are rejected.
        0 never rejects, 1 rejects everything that is not a perfect fit.
    sample_step : float
        Angular distance between two sample points (degrees).
    search_range : int
        Half-length (pixels) of the 1-D search along each point normal.
    seek_range : int
        Search half-length used when probing beyond the arc extremities.
    seek_steps : int
        Maximum number of sample steps an extremity may advance per frame.
    max_iterations : int
        Iteration cap of the robust least-squares fit.
    min_points : int or None
        Tracking floor; None means the structural minimum (5, or 3 for a circle).
    axis_tolerance : float
        Relative eigenvalue gap under which the contour counts as a circle and
        the orientation e is carried over from the previous frame.

    threshold_robust, sample_step and axis_tolerance are clamped on every
    assignment, not only through their setters.
    """
    circle: bool = False
    threshold_robust: float = 0.2
    sample_step: float = 5.0
    search_range: int = 8
    seek_range: int = 3
    seek_steps: int = 3
    max_iterations: int = 10
    min_points: Optional[int] = None
    axis_tolerance: float = 1e-2

    def __setattr__(self, name, value):
        if name in _CLAMPED:
            lo, hi = _CLAMPED[name]
            value = clamp(_as_float(name, value), lo, hi)
        object.__setattr__(self, name, value)

    def __post_init__(self):
        self.circle = bool(self.circle)
        self.search_range = _at_least("search_range", self.search_range, 1)
        self.seek_range = _at_least("seek_range", self.seek_range, 1)
        self.seek_steps = _at_least("seek_steps", self.seek_steps, 1)
        self.max_iterations = _at_least("max_iterations", self.max_iterations, 1)
        if self.min_points is not None:
            self.min_points = _at_least("min_points", self.min_points, self.structural_minimum)

    def set_threshold_robust(self, threshold) -> float:
        """Clamp threshold into [0, 1] and store it."""
        self.threshold_robust = threshold
        return self.threshold_robust

    def set_sample_step(self, step_deg) -> float:
        self.sample_step = step_deg
        return self.sample_step

    @property
    def step_rad(self) -> float:
        return math.radians(self.sample_step)

    @property
    def structural_minimum(self) -> int:
        """Fewest points that determine the model: 3 for a circle, 5 otherwise."""
        return 3 if self.circle else 5

    @property
    def tracking_floor(self) -> int:
        if self.min_points is None:
            return self.structural_minimum
        return max(self.min_points, self.structural_minimum)
