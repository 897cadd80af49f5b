"""
===========================================================
elli_track.sites — sample points along the tracked contour
===========================================================

A SamplePointSet owns the moving-edge points. Each point has a stable
integer id; the parametric angle of every point lives in a separate
id -> angle mapping that is rebuilt in one pass by update_theta()
(see elli_track.arc) after each fit, never patched point by point.

Functions
---------
  - sample()          : fresh points at a fixed angular step on the arc
  - re_sample()       : refill the arc when the valid density drops
  - suppress_points() : drop points flagged invalid
"""

# --- Imports --------------------------------------------------------------

import itertools
import logging
from dataclasses import dataclass

import numpy as np

from .core import EllipseGeometry, wrap_pi
from .edges import EdgeSearch, inside

logger = logging.getLogger(__name__)

RESAMPLE_DENSITY = 0.9


# --- Sample points --------------------------------------------------------

@dataclass
class SamplePoint:
    pid: int
    position: np.ndarray
    weight: float = 1.0        # robust weight from the last fit
    confidence: float = 1.0    # edge-search confidence
    valid: bool = True


class SamplePointSet:
    """Ordered collection of SamplePoint with an explicit id -> angle map."""

    def __init__(self):
        self._points = {}
        self._angles = {}
        self._ids = itertools.count()

    def __len__(self):
        return len(self._points)

    def __iter__(self):
        return iter(list(self._points.values()))

    def __contains__(self, pid):
        return pid in self._points

    def add(self, position, angle: float, confidence: float = 1.0,
            valid: bool = True) -> SamplePoint:
        pid = next(self._ids)
        pt = SamplePoint(pid, np.asarray(position, float).copy(),
                         confidence=float(confidence), valid=bool(valid))
        self._points[pid] = pt
        self._angles[pid] = float(angle)
        return pt

    def get(self, pid: int) -> SamplePoint:
        return self._points[pid]

    def angle(self, pid: int) -> float:
        return self._angles[pid]

    def angles(self) -> dict:
        return dict(self._angles)

    def set_angles(self, mapping: dict):
        """Replace the whole angle map; keys must match the current points."""
        if set(mapping) != set(self._points):
            raise KeyError("angle map does not match the sample points")
        self._angles = {pid: float(a) for pid, a in mapping.items()}

    def remove(self, pid: int):
        del self._points[pid]
        del self._angles[pid]

    def clear(self):
        self._points.clear()
        self._angles.clear()

    def valid_points(self) -> list:
        return [p for p in self._points.values() if p.valid]

    @property
    def n_valid(self) -> int:
        return sum(1 for p in self._points.values() if p.valid)

    def positions(self, valid_only: bool = True) -> np.ndarray:
        pts = self.valid_points() if valid_only else list(self._points.values())
        if not pts:
            return np.empty((0, 2))
        return np.array([p.position for p in pts])


# --- Sampling -------------------------------------------------------------

def _grid(alpha1: float, alpha2: float, step: float) -> np.ndarray:
    extent = alpha2 - alpha1
    if extent >= 2.0 * np.pi - 1e-9:
        # closed contour: the last point must stay half a step away from the first
        k = np.arange(int(np.ceil(2.0 * np.pi / step)) + 1)
        return alpha1 + step * k[step * k < 2.0 * np.pi - 0.5 * step]
    n = int(np.floor(extent / step + 1e-9)) + 1
    return alpha1 + step * np.arange(n)


def place_point(points: SamplePointSet, geometry: EllipseGeometry, alpha: float,
                image, search: EdgeSearch, search_range: int, margin: float):
    """Create one point at alpha snapped to the nearest edge; None if no edge."""
    p = geometry.point_at(alpha)
    if not inside(image, p, margin):
        return None
    match = search.search(image, p, geometry.normal_at(alpha), search_range)
    if not match.found:
        return None
    return points.add(match.position, geometry.angle_of(match.position), match.confidence)


def sample(points: SamplePointSet, geometry: EllipseGeometry, arc, image,
           search: EdgeSearch, step: float, search_range: int) -> int:
    """
    Replace all points by a fresh set at `step` radians along the arc.

    Each candidate is snapped by one edge search; candidates outside the
    image or without an edge are skipped. Returns the number of points.
    """
    points.clear()
    for alpha in _grid(arc.alpha1, arc.alpha2, step):
        place_point(points, geometry, float(alpha), image, search, search_range, search_range)
    logger.debug("sampled %d points on [%.3f, %.3f]", len(points), arc.alpha1, arc.alpha2)
    return len(points)


def expected_density(arc, step: float) -> float:
    return (arc.alpha2 - arc.alpha1) / step


def re_sample(points: SamplePointSet, geometry: EllipseGeometry, arc, image,
              search: EdgeSearch, step: float, search_range: int) -> bool:
    """
    Refill the arc when fewer than 90% of the expected points are valid.

    Existing points are kept; a new point is only placed on grid angles with
    no existing point within half a step. Returns True if it resampled.
    """
    if points.n_valid >= RESAMPLE_DENSITY * expected_density(arc, step):
        return False
    have = np.array([points.angle(p.pid) for p in points.valid_points()])
    added = 0
    for alpha in _grid(arc.alpha1, arc.alpha2, step):
        if have.size and np.min(np.abs(wrap_pi(have - alpha))) < 0.5 * step:
            continue
        if place_point(points, geometry, float(alpha), image, search, search_range, search_range):
            added += 1
    logger.debug("re-sampled: %d points added, %d valid", added, points.n_valid)
    return True


def suppress_points(points: SamplePointSet) -> int:
    """Remove every invalid point; returns how many were removed."""
    dead = [p.pid for p in points if not p.valid]
    for pid in dead:
        points.remove(pid)
    return len(dead)
