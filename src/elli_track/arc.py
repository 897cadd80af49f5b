"""
===========================================================
elli_track.arc — visible arc of the tracked ellipse
===========================================================

The arc [alpha1, alpha2] is the part of the parametrization currently
backed by edge points. alpha1 is kept in [-π, π) and alpha2 = alpha1 +
extent with 0 ≤ extent ≤ 2π, so alpha1 ≤ alpha2 always holds.

  - compute_angle()    : initial arc from two boundary points
  - update_theta()     : re-angle points and arc after a new fit
  - seek_extremities() : probe beyond both ends, grow the arc on edges
  - set_extremities()  : arc = complement of the largest angular gap
"""

# --- Imports --------------------------------------------------------------

import logging
from dataclasses import dataclass

import numpy as np

from .core import EllipseGeometry, wrap_2pi, wrap_pi
from .sites import SamplePointSet, place_point

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * np.pi
FULL_GAP = 2.5      # in sample steps: a larger gap opens the arc
MIN_GAP = 1.5       # in sample steps: room needed to place one more point


# --- Arc range ------------------------------------------------------------

@dataclass(frozen=True)
class ArcRange:
    alpha1: float
    alpha2: float
    p1: tuple
    p2: tuple

    @property
    def extent(self) -> float:
        return self.alpha2 - self.alpha1

    @property
    def is_full(self) -> bool:
        return self.extent >= TWO_PI - 1e-9

    def contains(self, alpha: float) -> bool:
        return wrap_2pi(alpha - self.alpha1) <= self.extent + 1e-12


def _arc(alpha1, extent, p1, p2) -> ArcRange:
    a1 = float(wrap_pi(alpha1))
    extent = float(min(max(extent, 0.0), TWO_PI))
    return ArcRange(a1, a1 + extent,
                    (float(p1[0]), float(p1[1])), (float(p2[0]), float(p2[1])))


def compute_angle(geometry: EllipseGeometry, p1, p2) -> ArcRange:
    """
    Arc running from p1 to p2 in increasing alpha.

    Coincident end points describe the whole contour.
    """
    a1 = float(geometry.angle_of(p1))
    extent = float(wrap_2pi(geometry.angle_of(p2) - a1))
    if extent < 1e-9:
        extent = TWO_PI
    return _arc(a1, extent, p1, p2)


def update_theta(points: SamplePointSet, geometry: EllipseGeometry, arc: ArcRange) -> ArcRange:
    """Rebuild the id -> angle map and re-angle the arc for a new geometry."""
    points.set_angles({p.pid: float(geometry.angle_of(p.position)) for p in points})
    a1 = float(geometry.angle_of(arc.p1))
    if arc.is_full:
        return _arc(a1, TWO_PI, arc.p1, arc.p2)
    extent = float(wrap_2pi(geometry.angle_of(arc.p2) - a1))
    if abs(extent - arc.extent) > np.pi:
        # end points swapped sides of the wrap; keep the previous extent
        extent = arc.extent
    return _arc(a1, extent, arc.p1, arc.p2)


def seek_extremities(points: SamplePointSet, geometry: EllipseGeometry, arc: ArcRange,
                     image, search, step: float, seek_range: int,
                     seek_steps: int = 3):
    """
    Try to extend both ends of the arc by up to `seek_steps` sample steps.

    Each probe sits one step beyond the current end, on the model, and is
    searched with the reduced `seek_range`. An end advances while probes
    find edges and stops at the first miss; new points join the set.

    Returns
    -------
    (ArcRange, int)
        The extended arc and the number of points added.
    """
    if arc.is_full:
        return arc, 0
    lo, hi = arc.alpha1, arc.alpha2
    gap = TWO_PI - arc.extent
    added = 0
    for side in (-1, 1):
        for _ in range(max(1, int(seek_steps))):
            if gap < MIN_GAP * step:
                break
            alpha = lo - step if side < 0 else hi + step
            if place_point(points, geometry, alpha, image, search, seek_range, seek_range) is None:
                break
            if side < 0:
                lo = alpha
            else:
                hi = alpha
            gap -= step
            added += 1
    if not added:
        return arc, 0
    return _arc(lo, hi - lo, geometry.point_at(lo), geometry.point_at(hi)), added


def set_extremities(points: SamplePointSet, arc: ArcRange, step: float) -> ArcRange:
    """
    Arc spanned by the valid points: the complement of their largest gap.

    A largest gap of at most FULL_GAP steps closes the arc to 2π.
    """
    valid = points.valid_points()
    if not valid:
        return arc
    ang = wrap_2pi(np.array([points.angle(p.pid) for p in valid]))
    order = np.argsort(ang)
    s = ang[order]
    gaps = np.diff(np.append(s, s[0] + TWO_PI))
    k = int(np.argmax(gaps))
    start = (k + 1) % len(s)
    first, last = valid[order[start]], valid[order[k]]
    if gaps[k] <= FULL_GAP * step:
        new = _arc(s[start], TWO_PI, first.position, last.position)
    else:
        new = _arc(s[start], TWO_PI - gaps[k], first.position, last.position)
    logger.debug("arc [%.3f, %.3f] extent %.1f deg from %d points",
                 new.alpha1, new.alpha2, np.degrees(new.extent), len(valid))
    return new
