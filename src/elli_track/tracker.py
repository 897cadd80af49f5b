"""
===========================================================
elli_track.tracker — per-frame ellipse tracker
===========================================================

EllipseTracker composes the pieces of the package into a moving-edges
tracker:

    init_tracking(image, points)   fit the clicked / given points, sample
    track(image)                   one frame:
        1. edge search for every sample point
        2. robust conic fit
        3. geometry (center, a, b, e)
        4. update_theta, suppress_points, re_sample
        5. seek_extremities, set_extremities
        6. moments

States
------
    UNINITIALIZED -> INITIALIZED -> TRACKING -> LOST -> RELEASED

A failed fit (InsufficientPointsError, DegenerateConicError) is raised to
the caller and leaves the model at the last good frame. When fewer points
than the tracking floor survive a fit the tracker becomes LOST and raises
TrackingLostError until init_tracking() is called again.
"""

# --- Imports --------------------------------------------------------------

import copy
import logging
from enum import Enum

import numpy as np

from .arc import compute_angle, seek_extremities, set_extremities, update_theta
from .config import TrackerConfig
from .core import compute_moments, derive_geometry, fit_conic
from .edges import GradientEdgeSearch
from .errors import TrackingLostError
from .sites import SamplePointSet, re_sample, sample, suppress_points

logger = logging.getLogger(__name__)


class TrackerState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    TRACKING = "tracking"
    LOST = "lost"
    RELEASED = "released"


# --- Tracker --------------------------------------------------------------

class EllipseTracker:
    """
    Moving-edges tracker of an ellipse (or circle) contour.

    Parameters
    ----------
    config : TrackerConfig, optional
        Knobs; keyword overrides build one when omitted.
    edge_search : EdgeSearch, optional
        Per-point search strategy (default GradientEdgeSearch()).
    """

    def __init__(self, config: TrackerConfig = None, edge_search=None, **overrides):
        self.config = config if config is not None else TrackerConfig(**overrides)
        self.edge_search = edge_search if edge_search is not None else GradientEdgeSearch()
        self.state = TrackerState.UNINITIALIZED
        self.points = SamplePointSet()
        self.conic = None
        self.geometry = None
        self.arc = None
        self.moments = None
        self.frames = 0

    # --- Configuration ---------------------------------------------------

    def set_circle(self, circle: bool):
        self.config.circle = bool(circle)

    def set_threshold_robust(self, threshold) -> float:
        return self.config.set_threshold_robust(threshold)

    # --- Accessors -------------------------------------------------------

    @property
    def center(self):
        return self.geometry.center

    @property
    def a(self) -> float:
        return self.geometry.a

    @property
    def b(self) -> float:
        return self.geometry.b

    @property
    def e(self) -> float:
        return self.geometry.e

    @property
    def smallest_angle(self) -> float:
        return self.arc.alpha1

    @property
    def highest_angle(self) -> float:
        return self.arc.alpha2

    def equation_param(self):
        return self.geometry.a, self.geometry.b, self.geometry.e

    # --- Lifecycle -------------------------------------------------------

    def _check_alive(self):
        if self.state is TrackerState.RELEASED:
            raise RuntimeError("tracker has been released")

    def init_tracking(self, image, points):
        """
        Start tracking from points lying on the contour.

        Parameters
        ----------
        image : np.ndarray
            First frame (2-D intensity array indexed [i, j]).
        points : array-like, shape (N, 2)
            (i, j) contour points, N ≥ 5 (≥ 3 in circle mode). The first and
            last points bound the initial arc, walked in increasing alpha.
        """
        self._check_alive()
        cfg = self.config
        P = np.asarray(points, float).reshape(-1, 2)
        fit = fit_conic(P, circle=cfg.circle, threshold=0.0, max_iterations=1)
        geometry = derive_geometry(fit.conic, axis_tol=cfg.axis_tolerance)
        arc = compute_angle(geometry, P[0], P[-1])

        self.conic, self.geometry, self.arc = fit.conic, geometry, arc
        sample(self.points, geometry, arc, image, self.edge_search,
               cfg.step_rad, cfg.search_range)
        self.moments = compute_moments(geometry)
        self.frames = 0
        self.state = TrackerState.INITIALIZED
        logger.info("initialized: center=(%.2f, %.2f) a=%.2f b=%.2f e=%.3f, %d points",
                    *geometry.center, geometry.a, geometry.b, geometry.e, len(self.points))

    def release(self):
        self.points.clear()
        self.state = TrackerState.RELEASED
        logger.info("tracker released")

    def copy(self) -> "EllipseTracker":
        return copy.deepcopy(self)

    # --- Fitting ---------------------------------------------------------

    def refit(self):
        """
        Robust fit on the valid points, then commit conic and geometry.

        Outliers are flagged invalid. On error nothing is modified.
        """
        cfg = self.config
        valid = self.points.valid_points()
        P = np.array([p.position for p in valid]).reshape(-1, 2)
        w = np.array([p.confidence for p in valid])
        fit = fit_conic(P, w, circle=cfg.circle, threshold=cfg.threshold_robust,
                        max_iterations=cfg.max_iterations)
        geometry = derive_geometry(fit.conic, e_prev=self.geometry.e if self.geometry else None,
                                   axis_tol=cfg.axis_tolerance)

        for p, weight, ok in zip(valid, fit.weights, fit.inliers):
            p.weight = float(weight)
            p.valid = bool(ok)
        self.conic, self.geometry = fit.conic, geometry
        logger.debug("fit: %d/%d inliers after %d iterations",
                     int(fit.inliers.sum()), len(valid), fit.iterations)
        return fit

    # --- Per-frame -------------------------------------------------------

    def _search(self, image):
        cfg = self.config
        matches = []
        for p in self.points:
            normal = self.geometry.normal_at(self.points.angle(p.pid))
            matches.append((p, self.edge_search.search(image, p.position, normal, cfg.search_range)))
        # the shared model is only touched once every search is done
        for p, m in matches:
            if m.found:
                p.position = np.asarray(m.position, float)
            p.confidence = float(m.confidence)
            p.valid = bool(m.found)

    def track(self, image):
        """
        Track the ellipse in a new frame.

        Returns
        -------
        EllipseGeometry
            The geometry fitted on this frame.

        Raises
        ------
        InsufficientPointsError, DegenerateConicError
            The frame could not be fitted; the previous model is kept.
        TrackingLostError
            Too few points survived; re-initialize the tracker.
        """
        self._check_alive()
        if self.state is TrackerState.UNINITIALIZED:
            raise RuntimeError("init_tracking() must be called before track()")
        if self.state is TrackerState.LOST:
            raise TrackingLostError("tracker is lost; call init_tracking() again")

        cfg = self.config
        step = cfg.step_rad

        self._search(image)
        self.refit()

        if self.points.n_valid < cfg.tracking_floor:
            self.state = TrackerState.LOST
            logger.info("tracking lost: %d valid points < floor %d",
                        self.points.n_valid, cfg.tracking_floor)
            raise TrackingLostError(
                f"{self.points.n_valid} valid points left, floor is {cfg.tracking_floor}")

        self.arc = update_theta(self.points, self.geometry, self.arc)
        removed = suppress_points(self.points)
        re_sample(self.points, self.geometry, self.arc, image, self.edge_search,
                  step, cfg.search_range)

        self.arc, added = seek_extremities(self.points, self.geometry, self.arc, image,
                                           self.edge_search, step, cfg.seek_range,
                                           cfg.seek_steps)
        self.arc = set_extremities(self.points, self.arc, step)
        self.moments = compute_moments(self.geometry)

        self.frames += 1
        self.state = TrackerState.TRACKING
        logger.debug("frame %d: %d points (-%d, +%d seek), arc %.1f deg",
                     self.frames, len(self.points), removed, added,
                     np.degrees(self.arc.extent))
        return self.geometry

    # --- Output ----------------------------------------------------------

    def print_parameters(self) -> str:
        K = ", ".join(f"{k:.6g}" for k in self.conic.K)
        g = self.geometry
        text = (f"K = [{K}]\n"
                f"center = ({g.center[0]:.3f}, {g.center[1]:.3f})\n"
                f"a = {g.a:.3f}, b = {g.b:.3f}, e = {np.degrees(g.e):.2f} deg\n"
                f"alpha1 = {np.degrees(self.arc.alpha1):.2f} deg, "
                f"alpha2 = {np.degrees(self.arc.alpha2):.2f} deg")
        logger.info("ellipse parameters:\n%s", text)
        return text

    def display(self, draw, canvas, color="g"):
        """Hand the current arc to a draw(canvas, center, a, b, e, alpha1, alpha2, color) callable."""
        g = self.geometry
        return draw(canvas, g.center, g.a, g.b, g.e, self.arc.alpha1, self.arc.alpha2, color)
