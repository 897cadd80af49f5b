"""
===========================================================
elli_track — moving-edges ellipse tracker
===========================================================

A NumPy-based toolkit for following an ellipse (or circle) contour across
a video sequence: sample points along the current estimate, search each
one along its normal for the strongest edge, robustly re-fit the implicit
conic, and keep track of the visible arc under occlusion.

Main objects
------------
- EllipseTracker(config, edge_search)
- TrackerConfig
- GradientEdgeSearch
- fit_conic(points, weights), derive_geometry(conic), compute_moments(geometry)

Typical workflow
----------------
    from elli_track import EllipseTracker
    tracker = EllipseTracker(sample_step=5, search_range=8)
    tracker.init_tracking(frame0, points_ij)
    for frame in frames:
        tracker.track(frame)
        print(tracker.center, tracker.a, tracker.b, tracker.e)
"""

# --- Public Imports -------------------------------------------------------

from .arc import ArcRange
from .config import TrackerConfig
from .core import (ConicModel, EllipseGeometry, MomentSet, compute_moments,
                   derive_geometry, fit_conic, geometry_to_conic)
from .edges import EdgeMatch, GradientEdgeSearch
from .errors import (DegenerateConicError, ElliTrackError, InsufficientPointsError,
                     InvalidConfigError, TrackingLostError)
from .io import load_frame, save_points_csv, save_tracking_csv
from .tracker import EllipseTracker, TrackerState

__all__ = [
    "ArcRange",
    "ConicModel",
    "EllipseGeometry",
    "MomentSet",
    "TrackerConfig",
    "EdgeMatch",
    "GradientEdgeSearch",
    "EllipseTracker",
    "TrackerState",
    "fit_conic",
    "derive_geometry",
    "geometry_to_conic",
    "compute_moments",
    "load_frame",
    "save_points_csv",
    "save_tracking_csv",
    "ElliTrackError",
    "InsufficientPointsError",
    "DegenerateConicError",
    "TrackingLostError",
    "InvalidConfigError",
]
