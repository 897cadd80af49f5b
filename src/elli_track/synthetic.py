"""
===========================================================
elli_track.synthetic — synthetic frames for tests and demos
===========================================================
"""

import numpy as np


def render_ellipse(shape, center, a: float, b: float, e: float,
                   fg: float = 200.0, bg: float = 50.0, blur: float = 0.7) -> np.ndarray:
    """
    Anti-aliased filled ellipse on a flat background.

    The edge is a logistic ramp of width `blur` pixels centred exactly on
    the contour, so the strongest gradient lies on the ellipse itself.
    """
    H, W = shape
    I, J = np.mgrid[0:H, 0:W].astype(float)
    di, dj = I - center[0], J - center[1]
    ce, se = np.cos(e), np.sin(e)
    u = ce * di + se * dj
    v = -se * di + ce * dj
    r = np.sqrt((u / b) ** 2 + (v / a) ** 2)
    # approximate signed distance (pixels) to the contour
    d = (r - 1.0) * np.sqrt(a * b)
    t = 1.0 / (1.0 + np.exp(np.clip(d / blur, -50.0, 50.0)))
    return bg + (fg - bg) * t


def occlude(image: np.ndarray, j_from: int, value: float = 128.0) -> np.ndarray:
    """Copy of image with every column from j_from on flattened to `value`."""
    out = np.array(image, float, copy=True)
    out[:, int(j_from):] = value
    return out
