"""
===========================================================
elli_track.edges — 1-D edge search along a contour normal
===========================================================

The tracker only depends on the EdgeSearch contract:

    search(image, point, direction, search_range) -> EdgeMatch

GradientEdgeSearch is the default strategy: it samples the intensity
profile along the direction, scores every integer offset with a centred
step-edge response and keeps the strongest one.
"""

# --- Imports --------------------------------------------------------------

from typing import NamedTuple, Protocol

import numpy as np
from scipy import ndimage


class EdgeMatch(NamedTuple):
    position: np.ndarray
    confidence: float
    found: bool


class EdgeSearch(Protocol):
    def search(self, image: np.ndarray, point, direction, search_range: int) -> EdgeMatch:
        ...


def inside(image: np.ndarray, point, margin: float = 0.0) -> bool:
    """True if (i, j) lies in the image, at least `margin` pixels from the border."""
    H, W = image.shape[:2]
    i, j = float(point[0]), float(point[1])
    return margin <= i <= H - 1 - margin and margin <= j <= W - 1 - margin


# --- Gradient search ------------------------------------------------------

class GradientEdgeSearch:
    """
    Strongest step edge along a line.

    Parameters
    ----------
    mask_half : int
        Half-width (pixels) of the step mask on each side of the edge.
    threshold : float
        Minimum |response| (intensity units) for an edge to count as found.
    contrast : float
        Response mapped to confidence 1.0; smaller responses scale linearly.
    """

    def __init__(self, mask_half: int = 2, threshold: float = 10.0, contrast: float = 50.0):
        self.mask_half = max(1, int(mask_half))
        self.threshold = float(threshold)
        self.contrast = max(float(contrast), 1e-12)

    def profile(self, image: np.ndarray, point, direction, search_range: int) -> np.ndarray:
        """Step responses at offsets -search_range..search_range."""
        p = np.asarray(point, float)
        d = np.asarray(direction, float)
        d = d / (np.linalg.norm(d) or 1.0)
        h = self.mask_half
        k = np.arange(-search_range - h, search_range + h + 1, dtype=float)
        coords = p[:, None] + d[:, None] * k[None, :]
        line = ndimage.map_coordinates(np.asarray(image, float), coords, order=1, mode="nearest")
        # response at offset k: mean(k+1..k+h) - mean(k-h..k-1)
        c = np.concatenate([[0.0], np.cumsum(line)])
        idx = np.arange(h, h + 2 * search_range + 1)
        after = c[idx + h + 1] - c[idx + 1]
        before = c[idx] - c[idx - h]
        return (after - before) / h

    def search(self, image, point, direction, search_range: int) -> EdgeMatch:
        p = np.asarray(point, float)
        if not inside(image, p):
            return EdgeMatch(p, 0.0, False)
        search_range = max(1, int(search_range))
        g = np.abs(self.profile(image, p, direction, search_range))
        kbest = int(np.argmax(g))
        peak = float(g[kbest])
        if peak < self.threshold:
            return EdgeMatch(p, float(min(1.0, peak / self.contrast)), False)

        # parabolic sub-pixel refinement
        delta = 0.0
        if 0 < kbest < g.size - 1:
            gm, g0, gp = g[kbest - 1], g[kbest], g[kbest + 1]
            den = gm - 2.0 * g0 + gp
            if den < 0.0:
                delta = float(np.clip(0.5 * (gm - gp) / den, -0.5, 0.5))
        d = np.asarray(direction, float)
        d = d / (np.linalg.norm(d) or 1.0)
        q = p + (kbest - search_range + delta) * d
        if not inside(image, q):
            return EdgeMatch(p, 0.0, False)
        return EdgeMatch(q, float(min(1.0, peak / self.contrast)), True)
