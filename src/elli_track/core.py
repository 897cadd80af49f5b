"""
===========================================================
elli_track.core — conic model, robust fit, geometry (NumPy-only)
===========================================================

Implements the computational parts of the tracker:
  - ConicModel         : i² + K0 j² + 2K1 ij + 2K2 i + 2K3 j + K4 = 0
  - EllipseGeometry    : center, semi-axes (a ≤ b), orientation e
  - fit_conic()        : robust IRLS fit of K from weighted (i, j) points
  - derive_geometry()  : K -> (center, a, b, e)
  - geometry_to_conic(): (center, a, b, e) -> K
  - compute_moments()  : closed-form moments of the filled ellipse

Conventions
-----------
- Points are (i, j) = (row, column) image coordinates.
- b is the semimajor axis, a the semiminor axis, e the angle between the
  major axis and the i axis, wrapped into [-π/2, π/2).
- A point at parametric angle α is
      i = ic + b cos(e) cos(α) - a sin(e) sin(α)
      j = jc + b sin(e) cos(α) + a cos(e) sin(α)

Robust estimator
----------------
Tukey biweight IRLS on Sampson residuals (algebraic residual divided by the
gradient norm, i.e. a first-order distance in pixels). The scale is
1.4826·MAD floored at `min_scale` pixels. The linear solve is done in
Hartley-normalized coordinates (mean-center + RMS scale), then mapped back.
"""

# --- Imports --------------------------------------------------------------

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .errors import DegenerateConicError, InsufficientPointsError


TUKEY_C = 4.6851
MAD_TO_SIGMA = 1.4826
AXIS_TOL = 1e-2       # relative eigenvalue gap under which e is undefined


# --- Angle helpers --------------------------------------------------------

def wrap_half_pi(theta: float) -> float:
    """Wrap an axis angle into [-π/2, π/2)."""
    return (theta + np.pi / 2.0) % np.pi - np.pi / 2.0


def wrap_pi(theta):
    """Wrap angle(s) into [-π, π)."""
    return (theta + np.pi) % (2.0 * np.pi) - np.pi


def wrap_2pi(theta):
    """Wrap angle(s) into [0, 2π)."""
    return theta % (2.0 * np.pi)


# --- Data model -----------------------------------------------------------

@dataclass(frozen=True)
class ConicModel:
    """Coefficients (K0, K1, K2, K3, K4) of the implicit conic equation."""
    K: tuple

    def __post_init__(self):
        object.__setattr__(self, "K", tuple(float(k) for k in self.K))
        if len(self.K) != 5:
            raise ValueError("ConicModel expects 5 coefficients")

    @property
    def is_circle(self) -> bool:
        return self.K[0] == 1.0 and self.K[1] == 0.0

    def quadratic_form(self) -> np.ndarray:
        K0, K1 = self.K[0], self.K[1]
        return np.array([[1.0, K1], [K1, K0]])

    def evaluate(self, i, j):
        """Algebraic value F(i, j) (zero on the conic)."""
        K0, K1, K2, K3, K4 = self.K
        i = np.asarray(i, float); j = np.asarray(j, float)
        return i*i + K0*j*j + 2.0*K1*i*j + 2.0*K2*i + 2.0*K3*j + K4

    def gradient(self, i, j):
        """Gradient (dF/di, dF/dj), shape (..., 2)."""
        K0, K1, K2, K3, _ = self.K
        i = np.asarray(i, float); j = np.asarray(j, float)
        return np.stack([2.0*(i + K1*j + K2), 2.0*(K0*j + K1*i + K3)], axis=-1)

    def sampson_distance(self, points: np.ndarray) -> np.ndarray:
        """First-order signed distance (pixels) of (N, 2) points to the conic."""
        P = np.asarray(points, float).reshape(-1, 2)
        F = self.evaluate(P[:, 0], P[:, 1])
        g = np.linalg.norm(self.gradient(P[:, 0], P[:, 1]), axis=-1)
        return F / np.maximum(g, 1e-12)


@dataclass(frozen=True)
class EllipseGeometry:
    """Interpretable ellipse parameters, with cos(e)/sin(e) cached."""
    center: tuple
    a: float
    b: float
    e: float
    ce: float = field(init=False, repr=False)
    se: float = field(init=False, repr=False)

    def __post_init__(self):
        a, b, e = float(self.a), float(self.b), float(self.e)
        if not (np.isfinite(a) and np.isfinite(b) and np.isfinite(e)) or a <= 0.0 or b <= 0.0:
            raise ValueError(f"Semi-axes must be finite and positive (a={a}, b={b}, e={e}).")
        # b is the semimajor axis; swapping the axes turns the ellipse by π/2
        if a > b:
            a, b = b, a
            e += np.pi / 2.0
        e = float(wrap_half_pi(e))
        object.__setattr__(self, "center", (float(self.center[0]), float(self.center[1])))
        object.__setattr__(self, "a", a)
        object.__setattr__(self, "b", b)
        object.__setattr__(self, "e", e)
        object.__setattr__(self, "ce", float(np.cos(e)))
        object.__setattr__(self, "se", float(np.sin(e)))

    def point_at(self, alpha):
        """(i, j) point(s) at parametric angle(s) alpha, shape (..., 2)."""
        alpha = np.asarray(alpha, float)
        ic, jc = self.center
        ca, sa = np.cos(alpha), np.sin(alpha)
        i = ic + self.b * self.ce * ca - self.a * self.se * sa
        j = jc + self.b * self.se * ca + self.a * self.ce * sa
        return np.stack([i, j], axis=-1)

    def angle_of(self, points):
        """Parametric angle(s) in [-π, π) of (i, j) point(s)."""
        P = np.asarray(points, float)
        di = P[..., 0] - self.center[0]
        dj = P[..., 1] - self.center[1]
        u = self.ce * di + self.se * dj       # along major axis
        v = -self.se * di + self.ce * dj      # along minor axis
        return wrap_pi(np.arctan2(v / self.a, u / self.b))

    def normal_at(self, alpha):
        """Outward unit normal(s) at parametric angle(s) alpha, shape (..., 2)."""
        alpha = np.asarray(alpha, float)
        ca, sa = np.cos(alpha), np.sin(alpha)
        # gradient of (u/b)² + (v/a)² in the image frame
        gu, gv = ca / self.b, sa / self.a
        n = np.stack([self.ce * gu - self.se * gv, self.se * gu + self.ce * gv], axis=-1)
        return n / np.linalg.norm(n, axis=-1, keepdims=True)

    def to_conic(self) -> ConicModel:
        return geometry_to_conic(self)


@dataclass(frozen=True)
class MomentSet:
    """Raw (m..) and central (mu..) moments of the filled ellipse, i^n j^m convention."""
    m00: float
    m10: float
    m01: float
    m11: float
    m20: float
    m02: float
    mu11: float
    mu20: float
    mu02: float


@dataclass(frozen=True)
class FitResult:
    """Output of fit_conic(): the model plus per-point robust weights."""
    conic: ConicModel
    weights: np.ndarray
    inliers: np.ndarray
    iterations: int


# --- Conversions ----------------------------------------------------------

def geometry_to_conic(g: EllipseGeometry) -> ConicModel:
    """Implicit coefficients of an ellipse given by center, a, b, e."""
    ic, jc = g.center
    ce, se = g.ce, g.se
    ib2, ia2 = 1.0 / (g.b * g.b), 1.0 / (g.a * g.a)
    q00 = ce*ce*ib2 + se*se*ia2
    q01 = ce*se*(ib2 - ia2)
    q11 = se*se*ib2 + ce*ce*ia2
    K0, K1 = q11 / q00, q01 / q00
    K2 = -(ic + K1*jc)
    K3 = -(K1*ic + K0*jc)
    K4 = ic*ic + K0*jc*jc + 2.0*K1*ic*jc - 1.0 / q00
    return ConicModel((K0, K1, K2, K3, K4))


def derive_geometry(conic: ConicModel, e_prev: Optional[float] = None,
                    eps: float = 1e-12, axis_tol: float = AXIS_TOL) -> EllipseGeometry:
    """
    Center, semi-axes and orientation of an elliptic conic.

    Parameters
    ----------
    conic : ConicModel
        Fitted implicit coefficients.
    e_prev : float, optional
        Orientation of the previous frame. When the two eigenvalues agree
        within axis_tol (near-circle) the orientation is dominated by noise,
        so e_prev is carried over (0 when there is none).
    axis_tol : float
        Relative eigenvalue gap (w_max - w_min) / w_max below which the
        axes count as equal. About 2 (b - a) / b.

    Raises
    ------
    DegenerateConicError
        If the quadratic form is not positive definite or the conic is
        imaginary / reduced to a point.
    """
    Q = conic.quadratic_form()
    lin = np.array([conic.K[2], conic.K[3]])
    det = float(np.linalg.det(Q))
    if not np.isfinite(det) or det <= eps * max(1.0, float(np.abs(Q).max())) ** 2:
        raise DegenerateConicError(f"Quadratic form not elliptic (det={det:.3g}).")

    c = np.linalg.solve(Q, -lin)
    g0 = -(float(lin @ c) + conic.K[4])        # (x-c)ᵀQ(x-c) = g0
    if not np.isfinite(g0) or g0 <= 0.0:
        raise DegenerateConicError(f"Imaginary or point ellipse (rhs={g0:.3g}).")

    w, V = np.linalg.eigh(Q)                    # ascending: w[0] -> major axis
    b = float(np.sqrt(g0 / w[0]))
    a = float(np.sqrt(g0 / w[1]))
    if abs(w[1] - w[0]) <= max(axis_tol, eps) * w[1]:
        e = 0.0 if e_prev is None else wrap_half_pi(float(e_prev))
    else:
        e = wrap_half_pi(float(np.arctan2(V[1, 0], V[0, 0])))
    return EllipseGeometry((float(c[0]), float(c[1])), a, b, e)


# --- Robust fit -----------------------------------------------------------

def _normalize(P: np.ndarray):
    m = P.mean(axis=0)
    s = float(np.sqrt(np.mean(np.sum((P - m) ** 2, axis=1)))) or 1.0
    return (P - m) / s, m, s


def _denormalize(L: np.ndarray, m: np.ndarray, s: float) -> ConicModel:
    """Map normalized coefficients back to image coordinates."""
    K0, K1, L2, L3, L4 = L
    mi, mj = m
    K2 = -mi - K1*mj + L2*s
    K3 = -K0*mj - K1*mi + L3*s
    K4 = mi*mi + K0*mj*mj + 2.0*K1*mi*mj - 2.0*L2*s*mi - 2.0*L3*s*mj + L4*s*s
    return ConicModel((K0, K1, K2, K3, K4))


def _solve_weighted(U: np.ndarray, w: np.ndarray, circle: bool) -> np.ndarray:
    """Weighted linear solve in normalized coordinates; returns (K0, K1, L2, L3, L4)."""
    u, v = U[:, 0], U[:, 1]
    if circle:
        A = np.column_stack([2.0*u, 2.0*v, np.ones_like(u)])
        rhs = -(u*u + v*v)
    else:
        A = np.column_stack([v*v, 2.0*u*v, 2.0*u, 2.0*v, np.ones_like(u)])
        rhs = -u*u
    sw = np.sqrt(w)
    x, _, rank, _ = np.linalg.lstsq(A * sw[:, None], rhs * sw, rcond=None)
    if rank < A.shape[1]:
        raise DegenerateConicError(f"Rank-deficient conic system (rank {rank} < {A.shape[1]}).")
    if circle:
        return np.array([1.0, 0.0, x[0], x[1], x[2]])
    return x


def tukey_weights(r: np.ndarray, min_scale: float = 0.5) -> np.ndarray:
    """Tukey biweight of residuals r, scale from the MAD (floored at min_scale)."""
    r = np.asarray(r, float)
    med = np.median(r)
    sigma = max(MAD_TO_SIGMA * float(np.median(np.abs(r - med))), min_scale)
    z = r / (TUKEY_C * sigma)
    w = (1.0 - z*z) ** 2
    w[np.abs(z) >= 1.0] = 0.0
    return w


def fit_conic(points, weights=None, circle: bool = False,
              threshold: float = 0.2, max_iterations: int = 10,
              tol: float = 1e-4, min_scale: float = 0.5) -> FitResult:
    """
    Robust IRLS fit of the implicit conic through (N, 2) points.

    Parameters
    ----------
    points : array-like, shape (N, 2)
        (i, j) coordinates.
    weights : array-like, optional
        Prior per-point weights in [0, 1] (edge confidences). Default 1.
    circle : bool
        Solve only (K2, K3, K4) with K0 = 1, K1 = 0.
    threshold : float
        Points whose final robust weight is below threshold are outliers.
    max_iterations : int
        Iteration cap.
    tol : float
        Stop when the largest robust-weight change is below tol.
    min_scale : float
        Floor (pixels) of the residual scale estimate.

    Returns
    -------
    FitResult
        conic, robust weights, inlier mask, iterations used.

    Raises
    ------
    InsufficientPointsError
        If fewer than 5 (3 for a circle) points carry a non-zero weight at
        any iteration.
    DegenerateConicError
        If the system is rank deficient or the result is not an ellipse.
    """
    P = np.asarray(points, float).reshape(-1, 2)
    n = P.shape[0]
    required = 3 if circle else 5
    prior = np.ones(n) if weights is None else np.clip(np.asarray(weights, float).ravel(), 0.0, 1.0)
    if prior.shape[0] != n:
        raise ValueError("weights and points must have the same length")

    active = int(np.count_nonzero(prior > 0.0))
    if active < required:
        raise InsufficientPointsError(active, required)

    _, m, s = _normalize(P[prior > 0.0])
    U = (P - m) / s
    usable = prior > 0.0
    robust = usable.astype(float)
    conic = None
    it = 0
    for it in range(1, max(1, int(max_iterations)) + 1):
        w_eff = prior * robust
        mask = w_eff > 0.0
        active = int(np.count_nonzero(mask))
        if active < required:
            raise InsufficientPointsError(active, required)
        L = _solve_weighted(U[mask], w_eff[mask], circle)
        conic = _denormalize(L, m, s)
        # points rejected by the prior keep a zero weight
        new_robust = np.zeros(n)
        new_robust[usable] = tukey_weights(conic.sampson_distance(P[usable]), min_scale)
        delta = float(np.max(np.abs(new_robust - robust)))
        robust = new_robust
        if delta < tol:
            break

    derive_geometry(conic)  # raises DegenerateConicError if not an ellipse
    inliers = (robust >= threshold) & (prior > 0.0)
    return FitResult(conic=conic, weights=robust, inliers=inliers, iterations=it)


# --- Moments --------------------------------------------------------------

def compute_moments(g: EllipseGeometry) -> MomentSet:
    """
    Closed-form moments of the filled ellipse region.

    m00 = π a b; the central second-order moments follow from the second
    moments of a disk stretched along (cos e, sin e) by b and across by a.
    """
    ic, jc = g.center
    m00 = np.pi * g.a * g.b
    k = m00 / 4.0
    b2, a2 = g.b * g.b, g.a * g.a
    mu20 = k * (b2 * g.ce * g.ce + a2 * g.se * g.se)
    mu02 = k * (b2 * g.se * g.se + a2 * g.ce * g.ce)
    mu11 = k * (b2 - a2) * g.ce * g.se
    return MomentSet(
        m00=float(m00),
        m10=float(m00 * ic),
        m01=float(m00 * jc),
        m11=float(mu11 + m00 * ic * jc),
        m20=float(mu20 + m00 * ic * ic),
        m02=float(mu02 + m00 * jc * jc),
        mu11=float(mu11),
        mu20=float(mu20),
        mu02=float(mu02),
    )
