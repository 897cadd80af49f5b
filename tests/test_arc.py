"""
===========================================================
Arc range tests (compute / update / seek / set)
===========================================================
"""

import numpy as np

from elli_track.arc import (ArcRange, compute_angle, seek_extremities, set_extremities,
                            update_theta)
from elli_track.core import EllipseGeometry
from elli_track.edges import GradientEdgeSearch
from elli_track.sites import SamplePointSet, sample
from elli_track.synthetic import occlude, render_ellipse


GEOM = EllipseGeometry((200.0, 200.0), 50.0, 80.0, 0.3)
STEP = np.radians(5.0)


def _points_at(degrees, geom=GEOM):
    pts = SamplePointSet()
    for a in np.radians(degrees):
        pts.add(geom.point_at(a), a)
    return pts


def test_compute_angle_from_two_points():
    arc = compute_angle(GEOM, GEOM.point_at(0.5), GEOM.point_at(2.0))
    assert np.isclose(arc.alpha1, 0.5)
    assert np.isclose(arc.alpha2, 2.0)
    assert arc.alpha1 <= arc.alpha2


def test_compute_angle_wraps_through_zero():
    arc = compute_angle(GEOM, GEOM.point_at(np.radians(300)), GEOM.point_at(np.radians(40)))
    assert np.isclose(np.degrees(arc.alpha1), -60.0)
    assert np.isclose(np.degrees(arc.extent), 100.0)
    assert arc.contains(0.0) and not arc.contains(np.radians(180))


def test_coincident_points_give_full_contour():
    p = GEOM.point_at(1.0)
    arc = compute_angle(GEOM, p, p)
    assert arc.is_full
    assert np.isclose(arc.extent, 2*np.pi)


def test_set_extremities_uses_largest_gap():
    pts = _points_at(np.arange(30, 151, 5))
    arc = set_extremities(pts, ArcRange(0.0, 1.0, (0, 0), (0, 0)), STEP)
    assert np.isclose(np.degrees(arc.alpha1), 30.0)
    assert np.isclose(np.degrees(arc.alpha2), 150.0)
    assert np.allclose(arc.p1, GEOM.point_at(np.radians(30)))
    assert np.allclose(arc.p2, GEOM.point_at(np.radians(150)))


def test_set_extremities_across_wrap():
    pts = _points_at(np.arange(-60, 61, 5))
    arc = set_extremities(pts, ArcRange(0.0, 1.0, (0, 0), (0, 0)), STEP)
    assert np.isclose(np.degrees(arc.alpha1), -60.0)
    assert np.isclose(np.degrees(arc.extent), 120.0)


def test_set_extremities_closes_small_gaps():
    deg = [d for d in range(0, 360, 5) if d != 100]
    arc = set_extremities(_points_at(deg), ArcRange(0.0, 1.0, (0, 0), (0, 0)), STEP)
    assert arc.is_full

    deg = [d for d in range(0, 360, 5) if d not in (100, 105)]
    arc = set_extremities(_points_at(deg), ArcRange(0.0, 1.0, (0, 0), (0, 0)), STEP)
    assert not arc.is_full
    assert np.isclose(np.degrees(arc.extent), 345.0)


def test_set_extremities_ignores_invalid_points():
    pts = _points_at(np.arange(0, 360, 5))
    for p in pts:
        if pts.angle(p.pid) > np.radians(180):
            p.valid = False
    arc = set_extremities(pts, ArcRange(0.0, 1.0, (0, 0), (0, 0)), STEP)
    assert np.isclose(np.degrees(arc.extent), 180.0)


def test_update_theta_after_rotation():
    pts = _points_at([0, 90, 180])
    arc = compute_angle(GEOM, GEOM.point_at(0.0), GEOM.point_at(np.pi))
    turned = EllipseGeometry(GEOM.center, GEOM.a, GEOM.b, GEOM.e + 0.2)
    arc2 = update_theta(pts, turned, arc)

    expected = {p.pid: float(turned.angle_of(p.position)) for p in pts}
    assert pts.angles() == expected
    assert np.isclose(arc2.alpha1, turned.angle_of(arc.p1))
    assert 0 < arc2.extent < 2*np.pi


def test_update_theta_keeps_full_arc():
    p = GEOM.point_at(0.0)
    arc = compute_angle(GEOM, p, p)
    pts = _points_at([0, 120, 240])
    assert update_theta(pts, GEOM, arc).is_full


def test_seek_converges_to_full_contour():
    """From a narrow arc, repeated seek/set passes cover the whole ellipse."""
    img = render_ellipse((400, 400), GEOM.center, GEOM.a, GEOM.b, GEOM.e)
    search = GradientEdgeSearch()
    arc = compute_angle(GEOM, GEOM.point_at(0.0), GEOM.point_at(np.radians(40)))
    pts = SamplePointSet()
    sample(pts, GEOM, arc, img, search, STEP, 6)

    extents = []
    for _ in range(30):
        arc, _ = seek_extremities(pts, GEOM, arc, img, search, STEP, 3, seek_steps=3)
        arc = set_extremities(pts, arc, STEP)
        extents.append(arc.extent)
    assert arc.is_full
    assert np.isclose(arc.alpha2 - arc.alpha1, 2*np.pi)
    assert all(b >= a - 1e-6 for a, b in zip(extents, extents[1:]))


def test_seek_stops_at_occlusion():
    img = occlude(render_ellipse((400, 400), GEOM.center, GEOM.a, GEOM.b, GEOM.e), 200)
    search = GradientEdgeSearch()
    # visible half: j < 200  <=>  alpha in (π - φ, 2π - φ)
    phi = np.arctan2(GEOM.b * GEOM.se, GEOM.a * GEOM.ce)
    mid = 1.5 * np.pi - phi
    arc = compute_angle(GEOM, GEOM.point_at(mid - 0.3), GEOM.point_at(mid + 0.3))
    pts = SamplePointSet()
    sample(pts, GEOM, arc, img, search, STEP, 6)
    for _ in range(20):
        arc, _ = seek_extremities(pts, GEOM, arc, img, search, STEP, 3)
        arc = set_extremities(pts, arc, STEP)
    assert not arc.is_full
    assert abs(arc.extent - np.pi) < 0.25 * np.pi
