"""
===========================================================
Sample point set & (re)sampling tests
===========================================================
"""

import numpy as np
import pytest

from elli_track.arc import compute_angle
from elli_track.core import EllipseGeometry
from elli_track.edges import GradientEdgeSearch
from elli_track.sites import SamplePointSet, re_sample, sample, suppress_points
from elli_track.synthetic import render_ellipse


GEOM = EllipseGeometry((100.0, 110.0), 35.0, 55.0, 0.3)
IMG = render_ellipse((200, 220), GEOM.center, GEOM.a, GEOM.b, GEOM.e)
STEP = np.radians(5.0)


def _full_arc():
    p = GEOM.point_at(0.0)
    return compute_angle(GEOM, p, p)


def test_point_set_identity_and_angles():
    pts = SamplePointSet()
    a = pts.add((1.0, 2.0), 0.5)
    b = pts.add((3.0, 4.0), 1.5, confidence=0.4)
    assert len(pts) == 2 and a.pid != b.pid
    assert pts.angle(b.pid) == 1.5
    assert pts.get(b.pid).confidence == 0.4

    pts.remove(a.pid)
    c = pts.add((5.0, 6.0), 2.5)
    assert c.pid not in (a.pid, b.pid)        # ids are never reused
    assert set(pts.angles()) == {b.pid, c.pid}

    pts.set_angles({b.pid: -1.0, c.pid: -2.0})
    assert pts.angle(c.pid) == -2.0
    with pytest.raises(KeyError):
        pts.set_angles({b.pid: 0.0})


def test_positions_and_validity():
    pts = SamplePointSet()
    for k in range(4):
        pts.add((k, k), 0.1 * k)
    list(pts)[1].valid = False
    assert pts.n_valid == 3
    assert pts.positions().shape == (3, 2)
    assert pts.positions(valid_only=False).shape == (4, 2)


def test_suppress_points_removes_invalid():
    pts = SamplePointSet()
    ids = [pts.add((k, 0), 0.0).pid for k in range(6)]
    for pid in ids[::2]:
        pts.get(pid).valid = False
    assert suppress_points(pts) == 3
    assert len(pts) == 3
    assert all(p.valid for p in pts)
    assert set(pts.angles()) == set(ids[1::2])


def test_sample_full_contour():
    pts = SamplePointSet()
    n = sample(pts, GEOM, _full_arc(), IMG, GradientEdgeSearch(), STEP, 6)
    assert n == 72
    P = pts.positions()
    d = GEOM.to_conic().sampson_distance(P)
    assert np.max(np.abs(d)) < 0.4


def test_sample_on_partial_arc():
    arc = compute_angle(GEOM, GEOM.point_at(0.2), GEOM.point_at(1.2))
    pts = SamplePointSet()
    sample(pts, GEOM, arc, IMG, GradientEdgeSearch(), STEP, 6)
    assert len(pts) == int(np.floor(1.0 / STEP)) + 1
    ang = np.array(list(pts.angles().values()))
    assert ang.min() > 0.2 - 0.02 and ang.max() < 1.2 + 0.02


def test_sample_skips_missing_edges():
    flat = np.full(IMG.shape, 80.0)
    pts = SamplePointSet()
    assert sample(pts, GEOM, _full_arc(), flat, GradientEdgeSearch(), STEP, 6) == 0


def test_re_sample_keeps_existing_points():
    arc = _full_arc()
    pts = SamplePointSet()
    sample(pts, GEOM, arc, IMG, GradientEdgeSearch(), STEP, 6)
    doomed = [p.pid for p in list(pts)[::2]]
    for pid in doomed:
        pts.get(pid).valid = False
    suppress_points(pts)
    kept = set(pts.angles())

    assert re_sample(pts, GEOM, arc, IMG, GradientEdgeSearch(), STEP, 6)
    assert kept <= set(pts.angles())
    assert len(pts) == 72


def test_re_sample_not_needed_when_dense():
    arc = _full_arc()
    pts = SamplePointSet()
    sample(pts, GEOM, arc, IMG, GradientEdgeSearch(), STEP, 6)
    before = set(pts.angles())
    assert not re_sample(pts, GEOM, arc, IMG, GradientEdgeSearch(), STEP, 6)
    assert set(pts.angles()) == before
