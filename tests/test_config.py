"""
===========================================================
Configuration tests (clamping & validation)
===========================================================
"""

import math

import pytest

from elli_track import EllipseTracker, InvalidConfigError, TrackerConfig


@pytest.mark.parametrize("value, expected", [
    (-3.0, 0.0), (-1e-9, 0.0), (0.0, 0.0), (0.35, 0.35),
    (1.0, 1.0), (1.0000001, 1.0), (42, 1.0), (-math.inf, 0.0), (math.inf, 1.0),
])
def test_threshold_is_clamped(value, expected):
    cfg = TrackerConfig()
    assert cfg.set_threshold_robust(value) == expected
    assert cfg.threshold_robust == expected
    assert TrackerConfig(threshold_robust=value).threshold_robust == expected


def test_tracker_threshold_setter():
    tracker = EllipseTracker()
    assert tracker.set_threshold_robust(2.5) == 1.0
    assert tracker.config.threshold_robust == 1.0


@pytest.mark.parametrize("bad", [float("nan"), "abc", None])
def test_unreadable_values_raise(bad):
    with pytest.raises(InvalidConfigError):
        TrackerConfig(threshold_robust=bad)


def test_other_knobs_are_clamped():
    cfg = TrackerConfig(sample_step=0.0, search_range=-4, seek_steps=0, max_iterations=0)
    assert cfg.sample_step == 0.5
    assert cfg.search_range == 1
    assert cfg.seek_steps == 1
    assert cfg.max_iterations == 1
    assert TrackerConfig(sample_step=400).sample_step == 90.0
    assert math.isclose(TrackerConfig(sample_step=10).step_rad, math.radians(10))


def test_structural_minimum_and_floor():
    assert TrackerConfig().structural_minimum == 5
    assert TrackerConfig(circle=True).structural_minimum == 3
    assert TrackerConfig().tracking_floor == 5
    assert TrackerConfig(min_points=2).tracking_floor == 5
    assert TrackerConfig(min_points=12).tracking_floor == 12

    tracker = EllipseTracker()
    tracker.set_circle(True)
    assert tracker.config.tracking_floor == 3


def test_attribute_assignment_is_clamped():
    cfg = TrackerConfig()
    cfg.threshold_robust = 7.0
    assert cfg.threshold_robust == 1.0
    cfg.threshold_robust = -2
    assert cfg.threshold_robust == 0.0
    cfg.sample_step = 1000
    assert cfg.sample_step == 90.0
    cfg.axis_tolerance = 3.0
    assert cfg.axis_tolerance == 0.5
    with pytest.raises(InvalidConfigError):
        cfg.threshold_robust = float("nan")
    assert cfg.threshold_robust == 0.0


def test_tracker_config_assignment_is_clamped():
    tracker = EllipseTracker()
    tracker.config.threshold_robust = 42
    assert tracker.config.threshold_robust == 1.0
    assert TrackerConfig(axis_tolerance=-1).axis_tolerance == 0.0
