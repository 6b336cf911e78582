"""Threshold store shared by the calibration and the main experiment."""
from __future__ import annotations

from imadet.thresholds import GratingTilt, ParticipantVisibilityThreshold


def test_defaults_to_initial_visibility():
    store = ParticipantVisibilityThreshold()
    assert store.get(GratingTilt.LEFT) == 0.8
    assert store.get(GratingTilt.RIGHT) == 0.8


def test_injected_initial_values():
    store = ParticipantVisibilityThreshold(initial_left=0.4, initial_right=0.6)
    assert store.get(GratingTilt.LEFT) == 0.4
    assert store.get(GratingTilt.RIGHT) == 0.6


def test_zero_is_a_valid_initial_value():
    assert ParticipantVisibilityThreshold(initial_left=0.0).get(GratingTilt.LEFT) == 0.0


def test_set_only_touches_one_tilt():
    store = ParticipantVisibilityThreshold()
    store.set(GratingTilt.RIGHT, 0.37)
    assert store.get(GratingTilt.RIGHT) == 0.37
    assert store.get(GratingTilt.LEFT) == 0.8


def test_store_does_not_clamp():
    store = ParticipantVisibilityThreshold()
    store.set(GratingTilt.LEFT, -0.05)
    assert store.get(GratingTilt.LEFT) == -0.05


def test_as_dict():
    store = ParticipantVisibilityThreshold(initial_left=0.5, initial_right=0.7)
    assert store.as_dict() == {
        "detection_threshold_left_tilt": 0.5,
        "detection_threshold_right_tilt": 0.7,
    }


def test_repr_shows_both_tilts():
    assert repr(ParticipantVisibilityThreshold(0.5, 0.7)) == (
        "ParticipantVisibilityThreshold(left=0.5, right=0.7)"
    )


def test_tilt_rotation():
    assert GratingTilt.LEFT.rotation == 45.0
    assert GratingTilt.RIGHT.rotation == 135.0
