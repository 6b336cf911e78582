"""Simulated observer used for dry runs."""
from __future__ import annotations

from imadet.design import ResponseMapping, build_cycle_schedule
from imadet.simulate import SimulatedObserver
from imadet.thresholds import GratingTilt


def _signal(opacity, tilt=GratingTilt.LEFT):
    (spec,) = [
        s for s in build_cycle_schedule(tilt, opacity, 2, ResponseMapping()) if s.is_signal
    ]
    return spec


def _noise():
    (spec,) = [
        s for s in build_cycle_schedule(GratingTilt.LEFT, 0.5, 2, ResponseMapping())
        if not s.is_signal
    ]
    return spec


def test_p_yes_increases_with_opacity():
    observer = SimulatedObserver()
    probabilities = [observer.p_yes(_signal(opacity)) for opacity in (0.1, 0.3, 0.5, 0.9)]
    assert probabilities == sorted(probabilities)
    assert probabilities[0] < probabilities[-1]


def test_p_yes_is_bounded_by_guess_and_lapse_rates():
    observer = SimulatedObserver(false_alarm_rate=0.1, lapse_rate=0.05)
    assert observer.p_yes(_noise()) == 0.1
    assert 0.9 < observer.p_yes(_signal(1.0)) < 0.96


def test_tilts_have_separate_thresholds():
    observer = SimulatedObserver(alpha={GratingTilt.LEFT: 0.2, GratingTilt.RIGHT: 0.6})
    assert observer.p_yes(_signal(0.3, GratingTilt.LEFT)) > observer.p_yes(
        _signal(0.3, GratingTilt.RIGHT)
    )


def test_same_seed_gives_same_answers():
    trials = [_signal(0.3), _noise()] * 20
    first = SimulatedObserver(seed=9)
    second = SimulatedObserver(seed=9)
    assert [first(t) for t in trials] == [second(t) for t in trials]


def test_answers_use_the_mapping_keys():
    observer = SimulatedObserver(mapping=ResponseMapping("a", "l"), seed=1)
    responses = {observer(_signal(0.5)).response for _ in range(50)}
    assert responses <= {"a", "l"}


def test_no_response_rate():
    observer = SimulatedObserver(no_response_rate=1.0, seed=0)
    response = observer(_signal(0.8))
    assert response.response is None
    assert response.rt is None
