"""
test_design.py
--------------

Trial-list construction and seedable ordering.
"""
from __future__ import annotations

import pytest

from imadet.design import (
    MAIN_CONDITIONS,
    build_cycle_schedule,
    build_practice_block,
    condition_order,
    expected_imagery_key,
    iter_main_block,
    keep_order,
    make_order_function,
    tilt_order,
)
from imadet.thresholds import GratingTilt


def test_order_function_is_reproducible():
    items = list(range(20))
    first = make_order_function(3)
    second = make_order_function(3)
    assert [first(items) for _ in range(3)] == [second(items) for _ in range(3)]


def test_order_function_returns_permutation_without_mutating():
    items = list(range(10))
    shuffled = make_order_function(0)(items)
    assert sorted(shuffled) == items
    assert items == list(range(10))


def test_tilt_order_covers_both_tilts():
    assert tilt_order() == [GratingTilt.LEFT, GratingTilt.RIGHT]
    assert set(tilt_order(make_order_function(1))) == set(GratingTilt)


@pytest.mark.parametrize("trials", [2, 4, 10, 24])
def test_cycle_schedule_is_half_signal_for_every_cycle(mapping, trials):
    order = make_order_function(42)
    for _ in range(25):
        schedule = build_cycle_schedule(GratingTilt.LEFT, 0.6, trials, mapping, order)
        assert len(schedule) == trials
        signal = [spec for spec in schedule if spec.is_signal]
        assert len(signal) == trials // 2
        assert all(spec.opacity == 0.6 and spec.correct_response == "f" for spec in signal)
        noise = [spec for spec in schedule if not spec.is_signal]
        assert all(spec.opacity == 0 and spec.correct_response == "j" for spec in noise)


def test_cycle_schedule_uses_tilt_rotation(mapping):
    schedule = build_cycle_schedule(GratingTilt.RIGHT, 0.5, 4, mapping)
    assert {spec.rotation for spec in schedule} == {135.0}
    assert {spec.test_part for spec in schedule} == {"staircase_test"}


def test_practice_block_composition(mapping):
    block = build_practice_block(0.8, 3, mapping, keep_order)
    assert len(block) == 9
    assert sum(spec.is_signal for spec in block) == 6
    assert {spec.tilt for spec in block if spec.is_signal} == {GratingTilt.LEFT, GratingTilt.RIGHT}


def test_main_conditions():
    names = [condition.name for condition in MAIN_CONDITIONS]
    assert names == [
        "display_left_imagine_nothing",
        "display_left_imagine_left",
        "display_left_imagine_right",
        "display_right_imagine_nothing",
        "display_right_imagine_left",
        "display_right_imagine_right",
    ]


def test_condition_order_repeats_every_condition():
    conditions = condition_order(2, make_order_function(5))
    assert len(conditions) == 12
    assert all(conditions.count(condition) == 2 for condition in MAIN_CONDITIONS)


def test_main_block_reads_thresholds_at_trial_time(thresholds, mapping):
    condition = MAIN_CONDITIONS[3]  # display right, imagine nothing
    block = iter_main_block(condition, thresholds, 10, mapping)
    thresholds.set(GratingTilt.RIGHT, 0.31)
    specs = list(block)
    assert len(specs) == 10
    assert {spec.opacity for spec in specs if spec.is_signal} == {0.31}
    assert all(spec.condition == condition.name for spec in specs)
    assert sum(spec.is_signal for spec in specs) == 5


@pytest.mark.parametrize(
    "index, expected",
    [(0, "n"), (1, "l"), (2, "r"), (3, "n"), (4, "l"), (5, "r")],
)
def test_expected_imagery_key(index, expected):
    assert expected_imagery_key(MAIN_CONDITIONS[index]) == expected


def test_response_mapping(mapping):
    assert mapping.choices == ("f", "j")
    assert mapping.expected(True) == "f"
    assert mapping.expected(False) == "j"
