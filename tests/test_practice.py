"""
test_practice.py
----------------

Practice accuracy gate: repeat blocks until accuracy reaches the threshold,
making gratings more visible after each failed block.
"""
from __future__ import annotations

import pytest

from imadet.config import ConfigurationError, PracticeConfig
from imadet.design import TrialResponse
from imadet.practice import PracticeGate, PracticeState, run_practice_gate
from imadet.staircase import StaircaseStateError

# Two repetitions of (left grating, right grating, noise).
BLOCK = 6


def test_gate_runs_until_threshold_reached(practice_config, mapping, scripted):
    gate = PracticeGate(practice_config, mapping=mapping)
    observer = scripted([3, 4, 5], block_size=BLOCK, mapping=mapping)

    accuracies = run_practice_gate(gate, observer)

    assert accuracies == [50, 67, 83]
    assert gate.blocks_completed == 3
    assert gate.is_done
    assert gate.visibility == 0.84


def test_gate_passes_on_first_block(practice_config, scripted):
    gate = PracticeGate(practice_config)
    assert run_practice_gate(gate, scripted([6], block_size=BLOCK)) == [100]
    assert gate.visibility == practice_config.initial_visibility


def test_threshold_is_inclusive(scripted):
    # 9 of 12 correct is exactly 75%.
    gate = PracticeGate(PracticeConfig(repetitions=4, accuracy_threshold=75))
    assert run_practice_gate(gate, scripted([9], block_size=12)) == [75]


def test_single_repetition_blocks(scripted):
    gate = PracticeGate(PracticeConfig(repetitions=1))
    assert run_practice_gate(gate, scripted([2, 3], block_size=3)) == [67, 100]


def test_each_block_contains_both_tilts_and_noise(practice_config, scripted):
    observer = scripted([6], block_size=BLOCK)
    run_practice_gate(PracticeGate(practice_config), observer)
    signals = [spec for spec in observer.seen if spec.is_signal]
    assert len(signals) == 4
    assert {spec.rotation for spec in signals} == {45.0, 135.0}
    assert sum(not spec.is_signal for spec in observer.seen) == 2


def test_later_blocks_use_raised_visibility(practice_config, scripted):
    observer = scripted([0, 6], block_size=BLOCK)
    run_practice_gate(PracticeGate(practice_config), observer)
    second_block = observer.seen[BLOCK:]
    assert {spec.opacity for spec in second_block if spec.is_signal} == {0.82}


def test_after_block_hook_sees_feedback(practice_config, scripted):
    summaries = []
    run_practice_gate(
        PracticeGate(practice_config),
        scripted([2, 6], block_size=BLOCK),
        after_block=lambda gate: summaries.append(gate.block_summary()),
    )
    assert summaries[0] == (
        "You answered 2 of 6 trials correctly. Further practice trials will follow."
    )
    assert summaries[1] == "Excellent, you answered 6 of 6 trials correctly."


def test_evaluate_mid_block_raises(practice_config):
    gate = PracticeGate(practice_config)
    assert gate.state is PracticeState.RUNNING_BLOCK
    with pytest.raises(StaircaseStateError):
        gate.evaluate()


def test_recording_after_done_raises(practice_config, scripted):
    gate = PracticeGate(practice_config)
    run_practice_gate(gate, scripted([6], block_size=BLOCK))
    with pytest.raises(StaircaseStateError):
        gate.record_response(TrialResponse(response="f"))


@pytest.mark.parametrize(
    "kwargs",
    [{"repetitions": 0}, {"visibility_increment": 0}, {"accuracy_threshold": 101}],
)
def test_malformed_practice_config(kwargs):
    with pytest.raises(ConfigurationError):
        PracticeGate(PracticeConfig(**kwargs))
