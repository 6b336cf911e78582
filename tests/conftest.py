"""
Shared pytest fixtures.

The staircase and the practice gate take a trial runner as a plain callable,
so the tests drive them with :class:`ScriptedObserver`, which answers a chosen
number of trials per block correctly.  Nothing here imports PsychoPy.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

import pytest

from imadet.config import PracticeConfig, StaircaseConfig
from imadet.design import ResponseMapping, StimulusSpec, TrialResponse
from imadet.thresholds import GratingTilt, ParticipantVisibilityThreshold


class ScriptedObserver:
    """Answer ``correct_per_block[k]`` trials of block ``k`` correctly.

    Blocks are counted separately per tilt (``None`` for untilted trials) so
    that a calibration phase can script each tilt independently.  Trials past
    the script raise ``AssertionError``.
    """

    def __init__(
        self,
        correct_per_block: Sequence[int] | Dict[Optional[GratingTilt], Sequence[int]],
        block_size: int,
        mapping: ResponseMapping | None = None,
        silent: bool = False,
    ) -> None:
        if isinstance(correct_per_block, dict):
            self.script = {key: list(value) for key, value in correct_per_block.items()}
            self.per_tilt = True
        else:
            self.script = {None: list(correct_per_block)}
            self.per_tilt = False
        self.block_size = block_size
        self.mapping = mapping or ResponseMapping()
        self.silent = silent
        self.calls: Dict[Optional[GratingTilt], int] = defaultdict(int)
        self.seen: List[StimulusSpec] = []

    def __call__(self, spec: StimulusSpec) -> TrialResponse:
        key = spec.tilt if self.per_tilt else None
        index = self.calls[key]
        self.calls[key] += 1
        self.seen.append(spec)
        block, position = divmod(index, self.block_size)
        assert block < len(self.script[key]), "observer ran past its script"
        if position < self.script[key][block]:
            return TrialResponse(response=spec.correct_response, rt=0.5)
        if self.silent:
            return TrialResponse(response=None, rt=None)
        wrong = self.mapping.expected(not spec.is_signal)
        return TrialResponse(response=wrong, rt=0.5)


@pytest.fixture
def mapping():
    return ResponseMapping(signal_present="f", signal_absent="j")


@pytest.fixture
def thresholds():
    return ParticipantVisibilityThreshold()


@pytest.fixture
def staircase_config():
    """Default staircase shortened to three cycles."""
    return StaircaseConfig(cycles=3)


@pytest.fixture
def practice_config():
    return PracticeConfig()


@pytest.fixture
def scripted():
    """Factory for :class:`ScriptedObserver`."""
    return ScriptedObserver
