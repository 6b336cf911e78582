"""Simulated participant used by ``--dry-run`` and the test-suite.

The observer answers yes/no detection trials from a Weibull psychometric
function of grating opacity, with a fixed false-alarm rate on noise-only
trials.  It stands in for the PsychoPy trial runner, so the practice gate and
the staircase can be exercised headless.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, Optional

from .design import ResponseMapping, StimulusSpec, TrialResponse
from .thresholds import GratingTilt


@dataclass
class SimulatedObserver:
    """Weibull observer with one detection threshold per tilt.

    ``alpha`` is the opacity at which the psychometric function reaches about
    63% of its range, ``beta`` its slope.  ``no_response_rate`` is the share of
    trials where the simulated participant lets the response window lapse.
    """

    alpha: Dict[GratingTilt, float] = field(
        default_factory=lambda: {GratingTilt.LEFT: 0.35, GratingTilt.RIGHT: 0.45}
    )
    beta: float = 3.0
    false_alarm_rate: float = 0.1
    lapse_rate: float = 0.02
    no_response_rate: float = 0.0
    mapping: ResponseMapping = field(default_factory=ResponseMapping)
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def p_yes(self, stimulus: StimulusSpec) -> float:
        """Probability of answering "grating present" to ``stimulus``."""

        if not stimulus.is_signal or stimulus.opacity <= 0:
            return self.false_alarm_rate
        alpha = self.alpha[stimulus.tilt or GratingTilt.LEFT]
        detect = 1.0 - math.exp(-((stimulus.opacity / alpha) ** self.beta))
        floor = self.false_alarm_rate
        return floor + (1.0 - floor - self.lapse_rate) * detect

    def __call__(self, stimulus: StimulusSpec) -> TrialResponse:
        if self._rng.random() < self.no_response_rate:
            return TrialResponse(response=None, rt=None)
        says_yes = self._rng.random() < self.p_yes(stimulus)
        return TrialResponse(
            response=self.mapping.expected(says_yes),
            rt=0.3 + self._rng.gammavariate(2.0, 0.15),
        )


__all__ = ["SimulatedObserver"]
