"""Practice accuracy gate shown before the calibration staircase.

The participant repeats a short block of detection trials until the accuracy
of the most recent block reaches the configured threshold.  Every failed block
makes the gratings a little more visible; there is no upper limit on the
number of blocks.

States::

    RUNNING_BLOCK -> EVALUATING -> (RUNNING_BLOCK | DONE)
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, List, Optional

from .calibration import accuracy_percent, practice_step
from .config import PracticeConfig
from .design import (
    OrderFunction,
    ResponseMapping,
    StimulusSpec,
    TrialResponse,
    build_practice_block,
    keep_order,
)
from .staircase import OutcomeCallback, StaircaseStateError, TrialOutcome, TrialRunner

logger = logging.getLogger(__name__)


class PracticeState(enum.Enum):
    RUNNING_BLOCK = "running_block"
    EVALUATING = "evaluating"
    DONE = "done"


class PracticeGate:
    """Repeat practice blocks until accuracy reaches ``accuracy_threshold``."""

    def __init__(
        self,
        config: PracticeConfig | None = None,
        *,
        mapping: ResponseMapping | None = None,
        order: OrderFunction = keep_order,
    ) -> None:
        self.config = config or PracticeConfig()
        self.config.validate()
        self.mapping = mapping or ResponseMapping()
        self.order = order
        self.visibility: float = self.config.initial_visibility
        self.blocks_completed: int = 0
        self.accuracies: List[int] = []
        self.last_correct: int = 0
        self.last_trial_count: int = 0
        self._schedule: List[StimulusSpec] = []
        self._outcomes: List[TrialOutcome] = []
        self._begin_block()

    @property
    def is_done(self) -> bool:
        return self.state is PracticeState.DONE

    @property
    def last_accuracy(self) -> Optional[int]:
        return self.accuracies[-1] if self.accuracies else None

    def _begin_block(self) -> None:
        self._schedule = build_practice_block(
            self.visibility, self.config.repetitions, self.mapping, order=self.order
        )
        self._outcomes = []
        self.state = PracticeState.RUNNING_BLOCK

    def next_stimulus(self) -> StimulusSpec:
        if self.state is not PracticeState.RUNNING_BLOCK:
            raise StaircaseStateError(f"practice gate is {self.state.name}")
        return self._schedule[len(self._outcomes)]

    def record_response(self, response: TrialResponse) -> TrialOutcome:
        outcome = TrialOutcome.score(self.next_stimulus(), response)
        self._outcomes.append(outcome)
        if len(self._outcomes) == len(self._schedule):
            self.state = PracticeState.EVALUATING
        return outcome

    def evaluate(self) -> int:
        """Score the most recent block and decide whether to stop.

        Returns the block accuracy in percent.
        """

        if self.state is not PracticeState.EVALUATING:
            raise StaircaseStateError(f"practice gate is {self.state.name}")
        self.last_correct = sum(1 for outcome in self._outcomes if outcome.correct)
        self.last_trial_count = len(self._outcomes)
        accuracy = accuracy_percent(self.last_correct, self.last_trial_count)
        self.accuracies.append(accuracy)
        self.blocks_completed += 1
        passed, self.visibility = practice_step(
            accuracy,
            self.visibility,
            threshold=self.config.accuracy_threshold,
            increment=self.config.visibility_increment,
        )
        if passed:
            logger.info(
                "Practice passed after %d block(s) with %d%% correct",
                self.blocks_completed,
                accuracy,
            )
            self.state = PracticeState.DONE
        else:
            logger.info(
                "Practice block %d: %d%% correct, repeating at visibility %.2f",
                self.blocks_completed,
                accuracy,
                self.visibility,
            )
            self._begin_block()
        return accuracy

    def block_summary(self) -> str:
        """Feedback text for the block that was just evaluated."""

        counts = f"{self.last_correct} of {self.last_trial_count}"
        if self.is_done:
            return f"Excellent, you answered {counts} trials correctly."
        return (
            f"You answered {counts} trials correctly. "
            "Further practice trials will follow."
        )


def run_practice_gate(
    gate: PracticeGate,
    run_trial: TrialRunner,
    *,
    on_outcome: OutcomeCallback | None = None,
    after_block: Callable[[PracticeGate], None] | None = None,
) -> List[int]:
    """Run ``gate`` to DONE and return the accuracy of every block.

    ``after_block`` is called with the gate after each evaluation, which is
    where block feedback is shown.
    """

    while not gate.is_done:
        while gate.state is PracticeState.RUNNING_BLOCK:
            stimulus = gate.next_stimulus()
            outcome = gate.record_response(run_trial(stimulus))
            if on_outcome is not None:
                on_outcome(stimulus, outcome)
        gate.evaluate()
        if after_block is not None:
            after_block(gate)
    return list(gate.accuracies)


__all__ = ["PracticeState", "PracticeGate", "run_practice_gate"]
