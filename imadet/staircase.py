"""Adaptive detection staircase, run once per grating tilt.

The staircase estimates, separately for left and right tilted gratings, the
grating visibility at which a participant detects about 70% of trials
correctly.  Each tilt runs a fixed number of *cycles*; a cycle is a block of
trials (half gratings, half noise-only) after which accuracy is computed and
the visibility nudged up or down.  When all cycles are done the level tested in
the final cycle is committed to the shared
:class:`~imadet.thresholds.ParticipantVisibilityThreshold`.

:class:`StaircaseController` is an explicit state machine::

    INSTRUCTING -> RUNNING_CYCLE -> EVALUATING -> (RUNNING_CYCLE | COMMITTING) -> DONE

The trial runner drives it with :meth:`~StaircaseController.next_stimulus`
and :meth:`~StaircaseController.record_response`;
:func:`run_staircase` and :func:`run_calibration_phase` wrap that loop for a
trial runner exposed as a plain callable.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .calibration import accuracy_percent, calc_new_visibility, responses_match
from .config import StaircaseConfig
from .design import (
    OrderFunction,
    ResponseMapping,
    StimulusSpec,
    TrialResponse,
    build_cycle_schedule,
    keep_order,
    tilt_order,
)
from .thresholds import GratingTilt, ParticipantVisibilityThreshold

logger = logging.getLogger(__name__)

TrialRunner = Callable[[StimulusSpec], TrialResponse]


class StaircaseStateError(RuntimeError):
    """Raised when a controller method is called in the wrong state."""


class StaircaseState(enum.Enum):
    INSTRUCTING = "instructing"
    RUNNING_CYCLE = "running_cycle"
    EVALUATING = "evaluating"
    COMMITTING = "committing"
    DONE = "done"


@dataclass(frozen=True)
class TrialOutcome:
    """A scored detection trial."""

    is_signal: bool
    response: Optional[str]
    correct_response: str
    rt: Optional[float] = None

    @property
    def correct(self) -> bool:
        return responses_match(self.response, self.correct_response)

    @classmethod
    def score(cls, stimulus: StimulusSpec, response: TrialResponse) -> "TrialOutcome":
        return cls(
            is_signal=stimulus.is_signal,
            response=response.response,
            correct_response=stimulus.correct_response,
            rt=response.rt,
        )


@dataclass(frozen=True)
class CycleResult:
    """Accuracy over the trials of exactly one cycle."""

    trials_in_cycle: int
    correct_count: int

    @property
    def accuracy(self) -> int:
        return accuracy_percent(self.correct_count, self.trials_in_cycle)

    @classmethod
    def from_outcomes(cls, outcomes: List[TrialOutcome]) -> "CycleResult":
        return cls(
            trials_in_cycle=len(outcomes),
            correct_count=sum(1 for outcome in outcomes if outcome.correct),
        )


@dataclass(frozen=True)
class CycleLogRecord:
    """Structured record emitted after every cycle evaluation."""

    tilt: GratingTilt
    cycle_index: int
    accuracy: int
    tested_visibility: float
    new_visibility: float

    def as_row(self) -> Dict[str, object]:
        return {
            "test_part": "staircase_cycle_data_log",
            "tilt": self.tilt.value,
            "cycle_index": self.cycle_index,
            "accuracy": self.accuracy,
            "visibility": self.tested_visibility,
            "new_visibility": self.new_visibility,
        }


class StaircaseController:
    """Run the staircase for a single tilt and commit its threshold."""

    def __init__(
        self,
        tilt: GratingTilt,
        thresholds: ParticipantVisibilityThreshold,
        config: StaircaseConfig | None = None,
        *,
        mapping: ResponseMapping | None = None,
        order: OrderFunction = keep_order,
    ) -> None:
        self.config = config or StaircaseConfig()
        self.config.validate()
        self.tilt = tilt
        self.thresholds = thresholds
        self.mapping = mapping or ResponseMapping()
        self.order = order

        self.state = StaircaseState.INSTRUCTING
        self.current_visibility: float = self.config.initial_visibility
        self.cycles_completed: int = 0
        self.committed_visibility: Optional[float] = None
        self.cycle_log: List[CycleLogRecord] = []
        self._schedule: List[StimulusSpec] = []
        self._outcomes: List[TrialOutcome] = []

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------
    @property
    def is_done(self) -> bool:
        return self.state is StaircaseState.DONE

    @property
    def trials_remaining(self) -> int:
        """Trials left in the running cycle."""

        return len(self._schedule) - len(self._outcomes)

    def _require(self, *states: StaircaseState) -> None:
        if self.state not in states:
            expected = ", ".join(state.name for state in states)
            raise StaircaseStateError(
                f"{self.tilt.value} staircase is {self.state.name}; expected {expected}"
            )

    def _begin_cycle(self) -> None:
        self._schedule = build_cycle_schedule(
            self.tilt,
            self.current_visibility,
            self.config.trials_per_cycle,
            self.mapping,
            order=self.order,
        )
        self._outcomes = []
        self.state = StaircaseState.RUNNING_CYCLE

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Leave INSTRUCTING (or DONE, for reuse) and run the first cycle."""

        self._require(StaircaseState.INSTRUCTING, StaircaseState.DONE)
        logger.info(
            "Starting %s staircase at visibility %.2f",
            self.tilt.value,
            self.current_visibility,
        )
        self.cycle_log = []
        self._begin_cycle()

    def next_stimulus(self) -> StimulusSpec:
        """Return the stimulus for the next trial of the running cycle."""

        self._require(StaircaseState.RUNNING_CYCLE)
        return self._schedule[len(self._outcomes)]

    def record_response(self, response: TrialResponse) -> TrialOutcome:
        """Score ``response`` against the pending stimulus.

        After the last trial of a cycle the controller moves to EVALUATING.
        """

        stimulus = self.next_stimulus()
        outcome = TrialOutcome.score(stimulus, response)
        self._outcomes.append(outcome)
        logger.debug(
            "%s staircase trial %d/%d: signal=%s response=%r correct=%s",
            self.tilt.value,
            len(self._outcomes),
            len(self._schedule),
            stimulus.is_signal,
            response.response,
            outcome.correct,
        )
        if self.trials_remaining == 0:
            self.state = StaircaseState.EVALUATING
        return outcome

    def evaluate(self) -> CycleLogRecord:
        """Score the finished cycle, update the visibility and advance.

        Accuracy is computed over this cycle's trials only.  Once
        ``config.cycles`` cycles are complete the controller commits and ends
        in DONE; otherwise the next cycle is scheduled at the new visibility.
        """

        self._require(StaircaseState.EVALUATING)
        result = CycleResult.from_outcomes(self._outcomes)
        accuracy = result.accuracy
        tested = self.current_visibility
        new_visibility = calc_new_visibility(
            tested,
            accuracy,
            target=self.config.accuracy_target,
            upper_bound=self.config.accuracy_upper_bound,
            lower_bound=self.config.accuracy_lower_bound,
            max_visibility=self.config.max_visibility,
            min_visibility=self.config.min_visibility,
            step_divisor=self.config.step_divisor,
        )
        record = CycleLogRecord(
            tilt=self.tilt,
            cycle_index=self.cycles_completed,
            accuracy=accuracy,
            tested_visibility=tested,
            new_visibility=new_visibility,
        )
        self.cycle_log.append(record)
        logger.info(
            "%s staircase cycle %d: accuracy %d%% at visibility %.2f -> %.2f",
            self.tilt.value,
            record.cycle_index + 1,
            accuracy,
            tested,
            new_visibility,
        )

        self.cycles_completed += 1
        if self.cycles_completed >= self.config.cycles:
            self.state = StaircaseState.COMMITTING
            self._commit()
        else:
            self.current_visibility = new_visibility
            self._begin_cycle()
        return record

    def _commit(self) -> None:
        self._require(StaircaseState.COMMITTING)
        # The committed threshold is the level tested in the final cycle.
        self.committed_visibility = self.current_visibility
        self.thresholds.set(self.tilt, self.current_visibility)
        logger.info(
            "%s staircase finished after %d cycles; threshold %.2f",
            self.tilt.value,
            self.cycles_completed,
            self.current_visibility,
        )
        self.current_visibility = self.config.initial_visibility
        self.cycles_completed = 0
        self._schedule = []
        self._outcomes = []
        self.state = StaircaseState.DONE


OutcomeCallback = Callable[[StimulusSpec, TrialOutcome], None]
CycleCallback = Callable[[CycleLogRecord], None]


def run_staircase(
    controller: StaircaseController,
    run_trial: TrialRunner,
    *,
    on_outcome: OutcomeCallback | None = None,
    on_cycle: CycleCallback | None = None,
) -> List[CycleLogRecord]:
    """Drive ``controller`` from INSTRUCTING to DONE using ``run_trial``.

    ``on_cycle`` receives each cycle record right after its evaluation, before
    the next cycle's first trial.

    Any exception raised by ``run_trial`` (for example an
    :class:`~imadet.trial.ExperimentAbort`) propagates unchanged and leaves
    the threshold store untouched for this tilt.
    """

    controller.start()
    while not controller.is_done:
        while controller.state is StaircaseState.RUNNING_CYCLE:
            stimulus = controller.next_stimulus()
            outcome = controller.record_response(run_trial(stimulus))
            if on_outcome is not None:
                on_outcome(stimulus, outcome)
        record = controller.evaluate()
        if on_cycle is not None:
            on_cycle(record)
    return list(controller.cycle_log)


def run_calibration_phase(
    thresholds: ParticipantVisibilityThreshold,
    run_trial: TrialRunner,
    config: StaircaseConfig | None = None,
    *,
    mapping: ResponseMapping | None = None,
    order: OrderFunction = keep_order,
    on_outcome: OutcomeCallback | None = None,
    on_cycle: CycleCallback | None = None,
    before_tilt: Callable[[GratingTilt], None] | None = None,
) -> List[CycleLogRecord]:
    """Calibrate both tilts, in an order chosen by ``order``.

    Each tilt gets its own :class:`StaircaseController`, so the two runs share
    no visibility or cycle state.  ``before_tilt`` is called at the start of
    each run (the place to show block instructions).

    Returns
    -------
    list of :class:`CycleLogRecord`
        All cycle records, in the order they were produced.
    """

    config = config or StaircaseConfig()
    config.validate()
    records: List[CycleLogRecord] = []
    for tilt in tilt_order(order):
        if before_tilt is not None:
            before_tilt(tilt)
        controller = StaircaseController(
            tilt, thresholds, config, mapping=mapping, order=order
        )
        records.extend(
            run_staircase(controller, run_trial, on_outcome=on_outcome, on_cycle=on_cycle)
        )
    return records


__all__ = [
    "StaircaseStateError",
    "StaircaseState",
    "TrialOutcome",
    "CycleResult",
    "CycleLogRecord",
    "StaircaseController",
    "run_staircase",
    "run_calibration_phase",
    "OutcomeCallback",
    "CycleCallback",
]
