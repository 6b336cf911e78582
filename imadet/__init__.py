"""Imagery and visual detection experiment with per-tilt threshold calibration.

This package exposes the adaptive staircase that calibrates, separately for
left and right tilted gratings, the grating visibility at which a participant
detects about 70% of trials, together with the practice gate, trial-list
construction and a simulated observer.  The PsychoPy front end lives in
:mod:`imadet.experiment` and :mod:`imadet.trial`, which are imported on demand
so the calibration core runs without a display.
"""

from .calibration import (
    accuracy_percent,
    calc_new_visibility,
    practice_step,
    responses_match,
    round2,
)
from .config import (
    ConfigurationError,
    ExperimentConfig,
    MainBlockConfig,
    PracticeConfig,
    StaircaseConfig,
)
from .design import ResponseMapping, StimulusSpec, TrialResponse, make_order_function
from .practice import PracticeGate, run_practice_gate
from .simulate import SimulatedObserver
from .staircase import (
    CycleLogRecord,
    CycleResult,
    StaircaseController,
    StaircaseState,
    StaircaseStateError,
    TrialOutcome,
    run_calibration_phase,
    run_staircase,
)
from .thresholds import GratingTilt, ParticipantVisibilityThreshold
from .cli import main as run_experiment

__all__ = [
    "ExperimentConfig",
    "StaircaseConfig",
    "PracticeConfig",
    "MainBlockConfig",
    "ConfigurationError",
    "GratingTilt",
    "ParticipantVisibilityThreshold",
    "ResponseMapping",
    "StimulusSpec",
    "TrialResponse",
    "make_order_function",
    "StaircaseController",
    "StaircaseState",
    "StaircaseStateError",
    "TrialOutcome",
    "CycleResult",
    "CycleLogRecord",
    "run_staircase",
    "run_calibration_phase",
    "PracticeGate",
    "run_practice_gate",
    "SimulatedObserver",
    "round2",
    "accuracy_percent",
    "calc_new_visibility",
    "practice_step",
    "responses_match",
    "run_experiment",
]
