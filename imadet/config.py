"""Configuration helpers for the imagery/detection experiment.

The dataclasses below store the user-editable parameters of a session: the
staircase calibration, the practice gate, the main experimental blocks, and
the PsychoPy window/timing options.  Keeping these values in one module makes
it easy to discover what can be tweaked without touching the trial or
staircase code.

Every config exposes :meth:`validate`, which raises :class:`ConfigurationError`
so that malformed settings are reported at session start rather than in the
middle of a running staircase.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

# Defaults adapted from Dijkstra et al. (2021); opacity runs 0..1, accuracy is in percent.
VISIBILITY_LEVEL_INIT: float = 0.8
VISIBILITY_LEVEL_MAX: float = 1.0
ACCURACY_TARGET: int = 70
ACCURACY_UPPER_BOUND: int = 75
ACCURACY_LOWER_BOUND: int = 65
# Dijkstra steps by accuracy / 10 on a 1..50 scale, which is accuracy / 500 here.
STEP_DIVISOR: float = 500.0


class ConfigurationError(ValueError):
    """Raised when experiment parameters cannot produce a valid session."""


def _check_fraction(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must lie in [0, 1], got {value!r}")


def _check_even_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    if value % 2:
        raise ConfigurationError(
            f"{name} must be even so that half the trials show a grating, got {value!r}"
        )


@dataclass
class StaircaseConfig:
    """Parameters of the per-tilt detection staircase."""

    initial_visibility: float = VISIBILITY_LEVEL_INIT
    max_visibility: float = VISIBILITY_LEVEL_MAX
    # No lower clamp unless explicitly requested (see DESIGN.md).
    min_visibility: Optional[float] = None
    accuracy_target: int = ACCURACY_TARGET
    accuracy_upper_bound: int = ACCURACY_UPPER_BOUND
    accuracy_lower_bound: int = ACCURACY_LOWER_BOUND
    trials_per_cycle: int = 10
    cycles: int = 12
    step_divisor: float = STEP_DIVISOR

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` if the staircase cannot run."""

        _check_even_positive("trials_per_cycle", self.trials_per_cycle)
        if self.cycles <= 0:
            raise ConfigurationError(f"cycles must be positive, got {self.cycles!r}")
        if self.accuracy_lower_bound > self.accuracy_upper_bound:
            raise ConfigurationError(
                "accuracy_lower_bound must not exceed accuracy_upper_bound "
                f"({self.accuracy_lower_bound} > {self.accuracy_upper_bound})"
            )
        if not self.accuracy_lower_bound <= self.accuracy_target <= self.accuracy_upper_bound:
            raise ConfigurationError(
                f"accuracy_target {self.accuracy_target} lies outside the dead band "
                f"[{self.accuracy_lower_bound}, {self.accuracy_upper_bound}]"
            )
        if self.step_divisor <= 0:
            raise ConfigurationError(
                f"step_divisor must be positive, got {self.step_divisor!r}"
            )
        if not 0.0 < self.max_visibility <= 1.0:
            raise ConfigurationError(
                f"max_visibility must lie in (0, 1], got {self.max_visibility!r}"
            )
        _check_fraction("initial_visibility", self.initial_visibility)
        if self.initial_visibility > self.max_visibility:
            raise ConfigurationError(
                "initial_visibility must not exceed max_visibility "
                f"({self.initial_visibility} > {self.max_visibility})"
            )
        if self.min_visibility is not None:
            _check_fraction("min_visibility", self.min_visibility)
            if self.min_visibility > self.max_visibility:
                raise ConfigurationError(
                    "min_visibility must not exceed max_visibility "
                    f"({self.min_visibility} > {self.max_visibility})"
                )


@dataclass
class PracticeConfig:
    """Parameters of the practice accuracy gate that precedes calibration.

    ``accuracy_threshold`` is inclusive: a block passes once its integer
    accuracy is at least this many percent (75 passes at 75%, i.e. above 74%).
    """

    initial_visibility: float = VISIBILITY_LEVEL_INIT
    accuracy_threshold: int = 75
    visibility_increment: float = 0.02
    # One repetition shows a left grating, a right grating and a noise animation.
    repetitions: int = 2

    def validate(self) -> None:
        _check_fraction("practice initial_visibility", self.initial_visibility)
        if self.repetitions <= 0:
            raise ConfigurationError(
                f"practice repetitions must be positive, got {self.repetitions!r}"
            )
        if self.visibility_increment <= 0:
            raise ConfigurationError(
                "practice visibility_increment must be positive, "
                f"got {self.visibility_increment!r}"
            )
        if not 0 <= self.accuracy_threshold <= 100:
            raise ConfigurationError(
                "practice accuracy_threshold must lie in [0, 100], "
                f"got {self.accuracy_threshold!r}"
            )


@dataclass
class MainBlockConfig:
    """Parameters of the main imagery/detection blocks."""

    condition_repetitions: int = 2
    trials_per_condition: int = 50
    imagination_practice_trials_per_tilt: int = 10

    def validate(self) -> None:
        _check_even_positive("trials_per_condition", self.trials_per_condition)
        if self.condition_repetitions <= 0:
            raise ConfigurationError(
                "condition_repetitions must be positive, "
                f"got {self.condition_repetitions!r}"
            )
        if self.imagination_practice_trials_per_tilt < 0:
            raise ConfigurationError(
                "imagination_practice_trials_per_tilt must not be negative"
            )


@dataclass
class ExperimentConfig:
    """Container for experiment parameters and runtime options."""

    experiment_name: str = "imadet_detection"
    data_fields: List[str] = field(
        default_factory=lambda: [
            "participant",
            "test_part",
            "trial_index",
            "tilt",
            "condition",
            "is_signal",
            "visibility",
            "rotation",
            "response",
            "correct_response",
            "correct",
            "rt_s",
            "cycle_index",
            "accuracy",
            "new_visibility",
        ]
    )
    signal_present_key: str = "f"
    signal_absent_key: str = "j"
    imagery_check_keys: Tuple[str, str, str] = ("l", "r", "n")
    vividness_keys: Tuple[str, ...] = ("1", "2", "3", "4", "5")
    continue_key: str = "space"
    fixation_duration_s: float = 0.2
    stimulus_duration_s: float = 2.0
    iti_range_s: Tuple[float, float] = (0.6, 1.8)
    imagination_duration_s: float = 2.0
    stimulus_size_px: int = 250
    noise_fps: int = 10
    results_directory: str = "data"
    screen_index: int = 0
    full_screen: bool = True
    window_size: Tuple[int, int] = (1280, 720)
    window_units: str = "pix"
    background_color: Sequence[float] = (0.0, 0.0, 0.0)
    quit_keys: Tuple[str, ...] = ("escape",)
    debug_mode: bool = False
    debug_window_size: Tuple[int, int] = (1024, 768)
    seed: Optional[int] = None
    staircase: StaircaseConfig = field(default_factory=StaircaseConfig)
    practice: PracticeConfig = field(default_factory=PracticeConfig)
    main: MainBlockConfig = field(default_factory=MainBlockConfig)

    @property
    def response_keys(self) -> Tuple[str, str]:
        """Return ``(signal_present_key, signal_absent_key)``."""

        return self.signal_present_key, self.signal_absent_key

    def validate(self) -> None:
        """Validate this config and all nested configs."""

        if not self.signal_present_key or not self.signal_absent_key:
            raise ConfigurationError("Both response keys must be non-empty")
        if self.signal_present_key.lower() == self.signal_absent_key.lower():
            raise ConfigurationError(
                f"Response keys must differ, both are {self.signal_present_key!r}"
            )
        low, high = self.iti_range_s
        if low < 0 or high < low:
            raise ConfigurationError(f"Invalid ITI range {self.iti_range_s!r}")
        if self.stimulus_duration_s <= 0:
            raise ConfigurationError("stimulus_duration_s must be positive")
        if self.noise_fps <= 0:
            raise ConfigurationError("noise_fps must be positive")
        self.staircase.validate()
        self.practice.validate()
        self.main.validate()

    def instructions_text(self) -> str:
        """Return the response-key reminder shown before each detection block."""

        return (
            "If you see a grating in the noise, press "
            f"[ {self.signal_present_key.upper()} ].\n"
            "If you do not see a grating, press "
            f"[ {self.signal_absent_key.upper()} ].\n\n"
            f"Press [ {self.continue_key} ] to continue. Press ESC to exit early."
        )


__all__ = [
    "VISIBILITY_LEVEL_INIT",
    "VISIBILITY_LEVEL_MAX",
    "ACCURACY_TARGET",
    "ACCURACY_UPPER_BOUND",
    "ACCURACY_LOWER_BOUND",
    "STEP_DIVISOR",
    "ConfigurationError",
    "StaircaseConfig",
    "PracticeConfig",
    "MainBlockConfig",
    "ExperimentConfig",
]
