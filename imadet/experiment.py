"""High-level experiment orchestration for the imagery/detection task."""
from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Dict, List

from psychopy import core, gui, visual
from psychopy import logging as psychopy_logging
from psychopy.hardware import keyboard

from template import BaseExperiment

from .calibration import responses_match
from .config import ExperimentConfig
from .design import (
    ResponseMapping,
    StimulusSpec,
    TrialResponse,
    condition_order,
    expected_imagery_key,
    iter_main_block,
    make_order_function,
    tilt_order,
)
from .practice import PracticeGate, run_practice_gate
from .staircase import TrialOutcome, run_calibration_phase
from .thresholds import GratingTilt, ParticipantVisibilityThreshold
from .trial import (
    DetectionStimuli,
    ExperimentAbort,
    create_detection_stimuli,
    run_detection_trial,
    run_imagery_rating,
    show_message,
)

logger = logging.getLogger(__name__)


class ImadetExperiment(BaseExperiment):
    """Practice, calibrate and run the main imagery/detection blocks."""

    def __init__(self, config: ExperimentConfig | None = None):
        self.config = config or ExperimentConfig()
        self.config.validate()
        self.mapping = ResponseMapping(
            signal_present=self.config.signal_present_key,
            signal_absent=self.config.signal_absent_key,
        )
        self.order = make_order_function(self.config.seed)
        self.rng = random.Random(self.config.seed)
        self.thresholds = ParticipantVisibilityThreshold(
            self.config.staircase.initial_visibility,
            self.config.staircase.initial_visibility,
        )
        self._win: visual.Window | None = None
        self._stimuli: DetectionStimuli | None = None
        self._kb: keyboard.Keyboard | None = None
        super().__init__(
            experiment_name=self.config.experiment_name,
            data_fields=self.config.data_fields,
            data_directory=self.config.results_directory,
        )

    # ------------------------------------------------------------------
    # GUI helpers
    # ------------------------------------------------------------------
    def collect_participant_info(self) -> Dict[str, str]:
        """Display an info dialog to collect participant metadata."""

        info = {
            "Participant ID": "",
            "Session": "1",
        }
        dialog = gui.DlgFromDict(info, title="Imagery and Detection", fixed=["Session"])
        if not dialog.OK:
            core.quit()
        return info

    def _configure_logging(self) -> None:
        level = psychopy_logging.DEBUG if self.config.debug_mode else psychopy_logging.WARNING
        psychopy_logging.console.setLevel(level)
        log_path = Path(self._default_filename(".log"))
        psychopy_logging.LogFile(str(log_path), level=psychopy_logging.INFO, filemode="w")
        logging.basicConfig(
            level=logging.DEBUG if self.config.debug_mode else logging.INFO,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )

    # ------------------------------------------------------------------
    # Window creation
    # ------------------------------------------------------------------
    def create_window(self) -> visual.Window:
        """Create the PsychoPy window (a smaller, framed one in debug mode)."""

        if self.config.debug_mode:
            size, fullscr = list(self.config.debug_window_size), False
        else:
            size, fullscr = list(self.config.window_size), self.config.full_screen
        return visual.Window(
            size=size,
            fullscr=fullscr,
            screen=self.config.screen_index,
            units=self.config.window_units,
            color=list(self.config.background_color),
            allowGUI=self.config.debug_mode,
            waitBlanking=not self.config.debug_mode,
        )

    # ------------------------------------------------------------------
    # Trial plumbing
    # ------------------------------------------------------------------
    def _message(self, text: str, keys: List[str] | None = None) -> TrialResponse:
        assert self._win is not None and self._stimuli is not None and self._kb is not None
        return show_message(
            win=self._win,
            stimuli=self._stimuli,
            text=text,
            kb=self._kb,
            keys=keys or [self.config.continue_key],
            quit_keys=self.config.quit_keys,
        )

    def run_trial(self, spec: StimulusSpec) -> TrialResponse:
        """Trial runner handed to the practice gate and the staircase."""

        assert self._win is not None and self._stimuli is not None and self._kb is not None
        return run_detection_trial(
            win=self._win,
            stimuli=self._stimuli,
            spec=spec,
            choices=self.mapping.choices,
            kb=self._kb,
            fixation_duration=self.config.fixation_duration_s,
            stimulus_duration=self.config.stimulus_duration_s,
            noise_fps=self.config.noise_fps,
            iti_range=self.config.iti_range_s,
            quit_keys=self.config.quit_keys,
            rng=self.rng,
        )

    def _record_trial(self, spec: StimulusSpec, outcome: TrialOutcome) -> None:
        self.add_rows(
            [
                {
                    "test_part": spec.test_part,
                    "tilt": spec.tilt.value if spec.tilt else "",
                    "condition": spec.condition or "",
                    "is_signal": spec.is_signal,
                    "visibility": spec.opacity,
                    "rotation": spec.rotation,
                    "response": outcome.response or "",
                    "correct_response": outcome.correct_response,
                    "correct": outcome.correct,
                    "rt_s": outcome.rt if outcome.rt is not None else float("nan"),
                }
            ]
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def run_practice(self) -> None:
        self._message(
            "We start with some practice trials.\n\n"
            "Left and right tilted gratings will appear in the noise.\n\n"
            + self.config.instructions_text()
        )
        gate = PracticeGate(self.config.practice, mapping=self.mapping, order=self.order)
        run_practice_gate(
            gate,
            self.run_trial,
            on_outcome=self._record_trial,
            after_block=lambda finished: self._message(
                finished.block_summary() + f"\n\nPress [ {self.config.continue_key} ] to continue."
            ),
        )

    def run_calibration(self) -> None:
        self._message(
            "Two calibration blocks follow. Over time it will get harder to see "
            "the grating. Just try your best on every trial.\n\n"
            f"Press [ {self.config.continue_key} ] to continue."
        )

        def _instruct(tilt: GratingTilt) -> None:
            self._message(
                f"During this block you will see {tilt.value} tilted gratings.\n\n"
                + self.config.instructions_text()
            )

        records = run_calibration_phase(
            self.thresholds,
            self.run_trial,
            self.config.staircase,
            mapping=self.mapping,
            order=self.order,
            on_outcome=self._record_trial,
            on_cycle=lambda record: self.add_rows([record.as_row()]),
            before_tilt=_instruct,
        )
        logger.info("Calibrated %d cycles: %s", len(records), self.thresholds)
        self.experiment_info.update(self.thresholds.as_dict())

    def run_imagination_practice(self) -> None:
        assert self._win is not None and self._stimuli is not None and self._kb is not None
        trials = self.config.main.imagination_practice_trials_per_tilt
        if trials == 0:
            return
        for tilt in tilt_order(self.order):
            self._message(
                f"For the next trials, please imagine a {tilt.value} tilted grating "
                "as vividly as possible while you look at the noise.\n\n"
                f"Press [ {self.config.continue_key} ] to continue."
            )
            for _ in range(trials):
                rating = run_imagery_rating(
                    win=self._win,
                    stimuli=self._stimuli,
                    kb=self._kb,
                    fixation_duration=self.config.fixation_duration_s,
                    duration=self.config.imagination_duration_s,
                    noise_fps=self.config.noise_fps,
                    rating_keys=self.config.vividness_keys,
                    quit_keys=self.config.quit_keys,
                )
                self.add_rows(
                    [
                        {
                            "test_part": "practice_imagination",
                            "tilt": tilt.value,
                            "response": rating.response or "",
                            "rt_s": rating.rt if rating.rt is not None else float("nan"),
                        }
                    ]
                )

    def run_main_blocks(self) -> None:
        conditions = condition_order(self.config.main.condition_repetitions, self.order)
        left, right, nothing = self.config.imagery_check_keys
        for block_index, condition in enumerate(conditions, start=1):
            imagine = f"a {condition.imagined.value} tilted grating" if condition.imagined else "nothing"
            self._message(
                f"This is block {block_index} of {len(conditions)}.\n\n"
                f"During this block you will see {condition.displayed.value} tilted gratings. "
                f"On every trial, please imagine {imagine}.\n\n"
                + self.config.instructions_text()
            )
            for spec in iter_main_block(
                condition,
                self.thresholds,
                self.config.main.trials_per_condition,
                self.mapping,
                self.order,
            ):
                outcome = TrialOutcome.score(spec, self.run_trial(spec))
                self._record_trial(spec, outcome)

            check = self._message(
                "Done! Did you imagine a grating during this block?\n\n"
                f"Yes, left tilted [ {left.upper()} ] / Yes, right tilted [ {right.upper()} ] "
                f"/ No [ {nothing.upper()} ]",
                keys=list(self.config.imagery_check_keys),
            )
            expected = expected_imagery_key(condition, self.config.imagery_check_keys)
            correct = responses_match(check.response, expected)
            self.add_rows(
                [
                    {
                        "test_part": "main_imagination_check",
                        "condition": condition.name,
                        "response": check.response or "",
                        "correct_response": expected,
                        "correct": correct,
                    }
                ]
            )
            if correct:
                self._message(f"Excellent!\n\nPress [ {self.config.continue_key} ] to continue.")
            else:
                self._message(
                    "That was not correct, please read the instructions carefully.\n\n"
                    f"Press [ {self.config.continue_key} ] to continue."
                )

    # ------------------------------------------------------------------
    # Data persistence
    # ------------------------------------------------------------------
    def save_results(self, participant: str) -> Path:
        """Save CSV results and the participant info (including thresholds)."""

        for row in self.experiment_data:
            row.setdefault("participant", participant)
        self.open_csv_data_file()
        self.save_data_to_csv()
        self.save_experiment_info()
        assert self.experiment_data_filename is not None
        return Path(self.experiment_data_filename)

    # ------------------------------------------------------------------
    # Experiment entry point
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Execute the full experiment pipeline."""

        participant_info = self.collect_participant_info()
        self.experiment_info.update(participant_info)
        self._configure_logging()

        self._win = self.create_window()
        self._stimuli = create_detection_stimuli(self._win, size_px=self.config.stimulus_size_px)
        self._kb = keyboard.Keyboard()
        aborted = False
        try:
            self.run_practice()
            self.run_calibration()
            self.run_imagination_practice()
            self.run_main_blocks()
        except ExperimentAbort as exc:
            logger.warning("Session aborted: %s", exc)
            aborted = True
        finally:
            self._win.close()

        if not aborted:
            path = self.save_results(participant_info.get("Participant ID", "unknown"))
            logger.info("Saved results to %s", path)

        core.quit()


__all__ = ["ImadetExperiment"]
