"""PsychoPy trial runner for the detection and imagery tasks.

Every detection trial shows a fixation cross, then an animated binary noise
patch with a grating blended on top at the requested opacity (opacity 0 means
noise only).  The participant answers with one of two keys inside a bounded
response window; a trial without a key press is returned with
``response=None`` and is later scored as incorrect.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from psychopy import core, visual
from psychopy.hardware import keyboard

from .design import StimulusSpec, TrialResponse


class ExperimentAbort(Exception):
    """Raised when the participant issues a quit command (e.g., presses ESC)."""


@dataclass
class DetectionStimuli:
    """PsychoPy stimuli reused across all trials of a session."""

    noise: visual.NoiseStim
    grating: visual.GratingStim
    fixation: visual.TextStim
    message: visual.TextStim


def create_detection_stimuli(
    win: visual.Window,
    *,
    size_px: int,
) -> DetectionStimuli:
    """Create the noise, grating, fixation and message stimuli for ``win``."""

    noise = visual.NoiseStim(
        win,
        noiseType="binary",
        size=(size_px, size_px),
        noiseElementSize=4,
        mask="raisedCos",
        maskParams={"fringeWidth": 0.25},
        units="pix",
    )
    grating = visual.GratingStim(
        win,
        tex="sin",
        mask="raisedCos",
        maskParams={"fringeWidth": 0.25},
        size=(size_px, size_px),
        # Six cycles across the patch.
        sf=6.0 / size_px,
        units="pix",
        opacity=0.0,
    )
    fixation = visual.TextStim(win, text="+", height=30, color="white", units="pix")
    message = visual.TextStim(
        win,
        text="",
        height=24,
        color="white",
        units="pix",
        wrapWidth=win.size[0] * 0.8,
    )
    return DetectionStimuli(noise=noise, grating=grating, fixation=fixation, message=message)


def _check_quit(kb: keyboard.Keyboard, quit_keys: Sequence[str]) -> None:
    quit_list = list(quit_keys)
    if not quit_list:
        return
    for key in kb.getKeys(quit_list, waitRelease=False, clear=False):
        if key.name in quit_list:
            raise ExperimentAbort(f"Quit key '{key.name}' pressed")


def _draw_fixation(
    win: visual.Window,
    stimuli: DetectionStimuli,
    duration: float,
    kb: keyboard.Keyboard,
    quit_keys: Sequence[str],
) -> None:
    """Show the fixation cross for ``duration`` seconds."""

    clock = core.Clock()
    while clock.getTime() < duration:
        stimuli.fixation.draw()
        win.flip()
        _check_quit(kb, quit_keys)


def _blank(win: visual.Window, duration: float, kb: keyboard.Keyboard, quit_keys: Sequence[str]) -> None:
    clock = core.Clock()
    win.flip()
    while clock.getTime() < duration:
        _check_quit(kb, quit_keys)
        core.wait(0.01)


def _animate(
    win: visual.Window,
    stimuli: DetectionStimuli,
    *,
    opacity: float,
    duration: float,
    noise_fps: int,
    kb: keyboard.Keyboard,
    choices: Sequence[str],
    quit_keys: Sequence[str],
) -> TrialResponse:
    """Run the noise animation, returning the first key in ``choices``.

    An empty ``choices`` shows the animation for the full ``duration``.  Keys
    pressed before the animation starts are discarded.
    """

    frame_interval = 1.0 / noise_fps
    next_noise_update = 0.0
    response_keys = list(choices)
    clock = core.Clock()
    _check_quit(kb, quit_keys)
    kb.clearEvents()
    kb.clock.reset()
    while clock.getTime() < duration:
        now = clock.getTime()
        if now >= next_noise_update:
            stimuli.noise.updateNoise()
            next_noise_update += frame_interval
        stimuli.noise.draw()
        if opacity > 0:
            stimuli.grating.opacity = opacity
            stimuli.grating.draw()
        win.flip()
        if response_keys:
            for key in kb.getKeys(response_keys, waitRelease=False):
                return TrialResponse(response=key.name, rt=key.rt)
        _check_quit(kb, quit_keys)
    return TrialResponse(response=None, rt=None)


def run_detection_trial(
    *,
    win: visual.Window,
    stimuli: DetectionStimuli,
    spec: StimulusSpec,
    choices: Sequence[str],
    kb: keyboard.Keyboard,
    fixation_duration: float,
    stimulus_duration: float,
    noise_fps: int,
    iti_range: tuple[float, float] = (0.6, 1.8),
    quit_keys: Sequence[str] = ("escape",),
    rng: Optional[random.Random] = None,
) -> TrialResponse:
    """Present one detection trial described by ``spec``.

    Raises
    ------
    ExperimentAbort
        If one of ``quit_keys`` is pressed at any point during the trial.
    """

    kb.clearEvents()
    _draw_fixation(win, stimuli, fixation_duration, kb, quit_keys)
    stimuli.grating.ori = spec.rotation
    response = _animate(
        win,
        stimuli,
        opacity=spec.opacity,
        duration=stimulus_duration,
        noise_fps=noise_fps,
        kb=kb,
        choices=choices,
        quit_keys=quit_keys,
    )
    low, high = iti_range
    _blank(win, (rng or random).uniform(low, high), kb, quit_keys)
    return response


def show_message(
    *,
    win: visual.Window,
    stimuli: DetectionStimuli,
    text: str,
    kb: keyboard.Keyboard,
    keys: Sequence[str],
    quit_keys: Sequence[str] = ("escape",),
) -> TrialResponse:
    """Display ``text`` until one of ``keys`` is pressed."""

    stimuli.message.text = text
    kb.clearEvents()
    clock = core.Clock()
    wanted = list(keys)
    while True:
        stimuli.message.draw()
        win.flip()
        for key in kb.getKeys(wanted, waitRelease=False):
            return TrialResponse(response=key.name, rt=clock.getTime())
        _check_quit(kb, quit_keys)
        core.wait(0.01)


def run_imagery_rating(
    *,
    win: visual.Window,
    stimuli: DetectionStimuli,
    kb: keyboard.Keyboard,
    fixation_duration: float,
    duration: float,
    noise_fps: int,
    rating_keys: Sequence[str],
    quit_keys: Sequence[str] = ("escape",),
) -> TrialResponse:
    """Show a noise-only animation for imagery, then collect a vividness rating."""

    kb.clearEvents()
    _draw_fixation(win, stimuli, fixation_duration, kb, quit_keys)
    _animate(
        win,
        stimuli,
        opacity=0.0,
        duration=duration,
        noise_fps=noise_fps,
        kb=kb,
        choices=(),
        quit_keys=quit_keys,
    )
    return show_message(
        win=win,
        stimuli=stimuli,
        text=(
            "How vivid was your imagery?\n\n"
            f"Not vivid at all [{rating_keys[0]}] - as vivid as if it were real [{rating_keys[-1]}]"
        ),
        kb=kb,
        keys=rating_keys,
        quit_keys=quit_keys,
    )


__all__ = [
    "ExperimentAbort",
    "DetectionStimuli",
    "create_detection_stimuli",
    "run_detection_trial",
    "run_imagery_rating",
    "show_message",
]
