"""Accuracy and visibility-update helpers for the detection staircase.

These are the pure functions shared by the staircase controller and the
practice gate: scoring a single response, turning a block of scored trials into
an integer accuracy percentage, and suggesting the next grating visibility
after a cycle.  Keeping the math here makes it easy to reuse (and test) without
pulling in PsychoPy or any of the trial sequencing code.
"""
from __future__ import annotations

import math
from typing import Optional, Tuple

from .config import (
    ACCURACY_LOWER_BOUND,
    ACCURACY_TARGET,
    ACCURACY_UPPER_BOUND,
    STEP_DIVISOR,
    VISIBILITY_LEVEL_MAX,
    ConfigurationError,
)


def round_half_away(value: float) -> int:
    """Round ``value`` to the nearest integer, ties away from zero."""

    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def round2(value: float) -> float:
    """Round ``value`` to two decimal places (ties away from zero).

    ``round2`` is idempotent: applying it to an already rounded value returns
    the same value, since ``k / 100 * 100`` lands within float error of ``k``.
    """

    return round_half_away(value * 100) / 100


def accuracy_percent(correct_count: int, trial_count: int) -> int:
    """Return ``round(correct_count / trial_count * 100)`` as an integer.

    Raises
    ------
    ConfigurationError
        If ``trial_count`` is zero.  An empty block can only come from a
        malformed configuration, so it is reported as such rather than as a
        division fault.
    """

    if trial_count <= 0:
        raise ConfigurationError(
            f"Cannot compute accuracy over {trial_count} trials; "
            "block sizes must be positive"
        )
    if not 0 <= correct_count <= trial_count:
        raise ValueError(
            f"correct_count {correct_count} must lie in [0, {trial_count}]"
        )
    return round_half_away(correct_count / trial_count * 100)


def practice_step(
    accuracy: int,
    visibility: float,
    *,
    threshold: int = 75,
    increment: float = 0.02,
) -> Tuple[bool, float]:
    """Apply the practice-gate policy to one block.

    Returns ``(passed, next_visibility)``.  A block passes once its accuracy
    reaches ``threshold``; otherwise the grating gets ``increment`` more
    visible.  ``threshold`` is inclusive (75 means "more than 74%").  There is
    no dead band and no upper limit on the visibility.
    """

    if accuracy >= threshold:
        return True, visibility
    return False, round2(visibility + increment)


def calc_new_visibility(
    current_visibility: float,
    accuracy: int,
    *,
    target: int = ACCURACY_TARGET,
    upper_bound: int = ACCURACY_UPPER_BOUND,
    lower_bound: int = ACCURACY_LOWER_BOUND,
    max_visibility: float = VISIBILITY_LEVEL_MAX,
    min_visibility: Optional[float] = None,
    step_divisor: float = STEP_DIVISOR,
) -> float:
    """Return the visibility level for the next staircase cycle.

    Parameters
    ----------
    current_visibility:
        Grating opacity used during the cycle that was just evaluated.
    accuracy:
        Integer accuracy percentage of that cycle.
    target, upper_bound, lower_bound:
        Accuracy target and the dead band around it.  Accuracy above
        ``upper_bound`` makes the grating fainter, accuracy below
        ``lower_bound`` makes it more visible, anything in between leaves the
        visibility untouched.
    max_visibility:
        Upper clamp for the result.
    min_visibility:
        Optional lower clamp.  ``None`` (the default) applies no lower bound.
    step_divisor:
        Scales the accuracy error into an opacity step.

    Returns
    -------
    float
        The new visibility, rounded to two decimals and clamped.
    """

    new_visibility = current_visibility
    if accuracy > upper_bound:
        new_visibility = round2(current_visibility - (accuracy - target) / step_divisor)
    elif accuracy < lower_bound:
        new_visibility = round2(current_visibility + (target - accuracy) / step_divisor)

    if new_visibility > max_visibility:
        new_visibility = max_visibility
    if min_visibility is not None and new_visibility < min_visibility:
        new_visibility = min_visibility
    return new_visibility


def responses_match(response: Optional[str], expected: str) -> bool:
    """Compare two key names case-insensitively; ``None`` never matches."""

    if response is None:
        return False
    return response.lower() == expected.lower()


__all__ = [
    "round_half_away",
    "round2",
    "accuracy_percent",
    "practice_step",
    "calc_new_visibility",
    "responses_match",
]
