"""Trial-list construction for every phase of the experiment.

Each phase is described as a list (or generator) of :class:`StimulusSpec`
objects, which the trial runner turns into a fixation cross plus a noise
animation with an optional grating on top.  Randomisation always goes through
an injected *order function* so that tests (and dry runs) can replay a session
deterministically from a seed.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .thresholds import GratingTilt, ParticipantVisibilityThreshold

T = TypeVar("T")
OrderFunction = Callable[[Sequence[T]], List[T]]


def make_order_function(seed: Optional[int] = None) -> OrderFunction:
    """Return a function that yields shuffled copies of its input.

    The returned callable owns its own :class:`random.Random`, seeded with
    ``seed``; two functions built from the same seed produce the same
    sequence of permutations.
    """

    rng = random.Random(seed)

    def _order(items: Sequence[T]) -> List[T]:
        shuffled = list(items)
        rng.shuffle(shuffled)
        return shuffled

    return _order


def keep_order(items: Sequence[T]) -> List[T]:
    """Order function that leaves the sequence as given."""

    return list(items)


@dataclass(frozen=True)
class ResponseMapping:
    """Which key means "grating present" and which means "noise only"."""

    signal_present: str = "f"
    signal_absent: str = "j"

    @property
    def choices(self) -> Tuple[str, str]:
        return self.signal_present, self.signal_absent

    def expected(self, is_signal: bool) -> str:
        return self.signal_present if is_signal else self.signal_absent

    def prompt(self) -> str:
        return f"Grating [ {self.signal_present.upper()} ] or noise [ {self.signal_absent.upper()} ]"


@dataclass(frozen=True)
class StimulusSpec:
    """Everything the trial runner needs to present one detection trial."""

    test_part: str
    is_signal: bool
    opacity: float
    rotation: float
    correct_response: str
    tilt: Optional[GratingTilt] = None
    condition: Optional[str] = None


def _signal_spec(test_part, tilt, opacity, mapping, condition=None) -> StimulusSpec:
    return StimulusSpec(
        test_part=test_part,
        is_signal=True,
        opacity=opacity,
        rotation=tilt.rotation,
        correct_response=mapping.expected(True),
        tilt=tilt,
        condition=condition,
    )


def _noise_spec(test_part, mapping, tilt=None, rotation=0.0, condition=None) -> StimulusSpec:
    return StimulusSpec(
        test_part=test_part,
        is_signal=False,
        opacity=0.0,
        rotation=rotation,
        correct_response=mapping.expected(False),
        tilt=tilt,
        condition=condition,
    )


@dataclass(frozen=True)
class TrialResponse:
    """What the trial runner reports back: the key pressed and its latency.

    ``response`` is ``None`` when the response window closed without a key.
    """

    response: Optional[str] = None
    rt: Optional[float] = None


# ---------------------------------------------------------------------------
# Calibration
# ---------------------------------------------------------------------------

def tilt_order(order: OrderFunction = keep_order) -> List[GratingTilt]:
    """Return the order in which the two tilts are calibrated."""

    return order([GratingTilt.LEFT, GratingTilt.RIGHT])


def build_cycle_schedule(
    tilt: GratingTilt,
    visibility: float,
    trials_per_cycle: int,
    mapping: ResponseMapping,
    order: OrderFunction = keep_order,
) -> List[StimulusSpec]:
    """Return the trials of one staircase cycle.

    Exactly half of the ``trials_per_cycle`` trials show a grating of ``tilt``
    at ``visibility``; the other half are noise-only.  The combined list is
    passed through ``order`` once.
    """

    half = trials_per_cycle // 2
    signal = _signal_spec("staircase_test", tilt, visibility, mapping)
    noise = _noise_spec("staircase_test", mapping, tilt=tilt, rotation=tilt.rotation)
    return order([noise, signal] * half)


# ---------------------------------------------------------------------------
# Practice
# ---------------------------------------------------------------------------

def build_practice_block(
    visibility: float,
    repetitions: int,
    mapping: ResponseMapping,
    order: OrderFunction = keep_order,
) -> List[StimulusSpec]:
    """Return one practice block: a left grating, a right grating and a noise
    animation per repetition, in randomised order."""

    unit = [
        _signal_spec("practice_detection", GratingTilt.LEFT, visibility, mapping),
        _signal_spec("practice_detection", GratingTilt.RIGHT, visibility, mapping),
        _noise_spec("practice_detection", mapping, rotation=GratingTilt.LEFT.rotation),
    ]
    return order(unit * repetitions)


# ---------------------------------------------------------------------------
# Main experiment
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Condition:
    """A main-experiment condition: the displayed tilt and the imagined one."""

    name: str
    displayed: GratingTilt
    imagined: Optional[GratingTilt]


MAIN_CONDITIONS: Tuple[Condition, ...] = tuple(
    Condition(
        name=f"display_{displayed.value}_imagine_{imagined.value if imagined else 'nothing'}",
        displayed=displayed,
        imagined=imagined,
    )
    for displayed in (GratingTilt.LEFT, GratingTilt.RIGHT)
    for imagined in (None, GratingTilt.LEFT, GratingTilt.RIGHT)
)


def condition_order(
    repetitions: int, order: OrderFunction = keep_order
) -> List[Condition]:
    """Return every condition ``repetitions`` times, in randomised order."""

    return order(list(MAIN_CONDITIONS) * repetitions)


def iter_main_block(
    condition: Condition,
    thresholds: ParticipantVisibilityThreshold,
    trials_per_condition: int,
    mapping: ResponseMapping,
    order: OrderFunction = keep_order,
) -> Iterator[StimulusSpec]:
    """Yield the trials of one main-experiment block.

    The grating opacity is read from ``thresholds`` as each trial is produced,
    so the block always uses the participant's calibrated visibility.
    """

    half = trials_per_condition // 2
    for is_signal in order([False, True] * half):
        if is_signal:
            yield _signal_spec(
                "main_test",
                condition.displayed,
                thresholds.get(condition.displayed),
                mapping,
                condition=condition.name,
            )
        else:
            yield _noise_spec("main_test", mapping, condition=condition.name)


def expected_imagery_key(
    condition: Condition, keys: Tuple[str, str, str] = ("l", "r", "n")
) -> str:
    """Return the key that answers "what did you imagine?" for ``condition``.

    ``keys`` is ``(left, right, nothing)``.
    """

    left, right, nothing = keys
    if condition.imagined is GratingTilt.LEFT:
        return left
    if condition.imagined is GratingTilt.RIGHT:
        return right
    return nothing


__all__ = [
    "OrderFunction",
    "make_order_function",
    "keep_order",
    "ResponseMapping",
    "StimulusSpec",
    "TrialResponse",
    "tilt_order",
    "build_cycle_schedule",
    "build_practice_block",
    "Condition",
    "MAIN_CONDITIONS",
    "condition_order",
    "iter_main_block",
    "expected_imagery_key",
]
